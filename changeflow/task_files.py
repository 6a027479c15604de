"""Task filename parsing and canonical task identifiers.

Task files are named ``NNN-<name>.md`` or, for tasks owned by a parent
entity, ``NNN-<parent-id>-<name>.md``. Both parts are kebab-case, so the
filename alone cannot tell the two apart; callers pass ``has_parent`` based
on the task's front-matter.

Canonical task IDs are the filename without its ``.md`` suffix, for example
``001-update-templates``.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Protocol

from .models import ParsedTaskFilename

TASK_FILE_PATTERN = re.compile(r"^(\d{3})-(.+)\.md$")
_MD_SUFFIX = ".md"


class _HasFilename(Protocol):
    filename: str


def parse_task_filename(filename: str, has_parent: bool = False) -> Optional[ParsedTaskFilename]:
    """Parse a task filename, returning None when it is not a task file."""
    match = TASK_FILE_PATTERN.match(filename)
    if not match:
        return None

    sequence = int(match.group(1))
    remainder = match.group(2)

    if has_parent:
        parent_id, sep, name = remainder.rpartition("-")
        if sep and parent_id and name:
            return ParsedTaskFilename(sequence=sequence, name=name, parent_id=parent_id)

    return ParsedTaskFilename(sequence=sequence, name=remainder)


def build_task_filename(sequence: int, name: str, parent_id: Optional[str] = None) -> str:
    """Build ``NNN-[parent-]name.md`` with the sequence zero-padded to 3 digits."""
    if not 0 <= sequence <= 999:
        raise ValueError(f"Task sequence must be 0-999, got: {sequence}")
    if not name:
        raise ValueError("Task name cannot be empty")
    stem = f"{parent_id}-{name}" if parent_id else name
    return f"{sequence:03d}-{stem}.md"


def sort_task_files_by_sequence(filenames: Iterable[str]) -> List[str]:
    """Order task filenames by numeric sequence then name, dropping non-task entries."""
    valid = [name for name in filenames if TASK_FILE_PATTERN.match(name)]
    return sorted(valid, key=lambda name: (int(TASK_FILE_PATTERN.match(name).group(1)), name))


# ------------------------------------------------------------------
# Task IDs
# ------------------------------------------------------------------


def get_task_id_from_filename(filename: str) -> str:
    """Strip a trailing ``.md``; other dotted suffixes are left alone."""
    if filename.endswith(_MD_SUFFIX):
        return filename[: -len(_MD_SUFFIX)]
    return filename


def get_task_id(task: _HasFilename) -> str:
    return get_task_id_from_filename(task.filename)


def normalize_task_id(task_id: str) -> str:
    return get_task_id_from_filename(task_id.strip())


def _as_filename(task_id: str) -> str:
    return task_id if task_id.endswith(_MD_SUFFIX) else f"{task_id}{_MD_SUFFIX}"


def parse_task_id(task_id: str, has_parent: bool = False) -> Optional[ParsedTaskFilename]:
    """Parse a task ID with or without its ``.md`` suffix."""
    return parse_task_filename(_as_filename(task_id), has_parent)


def is_valid_task_id(task_id: str) -> bool:
    return bool(TASK_FILE_PATTERN.match(_as_filename(task_id)))
