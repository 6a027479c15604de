"""Checklist counting and per-change task structures.

A change keeps its tasks as ``tasks/NNN-<name>.md`` files. Progress is the
number of checklist items (``- [ ]`` / ``- [x]``) across those files,
ignoring items listed under ``## Constraints`` and
``## Acceptance Criteria``, which describe criteria rather than work.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Union

from .config import LEGACY_TASKS_FILENAME, TASKS_DIRECTORY_NAME
from .errors import TaskFrontmatterError
from .markdown_sections import is_excluded_section_header, is_section_header
from .models import ChangeTaskStructure, ExcludedEntry, TaskFileInfo, TaskProgress
from .task_files import TASK_FILE_PATTERN, parse_task_filename, sort_task_files_by_sequence
from .task_status import parse_task_parent_info

logger = logging.getLogger("changeflow.task_progress")

PathLike = Union[str, Path]

TASK_ITEM_PATTERN = re.compile(r"^[-*]\s+\[[ xX]\]")
COMPLETED_ITEM_PATTERN = re.compile(r"^[-*]\s+\[[xX]\]")


def count_tasks_from_content(content: str) -> TaskProgress:
    """Count checklist items, skipping Constraints and Acceptance Criteria."""
    progress = TaskProgress()
    excluded = False

    for line in content.split("\n"):
        if is_excluded_section_header(line):
            excluded = True
            continue
        if is_section_header(line):
            excluded = False
            continue
        if excluded:
            continue

        if TASK_ITEM_PATTERN.match(line):
            progress.total += 1
            if COMPLETED_ITEM_PATTERN.match(line):
                progress.completed += 1

    return progress


def get_task_structure_for_change(changes_root: PathLike, change_id: str) -> ChangeTaskStructure:
    """Collect the ordered task files of a change with their progress.

    A change without a ``tasks/`` directory has an empty structure. Entries
    that are not task files or cannot be read are left out and listed in
    ``excluded``. A broken parent reference only drops the parent hint.
    """
    tasks_dir = Path(changes_root) / change_id / TASKS_DIRECTORY_NAME
    structure = ChangeTaskStructure()

    if not tasks_dir.is_dir():
        return structure

    entries = os.listdir(tasks_dir)
    for name in sorted(entries):
        if not TASK_FILE_PATTERN.match(name):
            structure.excluded.append(ExcludedEntry(filename=name, reason="pattern"))

    for filename in sort_task_files_by_sequence(entries):
        filepath = tasks_dir / filename
        try:
            with open(filepath, "r", encoding="utf-8") as handle:
                content = handle.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug(f"Skipping unreadable task file {filepath}: {e}")
            structure.excluded.append(ExcludedEntry(filename=filename, reason="unreadable", detail=str(e)))
            continue

        try:
            parent = parse_task_parent_info(content)
        except TaskFrontmatterError as e:
            logger.warning(f"Ignoring parent reference in {filepath}: {e}")
            parent = None

        parsed = parse_task_filename(filename, has_parent=parent is not None)
        progress = count_tasks_from_content(content)
        structure.files.append(
            TaskFileInfo(
                filename=filename,
                filepath=str(filepath),
                sequence=parsed.sequence,
                name=parsed.name,
                progress=progress,
                parent_id=parsed.parent_id,
            )
        )
        structure.aggregate_progress.add(progress)

    return structure


def get_task_progress_for_change(changes_root: PathLike, change_id: str) -> TaskProgress:
    """Aggregate progress for a change, falling back to a legacy ``tasks.md``."""
    structure = get_task_structure_for_change(changes_root, change_id)
    if structure.files:
        return structure.aggregate_progress

    legacy_path = Path(changes_root) / change_id / LEGACY_TASKS_FILENAME
    try:
        content = legacy_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return TaskProgress()
    return count_tasks_from_content(content)


def format_task_status(progress: TaskProgress) -> str:
    """Short progress label for listings."""
    if progress.total == 0:
        return "No tasks"
    if progress.completed == progress.total:
        return "✓ Complete"
    return f"{progress.completed}/{progress.total} tasks"
