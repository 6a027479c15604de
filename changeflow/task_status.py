"""Task status front-matter and checklist transitions.

Every task file starts with a front-matter block carrying its lifecycle
status::

    ---
    status: in-progress
    parent-type: change
    parent-id: add-login
    ---

Status is required content: reading a file without a recognizable status
raises :class:`~changeflow.errors.TaskStatusError` instead of assuming a
default. Writes replace only the status line and keep every other byte,
line endings included.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List, Optional, Union

from .changeflow_logging import log_checklist_toggle, log_status_change
from .errors import TaskFrontmatterError, TaskStatusError
from .markdown_sections import is_excluded_section_header, is_section_header
from .models import ChecklistToggleResult, ParentType, TaskParentInfo, TaskStatus

logger = logging.getLogger("changeflow.task_status")

PathLike = Union[str, Path]

FRONTMATTER_PATTERN = re.compile(r"\A(?P<open>---\r?\n)(?:(?P<body>.*?)\r?\n)??---(?=\r?\n|\Z)", re.DOTALL)
STATUS_LINE_PATTERN = re.compile(r"^status:[ \t]*(?P<value>[^\r\n]*?)[ \t]*(?P<cr>\r?)$", re.MULTILINE)
PARENT_TYPE_PATTERN = re.compile(r"^parent-type:[ \t]*(?P<value>[^\r\n]*?)[ \t]*\r?$", re.MULTILINE)
PARENT_ID_PATTERN = re.compile(r"^parent-id:[ \t]*(?P<value>[^\r\n]*?)[ \t]*\r?$", re.MULTILINE)

UNCHECKED_ITEM_PATTERN = re.compile(r"^(?P<prefix>\s*[-*]\s+)\[ \](?P<text>.*)$")
CHECKED_ITEM_PATTERN = re.compile(r"^(?P<prefix>\s*[-*]\s+)\[[xX]\](?P<text>.*)$")


def _strip_quotes(value: str) -> str:
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
        return value[1:-1]
    return value


def _read_text(path: PathLike) -> str:
    # newline="" keeps CRLF intact so rewrites stay byte-for-byte
    with open(path, "r", encoding="utf-8", newline="") as handle:
        return handle.read()


def _write_text(path: PathLike, content: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as handle:
        handle.write(content)


# ------------------------------------------------------------------
# Front-matter parsing
# ------------------------------------------------------------------


def parse_status(content: str, filepath: Optional[PathLike] = None) -> TaskStatus:
    """Return the declared status, raising TaskStatusError when absent or unknown."""
    source = str(filepath) if filepath else None
    frontmatter = FRONTMATTER_PATTERN.match(content)
    if not frontmatter:
        raise TaskStatusError("Task file has no front-matter block declaring its status", source)

    status_line = STATUS_LINE_PATTERN.search(frontmatter.group("body") or "")
    if not status_line:
        raise TaskStatusError("Task front-matter has no 'status' field", source)

    value = _strip_quotes(status_line.group("value"))
    try:
        return TaskStatus(value)
    except ValueError:
        allowed = ", ".join(status.value for status in TaskStatus)
        raise TaskStatusError(
            f"Unrecognized task status '{value}'; expected one of: {allowed}", source
        ) from None


def parse_task_parent_info(content: str) -> Optional[TaskParentInfo]:
    """Return the parent reference from front-matter, if the task has one.

    Both ``parent-type`` and ``parent-id`` must be present together.
    """
    frontmatter = FRONTMATTER_PATTERN.match(content)
    if not frontmatter:
        return None

    body = frontmatter.group("body") or ""
    type_match = PARENT_TYPE_PATTERN.search(body)
    id_match = PARENT_ID_PATTERN.search(body)
    parent_type = _strip_quotes(type_match.group("value")) if type_match else ""
    parent_id = _strip_quotes(id_match.group("value")) if id_match else ""

    if not parent_type and not parent_id:
        return None
    if not parent_type or not parent_id:
        missing = "parent-type" if not parent_type else "parent-id"
        raise TaskFrontmatterError(f"Task front-matter declares a parent without '{missing}'")

    try:
        kind = ParentType(parent_type)
    except ValueError:
        raise TaskFrontmatterError(f"Unknown parent-type '{parent_type}'") from None
    return TaskParentInfo(parent_type=kind, parent_id=parent_id)


def update_status(content: str, new_status: Union[TaskStatus, str]) -> str:
    """Rewrite the status line, leaving the rest of the content untouched.

    A front-matter block without a status line gets one prepended; content
    without front-matter gets a new block.
    """
    status = TaskStatus(new_status)
    frontmatter = FRONTMATTER_PATTERN.match(content)

    if not frontmatter:
        return f"---\nstatus: {status.value}\n---\n\n{content}"

    body = frontmatter.group("body")
    if body is None:
        opening = frontmatter.end("open")
        newline = "\r\n" if frontmatter.group("open").endswith("\r\n") else "\n"
        return f"{content[:opening]}status: {status.value}{newline}{content[opening:]}"

    start, end = frontmatter.span("body")
    status_line = STATUS_LINE_PATTERN.search(body)

    if status_line:
        replacement = f"status: {status.value}{status_line.group('cr')}"
        body = body[: status_line.start()] + replacement + body[status_line.end():]
    else:
        newline = "\r\n" if "\r\n" in frontmatter.group(0) else "\n"
        body = f"status: {status.value}{newline}{body}"

    return content[:start] + body + content[end:]


# ------------------------------------------------------------------
# Checklist toggles
# ------------------------------------------------------------------


def _toggle_checklist(content: str, check: bool) -> ChecklistToggleResult:
    pattern = UNCHECKED_ITEM_PATTERN if check else CHECKED_ITEM_PATTERN
    mark = "x" if check else " "
    lines = content.split("\n")
    items: List[str] = []
    excluded = False

    for index, raw in enumerate(lines):
        line, cr = (raw[:-1], "\r") if raw.endswith("\r") else (raw, "")

        if is_excluded_section_header(line):
            excluded = True
            continue
        if is_section_header(line):
            excluded = False
            continue
        if excluded:
            continue

        match = pattern.match(line)
        if match:
            items.append(match.group("text").strip())
            lines[index] = f"{match.group('prefix')}[{mark}]{match.group('text')}{cr}"

    return ChecklistToggleResult(updated_content="\n".join(lines), items=items)


def complete_checklist(content: str) -> ChecklistToggleResult:
    """Check every unchecked item outside Constraints and Acceptance Criteria."""
    return _toggle_checklist(content, check=True)


def uncomplete_checklist(content: str) -> ChecklistToggleResult:
    """Uncheck every checked item outside Constraints and Acceptance Criteria."""
    return _toggle_checklist(content, check=False)


# ------------------------------------------------------------------
# File operations
# ------------------------------------------------------------------


def get_task_status(filepath: PathLike) -> TaskStatus:
    """Read a task file and return its status."""
    return parse_status(_read_text(filepath), filepath)


def set_task_status(filepath: PathLike, new_status: Union[TaskStatus, str]) -> TaskStatus:
    """Rewrite the status of a task file in place and return the previous one."""
    status = TaskStatus(new_status)
    content = _read_text(filepath)
    previous = parse_status(content, filepath)

    _write_text(filepath, update_status(content, status))
    logger.debug(f"Task {filepath} status {previous.value} -> {status.value}")
    log_status_change(str(filepath), previous.value, status.value)
    return previous


def _transition_fully(filepath: PathLike, check: bool, target: TaskStatus) -> List[str]:
    content = _read_text(filepath)
    previous = parse_status(content, filepath)

    toggled = _toggle_checklist(content, check=check)
    _write_text(filepath, update_status(toggled.updated_content, target))

    log_checklist_toggle(str(filepath), checked=check, item_count=len(toggled.items))
    log_status_change(str(filepath), previous.value, target.value)
    return toggled.items


def complete_task_fully(filepath: PathLike) -> List[str]:
    """Mark a task done and check its open items.

    Returns the text of each item that went from unchecked to checked,
    in document order. Calling it on a finished task returns an empty list.
    """
    return _transition_fully(filepath, check=True, target=TaskStatus.DONE)


def undo_task_fully(filepath: PathLike) -> List[str]:
    """Reset a task to to-do and uncheck its checked items."""
    return _transition_fully(filepath, check=False, target=TaskStatus.TO_DO)
