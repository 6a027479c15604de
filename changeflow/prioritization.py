"""Selection of the change to work on next.

Changes closest to completion come first so near-finished work gets
wrapped up; equally progressed changes are taken oldest first. A change
with nothing left to do and no task in progress is never selected.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from .changeflow_logging import log_change_prioritized, log_performance
from .config import ARCHIVE_DIR_NAME, PROPOSAL_FILENAME
from .models import (
    PrioritizationResult,
    PrioritizedChange,
    SkippedChange,
    TaskFileInfo,
    TaskProgress,
    TaskStatus,
)
from .task_progress import get_task_structure_for_change
from .task_status import get_task_status

logger = logging.getLogger("changeflow.prioritization")

PathLike = Union[str, Path]


def get_completion_percentage(progress: TaskProgress) -> float:
    """Percentage of checked items; 0.0 when there are none."""
    if progress.total == 0:
        return 0.0
    return (progress.completed / progress.total) * 100


def get_change_created_at(changes_root: PathLike, change_id: str) -> datetime:
    """Creation time of a change, taken from its proposal file.

    Uses the birth time where the filesystem records one and falls back to
    the modification time otherwise. Raises FileNotFoundError when the
    proposal is missing.
    """
    stat = os.stat(Path(changes_root) / change_id / PROPOSAL_FILENAME)
    birthtime = getattr(stat, "st_birthtime", None)
    timestamp = birthtime if birthtime and birthtime > 0 else stat.st_mtime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def find_tasks_by_status(
    task_files: Iterable[TaskFileInfo],
) -> Tuple[Optional[TaskFileInfo], Optional[TaskFileInfo]]:
    """Return the first in-progress and the first to-do task, in order."""
    in_progress: Optional[TaskFileInfo] = None
    next_todo: Optional[TaskFileInfo] = None

    for task_file in task_files:
        status = get_task_status(task_file.filepath)
        if status is TaskStatus.IN_PROGRESS and in_progress is None:
            in_progress = task_file
        elif status is TaskStatus.TO_DO and next_todo is None:
            next_todo = task_file

        if in_progress and next_todo:
            break

    return in_progress, next_todo


def get_active_change_ids(changes_root: PathLike) -> List[str]:
    """Names of the change directories under the changes root, sorted.

    The archive and hidden directories are not changes.
    """
    try:
        with os.scandir(changes_root) as entries:
            return sorted(
                entry.name
                for entry in entries
                if entry.is_dir() and entry.name != ARCHIVE_DIR_NAME and not entry.name.startswith(".")
            )
    except OSError:
        return []


def evaluate_change(changes_root: PathLike, change_id: str) -> PrioritizedChange:
    """Build the prioritized view of one change; errors propagate."""
    structure = get_task_structure_for_change(changes_root, change_id)
    created_at = get_change_created_at(changes_root, change_id)
    in_progress, next_todo = find_tasks_by_status(structure.files)

    return PrioritizedChange(
        id=change_id,
        completion_percentage=get_completion_percentage(structure.aggregate_progress),
        created_at=created_at,
        task_progress=structure.aggregate_progress,
        task_files=structure.files,
        in_progress_task=in_progress,
        next_task=in_progress or next_todo,
    )


def _priority_key(change: PrioritizedChange) -> Tuple[float, datetime]:
    return (-change.completion_percentage, change.created_at)


@log_performance("rank_changes")
def rank_changes(changes_root: PathLike) -> PrioritizationResult:
    """Evaluate every change and order them by priority.

    Changes that fail to evaluate (missing proposal, bad task status) are
    reported in ``skipped`` rather than raised.
    """
    result = PrioritizationResult()

    for change_id in get_active_change_ids(changes_root):
        try:
            result.candidates.append(evaluate_change(changes_root, change_id))
        except Exception as e:
            logger.debug(f"Skipping change '{change_id}': {e}")
            result.skipped.append(SkippedChange(change_id=change_id, reason=str(e)))

    result.candidates.sort(key=_priority_key)
    return result


def get_prioritized_change(changes_root: PathLike) -> Optional[PrioritizedChange]:
    """Return the highest-priority actionable change, or None."""
    result = rank_changes(changes_root)
    chosen = result.first()

    log_change_prioritized(
        chosen.id if chosen else None,
        candidates=len(result.candidates),
        skipped=len(result.skipped),
        changes_root=str(changes_root),
    )
    return chosen
