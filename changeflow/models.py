"""Data models for Changeflow task tracking.

This module contains the plain data records exchanged between the task
engine and its callers: task identity, checklist progress, change task
structures and the derived prioritized change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class TaskStatus(str, Enum):
    """Lifecycle status declared in a task file's front-matter."""

    TO_DO = "to-do"
    IN_PROGRESS = "in-progress"
    DONE = "done"

    def __str__(self) -> str:
        return self.value


class ParentType(str, Enum):
    """Kinds of entities a task can belong to."""

    CHANGE = "change"
    REVIEW = "review"
    SPEC = "spec"

    def __str__(self) -> str:
        return self.value


DEFAULT_TASK_STATUS = TaskStatus.TO_DO


@dataclass(slots=True, frozen=True)
class ParsedTaskFilename:
    """Identity encoded in a task filename."""

    sequence: int
    name: str
    parent_id: Optional[str] = None


@dataclass(slots=True, frozen=True)
class TaskParentInfo:
    """Parent reference declared in task front-matter."""

    parent_type: ParentType
    parent_id: str


@dataclass(slots=True)
class TaskProgress:
    """Checklist counters for a task file or a whole change."""

    total: int = 0
    completed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "completed": self.completed}

    @property
    def remaining(self) -> int:
        return self.total - self.completed

    @property
    def is_complete(self) -> bool:
        """True only when there is at least one item and all are checked."""
        return self.total > 0 and self.completed == self.total

    def add(self, other: "TaskProgress") -> None:
        self.total += other.total
        self.completed += other.completed


@dataclass(slots=True)
class TaskFileInfo:
    """A task file discovered inside a change's tasks directory."""

    filename: str
    filepath: str
    sequence: int
    name: str
    progress: TaskProgress = field(default_factory=TaskProgress)
    parent_id: Optional[str] = None

    @property
    def task_id(self) -> str:
        from .task_files import get_task_id_from_filename

        return get_task_id_from_filename(self.filename)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "task_id": self.task_id,
            "filename": self.filename,
            "filepath": self.filepath,
            "sequence": self.sequence,
            "name": self.name,
            "parent_id": self.parent_id,
            "progress": self.progress.to_dict(),
        }


@dataclass(slots=True, frozen=True)
class ExcludedEntry:
    """A directory entry left out of a task structure, and why."""

    filename: str
    reason: str  # 'pattern' or 'unreadable'
    detail: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"filename": self.filename, "reason": self.reason, "detail": self.detail}


@dataclass(slots=True)
class ChangeTaskStructure:
    """Ordered task files of a change with aggregated checklist progress."""

    files: List[TaskFileInfo] = field(default_factory=list)
    aggregate_progress: TaskProgress = field(default_factory=TaskProgress)
    excluded: List[ExcludedEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "files": [info.to_dict() for info in self.files],
            "aggregate_progress": self.aggregate_progress.to_dict(),
            "excluded": [entry.to_dict() for entry in self.excluded],
        }

    def excluded_by_reason(self, reason: str) -> List[ExcludedEntry]:
        return [entry for entry in self.excluded if entry.reason == reason]


@dataclass(slots=True)
class PrioritizedChange:
    """Derived view of a change used to pick what to work on next."""

    id: str
    completion_percentage: float
    created_at: datetime
    task_progress: TaskProgress
    task_files: List[TaskFileInfo] = field(default_factory=list)
    in_progress_task: Optional[TaskFileInfo] = None
    next_task: Optional[TaskFileInfo] = None

    @property
    def is_actionable(self) -> bool:
        """Actionable when a task is in progress or unchecked items remain."""
        if self.in_progress_task is not None:
            return True
        return self.task_progress.total > 0 and self.task_progress.completed < self.task_progress.total

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "completion_percentage": self.completion_percentage,
            "created_at": self.created_at.isoformat(),
            "task_progress": self.task_progress.to_dict(),
            "task_files": [info.to_dict() for info in self.task_files],
            "in_progress_task": self.in_progress_task.to_dict() if self.in_progress_task else None,
            "next_task": self.next_task.to_dict() if self.next_task else None,
        }


@dataclass(slots=True, frozen=True)
class SkippedChange:
    """A change directory that could not be evaluated."""

    change_id: str
    reason: str

    def to_dict(self) -> Dict[str, str]:
        return {"change_id": self.change_id, "reason": self.reason}


@dataclass(slots=True)
class PrioritizationResult:
    """Every evaluated change, ordered by priority, plus the ones dropped."""

    candidates: List[PrioritizedChange] = field(default_factory=list)
    skipped: List[SkippedChange] = field(default_factory=list)

    @property
    def actionable(self) -> List[PrioritizedChange]:
        return [change for change in self.candidates if change.is_actionable]

    def first(self) -> Optional[PrioritizedChange]:
        actionable = self.actionable
        return actionable[0] if actionable else None


@dataclass(slots=True)
class ChecklistToggleResult:
    """Outcome of checking or unchecking a task's checklist items."""

    updated_content: str
    items: List[str] = field(default_factory=list)


@dataclass(slots=True)
class MigrationResult:
    """Filesystem pointers for a legacy tasks.md migration."""

    migrated: bool
    from_path: str
    to_path: str

    def to_dict(self) -> Dict[str, Any]:
        return {"migrated": self.migrated, "from_path": self.from_path, "to_path": self.to_path}
