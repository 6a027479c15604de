"""Changeflow - task engine for file-based change workflows."""

from .errors import (
    ChangeflowError,
    MigrationError,
    MigrationPermissionError,
    TaskFrontmatterError,
    TaskStatusError,
)
from .models import (
    ChangeTaskStructure,
    PrioritizedChange,
    TaskFileInfo,
    TaskProgress,
    TaskStatus,
)
from .workflow import TaskWorkflow
from .workspace import Workspace

__all__ = [
    "ChangeflowError",
    "MigrationError",
    "MigrationPermissionError",
    "TaskFrontmatterError",
    "TaskStatusError",
    "ChangeTaskStructure",
    "PrioritizedChange",
    "TaskFileInfo",
    "TaskProgress",
    "TaskStatus",
    "TaskWorkflow",
    "Workspace",
]
