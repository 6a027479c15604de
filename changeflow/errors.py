"""Error types raised by the Changeflow task engine.

Benign absence (no tasks directory, no changes) is never an error; these
types cover integrity problems in task content and failed migrations.
"""

from __future__ import annotations


class ChangeflowError(Exception):
    """Base class for Changeflow failures."""


class TaskStatusError(ChangeflowError, ValueError):
    """A task file has no parseable status field."""

    def __init__(self, message: str, filepath: str | None = None):
        if filepath:
            message = f"{message} ({filepath})"
        super().__init__(message)
        self.filepath = filepath


class TaskFrontmatterError(ChangeflowError, ValueError):
    """Task front-matter carries an incomplete or invalid parent reference."""


class MigrationError(ChangeflowError, RuntimeError):
    """Migrating legacy task files failed."""

    def __init__(self, message: str, path: str | None = None):
        super().__init__(message)
        self.path = path


class MigrationPermissionError(MigrationError, PermissionError):
    """Migration could not proceed because access was denied."""
