"""Migration of legacy single-file ``tasks.md`` into the ``tasks/`` directory.

The legacy checklist becomes ``tasks/001-tasks.md``. The migration is safe
to re-run: the legacy file is removed only after its replacement has been
written, and a change that already has task files is left as it is apart
from dropping an orphaned ``tasks.md``.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Union

from .changeflow_logging import log_operation, log_task_migration
from .config import LEGACY_TASKS_FILENAME, MIGRATED_TASKS_FILENAME, TASKS_DIRECTORY_NAME
from .errors import MigrationError, MigrationPermissionError, TaskStatusError
from .models import DEFAULT_TASK_STATUS, MigrationResult
from .task_files import TASK_FILE_PATTERN
from .task_status import parse_status, update_status

logger = logging.getLogger("changeflow.task_migration")

PathLike = Union[str, Path]


def _raise_migration_error(action: str, path: Path, error: OSError) -> None:
    if isinstance(error, PermissionError):
        raise MigrationPermissionError(
            f"Permission denied while trying to {action} {path}. Check file permissions and retry.",
            str(path),
        ) from error
    raise MigrationError(f"Failed to {action} {path}: {error}", str(path)) from error


def has_valid_tasks_directory(change_dir: PathLike) -> bool:
    """True when ``tasks/`` exists and holds at least one task file."""
    tasks_dir = Path(change_dir) / TASKS_DIRECTORY_NAME
    try:
        return any(TASK_FILE_PATTERN.match(name) for name in os.listdir(tasks_dir))
    except OSError:
        return False


def has_legacy_tasks_file(change_dir: PathLike) -> bool:
    return (Path(change_dir) / LEGACY_TASKS_FILENAME).is_file()


def _with_status(content: str) -> str:
    try:
        parse_status(content)
    except TaskStatusError:
        return update_status(content, DEFAULT_TASK_STATUS)
    return content


def migrate(change_dir: PathLike) -> MigrationResult:
    """Move ``tasks.md`` to ``tasks/001-tasks.md``, adding a status when missing."""
    change_dir = Path(change_dir)
    from_path = change_dir / LEGACY_TASKS_FILENAME
    tasks_dir = change_dir / TASKS_DIRECTORY_NAME
    to_path = tasks_dir / MIGRATED_TASKS_FILENAME

    with log_operation("migrate_tasks", change_dir=str(change_dir)):
        try:
            content = from_path.read_text(encoding="utf-8")
        except OSError as e:
            _raise_migration_error("read", from_path, e)

        try:
            tasks_dir.mkdir(parents=True, exist_ok=True)
            to_path.write_text(_with_status(content), encoding="utf-8")
        except OSError as e:
            _raise_migration_error("write", to_path, e)

        try:
            from_path.unlink()
        except OSError as e:
            _raise_migration_error("remove", from_path, e)

    log_task_migration(str(change_dir), str(from_path), str(to_path))
    return MigrationResult(migrated=True, from_path=str(from_path), to_path=str(to_path))


def migrate_if_needed(change_dir: PathLike) -> Optional[MigrationResult]:
    """Migrate a legacy ``tasks.md`` if the change still uses one.

    Returns None when nothing had to be migrated.
    """
    change_dir = Path(change_dir)
    has_legacy = has_legacy_tasks_file(change_dir)

    if has_valid_tasks_directory(change_dir):
        if has_legacy:
            legacy_path = change_dir / LEGACY_TASKS_FILENAME
            try:
                legacy_path.unlink()
            except OSError as e:
                _raise_migration_error("remove", legacy_path, e)
            logger.info(f"Removed orphaned {legacy_path}")
        return None

    if not has_legacy:
        return None

    return migrate(change_dir)
