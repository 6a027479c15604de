"""Unit tests for legacy tasks.md migration."""

from pathlib import Path

import pytest

from changeflow.errors import MigrationError, MigrationPermissionError
from changeflow.models import TaskStatus
from changeflow.task_migration import (
    has_legacy_tasks_file,
    has_valid_tasks_directory,
    migrate,
    migrate_if_needed,
)
from changeflow.task_status import get_task_status


LEGACY = "# Tasks\n\n## Implementation Checklist\n- [x] one\n- [ ] two\n"


class TestDetection:
    """Test cases for migration detection helpers."""

    def test_legacy_file(self, make_change):
        assert has_legacy_tasks_file(make_change("old", legacy=LEGACY)) is True
        assert has_legacy_tasks_file(make_change("new")) is False

    def test_valid_tasks_directory(self, make_change, task_md):
        assert has_valid_tasks_directory(make_change("with-tasks", tasks={"001-a.md": task_md()})) is True
        assert has_valid_tasks_directory(make_change("empty-tasks", tasks={"notes.txt": "x"})) is False
        assert has_valid_tasks_directory(make_change("no-tasks")) is False


class TestMigrate:
    """Test cases for migrate and migrate_if_needed."""

    def test_migrates_legacy_file(self, make_change):
        change_dir = make_change("old", legacy=LEGACY)

        result = migrate_if_needed(change_dir)

        target = change_dir / "tasks" / "001-tasks.md"
        assert result.migrated is True
        assert result.to_path == str(target)
        assert result.from_path == str(change_dir / "tasks.md")
        assert not (change_dir / "tasks.md").exists()
        assert get_task_status(target) is TaskStatus.TO_DO
        assert target.read_text(encoding="utf-8").endswith(LEGACY)

    def test_existing_status_is_kept(self, make_change):
        content = "---\nstatus: in-progress\n---\n" + LEGACY
        change_dir = make_change("started", legacy=content)

        migrate(change_dir)

        assert (change_dir / "tasks" / "001-tasks.md").read_text(encoding="utf-8") == content

    def test_empty_frontmatter_is_filled(self, make_change):
        change_dir = make_change("blank", legacy="---\n---\n" + LEGACY)

        migrate(change_dir)

        migrated = (change_dir / "tasks" / "001-tasks.md").read_text(encoding="utf-8")
        assert migrated == "---\nstatus: to-do\n---\n" + LEGACY

    def test_rerun_is_a_no_op(self, make_change):
        change_dir = make_change("old", legacy=LEGACY)
        migrate_if_needed(change_dir)
        migrated = (change_dir / "tasks" / "001-tasks.md").read_text(encoding="utf-8")

        assert migrate_if_needed(change_dir) is None
        assert (change_dir / "tasks" / "001-tasks.md").read_text(encoding="utf-8") == migrated

    def test_orphaned_legacy_file_removed(self, make_change, task_md):
        """Test that tasks.md is dropped when tasks/ already holds task files."""
        change_dir = make_change("both", tasks={"001-a.md": task_md()}, legacy=LEGACY)

        assert migrate_if_needed(change_dir) is None
        assert not (change_dir / "tasks.md").exists()
        assert (change_dir / "tasks" / "001-a.md").exists()

    def test_nothing_to_migrate(self, make_change):
        assert migrate_if_needed(make_change("bare")) is None

    def test_permission_error_is_distinct(self, make_change, monkeypatch):
        change_dir = make_change("locked", legacy=LEGACY)

        def denied(self, *args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(Path, "write_text", denied)

        with pytest.raises(MigrationPermissionError, match="Permission denied") as exc_info:
            migrate(change_dir)
        assert isinstance(exc_info.value, PermissionError)
        assert exc_info.value.path == str(change_dir / "tasks" / "001-tasks.md")
        assert (change_dir / "tasks.md").exists()

    def test_other_os_errors(self, make_change, monkeypatch):
        change_dir = make_change("broken", legacy=LEGACY)

        def failing(self, *args, **kwargs):
            raise OSError(28, "No space left on device")

        monkeypatch.setattr(Path, "write_text", failing)

        with pytest.raises(MigrationError) as exc_info:
            migrate(change_dir)
        assert not isinstance(exc_info.value, MigrationPermissionError)
        assert (change_dir / "tasks.md").exists()
