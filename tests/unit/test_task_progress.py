"""Unit tests for checklist counting and change task structures."""

from changeflow.models import TaskProgress
from changeflow.task_progress import (
    count_tasks_from_content,
    format_task_status,
    get_task_progress_for_change,
    get_task_structure_for_change,
)


CHECKLIST = """---
status: in-progress
---

## Implementation Checklist
- [x] a
- [ ] b
* [X] c
  - [ ] nested items are not counted
## Constraints
- [ ] not counted
### Sub
- [ ] still excluded
## Notes
- [ ] counted again
## Acceptance Criteria
- [x] not counted either
"""


class TestCountTasksFromContent:
    """Test cases for count_tasks_from_content."""

    def test_constraints_excluded_until_next_section(self):
        """Test that only the Steps item is counted."""
        content = "## Constraints\n- [ ] x\n## Steps\n- [ ] y"
        assert count_tasks_from_content(content) == TaskProgress(total=1, completed=0)

    def test_mixed_checklist(self):
        """Test markers, nesting and excluded sections together."""
        progress = count_tasks_from_content(CHECKLIST)
        assert progress.total == 4
        assert progress.completed == 2

    def test_empty_content(self):
        assert count_tasks_from_content("") == TaskProgress(0, 0)

    def test_completed_never_exceeds_total(self):
        progress = count_tasks_from_content("- [x] a\n- [X] b\n- [ ] c\nplain text\n- [] not an item")
        assert progress == TaskProgress(total=3, completed=2)
        assert 0 <= progress.completed <= progress.total


class TestTaskStructure:
    """Test cases for get_task_structure_for_change."""

    def test_missing_tasks_directory(self, make_change, changes_root):
        """Test that a change without tasks/ has an empty structure."""
        make_change("empty")
        structure = get_task_structure_for_change(changes_root, "empty")
        assert structure.files == []
        assert structure.aggregate_progress == TaskProgress()
        assert structure.excluded == []

    def test_files_ordered_and_aggregated(self, make_change, changes_root, task_md):
        make_change(
            "add-login",
            tasks={
                "010-docs.md": task_md(unchecked=1),
                "002-api.md": task_md(checked=1, unchecked=1),
                "001-schema.md": task_md(checked=2),
            },
        )
        structure = get_task_structure_for_change(changes_root, "add-login")

        assert [info.filename for info in structure.files] == ["001-schema.md", "002-api.md", "010-docs.md"]
        assert [info.sequence for info in structure.files] == [1, 2, 10]
        assert structure.files[1].progress == TaskProgress(total=2, completed=1)
        assert structure.aggregate_progress == TaskProgress(total=5, completed=3)
        assert structure.files[0].task_id == "001-schema"

    def test_exclusions_are_reported(self, make_change, changes_root, task_md):
        """Test that skipped entries carry a reason."""
        change_dir = make_change(
            "messy",
            tasks={
                "001-good.md": task_md(unchecked=1),
                "notes.txt": "scratch",
                "002-orphan.md": "---\nstatus: to-do\nparent-type: review\n---\n- [ ] x\n",
            },
        )
        (change_dir / "tasks" / "003-binary.md").write_bytes(b"\xff\xfe\x00bad")

        structure = get_task_structure_for_change(changes_root, "messy")

        assert [info.filename for info in structure.files] == ["001-good.md", "002-orphan.md"]
        assert [e.filename for e in structure.excluded_by_reason("pattern")] == ["notes.txt"]
        assert [e.filename for e in structure.excluded_by_reason("unreadable")] == ["003-binary.md"]
        assert structure.aggregate_progress == TaskProgress(total=2, completed=0)

    def test_half_declared_parent_is_kept_as_standalone(self, make_change, changes_root):
        """Test that a parent-id without parent-type only drops the parent hint."""
        make_change("half", tasks={"001-rev-fix.md": "---\nstatus: to-do\nparent-id: rev\n---\n- [ ] x\n"})

        structure = get_task_structure_for_change(changes_root, "half")

        assert structure.excluded == []
        info = structure.files[0]
        assert (info.sequence, info.name, info.parent_id) == (1, "rev-fix", None)
        assert structure.aggregate_progress == TaskProgress(total=1, completed=0)

    def test_parented_task_uses_frontmatter_hint(self, make_change, changes_root, task_md):
        make_change(
            "with-review",
            tasks={
                "001-add-login-form.md": task_md(unchecked=1),
                "002-rev-fix.md": task_md(unchecked=1, parent=("review", "rev")),
            },
        )
        files = get_task_structure_for_change(changes_root, "with-review").files

        assert files[0].name == "add-login-form"
        assert files[0].parent_id is None
        assert files[1].name == "fix"
        assert files[1].parent_id == "rev"


class TestChangeProgress:
    """Test cases for get_task_progress_for_change and format_task_status."""

    def test_legacy_tasks_file_fallback(self, make_change, changes_root):
        make_change("legacy", legacy="## Tasks\n- [x] one\n- [ ] two\n")
        assert get_task_progress_for_change(changes_root, "legacy") == TaskProgress(total=2, completed=1)

    def test_no_tasks_at_all(self, make_change, changes_root):
        make_change("bare")
        assert get_task_progress_for_change(changes_root, "bare") == TaskProgress()

    def test_format_task_status(self):
        assert format_task_status(TaskProgress(0, 0)) == "No tasks"
        assert format_task_status(TaskProgress(3, 3)) == "✓ Complete"
        assert format_task_status(TaskProgress(4, 1)) == "1/4 tasks"
