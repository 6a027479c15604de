"""Unit tests for task filename parsing and task IDs."""

import pytest

from changeflow.models import ParsedTaskFilename
from changeflow.task_files import (
    build_task_filename,
    get_task_id_from_filename,
    is_valid_task_id,
    normalize_task_id,
    parse_task_filename,
    parse_task_id,
    sort_task_files_by_sequence,
)


class TestParseTaskFilename:
    """Test cases for parse_task_filename."""

    def test_standalone_task(self):
        """Test parsing a standalone task filename."""
        parsed = parse_task_filename("001-update-templates.md")
        assert parsed == ParsedTaskFilename(sequence=1, name="update-templates")

    def test_multi_word_name_without_parent_hint(self):
        """Test that hyphenated names stay whole without a parent hint."""
        parsed = parse_task_filename("012-add-login-form.md")
        assert parsed.sequence == 12
        assert parsed.name == "add-login-form"
        assert parsed.parent_id is None

    def test_parented_task_splits_at_last_hyphen(self):
        parsed = parse_task_filename("003-review1-fix.md", has_parent=True)
        assert parsed == ParsedTaskFilename(sequence=3, name="fix", parent_id="review1")

    def test_parented_hint_without_hyphen_falls_back(self):
        parsed = parse_task_filename("004-solo.md", has_parent=True)
        assert parsed == ParsedTaskFilename(sequence=4, name="solo")

    @pytest.mark.parametrize("filename", ["01-a.md", "0001-a.md", "001-a.txt", "README.md", "001-.md", "001a.md"])
    def test_non_task_filenames(self, filename):
        """Test that names outside NNN-<name>.md are rejected."""
        assert parse_task_filename(filename) is None


class TestBuildTaskFilename:
    """Test cases for build_task_filename."""

    def test_zero_pads_sequence(self):
        assert build_task_filename(7, "write-tests") == "007-write-tests.md"

    def test_with_parent(self):
        assert build_task_filename(12, "fix", parent_id="review1") == "012-review1-fix.md"

    def test_build_then_parse(self):
        filename = build_task_filename(42, "fix", parent_id="rev")
        assert parse_task_filename(filename, has_parent=True) == ParsedTaskFilename(42, "fix", "rev")

    @pytest.mark.parametrize("sequence", [-1, 1000])
    def test_sequence_out_of_range(self, sequence):
        with pytest.raises(ValueError):
            build_task_filename(sequence, "task")

    def test_empty_name(self):
        with pytest.raises(ValueError, match="cannot be empty"):
            build_task_filename(1, "")


class TestSortTaskFiles:
    """Test cases for sort_task_files_by_sequence."""

    def test_sorts_numerically_and_drops_non_tasks(self):
        filenames = ["010-a.md", "002-b.md", "notes.txt", "001-c.md", ".DS_Store"]
        assert sort_task_files_by_sequence(filenames) == ["001-c.md", "002-b.md", "010-a.md"]

    def test_equal_sequences_ordered_by_name(self):
        assert sort_task_files_by_sequence(["001-b.md", "002-a.md", "001-a.md"]) == ["001-a.md", "001-b.md", "002-a.md"]
        assert sort_task_files_by_sequence(["001-a.md", "001-b.md"]) == sort_task_files_by_sequence(["001-b.md", "001-a.md"])


class TestTaskIds:
    """Test cases for canonical task IDs."""

    def test_id_strips_md_suffix(self):
        assert get_task_id_from_filename("001-a.md") == "001-a"

    def test_id_keeps_other_suffixes(self):
        assert get_task_id_from_filename("001-a.md.bak") == "001-a.md.bak"

    def test_normalize_accepts_filename_or_id(self):
        assert normalize_task_id(" 001-a.md ") == "001-a"
        assert normalize_task_id("001-a") == "001-a"

    def test_is_valid_task_id(self):
        assert is_valid_task_id("001-a")
        assert is_valid_task_id("001-a.md")
        assert not is_valid_task_id("1-a")
        assert not is_valid_task_id("task")

    def test_parse_task_id(self):
        assert parse_task_id("003-rev-fix", has_parent=True) == ParsedTaskFilename(3, "fix", "rev")
        assert parse_task_id("bogus") is None
