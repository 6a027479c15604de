"""Shared fixtures for Changeflow tests."""

from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest

from changeflow.changeflow_logging import observability_hooks, performance_monitor


def task_markdown(
    status: str = "to-do",
    checked: int = 0,
    unchecked: int = 0,
    parent: Optional[Tuple[str, str]] = None,
    extra: str = "",
) -> str:
    """Build a task file with an Implementation Checklist section."""
    lines = ["---", f"status: {status}"]
    if parent:
        lines += [f"parent-type: {parent[0]}", f"parent-id: {parent[1]}"]
    lines += ["---", "", "# Task", "", "## Implementation Checklist"]
    lines += [f"- [x] done item {i}" for i in range(checked)]
    lines += [f"- [ ] open item {i}" for i in range(unchecked)]
    content = "\n".join(lines) + "\n"
    if extra:
        content += "\n" + extra
    return content


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    """Project root with an empty workspace layout."""
    (tmp_path / "workspace" / "changes").mkdir(parents=True)
    (tmp_path / "workspace" / "specs").mkdir(parents=True)
    return tmp_path


@pytest.fixture
def changes_root(project_root: Path) -> Path:
    return project_root / "workspace" / "changes"


@pytest.fixture
def make_change(changes_root: Path):
    """Factory creating a change with a proposal and optional task files."""

    def _make(change_id: str, tasks: Optional[Dict[str, str]] = None, legacy: Optional[str] = None) -> Path:
        change_dir = changes_root / change_id
        change_dir.mkdir(parents=True, exist_ok=True)
        (change_dir / "proposal.md").write_text(f"# {change_id}\n", encoding="utf-8")
        if tasks is not None:
            tasks_dir = change_dir / "tasks"
            tasks_dir.mkdir(exist_ok=True)
            for filename, content in tasks.items():
                (tasks_dir / filename).write_text(content, encoding="utf-8")
        if legacy is not None:
            (change_dir / "tasks.md").write_text(legacy, encoding="utf-8")
        return change_dir

    return _make


@pytest.fixture
def make_spec(project_root: Path):
    def _make(spec_id: str) -> Path:
        spec_dir = project_root / "workspace" / "specs" / spec_id
        spec_dir.mkdir(parents=True, exist_ok=True)
        (spec_dir / "spec.md").write_text(f"# {spec_id}\n", encoding="utf-8")
        return spec_dir

    return _make


@pytest.fixture(autouse=True)
def reset_observability():
    """Keep global hooks and metrics from leaking between tests."""
    yield
    observability_hooks.hooks.clear()
    performance_monitor.clear()


@pytest.fixture
def task_md():
    """The task_markdown builder, for tests that write task files."""
    return task_markdown
