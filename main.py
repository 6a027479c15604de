"""MCP server exposing Changeflow task workflow tools."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import FastMCP

from changeflow import TaskWorkflow
from changeflow.changeflow_logging import setup_logging
from changeflow.config import (
    CHANGES_DIR_NAME,
    PROJECT_ROOT_ENV,
    env_log_file,
    env_log_level,
    workspace_dir_name,
)

mcp = FastMCP("changeflow")

SERVER_ROOT = Path(__file__).resolve().parent


def _candidate_bases() -> List[Path]:
    cwd = Path.cwd().resolve()
    bases: List[Path] = [cwd]
    bases.extend(cwd.parents)
    if SERVER_ROOT not in bases:
        bases.append(SERVER_ROOT)
    for parent in SERVER_ROOT.parents:
        if parent not in bases:
            bases.append(parent)
    return bases


def _locate_workspace_root() -> Optional[Path]:
    marker = Path(workspace_dir_name()) / CHANGES_DIR_NAME
    for base in _candidate_bases():
        if (base / marker).is_dir():
            return base
    return None


def _resolve_root(root: Optional[str]) -> Path:
    if root:
        resolved = Path(root).expanduser().resolve()
        if not resolved.exists():
            raise ValueError(f"Provided root '{root}' does not exist.")
        return resolved

    env_root = os.getenv(PROJECT_ROOT_ENV)
    if env_root:
        env_path = Path(env_root).expanduser().resolve()
        if not env_path.exists():
            raise ValueError(
                f"Environment variable {PROJECT_ROOT_ENV} points to '{env_root}', which does not exist."
            )
        return env_path

    detected_root = _locate_workspace_root()
    if detected_root:
        return detected_root

    raise ValueError(
        "Unable to determine project root automatically. Provide the 'root' argument when calling the tool "
        f"or set the {PROJECT_ROOT_ENV} environment variable."
    )


_workflows: Dict[Path, TaskWorkflow] = {}


def _workflow(root: Optional[str]) -> TaskWorkflow:
    # one workflow per root so the completion cache survives between calls
    resolved = _resolve_root(root)
    workflow = _workflows.get(resolved)
    if workflow is None:
        workflow = _workflows[resolved] = TaskWorkflow(resolved)
    return workflow


def _workflow_optional(root: Optional[str]) -> Optional[TaskWorkflow]:
    try:
        return _workflow(root)
    except ValueError:
        return None


@mcp.tool()
def get_prioritized_change(root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 1: Find the change to work on next.
    Changes closest to completion come first; ties go to the oldest change.
    Changes with nothing left to do are never returned."""

    return _workflow(root).prioritized_change()


@mcp.tool()
def next_task(did_complete_previous: bool = False, root: Optional[str] = None) -> Dict[str, Any]:
    """STEP 2: Get the task to work on and mark it in-progress.
    Pass did_complete_previous=true once the current in-progress task is finished
    to mark it done, check its checklist and advance to the following task."""

    return _workflow(root).next_task(did_complete_previous=did_complete_previous)


@mcp.tool()
def get_task_structure(change_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """List a change's task files in sequence order with checklist progress."""

    return _workflow(root).task_structure(change_id)


@mcp.tool()
def complete_task(task_id: str, change_id: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """Mark a task done and check every open checklist item outside Constraints and Acceptance Criteria."""

    return _workflow(root).complete_task(task_id, change_id=change_id)


@mcp.tool()
def undo_task(task_id: str, change_id: Optional[str] = None, root: Optional[str] = None) -> Dict[str, Any]:
    """Revert a task to to-do and uncheck its checklist items."""

    return _workflow(root).undo_task(task_id, change_id=change_id)


@mcp.tool()
def undo_change(change_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Revert every started or finished task of a change to to-do."""

    return _workflow(root).undo_change(change_id)


@mcp.tool()
def set_task_status(
    task_id: str,
    status: str,
    change_id: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Set a task's status (to-do, in-progress, done) without touching its checklist."""

    return _workflow(root).set_status(task_id, status, change_id=change_id)


@mcp.tool()
def get_task_section(
    task_id: str,
    section: str,
    change_id: Optional[str] = None,
    root: Optional[str] = None,
) -> Dict[str, Any]:
    """Read one '## ' section of a task file, e.g. 'Implementation Checklist'."""

    return _workflow(root).read_section(task_id, section, change_id=change_id)


@mcp.tool()
def list_changes(root: Optional[str] = None) -> Dict[str, Any]:
    """Enumerate active changes with their task progress."""

    return _workflow(root).list_changes()


@mcp.tool()
def list_specs(root: Optional[str] = None) -> Dict[str, Any]:
    """Enumerate specs in the workspace."""

    return _workflow(root).list_specs()


@mcp.tool()
def migrate_change_tasks(change_id: str, root: Optional[str] = None) -> Dict[str, Any]:
    """Move a change's legacy tasks.md to tasks/001-tasks.md."""

    return _workflow(root).migrate_change_tasks(change_id)


@mcp.resource("changeflow://changes")
def resource_changes() -> str:
    """Resource view of active changes and their progress."""

    workflow = _workflow_optional(None)
    if not workflow:
        return f"No project root detected. Launch tools with a 'root' argument or set {PROJECT_ROOT_ENV}."

    changes = workflow.list_changes()["changes"]
    if not changes:
        return "No active changes."

    lines = ["Changeflow Changes"]
    for change in changes:
        lines.append(f"- {change['change_id']}: {change['status']}")

    return "\n".join(lines)


if __name__ == "__main__":
    setup_logging(env_log_level(), env_log_file())
    mcp.run(transport="stdio")
