"""Workflow management for Changeflow.

This module drives the day-to-day loop of an agent working through
changes: pick the prioritized change, hand out its next task, complete
or revert tasks, and advance to the following task automatically.
Results are plain dictionaries ready to be returned by MCP tools.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .changeflow_logging import log_error_with_context, log_operation, log_performance, observability_hooks
from .completion_cache import CompletionProvider
from .errors import ChangeflowError
from .markdown_sections import extract_section, list_sections
from .models import PrioritizedChange, TaskFileInfo, TaskStatus
from .prioritization import get_completion_percentage
from .task_files import get_task_id
from .task_migration import migrate_if_needed
from .task_progress import count_tasks_from_content, format_task_status, get_task_progress_for_change
from .task_status import (
    complete_task_fully,
    get_task_status,
    set_task_status,
    undo_task_fully,
)
from .workspace import Workspace

logger = logging.getLogger("changeflow.workflow")


def _read(filepath: str) -> str:
    return Path(filepath).read_text(encoding="utf-8")


class TaskWorkflow:
    """Manages the task execution loop over a workspace's changes."""

    def __init__(self, root: Path | str, *, completion_provider: Optional[CompletionProvider] = None):
        """Initialize workflow with workspace root."""
        self.workspace = Workspace(root)
        self.completions = completion_provider or CompletionProvider(project_root=self.workspace.root)

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def change_ids(self) -> List[str]:
        return self.completions.get_change_ids()

    def spec_ids(self) -> List[str]:
        return self.completions.get_spec_ids()

    def list_changes(self) -> Dict[str, Any]:
        """List active changes with a progress label each."""
        changes: List[Dict[str, Any]] = []
        for change_id in self.change_ids():
            progress = get_task_progress_for_change(self.workspace.changes_dir, change_id)
            changes.append(
                {
                    "change_id": change_id,
                    "progress": progress.to_dict(),
                    "completion_percentage": get_completion_percentage(progress),
                    "status": format_task_status(progress),
                }
            )
        return {
            "changes": changes,
            "count": len(changes),
            "message": f"Found {len(changes)} changes" if changes else "No active changes found.",
        }

    def list_specs(self) -> Dict[str, Any]:
        specs = self.spec_ids()
        return {"specs": specs, "count": len(specs)}

    def task_structure(self, change_id: str) -> Dict[str, Any]:
        """Return the ordered task files of a change with progress."""
        try:
            structure = self.workspace.task_structure(change_id)
        except FileNotFoundError as e:
            return {"change_id": change_id, "error": str(e)}

        progress = structure.aggregate_progress
        return {
            "change_id": change_id,
            **structure.to_dict(),
            "completion_percentage": get_completion_percentage(progress),
            "status": format_task_status(progress),
        }

    def prioritized_change(self) -> Dict[str, Any]:
        """Describe the change that should be worked on next."""
        change = self.workspace.prioritized_change()
        if not change:
            return {
                "change": None,
                "message": "No active changes found",
                "next_suggested_step": None,
            }
        return {
            "change": change.to_dict(),
            "message": f"Next change: {change.id} ({change.completion_percentage:.0f}% complete)",
            "next_suggested_step": "next_task",
            "workflow_tip": "Use next_task to start or resume the highlighted task",
        }

    # ------------------------------------------------------------------
    # Task loop
    # ------------------------------------------------------------------

    def _next_todo_task(self, change: PrioritizedChange) -> Optional[TaskFileInfo]:
        for task in change.task_files:
            if get_task_status(task.filepath) is TaskStatus.TO_DO:
                return task
        return None

    def _all_complete(self, change: PrioritizedChange, extra: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "change_id": change.id,
            "task": None,
            "content": None,
            **extra,
            "message": "All tasks complete",
            "next_suggested_step": None,
        }

    @log_performance("next_task")
    def next_task(self, did_complete_previous: bool = False) -> Dict[str, Any]:
        """Hand out the next task of the prioritized change.

        An in-progress task whose checklist is fully checked is marked done
        automatically. With ``did_complete_previous`` the in-progress task is
        completed fully (status and checklist). In both cases the following
        to-do task moves to in-progress. When the current change runs out of
        tasks the next actionable change is used.
        """
        change = self.workspace.prioritized_change()
        if not change:
            return {
                "change_id": None,
                "task": None,
                "content": None,
                "message": "No active changes found",
                "next_suggested_step": None,
            }

        extra: Dict[str, Any] = {}
        next_task = change.next_task
        in_progress = change.in_progress_task
        transitioned = False

        try:
            with log_operation("next_task", change_id=change.id, did_complete_previous=did_complete_previous):
                if in_progress:
                    progress = count_tasks_from_content(_read(in_progress.filepath))
                    if progress.is_complete:
                        set_task_status(in_progress.filepath, TaskStatus.DONE)
                        extra["auto_completed_task"] = {"id": get_task_id(in_progress)}
                        next_task = self._next_todo_task(change)
                        if next_task:
                            set_task_status(next_task.filepath, TaskStatus.IN_PROGRESS)
                            transitioned = True

                if did_complete_previous:
                    if in_progress and "auto_completed_task" not in extra:
                        completed_items = complete_task_fully(in_progress.filepath)
                        extra["completed_task"] = {
                            "id": get_task_id(in_progress),
                            "completed_items": completed_items,
                        }
                        next_task = self._next_todo_task(change)
                        if next_task:
                            set_task_status(next_task.filepath, TaskStatus.IN_PROGRESS)
                            transitioned = True
                    elif not in_progress:
                        extra["warning"] = "No in-progress task found"

                if not next_task:
                    following = self.workspace.prioritized_change()
                    if not following or not following.next_task:
                        return self._all_complete(change, extra)
                    change = following
                    next_task = following.next_task

                content = _read(next_task.filepath)
                if get_task_status(next_task.filepath) is TaskStatus.TO_DO:
                    set_task_status(next_task.filepath, TaskStatus.IN_PROGRESS)
                    transitioned = True
                    content = _read(next_task.filepath)
        except ChangeflowError as e:
            log_error_with_context(e, {"operation": "next_task", "change_id": change.id})
            raise

        observability_hooks.log_workflow_event(
            "task_assigned",
            change_id=change.id,
            task_id=get_task_id(next_task),
            transitioned_to_in_progress=transitioned,
        )

        return {
            "change_id": change.id,
            "task": next_task.to_dict(),
            "status": TaskStatus.IN_PROGRESS.value,
            "content": content,
            "transitioned_to_in_progress": transitioned,
            **extra,
            "next_suggested_step": "next_task",
            "workflow_tip": "Work through the checklist, then call next_task with did_complete_previous=true",
        }

    # ------------------------------------------------------------------
    # Task transitions
    # ------------------------------------------------------------------

    def _locate(self, task_id: str, change_id: Optional[str]) -> Optional[Tuple[str, TaskFileInfo]]:
        if change_id and not (self.workspace.changes_dir / change_id).is_dir():
            return None
        return self.workspace.find_task(task_id, change_id)

    def _change_summary(self, change_id: str) -> Dict[str, Any]:
        progress = get_task_progress_for_change(self.workspace.changes_dir, change_id)
        return {
            "progress": progress.to_dict(),
            "remaining": progress.remaining,
            "all_completed": progress.is_complete,
        }

    @log_performance("complete_task")
    def complete_task(self, task_id: str, change_id: Optional[str] = None) -> Dict[str, Any]:
        """Mark a task done and check all of its open checklist items."""
        try:
            located = self._locate(task_id, change_id)
            if not located:
                return {"task_id": task_id, "error": f"Task not found: {task_id}"}

            owner, task = located
            previous = get_task_status(task.filepath)
            completed_items = complete_task_fully(task.filepath)

            logger.info(f"Completed task '{get_task_id(task)}' in change '{owner}'")
            return {
                "change_id": owner,
                "task_id": get_task_id(task),
                "previous_status": previous.value,
                "new_status": TaskStatus.DONE.value,
                "completed_items": completed_items,
                **self._change_summary(owner),
                "next_suggested_step": "next_task",
            }
        except Exception as e:
            logger.error(f"Failed to complete task '{task_id}': {e}")
            log_error_with_context(e, {"operation": "complete_task", "task_id": task_id, "change_id": change_id})
            raise

    def undo_task(self, task_id: str, change_id: Optional[str] = None) -> Dict[str, Any]:
        """Revert a task to to-do and uncheck its checklist."""
        try:
            located = self._locate(task_id, change_id)
            if not located:
                return {"task_id": task_id, "error": f"Task not found: {task_id}"}

            owner, task = located
            previous = get_task_status(task.filepath)
            if previous is TaskStatus.TO_DO:
                return {
                    "change_id": owner,
                    "task_id": get_task_id(task),
                    "warning": "Task already in to-do state",
                }

            unchecked_items = undo_task_fully(task.filepath)
            return {
                "change_id": owner,
                "task_id": get_task_id(task),
                "previous_status": previous.value,
                "new_status": TaskStatus.TO_DO.value,
                "unchecked_items": unchecked_items,
                **self._change_summary(owner),
            }
        except Exception as e:
            logger.error(f"Failed to undo task '{task_id}': {e}")
            log_error_with_context(e, {"operation": "undo_task", "task_id": task_id, "change_id": change_id})
            raise

    def undo_change(self, change_id: str) -> Dict[str, Any]:
        """Revert every started or finished task of a change."""
        try:
            structure = self.workspace.task_structure(change_id)
        except FileNotFoundError as e:
            return {"change_id": change_id, "error": str(e)}

        undone: List[Dict[str, Any]] = []
        skipped: List[str] = []

        with log_operation("undo_change", change_id=change_id):
            for task in structure.files:
                status = get_task_status(task.filepath)
                if status is TaskStatus.TO_DO:
                    skipped.append(get_task_id(task))
                    continue
                undone.append(
                    {
                        "task_id": get_task_id(task),
                        "name": task.name,
                        "previous_status": status.value,
                        "unchecked_items": undo_task_fully(task.filepath),
                    }
                )

        return {
            "change_id": change_id,
            "undone_tasks": undone,
            "skipped_tasks": skipped,
            "message": f"Reverted {len(undone)} task(s)" if undone else "All tasks in this change were already in to-do state.",
        }

    def set_status(self, task_id: str, status: str, change_id: Optional[str] = None) -> Dict[str, Any]:
        """Set a task's status without touching its checklist."""
        try:
            new_status = TaskStatus(status)
        except ValueError:
            allowed = ", ".join(s.value for s in TaskStatus)
            raise ValueError(f"Invalid status '{status}'; expected one of: {allowed}") from None

        located = self._locate(task_id, change_id)
        if not located:
            return {"task_id": task_id, "error": f"Task not found: {task_id}"}

        owner, task = located
        previous = set_task_status(task.filepath, new_status)
        return {
            "change_id": owner,
            "task_id": get_task_id(task),
            "previous_status": previous.value,
            "new_status": new_status.value,
        }

    # ------------------------------------------------------------------
    # Content and maintenance
    # ------------------------------------------------------------------

    def read_section(self, task_id: str, section: str, change_id: Optional[str] = None) -> Dict[str, Any]:
        """Return one level-2 section of a task file."""
        located = self._locate(task_id, change_id)
        if not located:
            return {"task_id": task_id, "error": f"Task not found: {task_id}"}

        owner, task = located
        content = _read(task.filepath)
        extracted = extract_section(content, section)
        result: Dict[str, Any] = {
            "change_id": owner,
            "task_id": get_task_id(task),
            "section": section,
            "content": extracted,
        }
        if extracted is None:
            result["available_sections"] = list_sections(content)
        return result

    def migrate_change_tasks(self, change_id: str) -> Dict[str, Any]:
        """Move a change's legacy tasks.md into the tasks directory."""
        try:
            change_dir = self.workspace.change_dir(change_id)
        except FileNotFoundError as e:
            return {"change_id": change_id, "error": str(e)}

        result = migrate_if_needed(change_dir)
        return {
            "change_id": change_id,
            "migration": result.to_dict() if result else None,
            "message": "Migrated tasks.md to tasks/" if result else "No migration needed",
        }
