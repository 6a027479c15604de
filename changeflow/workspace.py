"""Workspace management for Changeflow.

This module locates the changes and specs of a project and resolves task
IDs to task files inside them.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple

from .config import (
    ARCHIVE_DIR_NAME,
    CHANGES_DIR_NAME,
    PROPOSAL_FILENAME,
    SPEC_FILENAME,
    SPECS_DIR_NAME,
    workspace_dir_name,
)
from .changeflow_logging import log_error_with_context, observability_hooks
from .models import ChangeTaskStructure, PrioritizationResult, PrioritizedChange, TaskFileInfo
from .prioritization import get_prioritized_change, rank_changes
from .task_files import get_task_id, is_valid_task_id, normalize_task_id
from .task_progress import get_task_structure_for_change

logger = logging.getLogger("changeflow.workspace")


class Workspace:
    """Manage the changes and specs of a repository."""

    def __init__(self, root: Path | str, *, create: bool = False):
        """Initialize workspace with given root directory."""
        self.root = Path(root).resolve()
        self.base_dir = self.root / workspace_dir_name()
        self.changes_dir = self.base_dir / CHANGES_DIR_NAME
        self.specs_dir = self.base_dir / SPECS_DIR_NAME
        self.archive_dir = self.changes_dir / ARCHIVE_DIR_NAME

        if create:
            try:
                self.changes_dir.mkdir(parents=True, exist_ok=True)
                self.specs_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"Failed to create workspace directories: {e}")
                log_error_with_context(e, {"operation": "workspace_init", "root": str(self.root)})
                raise RuntimeError(f"Could not initialize workspace at {self.root}: {e}") from e

        logger.debug(f"Workspace initialized at {self.root}")
        observability_hooks.log_workflow_event("workspace_initialized", root=str(self.root))

    def exists(self) -> bool:
        return self.changes_dir.is_dir()

    # ------------------------------------------------------------------
    # Item discovery
    # ------------------------------------------------------------------

    def list_change_ids(self) -> List[str]:
        """Active change IDs: directories holding a proposal, archive excluded."""
        return self._list_item_ids(self.changes_dir, PROPOSAL_FILENAME, skip=(ARCHIVE_DIR_NAME,))

    def list_archived_change_ids(self) -> List[str]:
        return self._list_item_ids(self.archive_dir, PROPOSAL_FILENAME)

    def list_spec_ids(self) -> List[str]:
        """Spec IDs: directories holding a spec.md."""
        return self._list_item_ids(self.specs_dir, SPEC_FILENAME)

    @staticmethod
    def _list_item_ids(parent: Path, marker: str, skip: Tuple[str, ...] = ()) -> List[str]:
        try:
            with os.scandir(parent) as iterator:
                entries = list(iterator)
        except OSError:
            return []

        ids = [
            entry.name
            for entry in entries
            if entry.is_dir()
            and not entry.name.startswith(".")
            and entry.name not in skip
            and (Path(entry.path) / marker).is_file()
        ]
        return sorted(ids)

    def change_dir(self, change_id: str) -> Path:
        """Return the directory of an existing change."""
        if not change_id or not change_id.strip():
            raise ValueError("Change ID cannot be empty")
        path = self.changes_dir / change_id
        if not path.is_dir():
            raise FileNotFoundError(f"Change '{change_id}' not found in {self.changes_dir}")
        return path

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def task_structure(self, change_id: str) -> ChangeTaskStructure:
        self.change_dir(change_id)
        return get_task_structure_for_change(self.changes_dir, change_id)

    def find_task(self, task_id: str, change_id: Optional[str] = None) -> Optional[Tuple[str, TaskFileInfo]]:
        """Resolve a task ID to ``(change_id, task)``.

        Without a change ID every active change is searched in name order
        and the first match wins.
        """
        if not is_valid_task_id(task_id):
            raise ValueError(f"Invalid task ID '{task_id}'; expected NNN-name")

        wanted = normalize_task_id(task_id)
        change_ids = [change_id] if change_id else self.list_change_ids()

        for candidate in change_ids:
            for task in get_task_structure_for_change(self.changes_dir, candidate).files:
                if get_task_id(task) == wanted:
                    return candidate, task
        return None

    # ------------------------------------------------------------------
    # Prioritization
    # ------------------------------------------------------------------

    def prioritized_change(self) -> Optional[PrioritizedChange]:
        return get_prioritized_change(self.changes_dir)

    def ranked_changes(self) -> PrioritizationResult:
        return rank_changes(self.changes_dir)
