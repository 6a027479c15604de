"""File layout constants and environment configuration for Changeflow."""

from __future__ import annotations

import os
from typing import Optional

PROJECT_ROOT_ENV = "CHANGEFLOW_PROJECT_ROOT"
WORKSPACE_DIR_ENV = "CHANGEFLOW_WORKSPACE_DIR"
LOG_LEVEL_ENV = "CHANGEFLOW_LOG_LEVEL"
LOG_FILE_ENV = "CHANGEFLOW_LOG_FILE"

DEFAULT_WORKSPACE_DIR_NAME = "workspace"
CHANGES_DIR_NAME = "changes"
SPECS_DIR_NAME = "specs"
ARCHIVE_DIR_NAME = "archive"

PROPOSAL_FILENAME = "proposal.md"
SPEC_FILENAME = "spec.md"
TASKS_DIRECTORY_NAME = "tasks"
LEGACY_TASKS_FILENAME = "tasks.md"
MIGRATED_TASKS_FILENAME = "001-tasks.md"

COMPLETION_CACHE_TTL_MS = 2000


def workspace_dir_name() -> str:
    """Return the workspace directory name, honouring the environment override."""
    value = os.getenv(WORKSPACE_DIR_ENV)
    if value and value.strip():
        return value.strip()
    return DEFAULT_WORKSPACE_DIR_NAME


def env_log_level(default: str = "INFO") -> str:
    return (os.getenv(LOG_LEVEL_ENV) or default).upper()


def env_log_file() -> Optional[str]:
    value = os.getenv(LOG_FILE_ENV)
    return value or None
