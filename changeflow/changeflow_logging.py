"""Logging and observability utilities for Changeflow.

This module provides structured logging, timing of engine operations,
and observability hooks for task status transitions and change
prioritization events.
"""

from __future__ import annotations

import json
import time
from collections import deque
import logging as std_logging
from contextlib import contextmanager
from datetime import datetime, timezone
from functools import wraps
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Optional, Union

ROOT_LOGGER_NAME = "changeflow"
METRIC_WINDOW_SIZE = 100


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def setup_logging(log_level: Union[str, int] = std_logging.INFO, log_file: Optional[Path | str] = None) -> None:
    """Setup structured logging for Changeflow."""
    logger = std_logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)
    logger.handlers.clear()

    detailed_formatter = std_logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # stdout belongs to the MCP stdio transport
    console_handler = std_logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(detailed_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = std_logging.FileHandler(log_file)
        file_handler.setLevel(std_logging.DEBUG)
        file_handler.setFormatter(JsonFormatter())
        logger.addHandler(file_handler)

    logger.info("Changeflow logging initialized")


class JsonFormatter(std_logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: std_logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(record.extra_fields)

        return json.dumps(log_entry, default=str)


class PerformanceMonitor:
    """Collect timing metrics for engine operations.

    Only the most recent ``window_size`` samples are kept per metric name.
    """

    def __init__(self, window_size: int = METRIC_WINDOW_SIZE):
        self.window_size = window_size
        self.metrics: Dict[str, Deque[Dict[str, Any]]] = {}

    def record_metric(self, name: str, value: Any, tags: Optional[Dict[str, str]] = None) -> None:
        """Record a performance metric."""
        metric = {
            "timestamp": _utcnow(),
            "name": name,
            "value": value,
            "tags": tags or {},
        }
        self.metrics.setdefault(name, deque(maxlen=self.window_size)).append(metric)

        logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.performance")
        logger.debug(f"Metric recorded: {name}={value}", extra={"extra_fields": metric})

    def get_metrics(self, name: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
        """Get recorded metrics."""
        if name:
            return {name: list(self.metrics.get(name, ()))}
        return {key: list(samples) for key, samples in self.metrics.items()}

    def clear(self) -> None:
        self.metrics.clear()


performance_monitor = PerformanceMonitor()


def log_performance(operation_name: str):
    """Decorator to log performance metrics for operations."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.performance")
            logger.debug(f"Starting operation: {operation_name}")

            try:
                result = func(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                performance_monitor.record_metric(
                    f"{operation_name}_duration",
                    duration,
                    {"status": "error", "error_type": type(e).__name__},
                )
                logger.error(
                    f"Failed operation: {operation_name} after {duration:.3f}s - {e}",
                    extra={"extra_fields": {
                        "operation": operation_name,
                        "duration": duration,
                        "status": "error",
                        "error_type": type(e).__name__,
                        "error_message": str(e),
                    }},
                )
                raise

            duration = time.perf_counter() - start_time
            performance_monitor.record_metric(
                f"{operation_name}_duration",
                duration,
                {"status": "success"},
            )
            logger.debug(
                f"Completed operation: {operation_name} in {duration:.3f}s",
                extra={"extra_fields": {
                    "operation": operation_name,
                    "duration": duration,
                    "status": "success",
                }},
            )
            return result

        return wrapper
    return decorator


@contextmanager
def log_operation(operation_name: str, **extra_fields):
    """Context manager to log operations with custom fields."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.operations")
    start_time = time.perf_counter()

    logger.info(f"Starting operation: {operation_name}", extra={"extra_fields": {
        "operation": operation_name,
        "status": "started",
        **extra_fields,
    }})

    try:
        yield
    except Exception as e:
        duration = time.perf_counter() - start_time
        logger.error(f"Failed operation: {operation_name} after {duration:.3f}s - {e}", extra={"extra_fields": {
            "operation": operation_name,
            "status": "failed",
            "duration": duration,
            "error_type": type(e).__name__,
            "error_message": str(e),
            **extra_fields,
        }}, exc_info=True)
        raise

    duration = time.perf_counter() - start_time
    logger.info(f"Completed operation: {operation_name} in {duration:.3f}s", extra={"extra_fields": {
        "operation": operation_name,
        "status": "completed",
        "duration": duration,
        **extra_fields,
    }})


class ObservabilityHooks:
    """Observability hooks for Changeflow task events."""

    def __init__(self):
        self.hooks: Dict[str, List[Callable[..., Any]]] = {}
        self.logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.observability")

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback for a specific event type."""
        self.hooks.setdefault(event_type, []).append(callback)
        self.logger.debug(f"Registered hook for event: {event_type}")

    def unregister_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        callbacks = self.hooks.get(event_type, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def trigger_hooks(self, event_type: str, **data) -> None:
        """Trigger all callbacks for a specific event type.

        A failing callback is logged and does not stop the others.
        """
        callbacks = self.hooks.get(event_type)
        if not callbacks:
            return
        self.logger.debug(f"Triggering {len(callbacks)} hooks for event: {event_type}")
        for hook in list(callbacks):
            try:
                hook(**data)
            except Exception as e:
                self.logger.error(f"Hook failed for event {event_type}: {e}")

    def log_workflow_event(self, event_type: str, change_id: Optional[str] = None, **data) -> None:
        """Log a workflow event and trigger hooks."""
        event_data = {
            "timestamp": _utcnow(),
            "event_type": event_type,
            "change_id": change_id,
            **data,
        }

        self.logger.info(f"Workflow event: {event_type}", extra={"extra_fields": event_data})

        hook_data = {k: v for k, v in event_data.items() if k != "event_type"}
        self.trigger_hooks(event_type, **hook_data)


observability_hooks = ObservabilityHooks()


def log_error_with_context(error: Exception, context: Dict[str, Any], **extra_fields):
    """Log an error with rich context information."""
    logger = std_logging.getLogger(f"{ROOT_LOGGER_NAME}.errors")

    error_data = {
        "timestamp": _utcnow(),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "context": context,
        **extra_fields,
    }

    logger.error(
        f"Error in {context.get('operation', 'unknown operation')}: {error}",
        extra={"extra_fields": error_data},
        exc_info=error,
    )


# Convenience functions for common events
def log_status_change(filepath: str, previous: Optional[str], new: str, **extra_fields):
    """Log a task status transition."""
    observability_hooks.log_workflow_event(
        "task_status_changed",
        filepath=str(filepath),
        previous_status=previous,
        new_status=new,
        **extra_fields,
    )


def log_checklist_toggle(filepath: str, checked: bool, item_count: int, **extra_fields):
    """Log a bulk check/uncheck of a task's checklist."""
    observability_hooks.log_workflow_event(
        "checklist_toggled",
        filepath=str(filepath),
        checked=checked,
        item_count=item_count,
        **extra_fields,
    )


def log_change_prioritized(change_id: Optional[str], candidates: int, skipped: int, **extra_fields):
    """Log the outcome of a prioritization pass."""
    observability_hooks.log_workflow_event(
        "change_prioritized",
        change_id=change_id,
        candidates=candidates,
        skipped=skipped,
        **extra_fields,
    )


def log_task_migration(change_dir: str, from_path: str, to_path: str, **extra_fields):
    """Log a legacy tasks.md migration."""
    observability_hooks.log_workflow_event(
        "tasks_migrated",
        change_dir=str(change_dir),
        from_path=str(from_path),
        to_path=str(to_path),
        **extra_fields,
    )
