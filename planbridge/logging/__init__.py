"""
Plan Bridge Logging System.

Provides structured JSONL logging of plan lifecycle events: submissions,
phase splits, reviews, fix reports, phase advances and resets.

Usage:
    from planbridge.logging import PlanEventLogEntry, now_iso, plan_logger

    plan_logger.info(
        PlanEventLogEntry(
            timestamp=now_iso(),
            plan_id=plan.id,
            event_type="review",
            ...
        ).to_json()
    )

Logs are written to ~/.plan-bridge/logs/plans.jsonl
"""

import threading
from typing import Any

from planbridge.persistence.models import now_iso

from .config import LogConfig, get_config, set_config
from .entries import PlanEventLogEntry
from .handlers import create_plan_logger

# Lazy-initialized logger to avoid creating files before needed
_plan_logger: Any = None
_init_lock = threading.Lock()


def _ensure_logger() -> Any:
    """Initialize the event logger on first use."""
    global _plan_logger

    if _plan_logger is not None:
        return _plan_logger

    with _init_lock:
        if _plan_logger is None:
            _plan_logger = create_plan_logger(get_config())
    return _plan_logger


def reset_loggers() -> None:
    """Drop the cached logger so the next use picks up a new LogConfig."""
    global _plan_logger
    with _init_lock:
        _plan_logger = None


class _LazyLogger:
    """Lazy wrapper that initializes the actual logger on first use."""

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        _ensure_logger().debug(msg, *args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        _ensure_logger().info(msg, *args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        _ensure_logger().warning(msg, *args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        _ensure_logger().error(msg, *args, **kwargs)


plan_logger = _LazyLogger()


__all__ = [
    "plan_logger",
    "PlanEventLogEntry",
    "now_iso",
    "reset_loggers",
    "LogConfig",
    "get_config",
    "set_config",
]
