"""
Log Handlers for Plan Bridge.

The plan event log is one JSON object per line, rotated by size.
"""

import json
import logging
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .config import LogConfig

PLAN_LOGGER_NAME = "planbridge.events"


class JSONLRotatingHandler(RotatingFileHandler):
    """
    Size-rotated handler writing one JSON object per line.

    Event entries arrive already serialized (PlanEventLogEntry.to_json());
    anything else is wrapped with its level and logger name.
    """

    def __init__(self, filename: Path, max_bytes: int, backup_count: int):
        filename.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(
            str(filename),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if self.shouldRollover(record):
                self.doRollover()

            line = self.format(record)
            try:
                json.loads(line)
            except json.JSONDecodeError:
                line = json.dumps(
                    {
                        "timestamp": datetime.fromtimestamp(record.created).isoformat(),
                        "level": record.levelname,
                        "logger": record.name,
                        "message": line,
                    },
                    default=str,
                )

            self.stream.write(line + "\n")
            self.flush()
        except Exception:
            self.handleError(record)


class SimpleFormatter(logging.Formatter):
    """Pass the message through untouched."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_plan_logger(config: LogConfig) -> logging.Logger:
    """
    Build the plan event logger from a LogConfig.

    Any handlers left from an earlier config are closed first, so tests can
    point the log somewhere else and rebuild it.
    """
    logger = logging.getLogger(PLAN_LOGGER_NAME)
    logger.setLevel(getattr(logging, config.plan_level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    handler = JSONLRotatingHandler(
        config.plan_log_path,
        max_bytes=config.max_file_size_bytes,
        backup_count=config.backup_count,
    )
    handler.setFormatter(SimpleFormatter())
    logger.addHandler(handler)

    # Events stay out of the root logger's output
    logger.propagate = False
    return logger
