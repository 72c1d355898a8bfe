"""
Logging Configuration for Plan Bridge.

Defines paths, rotation settings and log levels.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from planbridge.exceptions import ConfigError


@dataclass
class LogConfig:
    """Configuration for the Plan Bridge event log."""

    # Paths
    log_dir: Path = field(default_factory=lambda: Path.home() / ".plan-bridge" / "logs")

    # File settings
    max_file_size_bytes: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5

    # Log levels: DEBUG, INFO, WARNING, ERROR
    plan_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Load config from environment variables with defaults."""
        config = cls()

        if level := os.environ.get("PLAN_BRIDGE_LOG_LEVEL"):
            config.plan_level = level

        if log_dir := os.environ.get("PLAN_BRIDGE_LOG_DIR"):
            config.log_dir = Path(log_dir)

        if max_size := os.environ.get("PLAN_BRIDGE_LOG_MAX_SIZE_MB"):
            try:
                megabytes = int(max_size)
            except ValueError as e:
                raise ConfigError(
                    "PLAN_BRIDGE_LOG_MAX_SIZE_MB must be a whole number of megabytes",
                    {"value": max_size, "error": str(e)},
                )
            config.max_file_size_bytes = megabytes * 1024 * 1024

        return config

    def ensure_log_dir(self) -> None:
        """Create log directory if it doesn't exist."""
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def plan_log_path(self) -> Path:
        """Path to the plan lifecycle event log."""
        return self.log_dir / "plans.jsonl"


_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Get the global log config, initializing from env if needed."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
        _config.ensure_log_dir()
    return _config


def set_config(config: LogConfig) -> None:
    """Set a custom log config (useful for testing)."""
    global _config
    _config = config
    _config.ensure_log_dir()
