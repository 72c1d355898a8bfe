"""
Plan Bridge - Configuration Management

Handles storage locations, polling defaults and submission preferences.
Values come from environment variables with sensible defaults; plans are
stored in ~/.plan-bridge/plans unless PLAN_BRIDGE_HOME says otherwise.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from planbridge.exceptions import ConfigError


# Configuration paths
DEFAULT_HOME_DIR = Path.home() / ".plan-bridge"
LOCAL_DIR_NAME = ".plan-bridge/plans"

STORAGE_SCOPES = ("global", "local")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass
class BridgeConfig:
    """Main configuration container for Plan Bridge."""

    home_dir: Path = field(default_factory=lambda: DEFAULT_HOME_DIR)
    local_dir_name: str = LOCAL_DIR_NAME
    default_scope: str = "global"
    default_source: str = "claude-code"
    poll_interval_seconds: float = 5.0
    wait_timeout_seconds: int = 300
    # Analyse every submitted plan and split it when it is complex
    auto_split: bool = True

    def __post_init__(self) -> None:
        self.home_dir = Path(self.home_dir).expanduser()
        if self.default_scope not in STORAGE_SCOPES:
            raise ConfigError(
                f"Invalid storage scope '{self.default_scope}'",
                {"allowed": list(STORAGE_SCOPES)},
            )

    @property
    def storage_dir(self) -> Path:
        """Directory holding globally scoped plans."""
        return self.home_dir / "plans"

    @property
    def projects_file(self) -> Path:
        """Index of project paths that hold a local plan store."""
        return self.home_dir / "projects.json"

    def local_storage_dir(self, project_path: str | Path) -> Path:
        """Directory holding plans scoped to one project."""
        return Path(project_path).expanduser() / self.local_dir_name

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "home_dir": str(self.home_dir),
            "storage_dir": str(self.storage_dir),
            "local_dir_name": self.local_dir_name,
            "default_scope": self.default_scope,
            "default_source": self.default_source,
            "poll_interval_seconds": self.poll_interval_seconds,
            "wait_timeout_seconds": self.wait_timeout_seconds,
            "auto_split": self.auto_split,
        }


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(
        f"{name} must be a boolean",
        {"value": value, "hint": "Use true/false, yes/no, on/off or 1/0"},
    )


def _parse_number(name: str, value: str, cast: type) -> Any:
    try:
        number = cast(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be a number", {"value": value, "error": str(e)})
    if number <= 0:
        raise ConfigError(f"{name} must be positive", {"value": value})
    return number


def load_config(environ: dict[str, str] | None = None) -> BridgeConfig:
    """
    Load configuration from the environment.

    Args:
        environ: Mapping to read instead of os.environ (used by tests)

    Returns:
        BridgeConfig with all settings loaded

    Raises:
        ConfigError: If an environment override is invalid
    """
    env = os.environ if environ is None else environ
    config = BridgeConfig()

    if home := env.get("PLAN_BRIDGE_HOME"):
        config.home_dir = Path(home).expanduser()

    if scope := env.get("PLAN_BRIDGE_SCOPE"):
        if scope not in STORAGE_SCOPES:
            raise ConfigError(
                f"Invalid storage scope '{scope}'",
                {"allowed": list(STORAGE_SCOPES)},
            )
        config.default_scope = scope

    if source := env.get("PLAN_BRIDGE_SOURCE"):
        config.default_source = source

    if interval := env.get("PLAN_BRIDGE_POLL_INTERVAL"):
        config.poll_interval_seconds = _parse_number("PLAN_BRIDGE_POLL_INTERVAL", interval, float)

    if timeout := env.get("PLAN_BRIDGE_WAIT_TIMEOUT"):
        config.wait_timeout_seconds = _parse_number("PLAN_BRIDGE_WAIT_TIMEOUT", timeout, int)

    if auto_split := env.get("PLAN_BRIDGE_AUTO_SPLIT"):
        config.auto_split = _parse_bool("PLAN_BRIDGE_AUTO_SPLIT", auto_split)

    return config


def ensure_storage(config: BridgeConfig) -> None:
    """Ensure the global plan directory exists."""
    config.storage_dir.mkdir(parents=True, exist_ok=True)
