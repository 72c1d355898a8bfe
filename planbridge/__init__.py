"""
Plan Bridge - Review loop for implementation plans.

One agent submits an implementation plan, another reviews it; findings go
back as fix requests until a review comes back clean. Large plans are
scored for complexity and split into ordered phases that are reviewed one
at a time.
"""

__version__ = "0.1.0"

from planbridge.exceptions import (
    ConfigError,
    PlanBridgeError,
    StorageError,
    ToolError,
    ValidationError,
)

__all__ = [
    "__version__",
    "PlanBridgeError",
    "ConfigError",
    "StorageError",
    "ValidationError",
    "ToolError",
]
