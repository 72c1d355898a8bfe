"""
Plan Bridge - Exception Hierarchy

All Plan Bridge exceptions inherit from PlanBridgeError.

Expected workflow conditions (missing plans, unphased plans, wait timeouts)
are reported as result values, not exceptions. These classes cover
configuration problems, corrupt storage and malformed input rejected at
the tool/CLI boundary.
"""

from typing import Any


class PlanBridgeError(Exception):
    """Base exception for all Plan Bridge errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Configuration Errors
class ConfigError(PlanBridgeError):
    """Raised when configuration is invalid."""

    pass


# Storage Errors
class StorageError(PlanBridgeError):
    """Base exception for plan store errors."""

    pass


class PlanCorruptError(StorageError):
    """Raised when a stored plan file cannot be decoded."""

    def __init__(self, message: str, path: str, error: str):
        super().__init__(message, {"path": path, "error": error})
        self.path = path
        self.error = error


# Input Validation Errors
class ValidationError(PlanBridgeError):
    """Raised when a request carries malformed arguments."""

    pass


class InvalidStatusError(ValidationError):
    """Raised when a status string is not one of the known statuses."""

    def __init__(self, message: str, status: str, allowed: list[str]):
        super().__init__(message, {"status": status, "allowed": allowed})
        self.status = status
        self.allowed = allowed


# Tool Dispatch Errors
class ToolError(PlanBridgeError):
    """Base exception for tool dispatch errors."""

    pass


class UnknownToolError(ToolError):
    """Raised when a tool name is not registered."""

    def __init__(self, message: str, tool: str, available: list[str]):
        super().__init__(message, {"tool": tool, "available": available})
        self.tool = tool
        self.available = available
