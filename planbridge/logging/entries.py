"""
Log Entry Data Structures for Plan Bridge.

Defines the structured entry written for every plan lifecycle event.
"""

import json
from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class PlanEventLogEntry:
    """Log entry for plan and phase lifecycle events."""

    # Identity
    timestamp: str  # ISO 8601
    plan_id: str
    event_type: str  # "submitted", "review", "fix_report", "advance", "reset", ...

    # Target (phase events carry the phase id and number)
    phase_id: str | None = None
    phase_number: int | None = None

    # Status change
    from_status: str | None = None
    to_status: str | None = None
    plan_status: str | None = None

    # Event details
    review_id: str | None = None
    findings_count: int = 0
    fixes_count: int = 0
    project_path: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        """Serialize to JSON string."""
        return json.dumps(asdict(self), default=str)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlanEventLogEntry":
        """Create from dictionary."""
        return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
