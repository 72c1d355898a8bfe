"""
Plan Bridge Persistence Layer

JSON file plan store with global and project-local scopes.
"""

from planbridge.persistence.models import (
    FixReport,
    Phase,
    Plan,
    Review,
    SelfAssessment,
    generate_id,
    now_iso,
)
from planbridge.persistence.repository import PlanRepository

__all__ = [
    # Entities
    "Plan",
    "Phase",
    "Review",
    "FixReport",
    "SelfAssessment",
    # Helpers
    "generate_id",
    "now_iso",
    # Repository
    "PlanRepository",
]
