"""
Plan Bridge planning core.

- complexity.py: complexity scoring and phase recommendations
- decomposer.py: phase content extraction and plan splitting
- lifecycle.py: review/fix/advance/reset transitions
- waiter.py: poll a plan until it reaches a status
"""

from planbridge.planning.complexity import (
    ComplexityAnalysis,
    ComplexityIndicators,
    PhaseRecommendation,
    analyze_complexity,
    recommend_phases,
)
from planbridge.planning.decomposer import extract_phase_content, split_into_phases
from planbridge.planning.lifecycle import (
    ReviewTarget,
    TransitionResult,
    advance_phase,
    latest_review,
    mark_complete,
    reset_plan,
    resolve_target,
    submit_fix_report,
    submit_review,
    submit_self_assessment,
    update_status,
)
from planbridge.planning.waiter import WaitResult, wait_for_status

__all__ = [
    # Complexity
    "ComplexityAnalysis",
    "ComplexityIndicators",
    "PhaseRecommendation",
    "analyze_complexity",
    "recommend_phases",
    # Decomposition
    "extract_phase_content",
    "split_into_phases",
    # Lifecycle
    "ReviewTarget",
    "TransitionResult",
    "resolve_target",
    "update_status",
    "submit_review",
    "submit_fix_report",
    "submit_self_assessment",
    "advance_phase",
    "reset_plan",
    "mark_complete",
    "latest_review",
    # Waiting
    "WaitResult",
    "wait_for_status",
]
