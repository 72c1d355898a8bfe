"""
Plan Bridge - Plan/Phase Status Machine

Statuses shared by plans and phases, plus the workflow edges the review
loop follows. The lifecycle functions in planbridge.planning.lifecycle
drive these transitions; an explicit status update may jump anywhere and
is only logged when it leaves the workflow graph.
"""

from enum import Enum

from planbridge.exceptions import InvalidStatusError


class PlanStatus(str, Enum):
    """
    Possible statuses for a plan or a phase.

    State transitions:
    SUBMITTED -> IN_PROGRESS (work started)
    IN_PROGRESS -> REVIEW_REQUESTED (work done, please review)
    REVIEW_REQUESTED -> COMPLETED (review without findings)
                     or NEEDS_FIXES (review with findings)
    NEEDS_FIXES -> REVIEW_REQUESTED (fix report submitted)
    Any -> SUBMITTED (reset)
    """

    SUBMITTED = "submitted"
    IN_PROGRESS = "in_progress"
    REVIEW_REQUESTED = "review_requested"
    NEEDS_FIXES = "needs_fixes"
    COMPLETED = "completed"


class ReviewStatus(str, Enum):
    """Verdict recorded on a single review."""

    APPROVED = "approved"
    NEEDS_FIXES = "needs_fixes"


# Workflow edges followed by the review loop
WORKFLOW_TRANSITIONS: dict[PlanStatus, set[PlanStatus]] = {
    PlanStatus.SUBMITTED: {
        PlanStatus.IN_PROGRESS,
        PlanStatus.REVIEW_REQUESTED,
        PlanStatus.NEEDS_FIXES,
        PlanStatus.COMPLETED,
    },
    PlanStatus.IN_PROGRESS: {
        PlanStatus.REVIEW_REQUESTED,
        PlanStatus.NEEDS_FIXES,
        PlanStatus.COMPLETED,
        PlanStatus.SUBMITTED,
    },
    PlanStatus.REVIEW_REQUESTED: {
        PlanStatus.NEEDS_FIXES,
        PlanStatus.COMPLETED,
        PlanStatus.SUBMITTED,
    },
    PlanStatus.NEEDS_FIXES: {
        PlanStatus.REVIEW_REQUESTED,
        PlanStatus.NEEDS_FIXES,
        PlanStatus.COMPLETED,
        PlanStatus.SUBMITTED,
    },
    # A plan that is completed only leaves that state through reset
    PlanStatus.COMPLETED: {PlanStatus.SUBMITTED},
}


def parse_status(value: "str | PlanStatus") -> PlanStatus:
    """
    Convert a status string to a PlanStatus.

    Raises:
        InvalidStatusError: If the value is not a known status
    """
    if isinstance(value, PlanStatus):
        return value
    try:
        return PlanStatus(value)
    except ValueError:
        allowed = [s.value for s in PlanStatus]
        raise InvalidStatusError(
            f"Unknown status '{value}'. Valid statuses: {', '.join(allowed)}",
            status=str(value),
            allowed=allowed,
        )


def is_workflow_transition(from_status: PlanStatus, to_status: PlanStatus) -> bool:
    """Check if moving between two statuses follows the review workflow."""
    if from_status == to_status:
        return True
    return to_status in WORKFLOW_TRANSITIONS.get(from_status, set())


def review_status_for(findings: list[str]) -> ReviewStatus:
    """A review with no findings is an approval."""
    return ReviewStatus.APPROVED if not findings else ReviewStatus.NEEDS_FIXES
