"""
Plan Lifecycle - Review/fix/advance transitions for plans and phases.

Every function takes a loaded plan (or None when the lookup failed),
mutates it in place and returns a TransitionResult. The caller persists
the plan. Expected conditions (missing plan/review, phased operation on
an unphased plan) are reported on the result, never raised.

Review target:
- Unphased plan: reviews, fix reports and self-assessments attach to the plan
- Phased plan: they attach to the current phase; the plan's status mirrors
  progress (in_progress between phases, completed after the last one)
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from planbridge.logging import PlanEventLogEntry, plan_logger
from planbridge.persistence.models import FixReport, Phase, Plan, Review, SelfAssessment, now_iso
from planbridge.state import PlanStatus, ReviewStatus, is_workflow_transition, review_status_for

logger = logging.getLogger(__name__)


@dataclass
class ReviewTarget:
    """The entity review events apply to."""

    entity: Plan | Phase

    @property
    def phase(self) -> Phase | None:
        return self.entity if isinstance(self.entity, Phase) else None

    @property
    def kind(self) -> str:
        return "phase" if self.phase is not None else "plan"

    @property
    def id(self) -> str:
        return self.entity.id


@dataclass
class TransitionResult:
    """Outcome of a lifecycle operation."""

    found: bool = True
    success: bool = True
    message: str = ""
    plan: Plan | None = None
    target: ReviewTarget | None = None
    from_status: PlanStatus | None = None
    to_status: PlanStatus | None = None
    review: Review | None = None
    fix_report: FixReport | None = None
    self_assessment: SelfAssessment | None = None
    all_phases_completed: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def not_found(cls, message: str = "Plan not found.", plan: Plan | None = None) -> "TransitionResult":
        return cls(found=False, success=False, message=message, plan=plan)

    @property
    def phase(self) -> Phase | None:
        return self.target.phase if self.target else None

    def to_dict(self) -> dict[str, Any]:
        """Response payload for the tool layer."""
        if not self.found:
            return {"found": False, "message": self.message}

        data: dict[str, Any] = {"success": self.success}
        if self.message:
            data["message"] = self.message
        if self.plan is not None:
            data["plan_id"] = self.plan.id
            data["plan_status"] = self.plan.status.value
            data["is_phased"] = self.plan.is_phased
        phase = self.phase
        if phase is not None:
            data["phase_id"] = phase.id
            data["phase_number"] = phase.phase_number
            data["phase_name"] = phase.name
            data["phase_status"] = phase.status.value
        if self.review is not None:
            data["review_id"] = self.review.id
            data["findings_count"] = len(self.review.findings)
            data["approved"] = self.review.approved
        if self.fix_report is not None:
            data["fix_report_id"] = self.fix_report.id
            data["fixes_count"] = len(self.fix_report.fixes_applied)
        if self.self_assessment is not None:
            data["self_assessment_id"] = self.self_assessment.id
            data["target_id"] = self.self_assessment.target_id
        if self.plan is not None and self.plan.is_phased:
            data["all_phases_completed"] = self.all_phases_completed
        data.update(self.extra)
        return data


# =============================================================================
# HELPERS
# =============================================================================


def resolve_target(plan: Plan) -> ReviewTarget | None:
    """
    Decide which entity review events apply to.

    Returns:
        The plan itself when unphased, the current phase when phased,
        or None when a phased plan has no current phase left
    """
    if not plan.is_phased:
        return ReviewTarget(plan)
    phase = plan.current_phase
    return ReviewTarget(phase) if phase is not None else None


def _no_current_phase(plan: Plan) -> TransitionResult:
    return TransitionResult(
        success=False,
        message="All phases are completed; there is no current phase.",
        plan=plan,
        all_phases_completed=True,
    )


def _log_event(
    plan: Plan,
    event_type: str,
    target: ReviewTarget | None = None,
    from_status: PlanStatus | None = None,
    to_status: PlanStatus | None = None,
    **kwargs: Any,
) -> None:
    phase = target.phase if target else None
    plan_logger.info(
        PlanEventLogEntry(
            timestamp=now_iso(),
            plan_id=plan.id,
            event_type=event_type,
            phase_id=phase.id if phase else None,
            phase_number=phase.phase_number if phase else None,
            from_status=from_status.value if from_status else None,
            to_status=to_status.value if to_status else None,
            plan_status=plan.status.value,
            project_path=plan.project_path,
            **kwargs,
        ).to_json()
    )


# =============================================================================
# TRANSITIONS
# =============================================================================


def update_status(plan: Plan | None, status: PlanStatus) -> TransitionResult:
    """Overwrite the plan's status. Always allowed."""
    if plan is None:
        return TransitionResult.not_found()

    previous = plan.status
    if not is_workflow_transition(previous, status):
        logger.warning(
            f"Plan {plan.id}: status forced {previous.value} -> {status.value} outside the review workflow"
        )
    plan.status = status
    plan.touch()

    _log_event(plan, "status_update", ReviewTarget(plan), previous, status)
    return TransitionResult(plan=plan, from_status=previous, to_status=status)


def submit_review(plan: Plan | None, findings: list[str]) -> TransitionResult:
    """
    Record a review on the plan or its current phase.

    No findings approves the target (completed); any finding sends it back
    (needs_fixes). Approving a phase does not move to the next phase.
    """
    if plan is None:
        return TransitionResult.not_found()

    target = resolve_target(plan)
    if target is None:
        return _no_current_phase(plan)

    review = Review(findings=list(findings), status=review_status_for(findings))
    entity = target.entity
    previous = entity.status
    timestamp = plan.touch()

    entity.reviews.append(review)
    entity.status = PlanStatus.COMPLETED if review.approved else PlanStatus.NEEDS_FIXES
    entity.updated_at = timestamp

    phase = target.phase
    if phase is not None:
        if review.status == ReviewStatus.APPROVED:
            is_last = phase.phase_number == len(plan.phases)
            plan.status = PlanStatus.COMPLETED if is_last else PlanStatus.IN_PROGRESS
        else:
            plan.status = PlanStatus.NEEDS_FIXES

    logger.info(
        f"Review on {target.kind} {target.id}: {len(findings)} finding(s) -> {entity.status.value}"
    )
    _log_event(
        plan,
        "review",
        target,
        previous,
        entity.status,
        review_id=review.id,
        findings_count=len(findings),
    )
    return TransitionResult(
        plan=plan,
        target=target,
        from_status=previous,
        to_status=entity.status,
        review=review,
        all_phases_completed=plan.is_phased and plan.status == PlanStatus.COMPLETED,
    )


def submit_fix_report(plan: Plan | None, review_id: str, fixes_applied: list[str]) -> TransitionResult:
    """
    Record fixes for a review and ask for a re-review.

    The target always moves to review_requested, whatever its status was.
    """
    if plan is None:
        return TransitionResult.not_found()

    target = resolve_target(plan)
    if target is None:
        return _no_current_phase(plan)

    entity = target.entity
    if not any(r.id == review_id for r in entity.reviews):
        return TransitionResult.not_found(f"Review {review_id} not found.", plan=plan)

    fix_report = FixReport(review_id=review_id, fixes_applied=list(fixes_applied))
    previous = entity.status
    timestamp = plan.touch()

    entity.fix_reports.append(fix_report)
    entity.status = PlanStatus.REVIEW_REQUESTED
    entity.updated_at = timestamp
    if target.phase is not None:
        plan.status = PlanStatus.REVIEW_REQUESTED

    logger.info(f"Fix report on {target.kind} {target.id}: {len(fixes_applied)} fix(es)")
    _log_event(
        plan,
        "fix_report",
        target,
        previous,
        entity.status,
        review_id=review_id,
        fixes_count=len(fixes_applied),
    )
    return TransitionResult(
        plan=plan,
        target=target,
        from_status=previous,
        to_status=entity.status,
        fix_report=fix_report,
    )


def submit_self_assessment(
    plan: Plan | None,
    files_changed: list[str],
    tests_run: bool,
    tests_passed: bool,
    requirements_met: list[str],
    concerns: list[str],
    questions: list[str],
    diff_summary: str,
    test_summary: str | None = None,
) -> TransitionResult:
    """Attach the implementer's self-assessment to the target. No status change."""
    if plan is None:
        return TransitionResult.not_found()

    target = resolve_target(plan)
    if target is None:
        return _no_current_phase(plan)

    assessment = SelfAssessment(
        target_id=target.id,
        files_changed=list(files_changed),
        tests_run=tests_run,
        tests_passed=tests_passed,
        test_summary=test_summary,
        requirements_met=list(requirements_met),
        concerns=list(concerns),
        questions=list(questions),
        diff_summary=diff_summary,
    )
    timestamp = plan.touch()
    target.entity.self_assessments.append(assessment)
    target.entity.updated_at = timestamp

    _log_event(
        plan,
        "self_assessment",
        target,
        details={"tests_run": tests_run, "tests_passed": tests_passed},
    )
    return TransitionResult(plan=plan, target=target, self_assessment=assessment)


def advance_phase(plan: Plan | None) -> TransitionResult:
    """
    Complete the current phase and make the next one current.

    After the last phase the plan is completed and no phase is current;
    further calls report all_phases_completed without changing anything.
    """
    if plan is None:
        return TransitionResult.not_found()

    if not plan.is_phased:
        return TransitionResult(success=False, message="Plan is not phased.", plan=plan)

    current = plan.current_phase
    if current is None:
        return TransitionResult(
            message="All phases already completed.",
            plan=plan,
            all_phases_completed=True,
        )

    timestamp = plan.touch()
    previous = current.status
    current.status = PlanStatus.COMPLETED
    current.updated_at = timestamp

    next_phase = plan.get_phase_by_number(current.phase_number + 1)
    if next_phase is None:
        plan.status = PlanStatus.COMPLETED
        plan.current_phase_id = None
        logger.info(f"Plan {plan.id}: final phase {current.phase_number} completed")
        _log_event(plan, "advance", ReviewTarget(current), previous, PlanStatus.COMPLETED)
        return TransitionResult(
            message="All phases completed.",
            plan=plan,
            from_status=previous,
            to_status=PlanStatus.COMPLETED,
            all_phases_completed=True,
            extra={"completed_phase": current.phase_number},
        )

    plan.current_phase_id = next_phase.id
    plan.status = PlanStatus.IN_PROGRESS
    logger.info(f"Plan {plan.id}: advanced to phase {next_phase.phase_number} '{next_phase.name}'")
    _log_event(
        plan,
        "advance",
        ReviewTarget(next_phase),
        previous,
        PlanStatus.COMPLETED,
        details={"completed_phase": current.phase_number},
    )
    return TransitionResult(
        plan=plan,
        target=ReviewTarget(next_phase),
        from_status=previous,
        to_status=PlanStatus.COMPLETED,
        extra={"completed_phase": current.phase_number},
    )


def reset_plan(plan: Plan | None) -> TransitionResult:
    """
    Return the plan (and every phase) to submitted.

    Reviews and fix reports are cleared; self-assessments are kept.
    """
    if plan is None:
        return TransitionResult.not_found()

    previous = plan.status
    timestamp = plan.touch()

    plan.status = PlanStatus.SUBMITTED
    plan.reviews.clear()
    plan.fix_reports.clear()

    if plan.is_phased:
        for phase in plan.phases:
            phase.status = PlanStatus.SUBMITTED
            phase.reviews.clear()
            phase.fix_reports.clear()
            phase.updated_at = timestamp
        first = plan.get_phase_by_number(1)
        plan.current_phase_id = first.id if first else None

    logger.info(f"Plan {plan.id} reset to submitted")
    _log_event(plan, "reset", resolve_target(plan), previous, PlanStatus.SUBMITTED)
    return TransitionResult(
        plan=plan,
        target=resolve_target(plan),
        from_status=previous,
        to_status=PlanStatus.SUBMITTED,
    )


def mark_complete(plan: Plan | None) -> TransitionResult:
    """Force the plan to completed. Phases are left untouched."""
    if plan is None:
        return TransitionResult.not_found()

    previous = plan.status
    plan.status = PlanStatus.COMPLETED
    plan.touch()

    _log_event(plan, "mark_complete", ReviewTarget(plan), previous, PlanStatus.COMPLETED)
    return TransitionResult(plan=plan, from_status=previous, to_status=PlanStatus.COMPLETED)


# =============================================================================
# QUERIES
# =============================================================================


def latest_review(plan: Plan) -> tuple[ReviewTarget, Review] | None:
    """
    Most recent review of the plan's review target.

    For a phased plan with every phase done, the last phase is used.
    """
    target = resolve_target(plan)
    if target is None and plan.phases:
        target = ReviewTarget(max(plan.phases, key=lambda p: p.phase_number))
    if target is None or not target.entity.reviews:
        return None
    return target, target.entity.reviews[-1]
