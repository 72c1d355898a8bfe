"""
Plan Bridge Tools - Named request dispatch.

Maps tool names (submit_plan, submit_review, wait_for_status, ...) to the
planning core and the plan store, and renders every result as text: JSON
for results, a plain sentence when something was not found.

Usage:
    dispatcher = ToolDispatcher(PlanRepository(config), config)
    text = dispatcher.call("submit_review", {"plan_id": pid, "findings": []})

Malformed arguments raise ValidationError; unknown tool names raise
UnknownToolError.
"""

import json
import logging
from pathlib import Path
from typing import Any, Callable

from planbridge.config import BridgeConfig, STORAGE_SCOPES
from planbridge.exceptions import UnknownToolError, ValidationError
from planbridge.logging import PlanEventLogEntry, plan_logger
from planbridge.persistence.models import Plan, now_iso
from planbridge.persistence.repository import PlanRepository
from planbridge.planning import lifecycle
from planbridge.planning.complexity import analyze_complexity
from planbridge.planning.decomposer import split_into_phases
from planbridge.planning.waiter import wait_for_status
from planbridge.state import PlanStatus, parse_status

logger = logging.getLogger(__name__)

PLAN_NOT_FOUND = "Plan not found."

ToolHandler = Callable[[dict[str, Any]], str]


# =============================================================================
# ARGUMENT HELPERS
# =============================================================================


def _require_str(args: dict[str, Any], key: str) -> str:
    value = args.get(key)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"'{key}' is required and must be a non-empty string", {"key": key})
    return value


def _optional_str(args: dict[str, Any], key: str) -> str | None:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"'{key}' must be a string", {"key": key})
    return value


def _string_list(args: dict[str, Any], key: str, required: bool = True) -> list[str]:
    value = args.get(key)
    if value is None and not required:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValidationError(f"'{key}' must be a list of strings", {"key": key})
    return value


def _optional_bool(args: dict[str, Any], key: str, default: bool = False) -> bool:
    value = args.get(key, default)
    if not isinstance(value, bool):
        raise ValidationError(f"'{key}' must be a boolean", {"key": key})
    return value


def _optional_status(args: dict[str, Any], key: str = "status") -> PlanStatus | None:
    value = _optional_str(args, key)
    return parse_status(value) if value else None


def _optional_scope(args: dict[str, Any], key: str) -> str | None:
    scope = _optional_str(args, key)
    if scope is not None and scope not in STORAGE_SCOPES:
        raise ValidationError(f"Invalid storage scope '{scope}'", {"allowed": list(STORAGE_SCOPES)})
    return scope


def _json(data: Any) -> str:
    return json.dumps(data, indent=2)


class ToolDispatcher:
    """
    Dispatches named tool calls against the plan store.

    Every mutating tool loads the plan, applies one lifecycle transition,
    saves the plan and returns the transition's payload.
    """

    def __init__(self, repository: PlanRepository, config: BridgeConfig):
        self.repository = repository
        self.config = config
        self._tools: dict[str, ToolHandler] = {
            "submit_plan": self.submit_plan,
            "get_plan": self.get_plan,
            "list_plans": self.list_plans,
            "update_plan_status": self.update_plan_status,
            "submit_review": self.submit_review,
            "get_review": self.get_review,
            "submit_fix_report": self.submit_fix_report,
            "submit_self_assessment": self.submit_self_assessment,
            "mark_complete": self.mark_complete,
            "wait_for_status": self.wait_for_status,
            "analyze_complexity": self.analyze_complexity,
            "split_plan": self.split_plan,
            "get_phase": self.get_phase,
            "advance_phase": self.advance_phase,
            "reset_plan": self.reset_plan,
            "migrate_plan": self.migrate_plan,
            "delete_plan": self.delete_plan,
        }

    @property
    def tool_names(self) -> list[str]:
        return sorted(self._tools)

    def call(self, name: str, arguments: dict[str, Any] | None = None) -> str:
        """
        Run a tool by name.

        Raises:
            UnknownToolError: If no tool has this name
            ValidationError: If the arguments are malformed
        """
        handler = self._tools.get(name)
        if handler is None:
            raise UnknownToolError(f"Unknown tool '{name}'", tool=name, available=self.tool_names)
        logger.debug(f"Tool call: {name}")
        return handler(arguments or {})

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _load(self, args: dict[str, Any], key: str = "plan_id") -> Plan | None:
        return self.repository.load(_require_str(args, key))

    def _apply(self, plan: Plan | None, result: lifecycle.TransitionResult) -> str:
        if not result.found:
            return result.message or PLAN_NOT_FOUND
        if plan is not None:
            self.repository.save(plan)
        return _json(result.to_dict())

    # =========================================================================
    # PLANS
    # =========================================================================

    def submit_plan(self, args: dict[str, Any]) -> str:
        """Create a plan; complex plans are split into phases when auto_split is on."""
        name = _require_str(args, "name")
        content = _require_str(args, "content")
        project_path = _require_str(args, "project_path")
        if not Path(project_path).is_absolute():
            raise ValidationError("'project_path' must be an absolute path", {"project_path": project_path})

        scope = _optional_scope(args, "storage_scope") or self.config.default_scope
        plan = Plan(
            name=name,
            content=content,
            project_path=project_path,
            source=_optional_str(args, "source") or self.config.default_source,
            storage_scope=scope,
        )

        auto_split = _optional_bool(args, "auto_split", self.config.auto_split)
        analysis = None
        if auto_split:
            analysis = analyze_complexity(content)
            plan = split_into_phases(plan, analysis)

        self.repository.save(plan)
        plan_logger.info(
            PlanEventLogEntry(
                timestamp=now_iso(),
                plan_id=plan.id,
                event_type="submitted",
                to_status=plan.status.value,
                plan_status=plan.status.value,
                project_path=plan.project_path,
                details={"is_phased": plan.is_phased, "phase_count": len(plan.phases)},
            ).to_json()
        )
        logger.info(f"Submitted plan {plan.id} '{plan.name}' ({scope})")

        response: dict[str, Any] = {
            "id": plan.id,
            "status": plan.status.value,
            "name": plan.name,
            "storage_scope": plan.storage_scope,
            "is_phased": plan.is_phased,
        }
        if analysis is not None:
            response["complexity_score"] = analysis.score
        if plan.is_phased:
            response["phases"] = [
                {"phase_number": p.phase_number, "name": p.name, "id": p.id} for p in plan.phases
            ]
            response["current_phase_id"] = plan.current_phase_id
        return _json(response)

    def get_plan(self, args: dict[str, Any]) -> str:
        """Get a plan by id, or the latest plan (optionally by status/project)."""
        plan_id = _optional_str(args, "id")
        if plan_id:
            plan = self.repository.load(plan_id, _optional_scope(args, "storage_scope"))
        else:
            plan = self.repository.load_latest(
                status=_optional_status(args),
                project_path=_optional_str(args, "project_path"),
            )
        if plan is None:
            return "No plan found."
        return _json(plan.to_dict())

    def list_plans(self, args: dict[str, Any]) -> str:
        plans = self.repository.list(
            status=_optional_status(args),
            project_path=_optional_str(args, "project_path"),
            scope=_optional_scope(args, "storage_scope"),
        )
        return _json([p.to_summary() for p in plans])

    def update_plan_status(self, args: dict[str, Any]) -> str:
        status = parse_status(_require_str(args, "status"))
        plan = self._load(args, "id")
        result = lifecycle.update_status(plan, status)
        return self._apply(plan, result)

    def mark_complete(self, args: dict[str, Any]) -> str:
        plan = self._load(args, "id")
        return self._apply(plan, lifecycle.mark_complete(plan))

    def migrate_plan(self, args: dict[str, Any]) -> str:
        """Move a plan into a project's local store."""
        project_path = _require_str(args, "project_path")
        plan = self.repository.migrate_scope(_require_str(args, "plan_id"), project_path)
        if plan is None:
            return PLAN_NOT_FOUND
        return _json(
            {"id": plan.id, "storage_scope": plan.storage_scope, "project_path": plan.project_path}
        )

    def delete_plan(self, args: dict[str, Any]) -> str:
        plan_id = _require_str(args, "plan_id")
        if not self.repository.delete(plan_id):
            return PLAN_NOT_FOUND
        return _json({"id": plan_id, "deleted": True})

    # =========================================================================
    # REVIEW LOOP
    # =========================================================================

    def submit_review(self, args: dict[str, Any]) -> str:
        """Submit a review. Empty findings means approved."""
        findings = _string_list(args, "findings")
        plan = self._load(args)
        return self._apply(plan, lifecycle.submit_review(plan, findings))

    def get_review(self, args: dict[str, Any]) -> str:
        plan = self._load(args)
        if plan is None:
            return PLAN_NOT_FOUND
        latest = lifecycle.latest_review(plan)
        if latest is None:
            return "No reviews yet."
        target, review = latest
        data: dict[str, Any] = {
            "plan_id": plan.id,
            "plan_status": plan.status.value,
            "review": review.to_dict(),
        }
        if target.phase is not None:
            data["phase_id"] = target.phase.id
            data["phase_number"] = target.phase.phase_number
        return _json(data)

    def submit_fix_report(self, args: dict[str, Any]) -> str:
        """Report fixes for a review; the target moves to review_requested."""
        review_id = _require_str(args, "review_id")
        fixes = _string_list(args, "fixes_applied")
        plan = self._load(args)
        return self._apply(plan, lifecycle.submit_fix_report(plan, review_id, fixes))

    def submit_self_assessment(self, args: dict[str, Any]) -> str:
        plan = self._load(args)
        result = lifecycle.submit_self_assessment(
            plan,
            files_changed=_string_list(args, "files_changed", required=False),
            tests_run=_optional_bool(args, "tests_run"),
            tests_passed=_optional_bool(args, "tests_passed"),
            requirements_met=_string_list(args, "requirements_met", required=False),
            concerns=_string_list(args, "concerns", required=False),
            questions=_string_list(args, "questions", required=False),
            diff_summary=_optional_str(args, "diff_summary") or "",
            test_summary=_optional_str(args, "test_summary"),
        )
        return self._apply(plan, result)

    def wait_for_status(self, args: dict[str, Any]) -> str:
        """Poll a plan until it reaches the target status or the timeout elapses."""
        plan_id = _require_str(args, "plan_id")
        target = parse_status(_require_str(args, "target_status"))
        timeout = args.get("timeout_seconds", self.config.wait_timeout_seconds)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValidationError("'timeout_seconds' must be a positive number", {"value": timeout})

        result = wait_for_status(
            self.repository,
            plan_id,
            target,
            timeout_seconds=timeout,
            poll_interval=self.config.poll_interval_seconds,
        )
        if not result.found:
            return PLAN_NOT_FOUND
        return _json(result.to_dict())

    # =========================================================================
    # PHASES
    # =========================================================================

    def analyze_complexity(self, args: dict[str, Any]) -> str:
        """Analyse raw content, or the content of a stored plan."""
        content = _optional_str(args, "content")
        if content is None:
            plan = self._load(args)
            if plan is None:
                return PLAN_NOT_FOUND
            content = plan.content
        return _json(analyze_complexity(content).to_dict())

    def split_plan(self, args: dict[str, Any]) -> str:
        """Split an existing unphased plan into phases."""
        plan = self._load(args)
        if plan is None:
            return PLAN_NOT_FOUND
        if plan.is_phased:
            return _json({"success": False, "message": "Plan is already phased.", "is_phased": True})
        # Phased plans keep review history on their phases only
        if plan.reviews or plan.fix_reports:
            return _json(
                {
                    "success": False,
                    "message": "Plan already has reviews; reset it before splitting.",
                    "is_phased": False,
                }
            )

        analysis = analyze_complexity(plan.content)
        plan = split_into_phases(plan, analysis)
        if plan.is_phased:
            plan.touch()
            self.repository.save(plan)
        return _json(
            {
                "success": plan.is_phased,
                "plan_id": plan.id,
                "is_phased": plan.is_phased,
                "complexity": analysis.to_dict(),
                "phases": [
                    {"phase_number": p.phase_number, "name": p.name, "dependencies": p.dependencies}
                    for p in plan.phases
                ],
            }
        )

    def get_phase(self, args: dict[str, Any]) -> str:
        """Get the current phase, or a phase by number."""
        plan = self._load(args)
        if plan is None:
            return PLAN_NOT_FOUND
        if not plan.is_phased:
            return _json({"success": False, "is_phased": False, "message": "Plan is not phased."})

        number = args.get("phase_number")
        if number is None:
            phase = plan.current_phase
            if phase is None:
                return _json({"success": False, "is_phased": True, "all_phases_completed": True})
        else:
            if isinstance(number, bool) or not isinstance(number, int):
                raise ValidationError("'phase_number' must be an integer", {"value": number})
            phase = plan.get_phase_by_number(number)
            if phase is None:
                return f"Phase {number} not found."

        data = phase.to_dict()
        data["plan_id"] = plan.id
        data["total_phases"] = len(plan.phases)
        data["is_current"] = phase.id == plan.current_phase_id
        return _json(data)

    def advance_phase(self, args: dict[str, Any]) -> str:
        plan = self._load(args)
        return self._apply(plan, lifecycle.advance_phase(plan))

    def reset_plan(self, args: dict[str, Any]) -> str:
        plan = self._load(args)
        return self._apply(plan, lifecycle.reset_plan(plan))
