"""Tests for named tool dispatch."""

import json

import pytest

from planbridge.exceptions import InvalidStatusError, UnknownToolError, ValidationError
from planbridge.tools import ToolDispatcher

PHASED_CONTENT = """# Rollout

## Phase 1: Schema
Add src/schema.ts, src/types.ts and src/db.ts.

## Phase 2: API
Write src/api.ts and src/routes.ts.
"""


@pytest.fixture
def dispatcher(repository, config):
    return ToolDispatcher(repository, config)


def _submit(dispatcher, content="Fix the typo in the header", **extra):
    args = {"name": "My plan", "content": content, "project_path": "/work/app"}
    args.update(extra)
    return json.loads(dispatcher.call("submit_plan", args))


class TestDispatch:
    """Tests for tool lookup and argument validation."""

    def test_unknown_tool(self, dispatcher):
        """Unknown names raise UnknownToolError."""
        with pytest.raises(UnknownToolError) as exc_info:
            dispatcher.call("launch_rockets", {})
        assert "submit_plan" in exc_info.value.available

    def test_missing_required_argument(self, dispatcher):
        """Missing arguments raise ValidationError."""
        with pytest.raises(ValidationError):
            dispatcher.call("submit_plan", {"name": "x"})

    def test_relative_project_path_rejected(self, dispatcher):
        """Project paths must be absolute."""
        with pytest.raises(ValidationError):
            dispatcher.call("submit_plan", {"name": "x", "content": "y", "project_path": "rel/path"})

    def test_findings_must_be_strings(self, dispatcher):
        """Findings must be a list of strings."""
        plan = _submit(dispatcher)
        with pytest.raises(ValidationError):
            dispatcher.call("submit_review", {"plan_id": plan["id"], "findings": [1, 2]})

    def test_bad_status(self, dispatcher):
        """Unknown statuses raise InvalidStatusError."""
        plan = _submit(dispatcher)
        with pytest.raises(InvalidStatusError):
            dispatcher.call("update_plan_status", {"id": plan["id"], "status": "done"})

    def test_missing_plan_is_plain_text(self, dispatcher):
        """Missing plans answer with plain text."""
        assert dispatcher.call("submit_review", {"plan_id": "nope", "findings": []}) == "Plan not found."
        assert dispatcher.call("get_plan", {"id": "nope"}) == "No plan found."
        assert dispatcher.call("advance_phase", {"plan_id": "nope"}) == "Plan not found."


class TestSubmitAndQuery:
    """Tests for creating, fetching and listing plans."""

    def test_simple_plan_not_split(self, dispatcher):
        """Simple plans are stored unphased."""
        plan = _submit(dispatcher)

        assert plan["status"] == "submitted"
        assert plan["is_phased"] is False
        assert plan["storage_scope"] == "global"
        assert "complexity_score" in plan

    def test_complex_plan_split(self, dispatcher):
        """Complex plans are split on submit."""
        plan = _submit(dispatcher, PHASED_CONTENT)

        assert plan["is_phased"] is True
        assert [p["name"] for p in plan["phases"]] == ["Schema", "API"]
        assert plan["current_phase_id"] == plan["phases"][0]["id"]

    def test_auto_split_off(self, dispatcher):
        """auto_split false skips analysis."""
        plan = _submit(dispatcher, PHASED_CONTENT, auto_split=False)
        assert plan["is_phased"] is False
        assert "complexity_score" not in plan

    def test_local_scope(self, dispatcher, project_dir):
        """Local submissions go to the project store."""
        plan = _submit(dispatcher, project_path=str(project_dir), storage_scope="local")
        assert (project_dir / ".plan-bridge" / "plans" / f"{plan['id']}.json").exists()

    def test_get_latest_and_list(self, dispatcher):
        """get_plan without id returns the latest plan."""
        first = _submit(dispatcher)
        _submit(dispatcher)
        dispatcher.call("update_plan_status", {"id": first["id"], "status": "needs_fixes"})

        latest = json.loads(dispatcher.call("get_plan", {}))
        assert latest["id"] == first["id"]

        rows = json.loads(dispatcher.call("list_plans", {"status": "needs_fixes"}))
        assert [r["id"] for r in rows] == [first["id"]]

    def test_delete(self, dispatcher):
        """delete_plan removes the plan once."""
        plan = _submit(dispatcher)
        assert json.loads(dispatcher.call("delete_plan", {"plan_id": plan["id"]}))["deleted"]
        assert dispatcher.call("delete_plan", {"plan_id": plan["id"]}) == "Plan not found."

    def test_migrate(self, dispatcher, project_dir):
        """migrate_plan moves the plan into a project."""
        plan = _submit(dispatcher)
        moved = json.loads(
            dispatcher.call("migrate_plan", {"plan_id": plan["id"], "project_path": str(project_dir)})
        )
        assert moved["storage_scope"] == "local"
        fetched = json.loads(dispatcher.call("get_plan", {"id": plan["id"]}))
        assert fetched["project_path"] == str(project_dir)


class TestReviewLoop:
    """Tests for the review/fix cycle through tools."""

    def test_review_fix_approve(self, dispatcher):
        """The full review loop through tools."""
        plan_id = _submit(dispatcher)["id"]

        review = json.loads(
            dispatcher.call("submit_review", {"plan_id": plan_id, "findings": ["Add tests"]})
        )
        assert review["plan_status"] == "needs_fixes"
        assert review["approved"] is False

        fix = json.loads(
            dispatcher.call(
                "submit_fix_report",
                {"plan_id": plan_id, "review_id": review["review_id"], "fixes_applied": ["Added"]},
            )
        )
        assert fix["plan_status"] == "review_requested"

        approved = json.loads(dispatcher.call("submit_review", {"plan_id": plan_id, "findings": []}))
        assert approved["plan_status"] == "completed"

        latest = json.loads(dispatcher.call("get_review", {"plan_id": plan_id}))
        assert latest["review"]["status"] == "approved"

    def test_no_reviews_yet(self, dispatcher):
        """get_review before any review."""
        plan_id = _submit(dispatcher)["id"]
        assert dispatcher.call("get_review", {"plan_id": plan_id}) == "No reviews yet."

    def test_fix_for_unknown_review(self, dispatcher):
        """Fixes for unknown reviews are refused."""
        plan_id = _submit(dispatcher)["id"]
        text = dispatcher.call(
            "submit_fix_report", {"plan_id": plan_id, "review_id": "r-1", "fixes_applied": []}
        )
        assert text == "Review r-1 not found."

    def test_self_assessment_recorded(self, dispatcher):
        """Self-assessments are stored without a status change."""
        plan_id = _submit(dispatcher)["id"]
        result = json.loads(
            dispatcher.call(
                "submit_self_assessment",
                {"plan_id": plan_id, "files_changed": ["a.py"], "tests_run": True, "tests_passed": True},
            )
        )
        assert result["target_id"] == plan_id

        plan = json.loads(dispatcher.call("get_plan", {"id": plan_id}))
        assert plan["status"] == "submitted"
        assert plan["self_assessments"][0]["files_changed"] == ["a.py"]

    def test_wait_already_reached(self, dispatcher):
        """Waiting on the current status returns at once."""
        plan_id = _submit(dispatcher)["id"]
        result = json.loads(
            dispatcher.call("wait_for_status", {"plan_id": plan_id, "target_status": "submitted"})
        )
        assert result["reached"] is True

    def test_wait_times_out(self, dispatcher):
        """Waiting gives up after the timeout."""
        plan_id = _submit(dispatcher)["id"]
        result = json.loads(
            dispatcher.call(
                "wait_for_status",
                {"plan_id": plan_id, "target_status": "completed", "timeout_seconds": 0.05},
            )
        )
        assert result["reached"] is False
        assert result["message"].startswith("Timeout after 0.05s")

    def test_wait_rejects_bad_timeout(self, dispatcher):
        """Non-positive timeouts are rejected."""
        with pytest.raises(ValidationError):
            dispatcher.call(
                "wait_for_status", {"plan_id": "p", "target_status": "completed", "timeout_seconds": 0}
            )


class TestPhaseTools:
    """Tests for phase tools."""

    def test_walk_through_phases(self, dispatcher):
        """Review and advance through both phases."""
        plan_id = _submit(dispatcher, PHASED_CONTENT)["id"]

        phase = json.loads(dispatcher.call("get_phase", {"plan_id": plan_id}))
        assert phase["phase_number"] == 1
        assert phase["is_current"] is True
        assert phase["content"].startswith("## Phase 1: Schema")

        review = json.loads(dispatcher.call("submit_review", {"plan_id": plan_id, "findings": []}))
        assert review["phase_status"] == "completed"
        assert review["plan_status"] == "in_progress"

        advanced = json.loads(dispatcher.call("advance_phase", {"plan_id": plan_id}))
        assert advanced["phase_number"] == 2
        assert advanced["completed_phase"] == 1

        review = json.loads(dispatcher.call("submit_review", {"plan_id": plan_id, "findings": []}))
        assert review["plan_status"] == "completed"
        assert review["all_phases_completed"] is True

    def test_get_phase_by_number(self, dispatcher):
        """Phases can be fetched by number."""
        plan_id = _submit(dispatcher, PHASED_CONTENT)["id"]

        phase = json.loads(dispatcher.call("get_phase", {"plan_id": plan_id, "phase_number": 2}))
        assert phase["name"] == "API"
        assert phase["is_current"] is False
        assert dispatcher.call("get_phase", {"plan_id": plan_id, "phase_number": 9}) == "Phase 9 not found."

    def test_get_phase_unphased(self, dispatcher):
        """get_phase on an unphased plan."""
        plan_id = _submit(dispatcher)["id"]
        result = json.loads(dispatcher.call("get_phase", {"plan_id": plan_id}))
        assert result["is_phased"] is False

    def test_split_existing_plan(self, dispatcher):
        """split_plan splits once."""
        plan_id = _submit(dispatcher, PHASED_CONTENT, auto_split=False)["id"]

        result = json.loads(dispatcher.call("split_plan", {"plan_id": plan_id}))
        assert result["success"] is True
        assert [p["dependencies"] for p in result["phases"]] == [[], ["Schema"]]

        again = json.loads(dispatcher.call("split_plan", {"plan_id": plan_id}))
        assert again["success"] is False

    def test_split_refused_after_review(self, dispatcher, repository):
        """A reviewed plan is not split until it is reset."""
        plan_id = _submit(dispatcher, PHASED_CONTENT, auto_split=False)["id"]
        dispatcher.call("submit_review", {"plan_id": plan_id, "findings": ["bug"]})

        result = json.loads(dispatcher.call("split_plan", {"plan_id": plan_id}))

        assert result["success"] is False
        plan = repository.load(plan_id)
        assert plan.is_phased is False
        assert len(plan.reviews) == 1
        assert plan.status.value == "needs_fixes"

        dispatcher.call("reset_plan", {"plan_id": plan_id})
        result = json.loads(dispatcher.call("split_plan", {"plan_id": plan_id}))
        plan = repository.load(plan_id)
        assert result["success"] is True
        assert plan.is_phased and plan.reviews == [] and plan.fix_reports == []

    def test_split_simple_plan_does_nothing(self, dispatcher):
        """Simple plans are not split."""
        plan_id = _submit(dispatcher, auto_split=False)["id"]
        result = json.loads(dispatcher.call("split_plan", {"plan_id": plan_id}))
        assert result["success"] is False
        assert result["phases"] == []

    def test_analyze_content(self, dispatcher):
        """Raw content can be analysed."""
        result = json.loads(dispatcher.call("analyze_complexity", {"content": PHASED_CONTENT}))
        assert result["is_complex"] is True
        assert len(result["recommended_phases"]) == 2

    def test_reset(self, dispatcher):
        """reset_plan returns to phase 1."""
        plan_id = _submit(dispatcher, PHASED_CONTENT)["id"]
        dispatcher.call("advance_phase", {"plan_id": plan_id})

        result = json.loads(dispatcher.call("reset_plan", {"plan_id": plan_id}))
        assert result["plan_status"] == "submitted"
        assert result["phase_number"] == 1
