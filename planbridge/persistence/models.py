"""
Plan Bridge Persistence Models

Dataclasses for plans, phases and the review history attached to them.
Designed for:
- Type safety with status enums
- Lossless serialization to/from the JSON documents in the plan store
- Tolerant loading (unknown keys ignored, missing optional keys defaulted)

A Plan owns its Phases; each Plan or Phase owns its reviews, fix reports
and self-assessments. The current phase is referenced by id only.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from planbridge.state import PlanStatus, ReviewStatus


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def generate_id() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def now_iso() -> str:
    """Get current UTC datetime as a sortable ISO string."""
    return datetime.now(timezone.utc).isoformat()


def _string_list(value: Any) -> list[str]:
    if not value:
        return []
    return [str(item) for item in value]


# ============================================================================
# REVIEW HISTORY
# ============================================================================


@dataclass
class Review:
    """A reviewer's verdict. No findings means approved."""

    findings: list[str] = field(default_factory=list)
    status: ReviewStatus = ReviewStatus.APPROVED
    id: str = field(default_factory=generate_id)
    timestamp: str = field(default_factory=now_iso)

    @property
    def approved(self) -> bool:
        return self.status == ReviewStatus.APPROVED

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "findings": list(self.findings),
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Review:
        return cls(
            id=data["id"],
            timestamp=data.get("timestamp", ""),
            findings=_string_list(data.get("findings")),
            status=ReviewStatus(data.get("status", ReviewStatus.APPROVED.value)),
        )


@dataclass
class FixReport:
    """Fixes applied in response to one review."""

    review_id: str
    fixes_applied: list[str] = field(default_factory=list)
    id: str = field(default_factory=generate_id)
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "review_id": self.review_id,
            "fixes_applied": list(self.fixes_applied),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FixReport:
        return cls(
            id=data["id"],
            timestamp=data.get("timestamp", ""),
            review_id=data.get("review_id", ""),
            fixes_applied=_string_list(data.get("fixes_applied")),
        )


@dataclass
class SelfAssessment:
    """
    The implementer's own report on a piece of work.

    Purely informational: recorded for the reviewer, never changes status.
    """

    target_id: str
    files_changed: list[str] = field(default_factory=list)
    tests_run: bool = False
    tests_passed: bool = False
    test_summary: str | None = None
    requirements_met: list[str] = field(default_factory=list)
    concerns: list[str] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    diff_summary: str = ""
    id: str = field(default_factory=generate_id)
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "target_id": self.target_id,
            "files_changed": list(self.files_changed),
            "tests_run": self.tests_run,
            "tests_passed": self.tests_passed,
            "test_summary": self.test_summary,
            "requirements_met": list(self.requirements_met),
            "concerns": list(self.concerns),
            "questions": list(self.questions),
            "diff_summary": self.diff_summary,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SelfAssessment:
        return cls(
            id=data["id"],
            timestamp=data.get("timestamp", ""),
            target_id=data.get("target_id", ""),
            files_changed=_string_list(data.get("files_changed")),
            tests_run=bool(data.get("tests_run", False)),
            tests_passed=bool(data.get("tests_passed", False)),
            test_summary=data.get("test_summary"),
            requirements_met=_string_list(data.get("requirements_met")),
            concerns=_string_list(data.get("concerns")),
            questions=_string_list(data.get("questions")),
            diff_summary=data.get("diff_summary", ""),
        )


# ============================================================================
# CORE ENTITIES
# ============================================================================


@dataclass
class Phase:
    """
    One ordered slice of a decomposed plan.

    Depends only on its immediate predecessor (by name).
    """

    phase_number: int
    name: str
    description: str = ""
    dependencies: list[str] = field(default_factory=list)
    content: str = ""
    status: PlanStatus = PlanStatus.SUBMITTED
    reviews: list[Review] = field(default_factory=list)
    fix_reports: list[FixReport] = field(default_factory=list)
    self_assessments: list[SelfAssessment] = field(default_factory=list)
    id: str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = field(default_factory=now_iso)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "phase_number": self.phase_number,
            "name": self.name,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "content": self.content,
            "status": self.status.value,
            "reviews": [r.to_dict() for r in self.reviews],
            "fix_reports": [f.to_dict() for f in self.fix_reports],
            "self_assessments": [a.to_dict() for a in self.self_assessments],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Phase:
        return cls(
            id=data["id"],
            phase_number=int(data["phase_number"]),
            name=data.get("name", ""),
            description=data.get("description", ""),
            dependencies=_string_list(data.get("dependencies")),
            content=data.get("content", ""),
            status=PlanStatus(data.get("status", PlanStatus.SUBMITTED.value)),
            reviews=[Review.from_dict(r) for r in data.get("reviews") or []],
            fix_reports=[FixReport.from_dict(f) for f in data.get("fix_reports") or []],
            self_assessments=[
                SelfAssessment.from_dict(a) for a in data.get("self_assessments") or []
            ],
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
        )


@dataclass
class Plan:
    """
    An implementation plan submitted for review.

    Unphased plans collect reviews and fix reports directly. Phased plans
    route them to the current phase, leaving the plan's own lists empty.
    """

    name: str
    content: str
    project_path: str
    source: str = "claude-code"
    storage_scope: str = "global"
    status: PlanStatus = PlanStatus.SUBMITTED
    reviews: list[Review] = field(default_factory=list)
    fix_reports: list[FixReport] = field(default_factory=list)
    self_assessments: list[SelfAssessment] = field(default_factory=list)
    is_phased: bool = False
    phases: list[Phase] = field(default_factory=list)
    current_phase_id: str | None = None
    id: str = field(default_factory=generate_id)
    created_at: str = field(default_factory=now_iso)
    updated_at: str = ""

    def __post_init__(self) -> None:
        if not self.updated_at:
            self.updated_at = self.created_at

    @property
    def current_phase(self) -> Phase | None:
        """Look up the active phase by id."""
        if not self.is_phased or self.current_phase_id is None:
            return None
        return self.get_phase(self.current_phase_id)

    def get_phase(self, phase_id: str) -> Phase | None:
        for phase in self.phases:
            if phase.id == phase_id:
                return phase
        return None

    def get_phase_by_number(self, phase_number: int) -> Phase | None:
        for phase in self.phases:
            if phase.phase_number == phase_number:
                return phase
        return None

    def touch(self) -> str:
        """Stamp the plan as modified and return the timestamp."""
        self.updated_at = now_iso()
        return self.updated_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "content": self.content,
            "status": self.status.value,
            "source": self.source,
            "project_path": self.project_path,
            "storage_scope": self.storage_scope,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "reviews": [r.to_dict() for r in self.reviews],
            "fix_reports": [f.to_dict() for f in self.fix_reports],
            "self_assessments": [a.to_dict() for a in self.self_assessments],
            "is_phased": self.is_phased,
            "phases": [p.to_dict() for p in self.phases],
            "current_phase_id": self.current_phase_id,
        }

    def to_summary(self) -> dict[str, Any]:
        """Compact listing row."""
        summary = {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "source": self.source,
            "project_path": self.project_path,
            "storage_scope": self.storage_scope,
            "updated_at": self.updated_at,
            "reviews_count": len(self.reviews),
            "fix_reports_count": len(self.fix_reports),
            "is_phased": self.is_phased,
        }
        if self.is_phased:
            current = self.current_phase
            summary["phase_count"] = len(self.phases)
            summary["current_phase"] = current.phase_number if current else None
        return summary

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Plan:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            content=data.get("content", ""),
            status=PlanStatus(data.get("status", PlanStatus.SUBMITTED.value)),
            source=data.get("source", "claude-code"),
            project_path=data.get("project_path", ""),
            storage_scope=data.get("storage_scope", "global"),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            reviews=[Review.from_dict(r) for r in data.get("reviews") or []],
            fix_reports=[FixReport.from_dict(f) for f in data.get("fix_reports") or []],
            self_assessments=[
                SelfAssessment.from_dict(a) for a in data.get("self_assessments") or []
            ],
            is_phased=bool(data.get("is_phased", False)),
            phases=[Phase.from_dict(p) for p in data.get("phases") or []],
            current_phase_id=data.get("current_phase_id"),
        )
