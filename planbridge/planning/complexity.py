"""
Plan Complexity Analyzer - Heuristic scoring and phase recommendations

Scores free-form plan text (usually markdown) to decide whether it should
be split into phases, and proposes the phases.

Scoring signals (pattern matching over the raw text):
- File references: distinct file-like tokens (up to 40 points)
- Phase markers: "Phase 2", "## Step ..." etc. (15 points)
- Dependency language: "depends on", "requirements", ... (10 points)
- Step count: numbered items, checklist items, action bullets (up to 20 points)
- Length: one point per ten lines (up to 15 points)

A plan is complex when it scores 50 or more, or references 5+ files.

Phase recommendations come from the first strategy that yields anything:
1. Explicit "## Phase N: Title" headings
2. Topic keywords (setup, core, testing, docs)
3. The plan's own "## " sections
"""

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)

# Complexity thresholds
COMPLEX_SCORE_THRESHOLD = 50
COMPLEX_FILE_COUNT = 5

# Limits for recommendation text and file lists
MAX_FILES_PER_PHASE = 5
EXPLICIT_DESCRIPTION_LIMIT = 300
SECTION_DESCRIPTION_LIMIT = 200
MAX_STRUCTURAL_PHASES = 4


# =============================================================================
# SIGNAL PATTERNS
# =============================================================================

FILE_PATTERNS: list[re.Pattern[str]] = [
    # Bare file names with a recognised extension
    re.compile(r"[\w-]+\.(?:ts|js|tsx|jsx|json|md|html|css|py|go|rs|java|cpp|c|h)"),
    # Back-ticked paths
    re.compile(r"`[\w\-/]+\.\w+`"),
    # **File:** `path` lines
    re.compile(r"\*\*File:\*\*\s*`?[\w\-/.]+`?", re.IGNORECASE),
]

PHASE_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"phase\s+\d+", re.IGNORECASE),
    re.compile(r"step\s+\d+", re.IGNORECASE),
    re.compile(r"stage\s+\d+", re.IGNORECASE),
    re.compile(r"part\s+\d+", re.IGNORECASE),
    re.compile(r"##\s+(?:phase|step|stage|part)", re.IGNORECASE),
]

DEPENDENCY_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"depend(?:s|encies|ency)", re.IGNORECASE),
    re.compile(r"require(?:s|ments|ment)", re.IGNORECASE),
    re.compile(r"prerequisite", re.IGNORECASE),
    re.compile(r"after.*complete", re.IGNORECASE),
    re.compile(r"before.*start", re.IGNORECASE),
]

STEP_PATTERNS: list[re.Pattern[str]] = [
    # Numbered lists
    re.compile(r"^\s*\d+\.\s+", re.MULTILINE),
    # Task lists
    re.compile(r"^\s*-\s+\[[ x]\]\s+", re.MULTILINE),
    # Action items
    re.compile(
        r"^\s*[-*]\s+(?:Add|Create|Implement|Update|Fix|Remove|Refactor|Test)",
        re.MULTILINE,
    ),
]

# "## Phase 2: Build the API" (also Step / Stage)
EXPLICIT_PHASE_RE = re.compile(
    r"^##\s+(Phase|Step|Stage)\s+(\d+)[:\s]+(.+)$", re.IGNORECASE | re.MULTILINE
)
PHASE_HEADING_RE = re.compile(r"^##\s+(?:Phase|Step|Stage)\s+\d+", re.IGNORECASE | re.MULTILINE)
SECTION_SPLIT_RE = re.compile(r"^##\s+", re.MULTILINE)

# Files listed for explicit and structural phases
SECTION_FILE_RE = re.compile(r"[\w\-/]+\.(?:ts|js|tsx|jsx|json|md)")

# Any file-like token, used by the topic recommendations
FILE_TOKEN_RE = re.compile(r"[\w\-/]+(?:\.[\w\-]+)*\.[A-Za-z0-9]+")

SOURCE_EXTENSIONS = {"ts", "js", "tsx", "jsx", "py", "go", "rs"}


# =============================================================================
# RESULT TYPES
# =============================================================================


@dataclass
class PhaseRecommendation:
    """A proposed phase: what it covers and why it was proposed."""

    name: str
    description: str
    estimated_files: list[str] = field(default_factory=list)
    rationale: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "estimated_files": list(self.estimated_files),
            "rationale": self.rationale,
        }


@dataclass
class ComplexityIndicators:
    """Raw signals extracted from the plan text."""

    file_count: int = 0
    has_phases: bool = False
    has_dependencies: bool = False
    estimated_steps: int = 0
    total_lines: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_count": self.file_count,
            "has_phases": self.has_phases,
            "has_dependencies": self.has_dependencies,
            "estimated_steps": self.estimated_steps,
            "total_lines": self.total_lines,
        }


@dataclass
class ComplexityAnalysis:
    """Result of analysing a plan's complexity."""

    is_complex: bool
    score: int
    indicators: ComplexityIndicators
    recommended_phases: list[PhaseRecommendation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_complex": self.is_complex,
            "score": self.score,
            "indicators": self.indicators.to_dict(),
            "recommended_phases": [r.to_dict() for r in self.recommended_phases],
        }


# =============================================================================
# SCORING
# =============================================================================


def extract_file_references(content: str) -> set[str]:
    """Distinct file references, keyed by the exact matched text."""
    matches: set[str] = set()
    for pattern in FILE_PATTERNS:
        matches.update(m.group(0) for m in pattern.finditer(content))
    return matches


def count_steps(content: str) -> int:
    """Count list items that look like work steps (patterns are additive)."""
    return sum(len(pattern.findall(content)) for pattern in STEP_PATTERNS)


def extract_indicators(content: str) -> ComplexityIndicators:
    """Extract every scoring signal from the plan text."""
    return ComplexityIndicators(
        file_count=len(extract_file_references(content)),
        has_phases=any(p.search(content) for p in PHASE_PATTERNS),
        has_dependencies=any(p.search(content) for p in DEPENDENCY_PATTERNS),
        estimated_steps=count_steps(content),
        total_lines=len(content.split("\n")),
    )


def score_indicators(indicators: ComplexityIndicators) -> float:
    """Sum the independently capped score terms (0-100)."""
    score = 0.0
    score += min(indicators.file_count * 5, 40)  # 8+ files = max
    score += 15 if indicators.has_phases else 0
    score += 10 if indicators.has_dependencies else 0
    score += min(indicators.estimated_steps * 2, 20)  # 10+ steps = max
    score += min(indicators.total_lines / 10, 15)  # 150+ lines = max
    return score


def analyze_complexity(content: str) -> ComplexityAnalysis:
    """
    Analyze plan content to decide whether it should be split into phases.

    Args:
        content: Full plan text

    Returns:
        ComplexityAnalysis with score, indicators and (when complex)
        recommended phases
    """
    indicators = extract_indicators(content)
    score = score_indicators(indicators)

    is_complex = score >= COMPLEX_SCORE_THRESHOLD or indicators.file_count >= COMPLEX_FILE_COUNT

    recommendations = recommend_phases(content, indicators.file_count) if is_complex else []

    logger.debug(
        f"Complexity score {score:.1f} (files={indicators.file_count}, "
        f"steps={indicators.estimated_steps}, lines={indicators.total_lines}) "
        f"-> complex={is_complex}, {len(recommendations)} phase(s) recommended"
    )

    return ComplexityAnalysis(
        is_complex=is_complex,
        # Round half up
        score=int(math.floor(score + 0.5)),
        indicators=indicators,
        recommended_phases=recommendations,
    )


# =============================================================================
# PHASE RECOMMENDATIONS
# =============================================================================


def _unique(items: list[str], limit: int = MAX_FILES_PER_PHASE) -> list[str]:
    seen: list[str] = []
    for item in items:
        if item not in seen:
            seen.append(item)
            if len(seen) == limit:
                break
    return seen


def extract_files(content: str, pattern: re.Pattern[str] = SECTION_FILE_RE) -> list[str]:
    """File references matching a pattern, deduplicated, at most five."""
    return _unique([m.group(0) for m in pattern.finditer(content)])


def _topic_files(content: str, predicate: Callable[[str], bool]) -> list[str]:
    tokens = [m.group(0) for m in FILE_TOKEN_RE.finditer(content)]
    return _unique([t for t in tokens if predicate(t.lower())])


def _is_setup_file(token: str) -> bool:
    return any(k in token for k in ("setup", "config", "package.json"))


def _is_source_file(token: str) -> bool:
    return token.rsplit(".", 1)[-1] in SOURCE_EXTENSIONS


def _is_test_file(token: str) -> bool:
    return any(k in token for k in ("test", "spec", "__tests__"))


def _is_docs_file(token: str) -> bool:
    return any(k in token for k in ("readme", "doc", "guide", "wiki"))


@dataclass(frozen=True)
class _TopicTemplate:
    key: str
    keywords: re.Pattern[str]
    name: str
    description: str
    rationale: str
    is_topic_file: Callable[[str], bool]


# Fixed order: Setup -> Core -> Testing -> Docs
TOPIC_TEMPLATES: list[_TopicTemplate] = [
    _TopicTemplate(
        key="setup",
        keywords=re.compile(r"setup|install|config|init", re.IGNORECASE),
        name="Setup & Configuration",
        description="Initialize project structure, install dependencies, configure tooling",
        rationale="Foundation must be established before feature implementation",
        is_topic_file=_is_setup_file,
    ),
    _TopicTemplate(
        key="core",
        keywords=re.compile(r"implement|core|main|feature|logic", re.IGNORECASE),
        name="Core Implementation",
        description="Implement main features, business logic, and primary functionality",
        rationale="Primary functionality forms the bulk of the implementation",
        is_topic_file=_is_source_file,
    ),
    _TopicTemplate(
        key="testing",
        keywords=re.compile(r"test|spec|coverage|qa", re.IGNORECASE),
        name="Testing & Validation",
        description="Write tests, add coverage, validate behavior",
        rationale="Testing requires completed implementation to verify",
        is_topic_file=_is_test_file,
    ),
    _TopicTemplate(
        key="docs",
        keywords=re.compile(r"document|readme|guide|wiki", re.IGNORECASE),
        name="Documentation",
        description="Update README, write guides, document API",
        rationale="Documentation reflects final implementation details",
        is_topic_file=_is_docs_file,
    ),
]

# Core work is assumed once a plan touches this many files
CORE_FILE_COUNT = 3


def extract_explicit_phases(content: str) -> list[PhaseRecommendation]:
    """
    Recommend one phase per "## Phase N: Title" heading, ordered by N.

    Each phase's section runs from its heading to the next phase heading.
    """
    found: list[tuple[int, PhaseRecommendation]] = []

    for match in EXPLICIT_PHASE_RE.finditer(content):
        phase_number = int(match.group(2))
        start = match.start()
        next_heading = PHASE_HEADING_RE.search(content, start + 1)
        end = next_heading.start() if next_heading else len(content)
        section = content[start:end]

        found.append(
            (
                phase_number,
                PhaseRecommendation(
                    name=match.group(3).strip(),
                    description=section[:EXPLICIT_DESCRIPTION_LIMIT].strip(),
                    estimated_files=extract_files(section),
                    rationale=f"Explicitly defined in plan as Phase {phase_number}",
                ),
            )
        )

    found.sort(key=lambda item: item[0])
    return [rec for _, rec in found]


def _keyword_phases(content: str, file_count: int) -> list[PhaseRecommendation]:
    recommendations: list[PhaseRecommendation] = []
    for template in TOPIC_TEMPLATES:
        matched = bool(template.keywords.search(content))
        if not matched and not (template.key == "core" and file_count >= CORE_FILE_COUNT):
            continue

        trigger = (
            f"keyword match: {template.key}"
            if matched
            else f"keyword fallback: {file_count} files referenced"
        )
        recommendations.append(
            PhaseRecommendation(
                name=template.name,
                description=template.description,
                estimated_files=_topic_files(content, template.is_topic_file),
                rationale=f"{template.rationale} ({trigger})",
            )
        )
    return recommendations


def _structural_phases(content: str) -> list[PhaseRecommendation]:
    sections = [s for s in SECTION_SPLIT_RE.split(content) if s.strip()]
    if len(sections) <= 2:
        return []

    recommendations: list[PhaseRecommendation] = []
    for idx, section in enumerate(sections[:MAX_STRUCTURAL_PHASES], 1):
        title = section.split("\n")[0].strip()
        recommendations.append(
            PhaseRecommendation(
                name=title or f"Phase {idx}",
                description=section[:SECTION_DESCRIPTION_LIMIT].strip(),
                estimated_files=extract_files(section),
                rationale=f"Based on plan structure section {idx} (structural split)",
            )
        )
    return recommendations


def recommend_phases(content: str, file_count: int) -> list[PhaseRecommendation]:
    """
    Propose an ordered list of phases for a plan.

    Args:
        content: Full plan text
        file_count: Distinct file references found by the scorer

    Returns:
        Ordered recommendations; empty if the plan has no usable structure
    """
    explicit = extract_explicit_phases(content)
    if explicit:
        logger.debug(f"Found {len(explicit)} explicit phase heading(s)")
        return explicit

    recommendations = _keyword_phases(content, file_count)
    if recommendations:
        logger.debug(f"Recommended {len(recommendations)} phase(s) from topic keywords")
        return recommendations

    recommendations = _structural_phases(content)
    logger.debug(f"Recommended {len(recommendations)} phase(s) from plan sections")
    return recommendations
