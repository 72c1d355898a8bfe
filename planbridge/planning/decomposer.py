"""
Phase Decomposer - Split a flat plan into ordered, dependent phases.

Each phase depends on the one before it (a linear chain). Phase content is
the plan's own "## Phase N" section when it has one, otherwise a generated
summary so every phase can be reviewed on its own.
"""

import copy
import logging
import re

from planbridge.persistence.models import Phase, Plan, generate_id
from planbridge.planning.complexity import ComplexityAnalysis, PhaseRecommendation
from planbridge.state import PlanStatus

logger = logging.getLogger(__name__)


def _phase_heading_re(phase_number: int) -> re.Pattern[str]:
    return re.compile(
        rf"^##\s+(?:Phase|Step|Stage)\s+{phase_number}[:\s]+",
        re.IGNORECASE | re.MULTILINE,
    )


def _synthesize_content(recommendation: PhaseRecommendation) -> str:
    files = recommendation.estimated_files
    file_lines = "\n".join(f"- {f}" for f in files)
    return f"""# {recommendation.name}

{recommendation.description}

## Files to Modify
{file_lines}

## Rationale
{recommendation.rationale}

## Implementation Details
Refer to the full plan for detailed implementation guidance. Focus on:
- {recommendation.name}
- Files: {", ".join(files)}

## Full Plan Context
See parent plan for complete requirements and architecture.
"""


def extract_phase_content(
    full_content: str,
    recommendation: PhaseRecommendation,
    phase_index: int,
    total_phases: int,
) -> str:
    """
    Get the text a single phase is reviewed against.

    Args:
        full_content: Full plan text
        recommendation: The phase's recommendation
        phase_index: 0-based position of the phase
        total_phases: Number of phases in the split

    Returns:
        The verbatim "## Phase N" section, or a generated summary
    """
    match = _phase_heading_re(phase_index + 1).search(full_content)
    if match:
        start = match.start()
        next_match = _phase_heading_re(phase_index + 2).search(full_content, start + 1)
        end = next_match.start() if next_match else len(full_content)
        return full_content[start:end].strip()

    logger.debug(
        f"No heading for phase {phase_index + 1}/{total_phases}, "
        f"generating content for '{recommendation.name}'"
    )
    return _synthesize_content(recommendation)


def split_into_phases(plan: Plan, analysis: ComplexityAnalysis) -> Plan:
    """
    Split a plan into phases based on its complexity analysis.

    Args:
        plan: The flat plan
        analysis: Result of analyze_complexity(plan.content)

    Returns:
        A phased copy of the plan, or an unphased copy when the plan is not
        complex or no concrete phases were recommended
    """
    result = copy.deepcopy(plan)
    recommendations = analysis.recommended_phases

    if not analysis.is_complex or not recommendations:
        if analysis.is_complex:
            logger.info(f"Plan {plan.id} is complex but has no usable structure; leaving unphased")
        result.is_phased = False
        return result

    phases: list[Phase] = []
    for idx, rec in enumerate(recommendations):
        phases.append(
            Phase(
                id=generate_id(),
                phase_number=idx + 1,
                name=rec.name,
                description=rec.description,
                dependencies=[recommendations[idx - 1].name] if idx > 0 else [],
                content=extract_phase_content(plan.content, rec, idx, len(recommendations)),
                status=PlanStatus.SUBMITTED,
                created_at=plan.created_at,
                updated_at=plan.updated_at,
            )
        )

    result.is_phased = True
    result.phases = phases
    result.current_phase_id = phases[0].id

    logger.info(f"Split plan {plan.id} into {len(phases)} phase(s)")
    return result
