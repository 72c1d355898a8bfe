"""Tests for the complexity analyzer and phase recommender."""

import pytest

from planbridge.planning.complexity import (
    COMPLEX_FILE_COUNT,
    ComplexityIndicators,
    analyze_complexity,
    count_steps,
    extract_explicit_phases,
    extract_file_references,
    extract_indicators,
    recommend_phases,
    score_indicators,
)

TWO_PHASE_PLAN = """# Rollout plan

## Phase 1: Setup
Wire up src/config.ts and src/env.ts.
Seed src/a.ts.

## Phase 2: Build
Write src/api.ts, src/db.ts and src/server.ts.
"""

# Scores 15 + 10 + 20 + 15 with no headings, topic keywords or files
UNSTRUCTURED_COMPLEX_PLAN = (
    "part 1 has a prerequisite\n"
    + "\n".join(f"{i}. alpha" for i in range(1, 11))
    + "\nx" * 140
)


class TestFileReferences:
    """Tests for file reference extraction."""

    def test_bare_file_names(self):
        """File names with known extensions are matched."""
        refs = extract_file_references("Edit main.py and app.ts then style.css")
        assert refs == {"main.py", "app.ts", "style.css"}

    def test_dedup_by_exact_text(self):
        """The same file under two patterns counts twice."""
        refs = extract_file_references("Update `src/app.ts` now")
        assert refs == {"app.ts", "`src/app.ts`"}

    def test_file_label_lines(self):
        """A **File:** line matches all three patterns."""
        refs = extract_file_references("**File:** `src/x.py`")
        assert "**File:** `src/x.py`" in refs
        assert len(refs) == 3

    def test_repeated_file_counted_once(self):
        """Repeated mentions count once."""
        refs = extract_file_references("a.py a.py a.py")
        assert refs == {"a.py"}


class TestIndicators:
    """Tests for individual scoring signals."""

    @pytest.mark.parametrize("text", [
        "Do phase 2 later",
        "STEP 3: deploy",
        "stage 1",
        "Part 4 covers it",
        "## Phase overview",
    ])
    def test_phase_markers(self, text):
        """Each marker form sets has_phases."""
        assert extract_indicators(text).has_phases

    def test_no_phase_markers(self):
        """Plain prose has no phase markers."""
        assert not extract_indicators("A single pass over the code").has_phases

    @pytest.mark.parametrize("text", [
        "This depends on the API",
        "Gather requirements",
        "prerequisite: docker",
        "After the migration is complete",
        "Before we start",
    ])
    def test_dependency_language(self, text):
        """Each dependency phrase sets has_dependencies."""
        assert extract_indicators(text).has_dependencies

    def test_after_complete_does_not_cross_lines(self):
        """"after ... complete" must be on one line."""
        assert not extract_indicators("after lunch\ncomplete it").has_dependencies

    def test_step_patterns_are_additive(self):
        """Numbered, task and action lines all count."""
        content = "1. first\n- [ ] second\n- [x] third\n- Add thing\n* Fix bug"
        assert count_steps(content) == 5

    def test_total_lines_counts_trailing_segment(self):
        """A trailing newline adds an empty line."""
        assert extract_indicators("a\nb\n").total_lines == 3
        assert extract_indicators("a\nb").total_lines == 2


class TestScoring:
    """Tests for the score formula and complexity decision."""

    def test_score_is_sum_of_capped_terms(self):
        """Uncapped terms add up."""
        indicators = ComplexityIndicators(
            file_count=3,
            has_phases=True,
            has_dependencies=False,
            estimated_steps=4,
            total_lines=55,
        )
        assert score_indicators(indicators) == 15 + 15 + 0 + 8 + 5.5

    def test_each_term_capped(self):
        """Every term stops at its cap."""
        indicators = ComplexityIndicators(
            file_count=20,
            has_phases=True,
            has_dependencies=True,
            estimated_steps=50,
            total_lines=1000,
        )
        assert score_indicators(indicators) == 40 + 15 + 10 + 20 + 15

    def test_file_term_never_exceeds_forty(self):
        """Twenty files still score 40 for files."""
        content = "\n".join(f"file{i}.py" for i in range(20))
        analysis = analyze_complexity(content)
        assert analysis.indicators.file_count == 20
        assert analysis.score == 42  # 40 for files + 2 for 20 lines

    def test_file_count_forces_complexity(self):
        """Five files make a plan complex regardless of score."""
        content = "a.ts b.ts c.ts d.ts e.ts"
        analysis = analyze_complexity(content)
        assert analysis.indicators.file_count == COMPLEX_FILE_COUNT
        assert analysis.score < 50
        assert analysis.is_complex

    def test_numbered_list_plan_is_simple(self):
        """12 numbered lines in 140 lines scores 20 + 14 = 34."""
        lines = [f"{i}. do the thing" for i in range(1, 13)]
        lines += ["plain text line"] * 128
        analysis = analyze_complexity("\n".join(lines))

        assert analysis.indicators.file_count == 0
        assert analysis.indicators.estimated_steps == 12
        assert analysis.indicators.total_lines == 140
        assert analysis.score == 34
        assert not analysis.is_complex
        assert analysis.recommended_phases == []

    def test_score_rounds_half_up(self):
        """A .5 score rounds up."""
        # 15 lines -> 1.5 points
        analysis = analyze_complexity("\n".join(["x"] * 15))
        assert analysis.score == 2

    def test_analysis_is_idempotent(self):
        """Analysing the same text twice gives equal results."""
        first = analyze_complexity(TWO_PHASE_PLAN)
        second = analyze_complexity(TWO_PHASE_PLAN)
        assert first == second
        assert first.to_dict() == second.to_dict()


class TestExplicitPhases:
    """Tests for '## Phase N: Title' recommendations."""

    def test_two_explicit_phases(self):
        """Phase headings become recommendations."""
        analysis = analyze_complexity(TWO_PHASE_PLAN)

        assert analysis.indicators.file_count == 6
        assert analysis.indicators.has_phases
        assert analysis.is_complex
        names = [r.name for r in analysis.recommended_phases]
        assert names == ["Setup", "Build"]
        assert analysis.recommended_phases[0].rationale == "Explicitly defined in plan as Phase 1"
        assert analysis.recommended_phases[1].rationale == "Explicitly defined in plan as Phase 2"

    def test_section_text_is_description(self):
        """The description is the phase's own section."""
        phases = extract_explicit_phases(TWO_PHASE_PLAN)
        assert phases[0].description.startswith("## Phase 1: Setup")
        assert "Phase 2" not in phases[0].description
        assert phases[1].description.startswith("## Phase 2: Build")

    def test_section_files(self):
        """Files come from the phase's own section."""
        phases = extract_explicit_phases(TWO_PHASE_PLAN)
        assert phases[0].estimated_files == ["src/config.ts", "src/env.ts", "src/a.ts"]
        assert phases[1].estimated_files == ["src/api.ts", "src/db.ts", "src/server.ts"]

    def test_description_truncated(self):
        """Descriptions stop at 300 characters."""
        content = "## Step 1: Long\n" + "word " * 200
        phases = extract_explicit_phases(content)
        assert len(phases[0].description) <= 300

    def test_files_capped_at_five(self):
        """At most five files per phase."""
        files = " ".join(f"f{i}.ts" for i in range(9))
        phases = extract_explicit_phases(f"## Stage 1: Many\n{files}")
        assert phases[0].estimated_files == ["f0.ts", "f1.ts", "f2.ts", "f3.ts", "f4.ts"]

    def test_ordered_by_phase_number(self):
        """Out-of-order headings are sorted by number."""
        content = "## Phase 2: Second\nb\n## Phase 1: First\na\n"
        names = [r.name for r in extract_explicit_phases(content)]
        assert names == ["First", "Second"]

    def test_explicit_phases_skip_heuristics(self):
        """Explicit headings win over keywords."""
        content = "Setup, tests and README.\n## Phase 1: Only\nImplement the core.\n"
        recs = recommend_phases(content, file_count=10)
        assert [r.name for r in recs] == ["Only"]


class TestKeywordPhases:
    """Tests for topic keyword recommendations."""

    def test_all_topics_in_fixed_order(self):
        """Topics come out as setup, core, testing, docs."""
        content = (
            "Write tests and update the README.md.\n"
            "Setup the config first.\n"
            "Implement the core logic in src/app.py.\n"
        )
        recs = recommend_phases(content, file_count=0)
        assert [r.name for r in recs] == [
            "Setup & Configuration",
            "Core Implementation",
            "Testing & Validation",
            "Documentation",
        ]
        for rec in recs:
            assert "keyword" in rec.rationale

    def test_topic_files(self):
        """Each topic lists the files that match it."""
        content = "Setup package.json and tsconfig.json. Implement src/app.py, tested by tests/test_app.py."
        recs = {r.name: r for r in recommend_phases(content, file_count=0)}
        assert recs["Setup & Configuration"].estimated_files == ["package.json", "tsconfig.json"]
        assert recs["Core Implementation"].estimated_files == ["src/app.py", "tests/test_app.py"]
        assert recs["Testing & Validation"].estimated_files == ["tests/test_app.py"]

    def test_core_added_for_many_files(self):
        """Three files add a core phase without keywords."""
        recs = recommend_phases("alpha beta gamma", file_count=3)
        assert [r.name for r in recs] == ["Core Implementation"]
        assert "keyword fallback" in recs[0].rationale

    def test_no_core_for_few_files(self):
        """Two files and no keywords give nothing."""
        assert recommend_phases("alpha beta gamma", file_count=2) == []


class TestStructuralPhases:
    """Tests for the section-based fallback."""

    SECTIONED = (
        "Intro paragraph\n"
        "## Alpha\none a.md\n"
        "## Beta\ntwo\n"
        "## Gamma\nthree\n"
        "## Delta\nfour\n"
    )

    def test_first_four_sections(self):
        """Sections become phases, at most four."""
        recs = recommend_phases(self.SECTIONED, file_count=0)
        assert [r.name for r in recs] == ["Intro paragraph", "Alpha", "Beta", "Gamma"]
        assert all("structural" in r.rationale for r in recs)
        assert recs[1].estimated_files == ["a.md"]
        assert recs[1].description == "Alpha\none a.md"

    def test_too_few_sections(self):
        """Two sections are not enough to split."""
        assert recommend_phases("Intro\n## Alpha\nbody\n", file_count=0) == []

    def test_only_c_files_gives_core_without_files(self):
        """.c files count for scoring but not as source files."""
        analysis = analyze_complexity("x.c y.c z.c w.c v.c")
        assert analysis.is_complex
        # five files also trigger the core phase
        assert [r.name for r in analysis.recommended_phases] == ["Core Implementation"]
        assert analysis.recommended_phases[0].estimated_files == []

    def test_complex_without_structure_recommends_nothing(self):
        """A high score with no structure recommends no phases."""
        analysis = analyze_complexity(UNSTRUCTURED_COMPLEX_PLAN)
        assert analysis.score == 60
        assert analysis.is_complex
        assert analysis.recommended_phases == []
