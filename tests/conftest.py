"""Shared fixtures for Plan Bridge tests."""

import pytest

from planbridge.config import BridgeConfig
from planbridge.logging import LogConfig, reset_loggers, set_config
from planbridge.persistence.models import Plan
from planbridge.persistence.repository import PlanRepository
from planbridge.planning.complexity import (
    ComplexityAnalysis,
    ComplexityIndicators,
    PhaseRecommendation,
)
from planbridge.planning.decomposer import split_into_phases


@pytest.fixture(autouse=True)
def isolated_logs(tmp_path):
    """Write event logs under the test's tmp dir."""
    set_config(LogConfig(log_dir=tmp_path / "logs"))
    reset_loggers()
    yield
    reset_loggers()


@pytest.fixture
def config(tmp_path):
    """Config whose stores live under tmp_path."""
    return BridgeConfig(home_dir=tmp_path / "home", poll_interval_seconds=0.01)


@pytest.fixture
def repository(config):
    repo = PlanRepository(config)
    repo.initialize()
    return repo


@pytest.fixture
def project_dir(tmp_path):
    path = tmp_path / "project"
    path.mkdir()
    return path


def make_plan(content: str = "Simple plan", **kwargs) -> Plan:
    kwargs.setdefault("name", "Test plan")
    kwargs.setdefault("project_path", "/work/project")
    return Plan(content=content, **kwargs)


def make_phased_plan(phase_names: list[str] | None = None) -> Plan:
    """A plan split into the given phases (default: three)."""
    names = phase_names or ["Setup", "Build", "Ship"]
    analysis = ComplexityAnalysis(
        is_complex=True,
        score=80,
        indicators=ComplexityIndicators(file_count=8),
        recommended_phases=[
            PhaseRecommendation(
                name=name,
                description=f"{name} work",
                estimated_files=[f"{name.lower()}.ts"],
                rationale="test",
            )
            for name in names
        ],
    )
    return split_into_phases(make_plan("Big plan"), analysis)


@pytest.fixture
def plan():
    return make_plan()


@pytest.fixture
def phased_plan():
    return make_phased_plan()
