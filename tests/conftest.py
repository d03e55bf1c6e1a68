"""
Pytest configuration and shared fixtures for cost-analysis tests.

This module provides common fixtures and configurations used across
all test modules in the cost analysis package.
"""

import asyncio
import tempfile
from collections.abc import Generator
from datetime import date, timedelta
from pathlib import Path
from typing import Any

import pytest

from cost_analysis.models import (
    AppCostBreakdown,
    CostResponse,
    CostSummary,
    DailyCostPoint,
    DashboardCostResponse,
    Period,
    Project,
    Scope,
    Team,
)
from cost_analysis.sources.base import InMemoryCostSource


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


_DEFAULT = object()


class FakeCostSource(InMemoryCostSource):
    """
    In-memory source whose fetches can be held back.

    With ``gated`` set, fetches stay pending until ``release()`` is called,
    which lets tests interleave toggles with unresolved fetches.
    """

    def __init__(self, *args, gated: bool = False, **kwargs):
        super().__init__(*args, **kwargs)
        self.gated = gated
        self.pending: list[tuple[tuple[Scope, Period], asyncio.Future]] = []

    async def fetch_cost_data(self, scope, period):
        if not self.gated:
            return await super().fetch_cost_data(scope, period)

        key = (scope, period)
        self.calls.append(key)
        future = asyncio.get_running_loop().create_future()
        self.pending.append((key, future))
        result = await future
        if isinstance(result, Exception):
            raise result
        return result

    def release(self, index: int = 0, result: Any = _DEFAULT):
        """Resolve a pending fetch with ``result`` or the stored response."""
        key, future = self.pending.pop(index)
        if result is _DEFAULT:
            result = self.resolve(*key)
        future.set_result(result)


def make_summary(cpu: float, memory: float, disk: float, **kwargs) -> CostSummary:
    """Build a consistent CostSummary from resource costs."""
    return CostSummary(
        cpu_cost=cpu, memory_cost=memory, disk_cost=disk, total_cost=cpu + memory + disk, **kwargs
    )


def make_app(app_id: str, name: str, cpu: float, memory: float, disk: float) -> AppCostBreakdown:
    return AppCostBreakdown(
        app_id=app_id,
        app_name=name,
        cpu_cost=cpu,
        memory_cost=memory,
        disk_cost=disk,
        total_cost=cpu + memory + disk,
    )


def make_trend(*costs: float) -> list[DailyCostPoint]:
    start = date(2024, 1, 1)
    return [
        DailyCostPoint(date=start + timedelta(days=i), total_cost=cost)
        for i, cost in enumerate(costs)
    ]


# Temporary directory fixture
@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_teams() -> list[Team]:
    return [Team(id="team-1", name="Platform"), Team(id="team-2", name="Payments")]


@pytest.fixture
def sample_projects() -> list[Project]:
    return [Project(id="proj-1", name="Storefront")]


@pytest.fixture
def sample_system_response() -> DashboardCostResponse:
    """System-wide response with a rising trend and two top apps."""
    return DashboardCostResponse(
        summary=make_summary(
            12.5,
            6.25,
            1.25,
            projected_monthly_cost=60.0,
            avg_cpu_cores=1.5,
            avg_memory_gb=3.0,
            days_in_period=10,
        ),
        trend=make_trend(1.0, 1.0, 3.0, 3.0),
        top_apps=[
            make_app("app-1", "api", 8.0, 4.0, 0.5),
            make_app("app-2", "worker", 4.5, 2.25, 0.75),
        ],
    )


@pytest.fixture
def team_one_response() -> CostResponse:
    return CostResponse(
        summary=make_summary(8.0, 4.0, 0.5),
        breakdown=[make_app("app-1", "api", 8.0, 4.0, 0.5)],
    )


@pytest.fixture
def team_two_response() -> CostResponse:
    return CostResponse(
        summary=make_summary(4.5, 2.25, 0.75),
        breakdown=[make_app("app-2", "worker", 4.5, 2.25, 0.75)],
    )


@pytest.fixture
def project_response() -> CostResponse:
    return CostResponse(
        summary=make_summary(12.5, 6.25, 1.25),
        breakdown=[
            make_app("app-2", "worker", 4.5, 2.25, 0.75),
            make_app("app-1", "api", 8.0, 4.0, 0.5),
        ],
    )


@pytest.fixture
def fake_source(
    sample_teams,
    sample_projects,
    sample_system_response,
    team_one_response,
    team_two_response,
    project_response,
) -> FakeCostSource:
    """Ungated fake source populated for the 30d period."""
    period = Period.THIRTY_DAYS
    return FakeCostSource(
        responses={
            (Scope.system(), period): sample_system_response,
            (Scope.team("team-1"), period): team_one_response,
            (Scope.team("team-2"), period): team_two_response,
            (Scope.project("proj-1"), period): project_response,
        },
        teams=sample_teams,
        projects=sample_projects,
    )


@pytest.fixture
def gated_source(fake_source) -> FakeCostSource:
    """Same data as fake_source, but fetches wait for release()."""
    fake_source.gated = True
    return fake_source
