"""
Tests for the in-memory cost data source.
"""

import pytest

from cost_analysis.errors import FetchError, ListFetchError
from cost_analysis.models import Period, Scope
from cost_analysis.rollup.session import CostReportSession
from cost_analysis.sources import InMemoryCostSource

P30 = Period.THIRTY_DAYS


class TestInMemoryCostSource:
    """Test cases for InMemoryCostSource."""

    @pytest.mark.asyncio
    async def test_serves_stored_responses(self, team_one_response):
        source = InMemoryCostSource()
        source.set_response(Scope.team("team-1"), P30, team_one_response)

        response = await source.fetch_cost_data(Scope.team("team-1"), P30)

        assert response == team_one_response
        assert source.calls_for(Scope.team("team-1"), P30) == 1

    @pytest.mark.asyncio
    async def test_missing_response_fails_like_unknown_node(self):
        source = InMemoryCostSource()

        with pytest.raises(FetchError, match="No cost data for project:gone") as exc_info:
            await source.fetch_cost_data(Scope.project("gone"), Period.SEVEN_DAYS)

        assert exc_info.value.scope == Scope.project("gone")
        assert exc_info.value.period is Period.SEVEN_DAYS

    @pytest.mark.asyncio
    async def test_stored_exception_is_raised(self):
        source = InMemoryCostSource({(Scope.system(), P30): FetchError("unavailable")})

        with pytest.raises(FetchError, match="unavailable"):
            await source.fetch_cost_data(Scope.system(), P30)

    @pytest.mark.asyncio
    async def test_lists_and_list_error(self, sample_teams, sample_projects):
        source = InMemoryCostSource(teams=sample_teams, projects=sample_projects)

        assert await source.list_teams() == sample_teams
        assert await source.list_projects() == sample_projects

        source.list_error = ListFetchError("denied", resource="teams")
        with pytest.raises(ListFetchError, match="denied"):
            await source.list_teams()

    @pytest.mark.asyncio
    async def test_drives_a_session(
        self, sample_teams, sample_projects, sample_system_response, team_one_response
    ):
        source = InMemoryCostSource(
            {
                (Scope.system(), P30): sample_system_response,
                (Scope.team("team-1"), P30): team_one_response,
            },
            teams=sample_teams,
            projects=sample_projects,
        )
        session = CostReportSession(source, P30)
        await session.load()
        await session.expand_all(projects=False)

        report = session.export()

        assert "Team,Platform,team-1,8.0000,4.0000,0.5000,12.5000,30d" in report
        assert "Payments" not in report
        assert session.rollups.entry(Scope.team("team-2")).is_error

        await session.close()
        await source.close()
        assert source.closed is True
