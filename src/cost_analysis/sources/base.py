"""
Abstract cost data source.

Defines the capability the reporting engine consumes: fetch cost data for
a (scope, period) pair and list the teams and projects that make up the
hierarchy. How those fetches are transported is up to the implementation.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..errors import FetchError, ListFetchError
from ..models import CostResponse, DashboardCostResponse, Period, Project, Scope, Team


class CostDataSource(ABC):
    """Abstract base class for cost data sources."""

    @abstractmethod
    async def fetch_cost_data(
        self, scope: Scope, period: Period
    ) -> CostResponse | DashboardCostResponse:
        """
        Retrieve cost data for a scope and period.

        Args:
            scope: System, team or project scope
            period: Trailing window to aggregate over

        Returns:
            DashboardCostResponse for the system scope, CostResponse otherwise

        Raises:
            FetchError: On any transport, auth or not-found failure
        """
        pass

    @abstractmethod
    async def list_teams(self) -> list[Team]:
        """
        List all teams.

        Raises:
            ListFetchError: If the list cannot be retrieved
        """
        pass

    @abstractmethod
    async def list_projects(self) -> list[Project]:
        """
        List all projects.

        Raises:
            ListFetchError: If the list cannot be retrieved
        """
        pass

    async def close(self):
        """Release any resources held by the source."""
        pass


class InMemoryCostSource(CostDataSource):
    """
    Cost data source serving preloaded responses.

    Responses are keyed by (scope, period). A stored exception is raised
    instead of returned, and a missing key fails like an unknown node.
    Every fetch is recorded in ``calls``.
    """

    def __init__(
        self,
        responses: dict[tuple[Scope, Period], Any] | None = None,
        teams: list[Team] | None = None,
        projects: list[Project] | None = None,
    ):
        self.responses = dict(responses or {})
        self.teams = list(teams or [])
        self.projects = list(projects or [])
        self.list_error: ListFetchError | None = None
        self.calls: list[tuple[Scope, Period]] = []
        self.closed = False

    def set_response(self, scope: Scope, period: Period, response: Any):
        """Store a response (or an exception to raise) for a scope and period."""
        self.responses[(scope, period)] = response

    def calls_for(self, scope: Scope, period: Period | None = None) -> int:
        """Number of fetches issued for a scope, optionally for one period."""
        return sum(1 for s, p in self.calls if s == scope and (period is None or p is period))

    def resolve(self, scope: Scope, period: Period) -> Any:
        """Stored response or exception for a scope and period."""
        result = self.responses.get((scope, period))
        if result is None:
            return FetchError(
                f"No cost data for {scope.key} ({period.value})", scope=scope, period=period
            )
        return result

    async def fetch_cost_data(
        self, scope: Scope, period: Period
    ) -> CostResponse | DashboardCostResponse:
        self.calls.append((scope, period))
        result = self.resolve(scope, period)
        if isinstance(result, Exception):
            raise result
        return result

    async def list_teams(self) -> list[Team]:
        if self.list_error:
            raise self.list_error
        return list(self.teams)

    async def list_projects(self) -> list[Project]:
        if self.list_error:
            raise self.list_error
        return list(self.projects)

    async def close(self):
        self.closed = True
