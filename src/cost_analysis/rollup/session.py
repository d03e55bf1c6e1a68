"""
Cost report session: the root of the drill-down hierarchy.

Holds the team and project lists, the eagerly loaded system-wide response
for each period, and the rollup cache for the nodes below them. A failure
to list teams or projects is raised to the caller; every other fetch
failure is absorbed and shows up as missing data.
"""

import asyncio
import logging
from datetime import date
from pathlib import Path

from ..errors import FetchError, ListFetchError
from ..export.report import generate_report, report_filename, write_report
from ..formatting import ResourceShare, cell_or_placeholder, resource_shares
from ..models import (
    DEFAULT_PERIOD,
    CostSummary,
    DashboardCostResponse,
    Period,
    Project,
    Scope,
    ScopeKind,
    Team,
)
from ..sources.base import CostDataSource
from ..trend import NEUTRAL_TREND, Trend, compute_trend
from .cache import CacheEntry, HierarchicalRollupCache

logger = logging.getLogger(__name__)


class CostReportSession:
    """One open cost report: system summary, hierarchy and export."""

    def __init__(self, source: CostDataSource, period: Period = DEFAULT_PERIOD):
        self.source = source
        self.period = period
        self.rollups = HierarchicalRollupCache(source, period)
        self.teams: list[Team] = []
        self.projects: list[Project] = []
        self._system: dict[Period, CacheEntry] = {}
        self._system_issued: dict[Period, int] = {}
        self._system_tasks: dict[Period, asyncio.Task] = {}

    async def load(self):
        """
        Load the team and project lists and the system summary.

        Raises:
            ListFetchError: If teams or projects cannot be listed
        """
        try:
            self.teams, self.projects = await asyncio.gather(
                self.source.list_teams(), self.source.list_projects()
            )
        except ListFetchError as e:
            logger.error(f"Failed to load cost hierarchy: {e}")
            raise

        logger.info(f"Loaded {len(self.teams)} teams and {len(self.projects)} projects")
        await self.load_system()

    async def load_system(self, force: bool = False) -> DashboardCostResponse | None:
        """
        Fetch the system-wide response for the active period unless cached.

        A call made while a fetch for the same period is in flight waits for
        that fetch instead of issuing another one, unless ``force`` is set.
        """
        period = self.period
        cached = self._system.get(period)
        if not force:
            if cached is not None and cached.is_ok:
                return cached.response
            in_flight = self._system_tasks.get(period)
            if in_flight is not None:
                logger.debug(f"Joining in-flight system fetch ({period.value})")
                return await asyncio.shield(in_flight)

        sequence = self._system_issued.get(period, 0) + 1
        self._system_issued[period] = sequence
        if cached is None:
            self._system[period] = CacheEntry.pending(sequence)

        task = asyncio.get_running_loop().create_task(self._fetch_system(period, sequence))
        self._system_tasks[period] = task
        task.add_done_callback(lambda done: self._forget_system_task(period, done))
        return await asyncio.shield(task)

    def _forget_system_task(self, period: Period, task: asyncio.Task):
        if self._system_tasks.get(period) is task:
            del self._system_tasks[period]

    async def _fetch_system(self, period: Period, sequence: int) -> DashboardCostResponse | None:
        try:
            response = await self.source.fetch_cost_data(Scope.system(), period)
            entry = CacheEntry.ok(sequence, response)
        except FetchError as e:
            logger.warning(f"Failed to fetch system costs for {period.value}: {e}")
            entry = CacheEntry.failed(sequence, e)

        if self._system_issued.get(period) != sequence:
            logger.debug(f"Dropping stale system fetch #{sequence} ({period.value})")
            return self.system_response_for(period)

        self._system[period] = entry
        return entry.response

    def system_response_for(self, period: Period) -> DashboardCostResponse | None:
        entry = self._system.get(period)
        if entry is None or not entry.is_ok:
            return None
        return entry.response

    @property
    def system_response(self) -> DashboardCostResponse | None:
        """System-wide response for the active period, if loaded."""
        return self.system_response_for(self.period)

    @property
    def summary(self) -> CostSummary | None:
        response = self.system_response
        return response.summary if response else None

    async def change_period(self, period: Period | str) -> DashboardCostResponse | None:
        """Switch period; cached data for every period is kept."""
        self.period = Period.parse(period)
        self.rollups.on_period_change(self.period)
        return await self.load_system()

    async def refresh_system(self) -> DashboardCostResponse | None:
        return await self.load_system(force=True)

    def toggle_team(self, team_id: str) -> asyncio.Task | None:
        return self.rollups.toggle(Scope.team(team_id))

    def toggle_project(self, project_id: str) -> asyncio.Task | None:
        return self.rollups.toggle(Scope.project(project_id))

    def refresh_team(self, team_id: str) -> asyncio.Task:
        return self.rollups.refresh(Scope.team(team_id))

    def refresh_project(self, project_id: str) -> asyncio.Task:
        return self.rollups.refresh(Scope.project(project_id))

    async def expand_all(self, teams: bool = True, projects: bool = True):
        """Expand every team and/or project and wait for their data."""
        scopes = []
        if teams:
            scopes.extend(Scope.team(team.id) for team in self.teams)
        if projects:
            scopes.extend(Scope.project(project.id) for project in self.projects)
        self.rollups.expand_all(scopes)
        await self.rollups.drain()

    def trend(self) -> Trend:
        response = self.system_response
        if response is None:
            return NEUTRAL_TREND
        return compute_trend(response.trend)

    def resource_shares(self) -> list[ResourceShare]:
        summary = self.summary or CostSummary.empty()
        return resource_shares(summary.cpu_cost, summary.memory_cost, summary.disk_cost)

    def node_cells(self, scope: Scope) -> list[str]:
        """
        CPU, memory, disk and total cells for a hierarchy row.

        Collapsed, pending and failed nodes render placeholders.
        """
        entry = self.rollups.entry(scope)
        if not self.rollups.is_expanded(scope) or entry is None or not entry.is_ok:
            return [cell_or_placeholder(None)] * 4
        summary = entry.response.summary
        return [
            cell_or_placeholder(summary.cpu_cost),
            cell_or_placeholder(summary.memory_cost),
            cell_or_placeholder(summary.disk_cost),
            cell_or_placeholder(summary.total_cost),
        ]

    def export(self) -> str:
        """Report text for everything currently cached under the active period."""
        return generate_report(
            self.system_response,
            self.teams,
            self.rollups.responses(ScopeKind.TEAM),
            self.projects,
            self.rollups.responses(ScopeKind.PROJECT),
            self.period,
        )

    def export_to(
        self, directory: str | Path, prefix: str = "costs", on_date: date | None = None
    ) -> Path:
        """Write the report to <directory>/<prefix>-<period>-<date>.csv."""
        filename = report_filename(self.period, on_date=on_date, prefix=prefix)
        return write_report(self.export(), directory, filename)

    async def close(self):
        tasks = list(self._system_tasks.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._system_tasks.clear()
        await self.rollups.close()
