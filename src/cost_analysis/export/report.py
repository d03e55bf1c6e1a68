"""
CSV cost report export.

Serializes whatever rollup data is currently known into a flat report with
a fixed eight-column schema. The exporter never fetches; cells that are
missing or failed are simply left out. Output is byte-identical for
identical inputs.
"""

import csv
import io
import logging
from collections.abc import Mapping, Sequence
from datetime import date
from pathlib import Path

from ..formatting import to_fixed
from ..models import (
    AppCostBreakdown,
    CostResponse,
    CostSummary,
    DashboardCostResponse,
    Period,
    Project,
    Team,
)

logger = logging.getLogger(__name__)

HEADER = ["Type", "Name", "ID", "CPU Cost", "Memory Cost", "Disk Cost", "Total Cost", "Period"]

# Export keeps more precision than the two-decimal display format
COST_PLACES = 4


def _cost_fields(costs: CostSummary | AppCostBreakdown) -> list[str]:
    return [
        to_fixed(costs.cpu_cost, COST_PLACES),
        to_fixed(costs.memory_cost, COST_PLACES),
        to_fixed(costs.disk_cost, COST_PLACES),
        to_fixed(costs.total_cost, COST_PLACES),
    ]


def _app_rows(row_type: str, apps: Sequence[AppCostBreakdown], period: Period) -> list[list[str]]:
    return [[row_type, app.app_name, app.app_id, *_cost_fields(app), period.value] for app in apps]


def _scope_rows(
    row_type: str,
    items: Sequence[Team] | Sequence[Project],
    costs_by_id: Mapping[str, CostResponse | None],
    period: Period,
) -> list[list[str]]:
    rows = []
    for item in items:
        costs = costs_by_id.get(item.id)
        if costs is None:
            continue
        rows.append([row_type, item.name, item.id, *_cost_fields(costs.summary), period.value])
        rows.extend(_app_rows(f"App ({row_type}: {item.name})", costs.breakdown, period))
    return rows


def generate_report(
    system_response: DashboardCostResponse | None,
    teams: Sequence[Team],
    team_costs: Mapping[str, CostResponse | None],
    projects: Sequence[Project],
    project_costs: Mapping[str, CostResponse | None],
    period: Period,
) -> str:
    """
    Generate the cost report for one period.

    Row order: header, the System total, each team followed by its apps,
    each project followed by its apps, then the system's top apps. Teams
    and projects without a cached response are omitted.

    Args:
        system_response: System-wide response, or None if not loaded
        teams: Teams in display order
        team_costs: Cached team responses keyed by team id
        projects: Projects in display order
        project_costs: Cached project responses keyed by project id
        period: Period written into every row

    Returns:
        Report text, rows separated by newlines, no trailing newline
    """
    rows: list[list[str]] = [HEADER]

    if system_response is not None:
        rows.append(["System", "Total", "", *_cost_fields(system_response.summary), period.value])

    rows.extend(_scope_rows("Team", teams, team_costs, period))
    rows.extend(_scope_rows("Project", projects, project_costs, period))

    if system_response is not None:
        rows.extend(_app_rows("App (Top)", system_response.top_apps, period))

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerows(rows)

    logger.debug(f"Generated cost report with {len(rows) - 1} rows for {period.value}")
    return buffer.getvalue().removesuffix("\n")


def report_filename(period: Period, on_date: date | None = None, prefix: str = "costs") -> str:
    """File name for an export, e.g. costs-30d-2024-01-15.csv."""
    on_date = on_date or date.today()
    return f"{prefix}-{period.value}-{on_date.isoformat()}.csv"


def write_report(content: str, directory: str | Path, filename: str) -> Path:
    """
    Write a report to disk.

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / filename
    path.write_text(content, encoding="utf-8")
    logger.info(f"Wrote cost report to {path}")
    return path
