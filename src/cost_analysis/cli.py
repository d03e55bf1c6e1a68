"""
Command-line interface for cost analysis.

Prints system-wide summaries, team/project breakdowns and writes CSV
cost reports using the platform's cost API.
"""

import asyncio
import logging
import sys

import click

from .config.settings import get_config
from .errors import ConfigurationError, ListFetchError
from .formatting import (
    cell_or_placeholder,
    format_currency,
    format_percent_change,
    format_share_label,
)
from .models import Period, Scope
from .rollup.session import CostReportSession
from .sources.http import HttpCostSource

# Set up logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

PERIOD_CHOICES = [p.value for p in Period]

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def setup_logging(verbose: bool = False, level: str = "ERROR"):
    """Configure logging based on verbosity settings and the configured level."""
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        # Unknown level names fall back to showing only errors
        logging.getLogger().setLevel(LOG_LEVELS.get(str(level).upper(), logging.ERROR))

    for logger_name in ["httpx", "httpcore"]:
        logging.getLogger(logger_name).setLevel(logging.INFO if verbose else logging.ERROR)


def _build_source(config) -> HttpCostSource:
    """Create the cost data source from configuration."""
    return HttpCostSource.from_config(config.api)


async def _open_session(config, period: Period) -> tuple[CostReportSession, HttpCostSource]:
    source = _build_source(config)
    session = CostReportSession(source, period)
    try:
        await session.load()
    except ListFetchError:
        await source.close()
        raise
    return session, source


@click.group()
@click.option("--base-url", help="Cost API base URL (overrides config)")
@click.option("--token", help="API bearer token (overrides config)")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging and debug output")
@click.pass_context
def cli(ctx, base_url, token, verbose):
    """Cost Analysis - roll up app costs by team, project and system."""
    ctx.ensure_object(dict)

    try:
        config = get_config()
        config.override_from_cli({"base_url": base_url, "token": token})
        ctx.obj["config"] = config
    except Exception as e:
        click.echo(f"Error loading configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(verbose, config.logging.get("level", "ERROR"))


@cli.command()
@click.option("--period", type=click.Choice(PERIOD_CHOICES), help="Period to summarize")
@click.pass_context
def summary(ctx, period):
    """Show the system-wide cost summary, trend and resource split."""
    config = ctx.obj["config"]
    period = Period.parse(period) if period else config.default_period

    async def _summary():
        session, source = await _open_session(config, period)
        try:
            cost_summary = session.summary
            if cost_summary is None:
                click.echo("No cost data available for this period.")
                return

            click.echo(f"Cost summary (last {period.label})")
            click.echo("=" * 40)
            click.echo(f"Total cost:         {format_currency(cost_summary.total_cost)}")
            click.echo(f"Projected monthly:  {format_currency(cost_summary.projected_monthly_cost)}")
            badge = format_percent_change(session.trend())
            if badge:
                click.echo(f"Trend:              {badge}")
            click.echo(
                f"Avg resources:      {cost_summary.avg_cpu_cores:.2f} cores, "
                f"{cost_summary.avg_memory_gb:.2f} GB RAM"
            )
            click.echo(f"Days tracked:       {cost_summary.days_in_period} of {period.days}")
            click.echo("")
            for share in session.resource_shares():
                label = format_share_label(share, cost_summary.total_cost)
                click.echo(f"  {share.kind.value:<8} {label}")

            top_apps = session.system_response.top_apps
            if top_apps:
                click.echo("")
                click.echo("Top apps by cost:")
                for app in top_apps:
                    click.echo(f"  {app.app_name:<30} {format_currency(app.total_cost):>10}")
        finally:
            await session.close()
            await source.close()

    try:
        asyncio.run(_summary())
    except (ListFetchError, ConfigurationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--period", type=click.Choice(PERIOD_CHOICES), help="Period to break down")
@click.option(
    "--by",
    "view_mode",
    type=click.Choice(["teams", "projects"]),
    default="teams",
    help="Group by teams or projects (default: teams)",
)
@click.pass_context
def breakdown(ctx, period, view_mode):
    """Show costs per team or project with their apps."""
    config = ctx.obj["config"]
    period = Period.parse(period) if period else config.default_period

    async def _breakdown():
        session, source = await _open_session(config, period)
        try:
            by_teams = view_mode == "teams"
            items = session.teams if by_teams else session.projects
            if not items:
                click.echo(f"No {view_mode} found.")
                return

            await session.expand_all(teams=by_teams, projects=not by_teams)

            click.echo(f"{'Name':<32} {'CPU':>10} {'Memory':>10} {'Disk':>10} {'Total':>10}")
            for item in items:
                scope = Scope.team(item.id) if by_teams else Scope.project(item.id)
                cells = session.node_cells(scope)
                click.echo(f"{item.name:<32} " + " ".join(f"{cell:>10}" for cell in cells))

                entry = session.rollups.entry(scope)
                if entry is None or not entry.is_ok:
                    continue
                for app in entry.response.breakdown:
                    app_cells = [
                        cell_or_placeholder(app.cpu_cost),
                        cell_or_placeholder(app.memory_cost),
                        cell_or_placeholder(app.disk_cost),
                        cell_or_placeholder(app.total_cost),
                    ]
                    click.echo(
                        f"  {app.app_name:<30} " + " ".join(f"{cell:>10}" for cell in app_cells)
                    )
        finally:
            await session.close()
            await source.close()

    try:
        asyncio.run(_breakdown())
    except (ListFetchError, ConfigurationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.option("--period", type=click.Choice(PERIOD_CHOICES), help="Period to export")
@click.option("--output-dir", "-o", default=None, help="Directory for the CSV file")
@click.option("--teams/--no-teams", default=True, help="Include team rollups")
@click.option("--projects/--no-projects", default=True, help="Include project rollups")
@click.pass_context
def export(ctx, period, output_dir, teams, projects):
    """Write a CSV cost report for a period."""
    config = ctx.obj["config"]
    period = Period.parse(period) if period else config.default_period
    output_dir = output_dir or config.reporting.get("output_dir", ".")

    async def _export():
        session, source = await _open_session(config, period)
        try:
            await session.expand_all(teams=teams, projects=projects)
            stats = session.rollups.stats()
            if stats["errors"]:
                click.echo(
                    f"Warning: {stats['errors']} rollups could not be fetched and were skipped",
                    err=True,
                )
            return session.export_to(output_dir, prefix=config.filename_prefix)
        finally:
            await session.close()
            await source.close()

    try:
        path = asyncio.run(_export())
    except (ListFetchError, ConfigurationError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo(f"Exported {period.value} cost report to {path}")


if __name__ == "__main__":
    cli()
