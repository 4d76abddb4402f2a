"""
CLI interface for Snake Ways Sync.

Provides command-line access to polling, manual sync and usage reports.
"""

import asyncio
import sqlite3
import sys
from datetime import datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from snakeways_sync.client.failures import FailureTracker
from snakeways_sync.client.poller import UpstreamClient
from snakeways_sync.client.transport import Transport
from snakeways_sync.config.loader import AppConfig, load_config, parse_resource_type
from snakeways_sync.config.logging_setup import setup_logging
from snakeways_sync.core.formatting import format_bytes, format_time
from snakeways_sync.core.reports import (
    aggregate_lan_usage,
    aggregate_wan_usage,
    aggregation_window,
    chart_window_start,
    lans_with_usage,
    parse_period,
    user_history,
    wan_usage_chart,
)
from snakeways_sync.core.usage import compute_user_usage
from snakeways_sync.recovery.facade import RecoveryFacade
from snakeways_sync.storage.repository import MirrorRepository, initialize_schema
from snakeways_sync.sync.application import SyncApplication

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


def _config(ctx: typer.Context) -> AppConfig:
    return ctx.obj["config"]


def _parse_date(value: Optional[str], option: str) -> Optional[datetime]:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise typer.BadParameter(f"{option} must be a date in YYYY-MM-DD format")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML configuration file"
    ),
):
    """Snake Ways Sync CLI."""
    try:
        config = load_config(config_path)
    except Exception as e:
        console.print(f"[red]Error loading configuration:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    setup_logging(config.log_level)
    ctx.obj = {"config": config}
    if ctx.invoked_subcommand is None:
        console.print("Snake Ways Sync - Use --help to see available commands")


@app.command()
def init(ctx: typer.Context):
    """Initialize the local mirror database."""
    try:
        initialize_schema(_config(ctx).db_path)
        console.print("[green]✓[/] Database initialized successfully")
        sys.exit(EXIT_CODE_PASS)
    except Exception as e:
        console.print(f"[red]Error initializing database:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)


@app.command()
def check(ctx: typer.Context):
    """Check whether the Snake Ways service is reachable."""
    config = _config(ctx)

    async def reachable() -> bool:
        async with Transport.from_config(config.upstream) as transport:
            return await UpstreamClient(transport, FailureTracker()).check_service_availability()

    if asyncio.run(reachable()):
        console.print(f"[green]✓[/] Snake Ways service reachable at {config.upstream.base_url}")
        sys.exit(EXIT_CODE_PASS)
    console.print(f"[red]✗[/] Snake Ways service not available at {config.upstream.base_url}")
    sys.exit(EXIT_CODE_FAIL)


@app.command()
def run(ctx: typer.Context):
    """Poll every resource type until interrupted."""
    config = _config(ctx)
    initialize_schema(config.db_path)
    application = SyncApplication(config, MirrorRepository(config.db_path))
    console.print(f"[bold]Polling Snake Ways at {config.upstream.base_url}[/] (Ctrl+C to stop)")
    try:
        asyncio.run(application.run_forever())
    except KeyboardInterrupt:
        console.print("\nStopped")
    sys.exit(EXIT_CODE_PASS)


@app.command()
def sync(
    ctx: typer.Context,
    resource: str = typer.Argument(
        ...,
        help="Resource type: user, wan, lan, interface, wan_usage or lan_usage"
    ),
):
    """Force an immediate sync of one resource type."""
    config = _config(ctx)
    try:
        resource_type = parse_resource_type(resource)
        initialize_schema(config.db_path)
        repository = MirrorRepository(config.db_path)

        async def force():
            application = SyncApplication(config, repository)
            try:
                return await RecoveryFacade(application).force_sync(resource_type)
            finally:
                await application.transport.aclose()

        result = asyncio.run(force())
    except Exception as e:
        console.print(f"[red]Sync failed:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    table = Table(title=f"Force sync: {resource_type.value}")
    table.add_column("Synced", justify="right")
    table.add_column("Mirrored rows", justify="right")
    table.add_row(str(result.count), str(len(result.items)))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def usage(
    ctx: typer.Context,
    user_id: str = typer.Argument(..., help="Upstream user ID"),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="End date (YYYY-MM-DD)"),
):
    """Show the usage of one user over a date range."""
    start_date = _parse_date(start, "--start")
    end_date = _parse_date(end, "--end")
    try:
        snapshots = MirrorRepository(_config(ctx).db_path).fetch_user_snapshots(user_id=user_id)
    except sqlite3.OperationalError as e:
        if "no such table" in str(e).lower():
            console.print("\n[bold yellow]No usage data found[/]")
            console.print("Run `snakeways-sync init` and `snakeways-sync run` first\n")
            sys.exit(EXIT_CODE_PASS)
        raise

    result = compute_user_usage(snapshots, start_date, end_date, entity_id=user_id)
    table = Table(title=f"Usage for {user_id} ({result.snapshot_count} snapshots)")
    table.add_column("Counter")
    table.add_column("Usage", justify="right")
    table.add_column("Formatted", justify="right")
    table.add_row("Data", str(result.data_usage), format_bytes(result.data_usage))
    table.add_row("Time", str(result.time_usage), format_time(result.time_usage))
    table.add_row("Autocredit", str(result.autocredit_usage), format_bytes(result.autocredit_usage))
    table.add_row("Usage debit", str(result.usage_debit), format_bytes(result.usage_debit))
    table.add_row("Usage credit", str(result.usage_credit), format_bytes(result.usage_credit))
    table.add_row("Usage quota", str(result.usage_quota), format_bytes(result.usage_quota))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def history(
    ctx: typer.Context,
    start: Optional[str] = typer.Option(None, "--start", "-s", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="End date (YYYY-MM-DD)"),
):
    """Show the usage of every user over a date range."""
    start_date = _parse_date(start, "--start")
    end_date = _parse_date(end, "--end")
    try:
        snapshots = MirrorRepository(_config(ctx).db_path).fetch_user_snapshots(start=start_date)
    except Exception as e:
        console.print(f"[red]Error reading history:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    entries = user_history(snapshots, start_date, end_date)
    if not entries:
        console.print("\n[dim]No user snapshots found for this range.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="User usage history")
    table.add_column("User")
    table.add_column("Data used", justify="right")
    table.add_column("Time used", justify="right")
    table.add_column("Debit", justify="right")
    table.add_column("Credit", justify="right")
    for entry in entries:
        formatted = entry.formatted
        table.add_row(
            entry.snapshot.name,
            formatted["data_usage"],
            formatted["time_usage"],
            formatted["usage_debit"],
            formatted["usage_credit"],
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command("wan-chart")
def wan_chart(
    ctx: typer.Context,
    period: str = typer.Option("daily", "--period", "-p", help="daily, weekly or monthly"),
):
    """Show WAN usage per day, week or month."""
    try:
        report_period = parse_period(period)
        now = datetime.now()
        records = MirrorRepository(_config(ctx).db_path).fetch_wan_usage(
            start=chart_window_start(report_period, now)
        )
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    chart = wan_usage_chart(records, report_period, now)
    if not chart.metadata:
        console.print("\n[dim]No WAN usage found for this period.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title=f"WAN usage ({report_period.value})")
    table.add_column("Period")
    for meta in chart.metadata:
        table.add_column(meta.name, justify="right")
    for point in chart.data:
        table.add_row(
            point.period_start.strftime("%Y-%m-%d"),
            *(format_bytes(point.values.get(meta.name, 0)) for meta in chart.metadata)
        )
    table.add_row("Total", *(meta.formatted_total_bytes for meta in chart.metadata))
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command("wan-usage")
def wan_usage(
    ctx: typer.Context,
    period: str = typer.Option("monthly", "--period", "-p", help="daily, weekly or monthly"),
):
    """Show each WAN's usage against its limit for the current period."""
    try:
        report_period = parse_period(period)
        now = datetime.now()
        period_start, period_end = aggregation_window(report_period, now)
        repository = MirrorRepository(_config(ctx).db_path)
        records = repository.fetch_wan_usage(start=period_start, end=period_end)
        wans = repository.list_wans()
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    aggregates = aggregate_wan_usage(records, report_period, now, wans)
    if not aggregates:
        console.print("\n[dim]No WAN usage found for this period.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title=f"WAN usage {period_start:%Y-%m-%d} to {period_end:%Y-%m-%d}")
    table.add_column("WAN")
    table.add_column("Used", justify="right")
    table.add_column("Limit", justify="right")
    table.add_column("Usage %", justify="right")
    for aggregate in aggregates:
        table.add_row(
            aggregate.name,
            aggregate.formatted_total_bytes,
            format_bytes(aggregate.max_bytes) if aggregate.max_bytes > 0 else "-",
            f"{aggregate.usage_percentage:.1f}%",
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command("lan-usage")
def lan_usage(
    ctx: typer.Context,
    period: str = typer.Option("monthly", "--period", "-p", help="daily, weekly or monthly"),
    start: Optional[str] = typer.Option(None, "--start", "-s", help="Start date (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--end", "-e", help="End date (YYYY-MM-DD)"),
):
    """Show LAN usage per WAN, bucketed by day, week or month."""
    start_date = _parse_date(start, "--start")
    end_date = _parse_date(end, "--end")
    try:
        report_period = parse_period(period)
        records = MirrorRepository(_config(ctx).db_path).fetch_lan_usage(start=start_date, end=end_date)
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    aggregates = aggregate_lan_usage(records, report_period)
    if not aggregates:
        console.print("\n[dim]No LAN usage found for this range.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title=f"LAN usage ({report_period.value})")
    table.add_column("Period")
    table.add_column("LAN")
    table.add_column("WAN")
    table.add_column("Used", justify="right")
    for aggregate in aggregates:
        table.add_row(
            aggregate.bucket.strftime("%Y-%m-%d"),
            aggregate.lan_name,
            aggregate.wan_name,
            aggregate.formatted_total_bytes,
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def lans(
    ctx: typer.Context,
    wan: Optional[str] = typer.Option(None, "--wan", "-w", help="Only LANs that used this WAN"),
):
    """List mirrored LANs with their interfaces and total usage."""
    try:
        repository = MirrorRepository(_config(ctx).db_path)
        entries = lans_with_usage(
            repository.list_lans(),
            repository.list_interfaces(),
            repository.fetch_lan_usage(wan_id=wan),
            wan_id=wan,
        )
    except Exception as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)

    if not entries:
        console.print("\n[dim]No LANs found.[/]")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="LANs")
    table.add_column("LAN")
    table.add_column("Interfaces")
    table.add_column("Used", justify="right")
    for entry in entries:
        table.add_row(
            entry.lan.name,
            ", ".join(interface.name for interface in entry.interfaces) or "-",
            entry.formatted_total_bytes,
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


if __name__ == "__main__":
    app()
