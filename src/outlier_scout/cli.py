"""Command-line interface using Typer."""

import asyncio
import signal
from datetime import timedelta
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from outlier_scout import __version__
from outlier_scout.logging import setup_logging
from outlier_scout.utils import run_async

# Setup logging
setup_logging()

app = typer.Typer(
    name="outlier-scout",
    help="Outlier Scout - Competitor channel surveillance CLI",
    add_completion=False,
)

# Subcommand groups
channels_app = typer.Typer(help="Tracked channel commands")
scheduler_app = typer.Typer(help="Rotation scheduler commands")
quota_app = typer.Typer(help="API quota commands")
outliers_app = typer.Typer(help="Outlier commands")
snapshots_app = typer.Typer(help="Video snapshot commands")
app.add_typer(channels_app, name="channels")
app.add_typer(scheduler_app, name="scheduler")
app.add_typer(quota_app, name="quota")
app.add_typer(outliers_app, name="outliers")
app.add_typer(snapshots_app, name="snapshots")

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"Outlier Scout v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Override LOG_LEVEL for this invocation (e.g. DEBUG).",
    ),
) -> None:
    """Outlier Scout - Find videos that outperform their channel."""
    if log_level:
        setup_logging(level=log_level)


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "-"


@app.command()
def worker() -> None:
    """Start a Celery worker with the beat scheduler (for development)."""
    console.print("[bold blue]Starting Celery worker...[/bold blue]")

    import subprocess
    import sys

    subprocess.run(
        [
            sys.executable,
            "-m",
            "celery",
            "-A",
            "outlier_scout.worker",
            "worker",
            "--beat",
            "-Q",
            "scrape,low",
            "--loglevel=info",
        ],
        check=True,
    )


# =============================================================================
# CHANNEL COMMANDS
# =============================================================================


def _channels_table(channels, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Channel ID", style="dim")
    table.add_column("Name", style="cyan")
    table.add_column("Priority", justify="right")
    table.add_column("Avg Views", justify="right")
    table.add_column("Interval", justify="right")
    table.add_column("Last Scraped")
    table.add_column("Active", style="green")

    for channel in channels:
        table.add_row(
            channel.channel_id,
            channel.channel_name,
            str(channel.priority),
            f"{channel.avg_views:,}",
            f"{channel.refresh_interval_seconds // 3600}h",
            _fmt_time(channel.last_scraped_at),
            "Yes" if channel.active else "No",
        )
    return table


@channels_app.command("list")
def channels_list(
    all_channels: bool = typer.Option(False, "--all", "-a", help="Include inactive channels"),
) -> None:
    """List tracked channels."""
    from outlier_scout.services.builders import get_scout_store

    channels = get_scout_store().list_tracked_channels(active_only=not all_channels)
    if not channels:
        console.print("[dim]No channels tracked. Seed some with 'outlier-scout channels seed'[/dim]")
        return

    console.print(_channels_table(channels, "Tracked Channels"))


@channels_app.command("add")
def channels_add(
    channel_id: str = typer.Argument(..., help="YouTube channel ID (UC...)"),
    name: str = typer.Option(..., "--name", "-n", help="Channel display name"),
    handle: Optional[str] = typer.Option(None, "--handle", help="Channel handle (@...)"),
    priority: int = typer.Option(5, "--priority", "-p", min=1, max=10, help="Priority 1-10"),
    interval_hours: Optional[float] = typer.Option(
        None, "--interval-hours", help="Hours between scrapes"
    ),
    category: Optional[str] = typer.Option(None, "--category", help="Category label"),
) -> None:
    """Start tracking a channel."""
    from outlier_scout.adapters.store.base import DuplicateChannelError
    from outlier_scout.config import settings
    from outlier_scout.domain import TrackedChannel
    from outlier_scout.services.builders import get_scout_store

    interval = (
        int(interval_hours * 3600)
        if interval_hours is not None
        else settings.default_refresh_interval_seconds
    )
    channel = TrackedChannel(
        channel_id=channel_id,
        channel_name=name,
        handle=handle,
        refresh_interval_seconds=interval,
        priority=priority,
        category=category,
    )

    try:
        get_scout_store().add_tracked_channel(channel)
    except DuplicateChannelError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)

    console.print(f"[bold green]✓ Tracking {name} ({channel_id})[/bold green]")


@channels_app.command("seed")
def channels_seed() -> None:
    """Add the built-in seed channel list (existing channels are left alone)."""
    from outlier_scout.config import settings
    from outlier_scout.db.seed import seed_channels
    from outlier_scout.services.builders import get_scout_store

    store = get_scout_store()
    added = 0
    for channel in seed_channels(settings.default_refresh_interval_seconds):
        if store.get_tracked_channel(channel.channel_id) is not None:
            continue
        store.add_tracked_channel(channel)
        added += 1

    console.print(f"[bold green]✓ Seeded {added} channels[/bold green]")


@channels_app.command("due")
def channels_due(
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Batch size"),
) -> None:
    """Preview the channels the next batch would scrape."""
    from outlier_scout.config import settings
    from outlier_scout.services.builders import get_scout_store
    from outlier_scout.services.due_queue import due_channels
    from outlier_scout.utils.clock import utc_now

    batch_size = limit or settings.scheduler_batch_size
    channels = due_channels(
        get_scout_store().list_tracked_channels(active_only=True), batch_size, utc_now()
    )
    if not channels:
        console.print("[dim]No channels due[/dim]")
        return

    console.print(_channels_table(channels, f"Next Batch ({len(channels)}/{batch_size})"))


# =============================================================================
# SCHEDULER COMMANDS
# =============================================================================


def _print_report(report) -> None:
    if not report.ran:
        console.print(f"[yellow]Skipped: {report.skipped_reason}[/yellow]")
        return

    if report.error:
        console.print(f"[bold red]✗ Run failed: {report.error}[/bold red]")
    elif report.batch is not None:
        summary = report.batch.summary
        table = Table(title="Scrape Results")
        table.add_column("Channel", style="cyan")
        table.add_column("Status")
        table.add_column("Videos", justify="right")
        table.add_column("Outliers", justify="right")
        table.add_column("Quota", justify="right")
        table.add_column("Errors", style="red")

        for result in report.batch.results:
            table.add_row(
                result.channel_name,
                result.status,
                str(result.videos_scraped),
                str(result.outliers_detected),
                str(result.quota_used),
                "; ".join(result.errors)[:60],
            )
        console.print(table)
        console.print(
            f"[bold green]✓ {summary.total_channels} channels, "
            f"{summary.total_outliers} outliers, {summary.total_quota_used} units[/bold green]"
        )
        if report.batch.stop_reason:
            console.print(
                f"[yellow]Stopped early ({report.batch.stop_reason}), "
                f"{report.batch.skipped_channels} channels skipped[/yellow]"
            )

    console.print(f"[dim]Next run: {_fmt_time(report.state.next_run_at)}[/dim]")


async def _with_scheduler(action: str):
    from outlier_scout.services.builders import build_scheduler

    scheduler = build_scheduler()
    try:
        if action == "tick":
            return await scheduler.tick()
        return await scheduler.force_run()
    finally:
        await scheduler.orchestrator.source.close()


@scheduler_app.command("status")
def scheduler_status() -> None:
    """Show the scheduler's persisted state."""
    from outlier_scout.services.builders import get_state_store
    from outlier_scout.services.scheduler import (
        SCHEDULER_STATE_KEY,
        SchedulerState,
        format_duration_until,
    )
    from outlier_scout.utils.clock import utc_now

    data = get_state_store().load(SCHEDULER_STATE_KEY)
    state = SchedulerState.from_dict(data) if data else SchedulerState()
    wait = state.next_run_at - utc_now() if state.next_run_at else timedelta(0)

    lines = [
        f"[bold]Running:[/bold] {'Yes' if state.is_running else 'No'}",
        f"[bold]Last run:[/bold] {_fmt_time(state.last_run_at)}",
        f"[bold]Next run:[/bold] {_fmt_time(state.next_run_at)} ({format_duration_until(wait)})",
        f"[bold]Channels scraped:[/bold] {state.channels_scraped}",
        f"[bold]Outliers found:[/bold] {state.outliers_found}",
        f"[bold]Quota used:[/bold] {state.quota_used}",
    ]
    console.print(Panel("\n".join(lines), title="Rotation Scheduler"))

    for error in state.errors:
        console.print(f"[red]• {error}[/red]")


@scheduler_app.command("tick")
def scheduler_tick() -> None:
    """Run a batch in-process if one is due."""
    _print_report(run_async(_with_scheduler("tick")))


@scheduler_app.command("run")
def scheduler_run(
    queue: bool = typer.Option(False, "--queue", "-q", help="Queue on the worker instead"),
) -> None:
    """Force a batch now, ignoring the interval."""
    if queue:
        from outlier_scout.jobs.scrape_tasks import scheduler_force_run_task

        result = scheduler_force_run_task.delay()
        console.print(f"[green]Task enqueued: {result.id}[/green]")
        return

    console.print("[bold blue]Force running scheduler...[/bold blue]")
    _print_report(run_async(_with_scheduler("force")))


@scheduler_app.command("reset")
def scheduler_reset() -> None:
    """Clear scheduler state so the next tick runs immediately."""
    from outlier_scout.services.builders import get_state_store
    from outlier_scout.services.scheduler import SCHEDULER_STATE_KEY, SchedulerState

    get_state_store().save(SCHEDULER_STATE_KEY, SchedulerState().to_dict())
    console.print("[bold green]✓ Scheduler state reset[/bold green]")


@scheduler_app.command("loop")
def scheduler_loop(
    poll_seconds: Optional[float] = typer.Option(
        None, "--poll-seconds", help="Seconds between ticks"
    ),
) -> None:
    """Run the scheduler loop in the foreground until interrupted."""
    from outlier_scout.services.builders import build_scheduler

    async def _loop() -> None:
        scheduler = build_scheduler()
        stop = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, stop.set)
        try:
            await scheduler.run_forever(poll_seconds=poll_seconds, stop_event=stop)
        finally:
            await scheduler.orchestrator.source.close()

    console.print("[bold blue]Scheduler loop running (Ctrl+C to stop)...[/bold blue]")
    asyncio.run(_loop())


# =============================================================================
# QUOTA COMMANDS
# =============================================================================


def _ledger():
    from outlier_scout.services.builders import build_ledger, get_state_store

    return build_ledger(get_state_store())


@quota_app.command("status")
def quota_status(
    operations: int = typer.Option(10, "--operations", "-o", help="Recent operations to show"),
) -> None:
    """Show today's quota usage."""
    ledger = _ledger()
    usage = ledger.usage()
    message, severity = ledger.status_message()
    color = {"info": "green", "warning": "yellow", "error": "red"}[severity]

    console.print(
        Panel(
            f"[bold]Date:[/bold] {usage.date}\n"
            f"[bold]Used:[/bold] {usage.used:,} / {usage.limit:,}\n"
            f"[bold]Remaining:[/bold] {max(0, usage.limit - usage.used):,}\n"
            f"[{color}]{message}[/{color}]",
            title="YouTube API Quota",
        )
    )

    if operations and usage.operations:
        table = Table(title="Recent Operations")
        table.add_column("Time", style="dim")
        table.add_column("Operation", style="cyan")
        table.add_column("Cost", justify="right")
        for op in usage.operations[-operations:]:
            table.add_row(op.timestamp, op.operation, str(op.cost))
        console.print(table)


@quota_app.command("reset")
def quota_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Clear today's quota usage."""
    if not yes:
        typer.confirm("Reset today's quota usage?", abort=True)
    _ledger().reset()
    console.print("[bold green]✓ Quota reset[/bold green]")


# =============================================================================
# OUTLIER / SNAPSHOT COMMANDS
# =============================================================================


@outliers_app.command("list")
def outliers_list(
    status: str = typer.Option("active", "--status", "-s", help="Review status (or 'all')"),
    only_new: bool = typer.Option(False, "--new", help="Only unviewed outliers"),
    min_score: Optional[int] = typer.Option(None, "--min-score", help="Minimum outlier score"),
    limit: int = typer.Option(25, "--limit", "-l", help="Max outliers to show"),
) -> None:
    """List detected outliers."""
    from outlier_scout.domain import OutlierStatus
    from outlier_scout.services.builders import get_scout_store

    try:
        status_filter = None if status == "all" else OutlierStatus(status)
    except ValueError:
        console.print(f"[bold red]Unknown status: {status}[/bold red]")
        raise typer.Exit(code=1)

    outliers = get_scout_store().list_outliers(
        status=status_filter, only_new=only_new, min_score=min_score, limit=limit
    )
    if not outliers:
        console.print("[dim]No outliers found[/dim]")
        return

    table = Table(title="Outliers")
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Title", style="cyan")
    table.add_column("Channel")
    table.add_column("Views", justify="right")
    table.add_column("Multiplier", justify="right")
    table.add_column("Detected")
    table.add_column("New", style="green")

    for outlier in outliers:
        table.add_row(
            str(outlier.outlier_score),
            outlier.title[:50],
            outlier.channel_name,
            f"{outlier.views:,}",
            f"{outlier.multiplier:.1f}x",
            _fmt_time(outlier.detected_at),
            "●" if outlier.is_new else "",
        )

    console.print(table)


@snapshots_app.command("prune")
def snapshots_prune(
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days of snapshots to keep"),
) -> None:
    """Delete snapshots older than the retention window."""
    from outlier_scout.config import settings
    from outlier_scout.services.builders import get_scout_store
    from outlier_scout.utils.clock import utc_now

    retention = days if days is not None else settings.snapshot_retention_days
    deleted = get_scout_store().delete_old_snapshots(utc_now() - timedelta(days=retention))
    console.print(f"[bold green]✓ Deleted {deleted} snapshots older than {retention} days[/bold green]")


if __name__ == "__main__":
    app()
