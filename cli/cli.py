"""CLI for the quit-plan timer.

Developer CLI that drives the same engine a host app embeds: onboarding,
recording events, countdown status, statistics and a live countdown with
reminders.
"""

import asyncio
import sys
from datetime import date
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

# Bootstrap must be imported after standard library imports
# but before quitpace imports to set up sys.path correctly
try:
    import cli.bootstrap
except ImportError:
    _project_root = Path(__file__).parent.parent
    if str(_project_root) not in sys.path:
        sys.path.insert(0, str(_project_root))

from quitpace.config.settings import settings
from quitpace.core.clock import Clock, SystemClock, to_local_datetime
from quitpace.core.logger import setup_logger
from quitpace.db.session import init_db
from quitpace.errors import StorageFailure
from quitpace.notifications.backend import AsyncioNotificationBackend
from quitpace.notifications.scheduler import NotificationScheduler
from quitpace.notifications.types import ReminderPayload
from quitpace.persistence.gateway import SqlPersistenceGateway
from quitpace.plans.metrics import compute_plan_metrics, plan_horizon_days
from quitpace.plans.types import PlanConfig, PlanKind
from quitpace.timer.engine import QuitTimerEngine
from quitpace.timer.formatting import (
    format_duration,
    format_remaining_time,
    progress_fraction,
    status_message,
)
from quitpace.timer.types import CountdownSnapshot

# Initialize Rich console for output
console = Console()

# Initialize Typer app
app = typer.Typer(
    name="quitpace",
    help="quitpace - quit-plan timer CLI",
    add_completion=False,
)


def _setup(debug: bool) -> None:
    setup_logger(level="DEBUG" if debug else settings.log_level, log_file=settings.log_file)
    init_db()


def _clock() -> Clock:
    return SystemClock(settings.timezone)


def _today(clock: Clock) -> date:
    """Calendar date in the configured timezone, the one the engine counts plan days in."""
    return to_local_datetime(clock.now_ms(), clock.tz()).date()


def _build_engine(on_tick=None, on_deliver=None) -> QuitTimerEngine:
    """Wire the engine with SQL persistence and the in-process reminder backend."""
    clock = _clock()
    backend_kwargs = {"clock": clock}
    if on_deliver is not None:
        backend_kwargs["on_deliver"] = on_deliver
    scheduler = NotificationScheduler(AsyncioNotificationBackend(**backend_kwargs))
    return QuitTimerEngine(SqlPersistenceGateway(), scheduler, clock=clock, on_tick=on_tick)


def _render_snapshot(snapshot: CountdownSnapshot) -> Panel:
    table = Table.grid(padding=(0, 2))
    table.add_column(style="dim")
    table.add_column()
    table.add_row("Remaining", Text(format_remaining_time(snapshot.remaining_seconds), style="bold"))
    table.add_row("Interval", format_remaining_time(snapshot.interval_seconds))
    table.add_row("Target today", str(snapshot.target_daily_count))
    table.add_row("Progress", f"{progress_fraction(snapshot):.0%}")
    style = "green" if snapshot.is_time_up else "yellow" if snapshot.is_paused else "cyan"
    return Panel(table, title=status_message(snapshot), border_style=style)


def _fail_storage(e: StorageFailure) -> None:
    console.print(f"[red]Storage error:[/red] {escape(str(e))}")
    raise typer.Exit(1) from e


@app.command()
def setup(
    cigarettes_per_day: int = typer.Option(..., "--cigarettes-per-day", "-n", help="Cigarettes per day before the plan"),
    plan: PlanKind = typer.Option(PlanKind.BALANCED, "--plan", "-p", help="Reduction plan"),
    active_start: str = typer.Option("07:00", "--active-start", help="Active window start (HH:MM)"),
    active_end: str = typer.Option("23:00", "--active-end", help="Active window end (HH:MM)"),
    pack_price: float = typer.Option(0.0, "--pack-price", help="Price of one pack"),
    units_per_pack: int = typer.Option(20, "--units-per-pack", help="Cigarettes per pack"),
    start_date: str | None = typer.Option(None, "--start-date", help="Plan start date (YYYY-MM-DD, default today)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Create or replace the quit plan."""
    _setup(debug)

    if cigarettes_per_day <= 0:
        console.print("[red]Error:[/red] Please enter a valid number of cigarettes per day.")
        raise typer.Exit(1)

    today = _today(_clock())
    try:
        config = PlanConfig(
            daily_baseline_count=cigarettes_per_day,
            plan_kind=plan,
            start_date=start_date or today,
            active_window_start=active_start,
            active_window_end=active_end,
            pack_price=pack_price,
            units_per_pack=units_per_pack,
        )
    except ValidationError as e:
        console.print(f"[red]Invalid plan:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

    try:
        asyncio.run(SqlPersistenceGateway().save_plan_config(config))
    except StorageFailure as e:
        _fail_storage(e)

    metrics = compute_plan_metrics(config, today)
    console.print(
        Panel(
            Text.assemble(
                ("Plan saved\n", "bold green"),
                f"{config.plan_kind.value} plan, {plan_horizon_days(config.plan_kind)} days to zero\n",
                f"Today's target: {metrics.target_daily_count} (every {format_duration(metrics.interval_seconds)})",
            ),
            border_style="green",
        )
    )


@app.command()
def record(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    """Record a cigarette now and restart the countdown."""
    _setup(debug)

    async def _run() -> CountdownSnapshot | None:
        engine = _build_engine()
        await engine.refresh()
        if engine.config is None:
            return None
        await engine.record_event()
        return engine.snapshot()

    try:
        snapshot = asyncio.run(_run())
    except StorageFailure as e:
        _fail_storage(e)

    if snapshot is None:
        console.print("[yellow]No plan yet.[/yellow] Run [bold]setup[/bold] first.")
        raise typer.Exit(1)
    console.print(_render_snapshot(snapshot))


@app.command()
def status(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    """Show the current countdown."""
    _setup(debug)

    async def _run() -> CountdownSnapshot:
        engine = _build_engine()
        await engine.refresh()
        return engine.snapshot()

    try:
        snapshot = asyncio.run(_run())
    except StorageFailure as e:
        _fail_storage(e)

    console.print(_render_snapshot(snapshot))


@app.command()
def stats(debug: bool = typer.Option(False, "--debug", help="Enable debug logging")) -> None:
    """Show today's usage statistics."""
    _setup(debug)

    async def _run() -> QuitTimerEngine:
        engine = _build_engine()
        await engine.refresh()
        return engine

    try:
        engine = asyncio.run(_run())
    except StorageFailure as e:
        _fail_storage(e)

    if engine.config is None:
        console.print("[yellow]No plan yet.[/yellow] Run [bold]setup[/bold] first.")
        raise typer.Exit(1)

    usage = engine.stats()
    table = Table(title="Today", show_header=False)
    table.add_column(style="dim")
    table.add_column(justify="right")
    table.add_row("Smoked today", f"{usage.today_count} / {engine.metrics.target_daily_count}")
    table.add_row("Remaining for goal", str(max(0, usage.remaining_today)))
    table.add_row("Average interval", format_duration(usage.average_interval_today_seconds))
    table.add_row("Target interval", format_duration(engine.metrics.interval_seconds))
    table.add_row("Total logged", str(usage.total_count))
    table.add_row("Spent", f"{usage.spent_total:.2f}")
    table.add_row("Saved", f"{usage.money_saved:.2f}")
    console.print(table)


@app.command()
def watch(
    record_now: bool = typer.Option(False, "--record", help="Record a cigarette before watching"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Live countdown with the reminder. Stops at zero or on Ctrl+C."""
    _setup(debug)

    def _on_deliver(payload: ReminderPayload) -> None:
        timer_end = payload.data.get("timer_end")
        when = to_local_datetime(timer_end, _clock().tz()).strftime("%H:%M:%S") if timer_end else "soon"
        console.print(Panel(f"{payload.body} (at {when})", title=payload.title, border_style="magenta"))

    async def _run() -> None:
        with Live(console=console, refresh_per_second=4) as live:
            engine = _build_engine(on_tick=lambda s: live.update(_render_snapshot(s)), on_deliver=_on_deliver)
            try:
                await engine.start()
                if engine.config is None:
                    console.print("[yellow]No plan yet.[/yellow] Run [bold]setup[/bold] first.")
                    return
                if record_now:
                    await engine.record_event()
                live.update(_render_snapshot(engine.snapshot()))
                while engine.ticking:
                    await asyncio.sleep(0.25)
                live.update(_render_snapshot(engine.snapshot()))
            finally:
                await engine.close()

    try:
        asyncio.run(_run())
    except StorageFailure as e:
        _fail_storage(e)
    except KeyboardInterrupt:
        logger.debug("Watch interrupted")


@app.command()
def reset(
    confirm: bool = typer.Option(False, "--confirm", help="Confirm deletion (required for safety)"),
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging"),
) -> None:
    """Delete the plan and all recorded events.

    This cannot be undone.
    """
    if not confirm:
        console.print("[red]Error:[/red] --confirm flag is required for safety", style="bold red")
        console.print("Usage: reset --confirm")
        raise typer.Exit(1)

    _setup(debug)
    try:
        counts = asyncio.run(SqlPersistenceGateway().clear_all_data())
    except StorageFailure as e:
        _fail_storage(e)

    console.print(f"[green]All data cleared[/green] ({counts['smoking_events']} events, {counts['plan_settings']} plan)")


if __name__ == "__main__":
    app()
