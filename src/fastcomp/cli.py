"""CLI interface using Typer."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime, timedelta, timezone
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from fastcomp.analytics import BodyLogAnalyticsService, UserProfile
from fastcomp.analytics.models import VALID_ENTRY_TAGS
from fastcomp.config import get_settings
from fastcomp.db import SQLiteStore, get_db

app = typer.Typer(
    help="Fast effectiveness and body-composition analytics",
    no_args_is_help=True,
)
console = Console()

user_app = typer.Typer(help="Manage body metrics used by the estimates")
fast_app = typer.Typer(help="Start, end and list fasts")
log_app = typer.Typer(help="Log weigh-ins and pick canonical entries")
config_app = typer.Typer(help="Show configuration")

app.add_typer(user_app, name="user")
app.add_typer(fast_app, name="fast")
app.add_typer(log_app, name="log")
app.add_typer(config_app, name="config")


# ============================================================================
# Helpers
# ============================================================================


def output_json(response: dict) -> None:
    """Output JSON response to stdout."""
    print(json.dumps(response, indent=2, default=str))


def get_store() -> SQLiteStore:
    """Store over the configured database, creating tables on first use."""
    db = get_db()
    db.initialize_schema()
    return SQLiteStore(db)


def get_service(store: SQLiteStore) -> BodyLogAnalyticsService:
    return BodyLogAnalyticsService(store, settings=get_settings())


def resolve_user(user_id: Optional[int]) -> int:
    return user_id if user_id is not None else get_settings().defaults.user_id


def use_json(flag: bool) -> bool:
    """--json, or JSON configured as the default output format."""
    return flag or get_settings().defaults.output_format == "json"


def parse_when(value: Optional[str]) -> str:
    """ISO timestamp from the option, else now (UTC)."""
    if value:
        return value
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def fail(message: str, command: str, json_output: bool) -> None:
    if json_output:
        output_json({"success": False, "command": command, "errors": [message]})
    else:
        console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def fmt(value: Optional[float], suffix: str = " lb") -> str:
    return "-" if value is None else f"{value:.1f}{suffix}"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Fast effectiveness and body-composition analytics."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


# ============================================================================
# User profile
# ============================================================================


@user_app.command("set")
def user_set(
    height_cm: Optional[float] = typer.Option(None, "--height-cm", help="Height in cm"),
    age: Optional[float] = typer.Option(None, "--age", help="Age in years"),
    sex: Optional[str] = typer.Option(None, "--sex", help="male or female"),
    activity: str = typer.Option("sedentary", "--activity", help="Activity level"),
    tdee: Optional[float] = typer.Option(None, "--tdee", help="Known TDEE (kcal/day)"),
    keto_adapted: str = typer.Option("none", "--keto-adapted", help="none, sometimes, consistent"),
    start_in_ketosis: bool = typer.Option(False, "--start-in-ketosis", help="Fasts usually begin in ketosis"),
    protein: float = typer.Option(0.0, "--pre-fast-protein", help="Protein in the pre-fast meal (g)"),
    carb_status: str = typer.Option("normal", "--carb-status", help="low, normal, high"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
) -> None:
    """Save body metrics that sharpen the estimated breakdown."""
    try:
        profile = UserProfile(
            height_cm=height_cm,
            age=age,
            sex=sex,
            activity=activity,
            tdee=tdee,
            keto_adapted=keto_adapted,
            start_in_ketosis=start_in_ketosis,
            pre_fast_protein_grams=protein,
            carb_status=carb_status,
        )
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)

    uid = resolve_user(user_id)
    get_store().save_user_profile(uid, profile)
    console.print(f"[green]Saved profile for user {uid}[/green]")


@user_app.command("show")
def user_show(
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the stored body metrics."""
    json_output = use_json(json_output)
    uid = resolve_user(user_id)
    profile = get_store().get_user_profile(uid)
    if profile is None:
        fail(f"No profile for user {uid}. Run 'fastcomp user set' first.", "user show", json_output)

    if json_output:
        output_json({"success": True, "command": "user show", "data": asdict(profile)})
        return

    table = Table(title=f"User {uid}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in asdict(profile).items():
        table.add_row(name, "-" if value is None else str(value))
    console.print(table)


# ============================================================================
# Fasts
# ============================================================================


@fast_app.command("start")
def fast_start(
    at: Optional[str] = typer.Option(None, "--at", help="Start time (ISO-8601, default: now)"),
    planned_hours: Optional[float] = typer.Option(None, "--planned-hours", "-p", help="Planned duration"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Start a fast."""
    json_output = use_json(json_output)
    store = get_store()
    try:
        fast = store.create_fast(
            resolve_user(user_id), parse_when(at), planned_duration_hours=planned_hours
        )
    except ValueError as e:
        fail(str(e), "fast start", json_output)

    if json_output:
        output_json({"success": True, "command": "fast start", "data": fast.to_dict()})
    else:
        console.print(f"[green]Started fast {fast.fast_id}[/green] at {fast.start_time}")


@fast_app.command("end")
def fast_end(
    fast_id: int = typer.Argument(..., help="Fast ID"),
    at: Optional[str] = typer.Option(None, "--at", help="End time (ISO-8601, default: now)"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """End an active fast."""
    json_output = use_json(json_output)
    store = get_store()
    try:
        fast = store.end_fast(fast_id, parse_when(at))
    except ValueError as e:
        fail(str(e), "fast end", json_output)

    if fast is None:
        fail(f"Fast {fast_id} not found", "fast end", json_output)

    if json_output:
        output_json({"success": True, "command": "fast end", "data": fast.to_dict()})
    else:
        console.print(
            f"[green]Ended fast {fast.fast_id}[/green] after {fast.duration_hours:.1f}h"
        )


@fast_app.command("list")
def fast_list(
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to look back"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List fasts in the recent window."""
    json_output = use_json(json_output)
    store = get_store()
    days = days or get_settings().analytics.default_days
    end = datetime.now(timezone.utc)
    fasts = store.get_fasts_by_user_and_date_range(
        resolve_user(user_id), end - timedelta(days=days), end
    )

    if json_output:
        output_json({
            "success": True,
            "command": "fast list",
            "data": {"fasts": [f.to_dict() for f in fasts]},
            "human_summary": f"{len(fasts)} fasts over {days} days",
        })
        return

    if not fasts:
        console.print("No fasts found")
        return

    table = Table(title=f"Fasts (last {days} days)")
    table.add_column("ID", style="cyan")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Planned", justify="right")
    table.add_column("Actual", justify="right")
    for fast in fasts:
        actual = fast.actual_hours
        table.add_row(
            str(fast.fast_id),
            str(fast.start_time),
            str(fast.end_time) if fast.end_time else "[yellow]active[/yellow]",
            fmt(fast.planned_duration_hours, "h"),
            fmt(actual, "h") if fast.is_completed else "-",
        )
    console.print(table)


# ============================================================================
# Body log
# ============================================================================


@log_app.command("add")
def log_add(
    weight: float = typer.Argument(..., help="Weight in lbs"),
    at: Optional[str] = typer.Option(None, "--at", help="Logged at (ISO-8601, default: now)"),
    body_fat: Optional[float] = typer.Option(None, "--body-fat", "-b", help="Body fat %"),
    tag: str = typer.Option("ad_hoc", "--tag", "-t", help=f"One of {', '.join(VALID_ENTRY_TAGS)}"),
    fast_id: Optional[int] = typer.Option(None, "--fast", "-f", help="Link to a fast"),
    offset: Optional[int] = typer.Option(None, "--offset", help="UTC offset in minutes"),
    time_zone: Optional[str] = typer.Option(None, "--tz", help="IANA time zone"),
    canonical: bool = typer.Option(False, "--canonical", help="Make this the day's canonical entry"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Log a weigh-in."""
    json_output = use_json(json_output)
    if tag not in VALID_ENTRY_TAGS:
        fail(f"tag must be one of {VALID_ENTRY_TAGS}, got '{tag}'", "log add", json_output)

    store = get_store()
    try:
        entry = store.create_entry(
            resolve_user(user_id),
            parse_when(at),
            weight,
            body_fat_pct=body_fat,
            entry_tag=tag,
            timezone_offset_minutes=offset,
            time_zone=time_zone,
            fast_id=fast_id,
        )
        if canonical:
            entry = store.mark_canonical_entry(entry.entry_id, "manual")
    except ValueError as e:
        fail(str(e), "log add", json_output)

    if json_output:
        output_json({"success": True, "command": "log add", "data": entry.to_dict()})
    else:
        console.print(
            f"[green]Logged:[/green] {weight:.1f} lbs on {entry.local_date} ({entry.entry_tag})"
        )


@log_app.command("list")
def log_list(
    days: int = typer.Option(30, "--days", "-d", help="Number of days to show"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """List weigh-ins."""
    json_output = use_json(json_output)
    store = get_store()
    today = datetime.now(timezone.utc).date()
    entries = store.get_body_log_entries_by_user(
        resolve_user(user_id), today - timedelta(days=days), today + timedelta(days=1)
    )

    if json_output:
        output_json({
            "success": True,
            "command": "log list",
            "data": {"entries": [e.to_dict() for e in entries]},
        })
        return

    if not entries:
        console.print("No weigh-ins found")
        return

    table = Table(title=f"Weigh-ins (last {days} days)")
    table.add_column("ID", style="cyan")
    table.add_column("Local date")
    table.add_column("Weight", justify="right")
    table.add_column("Body fat", justify="right")
    table.add_column("Tag")
    table.add_column("Fast", justify="right")
    table.add_column("Canonical")
    for entry in entries:
        table.add_row(
            str(entry.entry_id),
            str(entry.local_date),
            fmt(entry.weight_lbs),
            fmt(entry.body_fat_pct, "%"),
            entry.entry_tag or "",
            str(entry.fast_id or ""),
            f"[green]yes[/green] ({entry.canonical_status})" if entry.is_canonical else "",
        )
    console.print(table)


@log_app.command("canonical")
def log_canonical(
    entry_id: int = typer.Argument(..., help="Entry ID"),
) -> None:
    """Make an entry the canonical weigh-in for its day."""
    try:
        entry = get_store().mark_canonical_entry(entry_id, "manual")
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"[green]Entry {entry.entry_id} is canonical for {entry.local_date}[/green]")


# ============================================================================
# Analytics
# ============================================================================


def print_effectiveness(result) -> None:
    if not result.is_ok:
        console.print(f"[yellow]{result.message}[/yellow]")
        return

    table = Table(title=f"Fast {result.fast_id} breakdown ({result.breakdown_source})")
    table.add_column("Component", style="cyan")
    table.add_column("Loss", justify="right")
    table.add_row("Total weight lost", fmt(result.total_weight_lost))
    table.add_row("Fat", fmt(result.fat_loss))
    table.add_row("Muscle", fmt(result.muscle_loss))
    table.add_row("Lean water", fmt(result.lean_water))
    table.add_row("Other fluid", fmt(result.other_fluid_loss))
    breakdown = result.fluid_breakdown
    if breakdown is not None:
        table.add_row("  glycogen", fmt(breakdown.glycogen_mass))
        table.add_row("  glycogen water", fmt(breakdown.glycogen_bound_water))
        table.add_row("  gut content", fmt(breakdown.gut_content))
        table.add_row("  residual water", fmt(breakdown.residual_water_shift))
    console.print(table)
    console.print(Panel(result.message))


@app.command("effectiveness")
def effectiveness(
    fast_id: int = typer.Argument(..., help="Fast ID"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show the fat / muscle / fluid breakdown of a fast."""
    json_output = use_json(json_output)
    store = get_store()
    result = get_service(store).get_fast_effectiveness(resolve_user(user_id), fast_id)

    if json_output:
        output_json({
            "success": result.is_ok,
            "command": "effectiveness",
            "data": result.to_dict(),
            "human_summary": result.message,
        })
    else:
        print_effectiveness(result)


@app.command("analytics")
def analytics(
    days: Optional[int] = typer.Option(None, "--days", "-d", help="Days to analyse"),
    user_id: Optional[int] = typer.Option(None, "--user", help="User ID"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
) -> None:
    """Show retention, latest fast breakdown and protocol insights."""
    json_output = use_json(json_output)
    store = get_store()
    report = get_service(store).get_analytics(resolve_user(user_id), days=days)

    if json_output:
        output_json({"success": True, "command": "analytics", "data": report.to_dict()})
        return

    console.print("[bold]Latest fast[/bold]")
    print_effectiveness(report.fast_effectiveness)

    retention = report.retention
    if retention.status == "ok":
        console.print(
            f"[blue]Retention:[/blue] {retention.retention_percent:.0f}% "
            f"({fmt(retention.weight_regained)} regained by next weigh-in)"
        )
    else:
        console.print(f"[blue]Retention:[/blue] {retention.message}")

    insights = report.rolling_insights
    if insights.status != "ok":
        console.print(f"[yellow]{insights.message}[/yellow]")
    else:
        table = Table(title=f"Protocols ({insights.sample_size} fasts)")
        table.add_column("Protocol", style="cyan")
        table.add_column("Fasts", justify="right")
        table.add_column("Avg drop", justify="right")
        table.add_column("Avg fat", justify="right")
        table.add_column("Retention", justify="right")
        for summary in insights.protocols + insights.remaining_protocols:
            table.add_row(
                summary.label,
                str(summary.count),
                fmt(summary.average_weight_drop),
                fmt(summary.average_fat_loss),
                fmt(summary.average_retention_percent, "%"),
            )
        console.print(table)

    if report.weekly_composition:
        table = Table(title="Weekly composition")
        table.add_column("Week", style="cyan")
        table.add_column("Weight", justify="right")
        table.add_column("Body fat", justify="right")
        table.add_column("Fat mass", justify="right")
        table.add_column("Lean mass", justify="right")
        table.add_column("Change", justify="right")
        for week in report.weekly_composition:
            table.add_row(
                week.week_start.isoformat(),
                fmt(week.average_weight),
                fmt(week.average_body_fat, "%"),
                fmt(week.average_fat_mass),
                fmt(week.average_lean_mass),
                f"{week.delta_weight:+.1f}" if week.delta_weight is not None else "",
            )
        console.print(table)


@config_app.command("show")
def config_show() -> None:
    """Print the active configuration as YAML."""
    import yaml

    console.print(yaml.dump(get_settings().to_dict(), default_flow_style=False, sort_keys=False))


if __name__ == "__main__":
    app()
