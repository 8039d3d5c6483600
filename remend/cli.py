"""Developer CLI for the rehab plan engine.

Runs the same PlanService code path against the configured database:
create the schema, seed the catalog, open programs and record logs.
"""

import json
from datetime import date
from pathlib import Path

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from remend.advice.cache import advice_cache_from_settings
from remend.advice.formatter import formatter_from_settings
from remend.advice.weekly_summary import weekly_summary_formatter_from_settings
from remend.core.logger import setup_logger_from_settings
from remend.db.session import check_database_connection, get_session, init_db
from remend.errors import RemendError
from remend.exercises.catalog import SqlCatalogStore, seed_catalog
from remend.plans.repository import SqlLogStore, SqlPlanStore, SqlProgramStore
from remend.plans.service import PlanService
from remend.plans.types import Plan, parse_log_input
from remend.utils.dates import today_in_timezone

console = Console()

app = typer.Typer(
    name="remend",
    help="Remend CLI - adaptive rehab plans from daily symptom logs",
    add_completion=False,
)

# One cache per process, shared by every command invocation
_advice_cache = advice_cache_from_settings()


@app.callback()
def main() -> None:
    setup_logger_from_settings()


def _service(session) -> PlanService:
    return PlanService(
        catalog=SqlCatalogStore(session),
        logs=SqlLogStore(session),
        plans=SqlPlanStore(session),
        programs=SqlProgramStore(session),
        advice_cache=_advice_cache,
        formatter=formatter_from_settings(),
        summary_formatter=weekly_summary_formatter_from_settings(),
    )


def _print_plan(plan: Plan) -> None:
    table = Table(title=f"Plan {plan.id} ({plan.kind})")
    table.add_column("Exercise")
    table.add_column("Bucket")
    table.add_column("Dosage")
    for exercise in plan.shortlist:
        table.add_row(exercise.name, exercise.bucket_label, exercise.dosage_text)
    console.print(table)

    if plan.trend:
        console.print(f"Trend: [bold]{plan.trend}[/bold]")
    for line in plan.reasoning:
        console.print(f"  [dim]- {line}[/dim]")
    if plan.advice:
        body = "\n".join([plan.advice.summary, *(f"• {bullet}" for bullet in plan.advice.bullets)])
        if plan.advice.caution:
            body += f"\n\n[yellow]{plan.advice.caution}[/yellow]"
        console.print(Panel(body, title=f"Advice ({plan.advice_status})", border_style="green"))


@app.command()
def init() -> None:
    """Create database tables."""
    try:
        check_database_connection()
    except Exception as e:
        console.print(f"[red]Error:[/red] cannot reach database: {e}", style="bold red")
        raise typer.Exit(1) from e
    init_db()
    console.print("[green]Database schema ready[/green]")


@app.command()
def seed(
    path: str | None = typer.Option(None, "--path", help="Catalog YAML (defaults to CATALOG_SEED_PATH)"),
) -> None:
    """Replace the exercise catalog with the seed file contents."""
    try:
        with get_session() as session:
            count = seed_catalog(session, Path(path) if path else None)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e
    console.print(f"[green]Seeded {count} exercises[/green]")


@app.command()
def create_program(
    user_id: str = typer.Option(..., "--user-id", help="User ID"),
    area: str = typer.Option(..., "--area", help="Body area (knee, ankle, ...)"),
    side: str = typer.Option("na", "--side", help="left, right, both or na"),
    start: str | None = typer.Option(None, "--start", help="Start date (YYYY-MM-DD), defaults to today"),
) -> None:
    """Open a new active program for a user."""
    start_date = date.fromisoformat(start) if start else date.today()
    try:
        with get_session() as session:
            program = SqlProgramStore(session).create_program(user_id, area, side, start_date)
    except RemendError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e
    console.print(f"[green]Program {program.id} created[/green] ({program.area}, {program.side})")


@app.command()
def log(
    program_id: int = typer.Option(..., "--program-id", help="Program ID"),
    pain: int = typer.Option(..., "--pain", min=0, max=10),
    stiffness: int = typer.Option(..., "--stiffness", min=0, max=10),
    on: str | None = typer.Option(None, "--date", help="Log date (YYYY-MM-DD), defaults to today"),
    aggravator: list[str] = typer.Option([], "--aggravator", help="Repeat for several"),
    notes: str = typer.Option("", "--notes"),
    as_json: bool = typer.Option(False, "--json", help="Print the plan as JSON"),
    tz: str = typer.Option("UTC", "--tz", help="Timezone used when --date is omitted"),
) -> None:
    """Record a symptom log and print the resulting plan."""
    try:
        log_input = parse_log_input(
            {
                "date": date.fromisoformat(on) if on else today_in_timezone(tz),
                "pain": pain,
                "stiffness": stiffness,
                "aggravators": aggravator,
                "notes": notes,
            }
        )
        with get_session() as session:
            service = _service(session)
            program = service.programs.get_program(program_id)
            result = service.record_log(program, log_input)
    except RemendError as e:
        logger.warning("Log rejected", program_id=program_id, error=str(e))
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e

    if as_json:
        console.print_json(json.dumps(result.plan.model_dump(mode="json")))
        return

    verb = "Recorded" if result.created else "Corrected"
    console.print(f"[green]{verb} log {result.log.id}[/green] for {result.log.date}")
    _print_plan(result.plan)


@app.command()
def adherence(program_id: int = typer.Option(..., "--program-id", help="Program ID")) -> None:
    """Show streaks and adherence rate."""
    try:
        with get_session() as session:
            summary = _service(session).adherence(program_id)
    except RemendError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e

    console.print(
        f"Logged {summary.days_logged}/{summary.total_days} days "
        f"([bold]{summary.adherence_rate:.0%}[/bold]), "
        f"streak {summary.current_streak} (best {summary.longest_streak})"
    )


@app.command()
def weekly_summary(program_id: int = typer.Option(..., "--program-id", help="Program ID")) -> None:
    """Generate and store the weekly summary when one is due."""
    try:
        with get_session() as session:
            report = _service(session).weekly_summary_if_due(program_id)
    except RemendError as e:
        console.print(f"[red]Error:[/red] {e}", style="bold red")
        raise typer.Exit(1) from e

    if report is None:
        console.print("[yellow]Weekly summary not due yet[/yellow]")
        return

    summary = report.summary
    body = "\n".join([summary.summary, *(f"• {item}" for item in summary.highlights), "", summary.encouragement])
    console.print(Panel(body, title=f"{summary.emoji} Weekly summary ({report.status})", border_style="cyan"))


if __name__ == "__main__":
    app()
