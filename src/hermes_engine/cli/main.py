"""Main CLI entry point for the hermes command."""

import json
import logging
import click
from datetime import date, datetime
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from typing import Optional, Tuple

from .. import __version__
from ..core.config import PipelineConfigManager
from ..core.errors import PipelineError
from ..core.qualification import summarize_reasons
from ..engine import Engine
from ..storage.models import LeadStatus

console = Console()

STATUS_COLORS = {
    "NEW": "cyan",
    "QUALIFIED": "green",
    "CONTACTED": "blue",
    "RESPONDED": "magenta",
    "WON": "bold green",
    "LOST": "dim red",
    "ARCHIVED": "dim",
}

PRIORITY_COLORS = {"URGENT": "red", "HIGH": "yellow", "MEDIUM": "", "LOW": "dim"}


def get_engine(db_path: Optional[str] = None) -> Engine:
    """Get an engine over the given (or default) database."""
    path = Path(db_path) if db_path else None
    return Engine(path, config=PipelineConfigManager().config)


def fail(error: PipelineError):
    console.print(f"[red]Error ({error.kind}):[/red] {error.message}")
    raise SystemExit(1)


@click.group()
@click.version_option(version=__version__, prog_name="hermes")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Hermes - lead pipeline and outreach orchestration.

    \b
    Quick Start:
      hermes init                      # Create the database
      hermes ingest leads.json         # Bulk import scraped candidates
      hermes leads --status NEW        # Browse the pipeline
      hermes serve                     # Run the HTTP API
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.option("--db", "db_path", help="Custom database path")
def init(db_path: Optional[str]):
    """Initialize the pipeline database and seed default templates."""
    engine = get_engine(db_path)
    console.print(Panel.fit(
        f"[bold green]Hermes pipeline ready[/bold green]\n\n"
        f"Database: {engine.db.db_path}\n"
        f"Templates: {engine.db.count_templates()}\n\n"
        f"[dim]Next: hermes ingest <file.json>[/dim]",
        title="Init",
    ))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--db", "db_path", help="Custom database path")
def ingest(path: str, db_path: Optional[str]):
    """Bulk import lead candidates from a JSON array."""
    try:
        candidates = json.loads(Path(path).read_text())
    except json.JSONDecodeError as e:
        console.print(f"[red]Invalid JSON:[/red] {e}")
        raise SystemExit(1)
    if not isinstance(candidates, list):
        console.print("[red]Expected a JSON array of candidates[/red]")
        raise SystemExit(1)

    summary = get_engine(db_path).leads.bulk_ingest(candidates)

    for error in summary.errors[:10]:
        console.print(f"[red]#{error['index']}:[/red] {error['detail']}")
    console.print(Panel.fit(
        f"Created: [green]{summary.created}[/green]\n"
        f"Already known: [yellow]{summary.exists}[/yellow]\n"
        f"Failed: [red]{summary.failed}[/red]\n"
        f"Total: {summary.total}",
        title=f"Ingested {Path(path).name}",
    ))


@cli.command()
@click.option("--status", "-s", type=click.Choice([s.value for s in LeadStatus]), help="Filter by status")
@click.option("--min-score", type=int, help="Minimum score")
@click.option("--search", "-q", help="Search title, description and author")
@click.option("--limit", "-n", default=25, help="Number of leads to show")
@click.option("--db", "db_path", help="Custom database path")
def leads(status: Optional[str], min_score: Optional[int], search: Optional[str], limit: int, db_path: Optional[str]):
    """Display leads, best score first."""
    try:
        found, total = get_engine(db_path).leads.list_leads(
            status=status, min_score=min_score, search=search, limit=limit
        )
    except PipelineError as e:
        fail(e)

    if not found:
        console.print("[yellow]No leads found matching criteria.[/yellow]")
        return

    table = Table(title=f"Leads ({len(found)} of {total})")
    table.add_column("ID", style="dim", max_width=12)
    table.add_column("Score", justify="right", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Name", max_width=20)
    table.add_column("Source")
    table.add_column("Reasons", max_width=30)

    for lead in found:
        color = STATUS_COLORS.get(lead.status.value, "")
        status_cell = f"[{color}]{lead.status.value}[/{color}]" if color else lead.status.value
        table.add_row(
            lead.id[:12],
            str(lead.score),
            status_cell,
            lead.title[:40],
            lead.display_name[:20],
            lead.source,
            (summarize_reasons(lead.score_reasons) or "")[:30],
        )

    console.print(table)


@cli.command()
@click.argument("lead_id")
@click.option("--score", type=int, required=True, help="Score 0-100")
@click.option("--reason", "reasons", multiple=True, required=True, help="Scoring reason (repeatable)")
@click.option("--analysis", help="Analysis text stored as a note")
@click.option("--db", "db_path", help="Custom database path")
def qualify(lead_id: str, score: int, reasons: Tuple[str, ...], analysis: Optional[str], db_path: Optional[str]):
    """Score a lead the way the agent does."""
    try:
        lead = get_engine(db_path).leads.auto_qualify(lead_id, score, list(reasons), analysis)
    except PipelineError as e:
        fail(e)
    console.print(f"[green]✓ Lead {lead.id}: score {lead.score} → {lead.status.value}[/green]")


@cli.command()
@click.option("--db", "db_path", help="Custom database path")
def funnel(db_path: Optional[str]):
    """Show the conversion funnel."""
    stages = get_engine(db_path).pipeline.funnel()

    table = Table(title="Conversion Funnel")
    table.add_column("Stage", style="cyan")
    table.add_column("Leads", justify="right", style="bold")
    table.add_column("Rate", justify="right")
    for stage in stages:
        table.add_row(stage.name, str(stage.count), f"{stage.rate}%")

    console.print(table)


@cli.command()
@click.option("--date", "day", type=click.DateTime(formats=["%Y-%m-%d"]), help="Day to summarize (default today)")
@click.option("--db", "db_path", help="Custom database path")
def digest(day: Optional[datetime], db_path: Optional[str]):
    """Daily activity digest."""
    result = get_engine(db_path).agent.digest(day.date() if day else None)
    actions = [name for name, needed in result.actions.items() if needed]

    console.print(Panel.fit(
        f"New leads: [cyan]{result.new_leads}[/cyan]\n"
        f"Qualified: [green]{result.qualified_today}[/green]\n"
        f"Responses: [magenta]{result.responses_today}[/magenta]\n"
        f"Pending follow-ups: [yellow]{result.pending_followups}[/yellow]\n"
        f"Upcoming calls: {result.upcoming_calls}\n\n"
        f"Actions: {', '.join(actions) if actions else '[dim]none[/dim]'}",
        title=f"Digest {result.day.isoformat()}",
    ))


@cli.group()
def stats():
    """Daily statistics."""
    pass


@stats.command("record")
@click.option("--date", "day", type=click.DateTime(formats=["%Y-%m-%d"]), help="Day to recompute (default today)")
@click.option("--db", "db_path", help="Custom database path")
def stats_record(day: Optional[datetime], db_path: Optional[str]):
    """Recompute and store one day's counters."""
    recorded = get_engine(db_path).daily_stats.record(day.date() if day else None)
    lines = [f"{name}: {value}" for name, value in recorded.counters().items()]
    console.print(Panel.fit("\n".join(lines), title=f"Stats {recorded.date.isoformat()}"))


@cli.command()
@click.option("--overdue", is_flag=True, help="Only overdue tasks")
@click.option("--limit", "-n", default=20, help="Number of tasks to show")
@click.option("--db", "db_path", help="Custom database path")
def tasks(overdue: bool, limit: int, db_path: Optional[str]):
    """Show the pending task queue."""
    manager = get_engine(db_path).tasks
    queue = manager.overdue()[:limit] if overdue else manager.pending_queue(limit)

    if not queue:
        console.print("[green]No pending tasks.[/green]")
        return

    table = Table(title="Overdue Tasks" if overdue else "Task Queue")
    table.add_column("Priority")
    table.add_column("Type")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Due")
    table.add_column("Lead", style="dim", max_width=12)
    for task in queue:
        color = PRIORITY_COLORS.get(task.priority.value, "")
        table.add_row(
            f"[{color}]{task.priority.value}[/{color}]" if color else task.priority.value,
            task.task_type.value,
            task.title[:40],
            task.due_at.strftime("%Y-%m-%d %H:%M") if task.due_at else "-",
            (task.lead_id or "")[:12],
        )

    console.print(table)


@cli.command()
@click.option("--host", default=None, help="Bind host (default HERMES_API_HOST)")
@click.option("--port", type=int, default=None, help="Bind port (default HERMES_API_PORT)")
def serve(host: Optional[str], port: Optional[int]):
    """Run the HTTP API with uvicorn."""
    import uvicorn
    from ..api.config import settings
    from ..api.main import create_app

    logging.getLogger().setLevel(logging.INFO)
    uvicorn.run(create_app(), host=host or settings.host, port=port or settings.port)


if __name__ == "__main__":
    cli()
