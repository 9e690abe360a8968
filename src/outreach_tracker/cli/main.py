"""Main CLI entry point for the outreach command."""

import logging
import click
from pathlib import Path
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from typing import Optional, List, Tuple
from datetime import datetime

from .. import __version__
from ..bulk import BulkImporter
from ..followup import ConfigManager, FollowUpScheduler, MalformedLeadError
from ..followup.scheduler import format_countdown, format_follow_up_date
from ..storage import LeadDatabase, LeadNotFoundError
from ..storage.models import Lead, LeadStatus, Platform

console = Console()

PLATFORM_CHOICES = [p.value for p in Platform]
STATUS_CHOICES = [s.value for s in LeadStatus]

STATUS_SECTIONS: List[Tuple[LeadStatus, str, str]] = [
    (LeadStatus.IN_CONVERSATION, "In Conversation", "green"),
    (LeadStatus.AWAITING_REPLY, "Awaiting Reply", "yellow"),
    (LeadStatus.NOT_CONTACTED, "Not Contacted", "cyan"),
    (LeadStatus.DECLINED, "Declined", "red"),
]

QUEUE_SECTIONS: List[Tuple[str, str, str]] = [
    ("overdue", "⚠️  Overdue", "red"),
    ("due_today", "📅 Due Today", "yellow"),
    ("upcoming", "🕒 Upcoming", "cyan"),
    ("none", "⛔ Max Attempts Reached", "dim"),
    ("unreachable", "🚫 Unreachable", "dim red"),
]


def load_config():
    """Load tracker configuration."""
    return ConfigManager().config


def get_db(db_path: Optional[str] = None) -> LeadDatabase:
    """Get database instance."""
    config = load_config()
    path = Path(db_path) if db_path else config.db_path
    return LeadDatabase(path, scheduler=FollowUpScheduler.from_config(config))


def resolve_profile(profile: Optional[str]) -> str:
    return profile or load_config().default_profile


def fail(message: str):
    """Print an error and exit non-zero."""
    console.print(f"[red]{message}[/red]")
    raise click.exceptions.Exit(1)


def _local_time(lead: Lead, now: datetime) -> str:
    local = lead.local_time(now)
    return local.strftime("%I:%M %p") if local else "N/A"


@click.group()
@click.version_option(version=__version__, prog_name="outreach")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Outreach Tracker - follow-up scheduling for lead outreach.

    \b
    Quick Start:
      outreach init                                   # Initialize database
      outreach add "Jane Doe" -P Instagram -P Email   # Add a lead
      outreach due                                    # What to send today
      outreach sent 1                                 # Record the suggested outreach
    """
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)


# ============================================================================
# CORE COMMANDS
# ============================================================================

@cli.command()
@click.option("--db", "db_path", help="Custom database path")
def init(db_path: Optional[str]):
    """Initialize the leads database."""
    db = get_db(db_path)

    console.print(Panel.fit(
        f"[green]✓ Database initialized![/green]\n\n"
        f"Location: [cyan]{db.db_path}[/cyan]\n\n"
        f"[bold]Quick Start:[/bold]\n"
        f"1. [yellow]outreach add \"Jane Doe\" -P Instagram -P LinkedIn[/yellow]\n"
        f"2. [yellow]outreach import -p ./bulk_results.json[/yellow]\n"
        f"3. [yellow]outreach due[/yellow]\n\n"
        f"[dim]Run 'outreach --help' for all commands[/dim]",
        title="📬 Outreach Tracker"
    ))


@cli.command()
@click.argument("name")
@click.option("--platform", "-P", "platforms", multiple=True, type=click.Choice(PLATFORM_CHOICES),
              help="Platform the lead is on (repeatable)")
@click.option("--location", "-l", help="Lead location")
@click.option("--tz", "time_zone", type=float, help="UTC offset in hours, e.g. 5 or -4")
@click.option("--whatsapp", help="WhatsApp number")
@click.option("--instagram", help="Instagram profile URL")
@click.option("--facebook", help="Facebook profile URL")
@click.option("--linkedin", help="LinkedIn profile URL")
@click.option("--source", default="manual", help="Where the lead came from")
@click.option("--profile", help="Outreach profile")
@click.option("--db", "db_path", help="Custom database path")
def add(name: str, platforms: Tuple[str, ...], location: Optional[str], time_zone: Optional[float],
        whatsapp: Optional[str], instagram: Optional[str], facebook: Optional[str],
        linkedin: Optional[str], source: str, profile: Optional[str], db_path: Optional[str]):
    """Add a lead."""
    db = get_db(db_path)

    lead = Lead(
        profile=resolve_profile(profile),
        name=name,
        location=location,
        time_zone=time_zone,
        platforms={Platform(p) for p in platforms} if platforms else {Platform.INSTAGRAM},
        whatsapp_no=whatsapp,
        instagram_url=instagram,
        facebook_url=facebook,
        linkedin_url=linkedin,
        source=source,
    )
    db.add_lead(lead)

    console.print(
        f"[green]✓ Added lead #{lead.id}: {lead.display_name}[/green] "
        f"({', '.join(lead.platform_names())})"
    )


@cli.command("import")
@click.option("--path", "-p", type=click.Path(exists=True), required=True,
              help="Path to the extension's JSON export")
@click.option("--profile", help="Outreach profile")
@click.option("--db", "db_path", help="Custom database path")
def import_leads(path: str, profile: Optional[str], db_path: Optional[str]):
    """Import leads from a browser-extension bulk export."""
    db = get_db(db_path)
    result = BulkImporter(db).import_json(path, profile=resolve_profile(profile))

    if result.get("file_error"):
        fail(f"Error reading {path}: {result['file_error']}")

    for error in result["error_details"][:5]:
        console.print(f"[yellow]Warning:[/yellow] entry {error['index']}: {error['error']}")

    console.print(Panel.fit(
        f"[green]✓ Import complete![/green]\n\n"
        f"Imported: [cyan]{result['imported']}[/cyan]\n"
        f"Errors: [cyan]{result['errors']}[/cyan]",
        title="Bulk Import"
    ))


# ============================================================================
# VIEWS
# ============================================================================

@cli.command()
@click.option("--profile", help="Outreach profile")
@click.option("--db", "db_path", help="Custom database path")
def board(profile: Optional[str], db_path: Optional[str]):
    """Show leads grouped by status."""
    db = get_db(db_path)
    profile = resolve_profile(profile)
    groups = db.get_status_board(profile)
    now = datetime.now()

    console.print(f"[bold]Client Board - {profile}[/bold]")

    for status, title, color in STATUS_SECTIONS:
        leads = groups[status]
        if not leads:
            console.print(f"[{color}]{title}[/{color}]: [dim]None[/dim]")
            continue

        table = Table(title=f"[{color}]{title} ({len(leads)})[/{color}]")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan", max_width=25)
        table.add_column("Location", max_width=20)
        table.add_column("Local Time")
        table.add_column("Platforms")
        table.add_column("Attempts", justify="right")
        table.add_column("Next")

        for lead in leads:
            next_label = ""
            if lead.next_follow_up_platform:
                next_label = (
                    f"{lead.next_follow_up_platform.value} "
                    f"{format_follow_up_date(lead.next_follow_up_date, now)}"
                )
            table.add_row(
                str(lead.id),
                lead.display_name[:25],
                lead.location or "",
                _local_time(lead, now),
                ", ".join(lead.platform_names()),
                str(len(lead.outreach_history)),
                next_label
            )

        console.print(table)


@cli.command()
@click.option("--profile", help="Outreach profile")
@click.option("--db", "db_path", help="Custom database path")
def due(profile: Optional[str], db_path: Optional[str]):
    """Show the follow-up queue: overdue, due today, upcoming."""
    db = get_db(db_path)
    profile = resolve_profile(profile)
    now = datetime.now()

    try:
        queue = db.get_follow_up_queue(profile, now)
    except MalformedLeadError as e:
        fail(f"Corrupt lead record: {e}")

    if not any(queue.values()):
        console.print("[yellow]No follow-ups due.[/yellow]")
        return

    for bucket, title, color in QUEUE_SECTIONS:
        entries = queue[bucket]
        if not entries:
            continue

        table = Table(title=f"[{color}]{title} ({len(entries)})[/{color}]")
        table.add_column("ID", justify="right", style="dim")
        table.add_column("Name", style="cyan", max_width=25)
        table.add_column("Day", justify="right")
        table.add_column("Platform")
        table.add_column("When")
        table.add_column("Reason")

        for entry in entries:
            lead, decision = entry["lead"], entry["decision"]
            table.add_row(
                str(lead.id),
                lead.display_name[:25],
                str(decision.day_number) if decision else "-",
                decision.platform.value if decision else "-",
                format_countdown(decision.due_at, now) if decision else "",
                decision.reason if decision else ""
            )

        console.print(table)


@cli.command()
@click.argument("lead_id", type=int)
@click.option("--db", "db_path", help="Custom database path")
def detail(lead_id: int, db_path: Optional[str]):
    """Show a lead with its outreach history."""
    db = get_db(db_path)
    lead = db.get_lead(lead_id)

    if not lead:
        fail(f"Lead #{lead_id} not found")

    now = datetime.now()
    info_lines = [
        f"[bold]Name:[/bold] {lead.name or 'N/A'}",
        f"[bold]Location:[/bold] {lead.location or 'N/A'} (local time {_local_time(lead, now)})",
        f"[bold]Contact:[/bold] {lead.contact_info}",
        f"[bold]Platforms:[/bold] {', '.join(lead.platform_names())}",
        f"[bold]Status:[/bold] {lead.status.value}",
        f"[bold]Profile:[/bold] {lead.profile}",
        f"[bold]Added:[/bold] {lead.added_at.strftime('%Y-%m-%d %H:%M')} via {lead.added_via}",
    ]

    if lead.outreach_history:
        info_lines.extend(["", "[bold]Outreach History:[/bold]"])
        for event in lead.outreach_history:
            when = event.sent_at.strftime('%Y-%m-%d %H:%M') if event.sent_at else ""
            info_lines.append(f"  Day {event.day_number}: {event.platform.value} ({event.outcome.value}) {when}")

    if lead.next_follow_up_platform:
        info_lines.extend([
            "",
            f"[bold]Next:[/bold] {lead.next_follow_up_platform.value} - "
            f"{format_countdown(lead.next_follow_up_date, now)}"
        ])

    console.print(Panel("\n".join(info_lines), title=f"Lead #{lead.id}: {lead.display_name}"))


# ============================================================================
# OUTREACH
# ============================================================================

@cli.command()
@click.argument("lead_id", type=int)
@click.option("--platform", "-P", type=click.Choice(PLATFORM_CHOICES),
              help="Platform used (defaults to the suggested one)")
@click.option("--db", "db_path", help="Custom database path")
def sent(lead_id: int, platform: Optional[str], db_path: Optional[str]):
    """Record that an outreach was sent to a lead."""
    db = get_db(db_path)

    try:
        event = db.record_outreach(lead_id, Platform(platform) if platform else None)
    except (LeadNotFoundError, ValueError) as e:
        fail(str(e))

    lead = db.get_lead(lead_id)
    console.print(f"[green]✓ Day {event.day_number} outreach via {event.platform.value} recorded[/green]")
    if lead.next_follow_up_platform:
        console.print(
            f"Next: [cyan]{lead.next_follow_up_platform.value}[/cyan] "
            f"({format_countdown(lead.next_follow_up_date)})"
        )
    else:
        console.print("[dim]No further follow-ups scheduled[/dim]")


@cli.command()
@click.argument("lead_id", type=int)
@click.option("--db", "db_path", help="Custom database path")
def replied(lead_id: int, db_path: Optional[str]):
    """Record that a lead replied."""
    db = get_db(db_path)

    try:
        lead = db.record_reply(lead_id)
    except LeadNotFoundError as e:
        fail(str(e))

    console.print(f"[green]✓ {lead.display_name} moved to in-conversation[/green]")


@cli.command()
@click.argument("lead_id", type=int)
@click.argument("status", type=click.Choice(STATUS_CHOICES))
@click.option("--db", "db_path", help="Custom database path")
def move(lead_id: int, status: str, db_path: Optional[str]):
    """Move a lead to a new status."""
    db = get_db(db_path)

    try:
        lead = db.set_status(lead_id, LeadStatus(status))
    except LeadNotFoundError as e:
        fail(str(e))

    console.print(f"[green]✓ Lead #{lead.id} moved to {lead.status.value}[/green]")


if __name__ == "__main__":
    cli()
