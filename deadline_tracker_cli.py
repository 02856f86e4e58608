from datetime import date, datetime
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from deadline_tracker import FileKeyValueStore, ReminderNotifier, TrackedDeadlineStore, TrackerConfig, check_reminders
from deadline_tracker.eligibility import classify, describe_days, due_reminders, remaining_days
from deadline_tracker.logging_utils import setup_logging


app = typer.Typer(help="College application deadline tracker")
console = Console()


def _load_store(profile: Optional[str]) -> TrackedDeadlineStore:
    cfg = TrackerConfig.from_env()
    storage = FileKeyValueStore(profile or cfg.profile_path)
    return TrackedDeadlineStore(storage).mount()


def _reference_date(value: Optional[str]) -> date:
    if not value:
        return date.today()
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value!r}")


@app.callback()
def main(debug: bool = typer.Option(False, "--debug", help="Verbose logging")):
    cfg = TrackerConfig.from_env()
    setup_logging(cfg.log_level if not debug else "DEBUG", debug=debug or cfg.debug)


@app.command("list")
def list_deadlines(
    profile: Optional[str] = typer.Option(None, help="Profile file (default: DT_PROFILE_PATH)"),
    on: Optional[str] = typer.Option(None, "--date", help="Reference date, YYYY-MM-DD"),
):
    """Show tracked deadlines, soonest first."""
    store = _load_store(profile)
    today = _reference_date(on)
    deadlines = store.sorted_by_date()
    if not deadlines:
        console.print("[yellow]No deadlines tracked yet.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Deadline")
    table.add_column("Title")
    table.add_column("Institution")
    table.add_column("Status")
    table.add_column("When")
    table.add_column("Reminder")

    for d in deadlines:
        remaining = remaining_days(d.date, today)
        reminder = f"{d.reminder_days_before} days before" if d.reminder_enabled else "off"
        table.add_row(
            d.date[:10] or "?",
            d.title,
            d.institution_name,
            classify(remaining).label,
            describe_days(remaining),
            reminder,
        )
    console.print(table)
    console.print(f"Showing {len(deadlines)} tracked deadline{'s' if len(deadlines) != 1 else ''}")


@app.command()
def due(
    profile: Optional[str] = typer.Option(None, help="Profile file (default: DT_PROFILE_PATH)"),
    on: Optional[str] = typer.Option(None, "--date", help="Reference date, YYYY-MM-DD"),
):
    """List reminders that fire on a given day without sending anything."""
    store = _load_store(profile)
    today = _reference_date(on)
    items = due_reminders(store.list(), today)
    if not items:
        console.print(f"No reminders due on {today.isoformat()}.")
        return
    for d in items:
        console.print(f"  • {d.title} ({d.institution_name}) - {d.date[:10]}, {d.reminder_days_before} days out")


@app.command()
def check(
    profile: Optional[str] = typer.Option(None, help="Profile file (default: DT_PROFILE_PATH)"),
    email: Optional[str] = typer.Option(None, help="Recipient (default: DT_USER_EMAIL)"),
    on: Optional[str] = typer.Option(None, "--date", help="Reference date, YYYY-MM-DD"),
):
    """Send the reminders due today. Schedule this at least once a day."""
    cfg = TrackerConfig.from_env()
    recipient = email or cfg.user_email
    if not recipient:
        console.print("[red]Missing recipient. Pass --email or set DT_USER_EMAIL.[/red]")
        raise typer.Exit(code=2)

    store = _load_store(profile)
    notifier = ReminderNotifier(cfg)
    try:
        report = check_reminders(store.list(), notifier, recipient, today=_reference_date(on))
    finally:
        notifier.close()

    console.print(f"\n[bold cyan]Reminder check {report.reference_date.isoformat()}:[/bold cyan]")
    console.print(f"  Reminders enabled: {report.total_checked}")
    console.print(f"  Due today: {len(report.due)}")
    console.print(f"  Sent: {report.reminders_sent}")
    if report.reminders_failed:
        console.print(f"  [red]Failed: {report.reminders_failed}[/red]")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
