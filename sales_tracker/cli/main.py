"""
CLI interface for the sales tracker.

Provides command-line access to registration, data entry, approvals and
reports. Role and approval checks for each command happen here.
"""

import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from sales_tracker.config.loader import AppConfig, load_app_config, resolve_config_path
from sales_tracker.core.errors import PermissionDenied, SalesTrackerError, SyncFailure, UserNotFound
from sales_tracker.core.expense import format_amount
from sales_tracker.core.identity import SessionManager, require_approved, require_owner
from sales_tracker.core.reports import (
    filter_conveyances,
    filter_inquiries,
    inquiries_to_csv,
    pending_conveyances,
    resolve_user_name,
    total_expense,
)
from sales_tracker.core.workflow import (
    approve_conveyance,
    set_user_status,
    submit_conveyance,
    submit_inquiry,
    update_settings,
)
from sales_tracker.logging_config import configure_logging
from sales_tracker.sdk.insights import SalesInsightClient
from sales_tracker.storage.models import Role, UserStatus
from sales_tracker.storage.repository import EntityStore, SQLiteBackend
from sales_tracker.sync.mirror import MirrorSync, build_mirror

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

CURRENCY = "₹"


@dataclass
class TrackerContext:
    """Objects shared by every command of one invocation."""
    config: AppConfig
    store: EntityStore
    sessions: SessionManager
    mirror: Optional[MirrorSync]


def _fail(message: str) -> None:
    console.print(f"[red]Error:[/] {message}")
    sys.exit(EXIT_CODE_FAIL)


def _tracker(ctx: typer.Context) -> TrackerContext:
    return ctx.obj


def _today() -> str:
    return date.today().isoformat()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to YAML config (defaults to $SALES_TRACKER_CONFIG)"
    ),
):
    """Sales Tracker CLI."""
    try:
        app_config = load_app_config(resolve_config_path(config))
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading config:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    configure_logging(app_config.log_level)

    if ctx.invoked_subcommand is None:
        console.print("Sales Tracker - Use --help to see available commands")
        return

    store = EntityStore(SQLiteBackend(app_config.storage.path))
    mirror = build_mirror(store, app_config.mirror.endpoint, app_config.mirror.timeout)
    if mirror is not None:
        # let background pushes finish before the process exits
        ctx.call_on_close(mirror.close)

    sessions = SessionManager(store)
    sessions.restore_session()
    ctx.obj = TrackerContext(config=app_config, store=store, sessions=sessions, mirror=mirror)


@app.command()
def init(ctx: typer.Context):
    """Initialize the local database."""
    tracker = _tracker(ctx)
    console.print(f"[green]✓[/] Database ready at {tracker.config.storage.path}")


@app.command()
def register(
    ctx: typer.Context,
    username: str = typer.Argument(..., help="Login name"),
    full_name: str = typer.Option(..., "--full-name", "-n", help="Display name"),
):
    """Create an account. The first account becomes the owner."""
    tracker = _tracker(ctx)
    try:
        user = tracker.sessions.register(username, full_name)
    except SalesTrackerError as e:
        _fail(str(e))

    console.print(f"[green]✓[/] Registered {user.username} ({user.role.value}, {user.status.value})")
    if user.status == UserStatus.PENDING:
        console.print("Your account is waiting for administrator approval.")


@app.command()
def login(ctx: typer.Context, username: str = typer.Argument(..., help="Login name")):
    """Log in by username."""
    tracker = _tracker(ctx)
    try:
        user = tracker.sessions.authenticate(username)
    except UserNotFound as e:
        _fail(str(e))

    console.print(f"[green]✓[/] Logged in as {user.full_name} ({user.role.value}, {user.status.value})")


@app.command()
def logout(ctx: typer.Context):
    """Clear the current session."""
    _tracker(ctx).sessions.logout()
    console.print("[green]✓[/] Logged out")


@app.command()
def whoami(ctx: typer.Context):
    """Show the logged-in account."""
    user = _tracker(ctx).sessions.current_user
    if user is None:
        _fail("Not logged in")
    console.print(f"{user.username} - {user.full_name} ({user.role.value}, {user.status.value})")


@app.command()
def users(ctx: typer.Context):
    """List all accounts (owner only)."""
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
    except SalesTrackerError as e:
        _fail(str(e))

    table = Table(title="Users")
    table.add_column("Username")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Status")
    for user in tracker.store.list_users():
        table.add_row(user.username, user.full_name, user.role.value, user.status.value)
    console.print(table)


def _change_status(ctx: typer.Context, username: str, status: UserStatus) -> None:
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
        target = tracker.store.find_user_by_username(username)
        if target is None:
            raise UserNotFound(username)
        if target.role == Role.OWNER:
            raise PermissionDenied("The owner account cannot be changed")
        set_user_status(tracker.store, target.id, status)
    except SalesTrackerError as e:
        _fail(str(e))

    console.print(f"[green]✓[/] {username} is now {status.value}")


@app.command("approve-user")
def approve_user(ctx: typer.Context, username: str = typer.Argument(...)):
    """Approve an account (owner only)."""
    _change_status(ctx, username, UserStatus.APPROVED)


@app.command("reject-user")
def reject_user(ctx: typer.Context, username: str = typer.Argument(...)):
    """Reject or revoke an account (owner only)."""
    _change_status(ctx, username, UserStatus.REJECTED)


@app.command("add-inquiry")
def add_inquiry(
    ctx: typer.Context,
    customer_name: str = typer.Option(..., "--customer-name", help="Customer or school name"),
    mobile1: str = typer.Option(..., "--mobile1", help="Primary mobile number"),
    customer_type: str = typer.Option("HOT", "--customer-type", "-t", help="HOT, COLD or NOT_NEEDED"),
    contact_person: str = typer.Option("", "--contact-person"),
    mobile2: Optional[str] = typer.Option(None, "--mobile2"),
    feedback: str = typer.Option("", "--feedback", "-f"),
    on_date: Optional[str] = typer.Option(None, "--date", help="ISO date, defaults to today"),
):
    """Log a customer inquiry."""
    tracker = _tracker(ctx)
    try:
        user = require_approved(tracker.sessions.current_user)
        analyzer = None
        if feedback:
            analyzer = SalesInsightClient(model=tracker.config.ai.model).summarize_sentiment
        inquiry = submit_inquiry(
            tracker.store,
            user_id=user.id,
            date=on_date or _today(),
            customer_type=customer_type.upper(),
            customer_name=customer_name,
            mobile1=mobile1,
            contact_person=contact_person,
            mobile2=mobile2,
            feedback=feedback,
            sentiment_analyzer=analyzer,
        )
    except SalesTrackerError as e:
        _fail(str(e))

    console.print(f"[green]✓[/] Inquiry Added! Sentiment: {inquiry.ai_sentiment}")


@app.command("add-conveyance")
def add_conveyance(
    ctx: typer.Context,
    from_km: float = typer.Option(..., "--from-km", help="Starting odometer reading"),
    to_km: float = typer.Option(..., "--to-km", help="Ending odometer reading"),
    travel_type: str = typer.Option("BIKE", "--travel-type", "-t", help="BUS, TRAIN, BIKE, AUTO or CAR"),
    description: str = typer.Option("", "--description", "-d"),
    fooding: float = typer.Option(0.0, "--fooding"),
    loading: float = typer.Option(0.0, "--loading"),
    other: float = typer.Option(0.0, "--other"),
    on_date: Optional[str] = typer.Option(None, "--date", help="ISO date, defaults to today"),
):
    """Submit a travel-expense claim at the current per KM rate."""
    tracker = _tracker(ctx)
    try:
        user = require_approved(tracker.sessions.current_user)
        conveyance = submit_conveyance(
            tracker.store,
            user_id=user.id,
            date=on_date or _today(),
            travel_type=travel_type.upper(),
            from_km=from_km,
            to_km=to_km,
            description=description,
            fooding_cost=fooding,
            loading_cost=loading,
            other_cost=other,
        )
    except SalesTrackerError as e:
        _fail(str(e))

    console.print("[green]✓[/] Conveyance Added!")
    console.print(f"ID: {conveyance.id}")
    console.print(
        f"Total Running: {conveyance.total_km:g} KM at {CURRENCY} {conveyance.rate_per_km:g}/KM"
    )
    console.print(f"Sub Total: {CURRENCY} {format_amount(conveyance.sub_total)}")


@app.command()
def pending(ctx: typer.Context):
    """List conveyances awaiting approval (owner only)."""
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
    except SalesTrackerError as e:
        _fail(str(e))

    claims = pending_conveyances(tracker.store.list_conveyances())
    if not claims:
        console.print("No pending approvals.")
        return

    all_users = tracker.store.list_users()
    for c in claims:
        console.print(f"\n[bold]{resolve_user_name(all_users, c.user_id)}[/bold] | {c.date}")
        console.print(f"ID: {c.id}")
        console.print(f"{c.description} ({c.travel_type.value})")
        console.print(f"Total: {CURRENCY} {format_amount(c.sub_total)} ({c.total_km:g} KM)")


@app.command("approve-conveyance")
def approve_conveyance_cmd(ctx: typer.Context, conveyance_id: str = typer.Argument(...)):
    """Approve a conveyance for reimbursement (owner only)."""
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
    except SalesTrackerError as e:
        _fail(str(e))

    conveyance = approve_conveyance(tracker.store, conveyance_id)
    if conveyance is None:
        _fail(f"Conveyance not found: {conveyance_id}")
    console.print(f"[green]✓[/] Approved {CURRENCY} {format_amount(conveyance.sub_total)}")


@app.command("set-rate")
def set_rate(ctx: typer.Context, rate: float = typer.Argument(..., help="Reimbursement per KM")):
    """Change the global per KM rate (owner only)."""
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
        settings = update_settings(tracker.store, rate)
    except SalesTrackerError as e:
        _fail(str(e))

    console.print(f"[green]✓[/] Settings updated: {CURRENCY} {settings.per_km_rate:g} per KM")


def _scoped_user_id(tracker: TrackerContext, username: Optional[str]) -> Optional[str]:
    """Owners may filter by any user; everyone else only sees their own records."""
    current = require_approved(tracker.sessions.current_user)
    if current.role != Role.OWNER:
        return current.id
    if not username:
        return None
    target = tracker.store.find_user_by_username(username)
    if target is None:
        raise UserNotFound(username)
    return target.id


@app.command()
def report(
    ctx: typer.Context,
    username: Optional[str] = typer.Option(None, "--user", "-u", help="Filter by username (owner only)"),
    start: Optional[str] = typer.Option(None, "--start", help="ISO start date, inclusive"),
    end: Optional[str] = typer.Option(None, "--end", help="ISO end date, inclusive"),
):
    """Show inquiries and conveyances with expense total."""
    tracker = _tracker(ctx)
    try:
        user_id = _scoped_user_id(tracker, username)
    except SalesTrackerError as e:
        _fail(str(e))

    all_users = tracker.store.list_users()
    inquiries = filter_inquiries(tracker.store.list_inquiries(), user_id, start, end)
    conveyances = filter_conveyances(tracker.store.list_conveyances(), user_id, start, end)

    inquiry_table = Table(title=f"Inquiries ({len(inquiries)})")
    for column in ("Date", "User", "Type", "Customer", "Mobile", "Sentiment"):
        inquiry_table.add_column(column)
    for i in inquiries:
        inquiry_table.add_row(
            i.date,
            resolve_user_name(all_users, i.user_id),
            i.customer_type.value,
            i.customer_name,
            i.mobile1,
            i.ai_sentiment or "",
        )
    console.print(inquiry_table)

    conveyance_table = Table(title=f"Conveyances ({len(conveyances)})")
    for column in ("Date", "User", "Mode", "KM", "Amount", "Status"):
        conveyance_table.add_column(column)
    for c in conveyances:
        conveyance_table.add_row(
            c.date,
            resolve_user_name(all_users, c.user_id),
            c.travel_type.value,
            f"{c.total_km:g}",
            format_amount(c.sub_total),
            "Approved" if c.approved else "Pending",
        )
    console.print(conveyance_table)

    console.print(f"Total Expense: {CURRENCY} {format_amount(total_expense(conveyances))}")


@app.command("export-csv")
def export_csv(
    ctx: typer.Context,
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="File to write; stdout if omitted"),
    username: Optional[str] = typer.Option(None, "--user", "-u", help="Filter by username (owner only)"),
    start: Optional[str] = typer.Option(None, "--start"),
    end: Optional[str] = typer.Option(None, "--end"),
):
    """Export inquiries as CSV."""
    tracker = _tracker(ctx)
    try:
        user_id = _scoped_user_id(tracker, username)
    except SalesTrackerError as e:
        _fail(str(e))

    inquiries = filter_inquiries(tracker.store.list_inquiries(), user_id, start, end)
    content = inquiries_to_csv(inquiries)
    if output is None:
        typer.echo(content)
        return

    output.write_text(content, encoding="utf-8")
    console.print(f"[green]✓[/] Wrote {len(inquiries)} inquiries to {output}")


@app.command()
def sync(ctx: typer.Context):
    """Push the full dataset to the mirror now (owner only)."""
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
        if tracker.mirror is None:
            raise SyncFailure("Mirror endpoint not configured")
        tracker.mirror.force_sync()
    except SalesTrackerError as e:
        _fail(f"Sync failed. {e}")

    console.print("[green]✓[/] Manual Sync Completed!")


@app.command()
def insight(ctx: typer.Context):
    """Ask the AI assistant for sales advice (owner only)."""
    tracker = _tracker(ctx)
    try:
        require_owner(tracker.sessions.current_user)
    except SalesTrackerError as e:
        _fail(str(e))

    client = SalesInsightClient(model=tracker.config.ai.model)
    console.print(client.generate_insight(tracker.store.list_inquiries()))


if __name__ == "__main__":
    app()
