"""comed-bills CLI - Main entry point."""

import asyncio
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import ComEdSettings
from .errors import ComEdError, SessionExpired

app = typer.Typer(
    name="comed-bills",
    help="Bulk download ComEd utility bills",
    no_args_is_help=True,
)
console = Console()

# Sub-command groups
auth_app = typer.Typer(help="Authentication commands")
bills_app = typer.Typer(help="Bill listing and download")

app.add_typer(auth_app, name="auth")
app.add_typer(bills_app, name="bills")

DATE_FORMATS = ["%Y-%m-%d"]


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """ComEd bill downloader."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _settings() -> ComEdSettings:
    return ComEdSettings()


def _resolve_username(settings: ComEdSettings, username: Optional[str]) -> str:
    return username or settings.username or typer.prompt("ComEd username")


def _resolve_credentials(
    settings: ComEdSettings,
    username: Optional[str],
    password: Optional[str],
) -> tuple[str, str]:
    user = _resolve_username(settings, username)
    secret = password or settings.password or typer.prompt("ComEd password", hide_input=True)
    return user, secret


def _run(coro: Awaitable[Any]) -> Any:
    """Run a coroutine, mapping known failures to a clean exit."""
    try:
        return asyncio.run(coro)
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled[/yellow]")
        raise typer.Exit(1)
    except ComEdError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


async def _with_session(downloader, username: str, password: str, action: Callable[[], Awaitable[Any]]):
    """Authenticate, run `action`, and sign in once more if the session expires mid-way."""
    await downloader.authenticate(username, password)
    try:
        return await action()
    except SessionExpired:
        console.print("[yellow]Session expired, signing in again...[/yellow]")
        await downloader.authenticate(username, password)
        return await action()


# ============================================================================
# Auth Commands
# ============================================================================


@auth_app.command("login")
def auth_login(
    username: Optional[str] = typer.Option(None, "--username", "-u", help="ComEd username"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="ComEd password"),
):
    """Sign in to ComEd, reusing the cached session when it is still valid.

    Opens a browser window if a new login is needed. Complete any extra
    verification steps there; the window closes once you are signed in.
    """
    from .downloader import BillDownloader

    settings = _settings()
    user, secret = _resolve_credentials(settings, username, password)

    async def _login():
        async with BillDownloader(settings) as downloader:
            await downloader.authenticate(user, secret)
            return downloader.auth.cache_available

    cache_available = _run(_login())

    message = f"[bold green]Signed in as {user}[/bold green]"
    if cache_available is False:
        message += "\n\n[yellow]Session could not be cached; the next run will ask you to sign in again.[/yellow]"
    console.print(Panel(message, title="Auth Complete"))


@auth_app.command("status")
def auth_status(
    username: Optional[str] = typer.Option(None, "--username", "-u", help="ComEd username"),
):
    """Show the cached session for a username."""
    from .session.storage import SessionStore

    settings = _settings()
    user = _resolve_username(settings, username)
    status = SessionStore(settings.cache_root).get_status(user, settings.provider_domains)

    table = Table(title="ComEd Session Cache")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Username", user)
    table.add_row("Cache file", status["cache_file"])
    if not status["cached"]:
        table.add_row("Status", "[dim]No cached session[/dim]")
        console.print(table)
        return

    if status["expired_cookies"]:
        table.add_row("Status", f"[red]Expired ({status['expired_cookies']} cookies)[/red]")
    else:
        table.add_row("Status", "[green]Cached[/green]")
    table.add_row("Cookies", str(status["cookies"]))
    table.add_row("Earliest expiry", status["earliest_expiry"] or "N/A")
    console.print(table)


@auth_app.command("clear")
def auth_clear(
    username: Optional[str] = typer.Option(None, "--username", "-u", help="ComEd username"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Delete the cached session for a username."""
    from .session.storage import SessionStore

    settings = _settings()
    user = _resolve_username(settings, username)

    if not force and not typer.confirm(f"Clear cached session for {user}?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(0)

    if SessionStore(settings.cache_root).clear(user):
        console.print("[green]Cached session cleared[/green]")
    else:
        console.print("[dim]No cached session[/dim]")


# ============================================================================
# Bill Commands
# ============================================================================


def _as_date(value: Optional[datetime]) -> Optional[date]:
    return value.date() if value else None


@bills_app.command("list")
def bills_list(
    account: str = typer.Argument(..., help="ComEd account number"),
    start: Optional[datetime] = typer.Option(None, "--from", formats=DATE_FORMATS, help="Start date (YYYY-MM-DD)"),
    end: Optional[datetime] = typer.Option(None, "--to", formats=DATE_FORMATS, help="End date (YYYY-MM-DD)"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="ComEd username"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="ComEd password"),
    json_output: bool = typer.Option(False, "--json", help="Output as JSON"),
):
    """List bills for an account (defaults to the configured history window)."""
    from .api.bills import months_before
    from .downloader import BillDownloader

    settings = _settings()
    user, secret = _resolve_credentials(settings, username, password)
    end_date = _as_date(end) or date.today()
    start_date = _as_date(start) or months_before(end_date, settings.history_months)

    async def _list():
        async with BillDownloader(settings) as downloader:
            return await _with_session(
                downloader, user, secret,
                lambda: downloader.list_bills(account, start_date, end_date),
            )

    bills = _run(_list())

    if json_output:
        console.print_json(json.dumps([b.model_dump() for b in bills], default=str))
        return

    table = Table(title=f"Bills for {account} ({start_date} to {end_date})")
    table.add_column("Date", style="cyan")
    table.add_column("Type")
    table.add_column("Charge", justify="right")
    table.add_column("Amount Due", justify="right")
    table.add_column("Payment ID", style="dim")

    for bill in bills:
        table.add_row(
            bill.bill_date.isoformat(),
            bill.type or "",
            f"${bill.charge_amount:,.2f}" if bill.charge_amount is not None else "",
            f"${bill.total_amount_due:,.2f}" if bill.total_amount_due is not None else "",
            bill.payment_id or "",
        )

    console.print(table)
    console.print(f"\n[dim]{len(bills)} bills[/dim]")


@bills_app.command("download")
def bills_download(
    account: str = typer.Argument(..., help="ComEd account number"),
    directory: Path = typer.Option(Path("."), "--dir", "-d", help="Directory to save PDFs to"),
    months: Optional[int] = typer.Option(None, "--months", "-m", help="Months of history to download"),
    username: Optional[str] = typer.Option(None, "--username", "-u", help="ComEd username"),
    password: Optional[str] = typer.Option(None, "--password", "-p", help="ComEd password"),
):
    """Download every bill in the history window as PDFs."""
    from .downloader import BillDownloader

    settings = _settings()
    user, secret = _resolve_credentials(settings, username, password)

    def _on_start(bill):
        console.print(f"[blue]Downloading bill for {bill.bill_date.strftime('%m/%Y')}[/blue]")

    def _on_done(bill, path):
        console.print(f"[green]Success![/green] [dim]{path}[/dim]\n")

    async def _download():
        async with BillDownloader(settings) as downloader:
            return await _with_session(
                downloader, user, secret,
                lambda: downloader.bulk_download(
                    account, directory, months=months, on_start=_on_start, on_done=_on_done
                ),
            )

    saved = _run(_download())
    console.print(Panel(f"[bold green]Downloaded {len(saved)} bills[/bold green] to {directory}", title="Done"))


@app.command()
def version():
    """Show version information."""
    from . import __version__

    console.print(f"comed-bills v{__version__}")


if __name__ == "__main__":
    app()
