"""TicketDesk CLI — run the server, set up the database, work tickets.

Usage:
    ticketdesk init-db                              # Create tables if missing
    ticketdesk serve --reload                       # Run the API with uvicorn
    ticketdesk login you@example.com                # Print a session token
    ticketdesk tickets                              # List tickets
    ticketdesk create-ticket "Printer on fire"      # Open a ticket
    ticketdesk resolve 42                           # Resolve a ticket

Ticket commands read the session token from --token or TICKETDESK_TOKEN.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("TICKETDESK_API_URL", DEFAULT_API_URL).rstrip("/")


def _client(token: Optional[str] = None) -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the TicketDesk backend."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context like tests) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _require_token(token: Optional[str]) -> str:
    tok = token or os.environ.get("TICKETDESK_TOKEN")
    if not tok:
        click.secho(
            "Error: --token required (or set TICKETDESK_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return tok


def _fail_on_error(resp: httpx.Response) -> dict:
    """Return the JSON body, or print the API's error detail and exit."""
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail", resp.text)
        except ValueError:
            detail = resp.text
        click.secho(f"Error ({resp.status_code}): {detail}", fg="red", err=True)
        sys.exit(1)
    return resp.json()


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) or "—")[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _status_color(status: str) -> str:
    return {"open": "yellow", "resolved": "green"}.get(status, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version="0.1.0", prog_name="ticketdesk")
def main():
    """TicketDesk — support tickets behind password and Google sign-in."""


# ---------------------------------------------------------------------------
# Server commands
# ---------------------------------------------------------------------------


@main.command("init-db")
def init_db():
    """Create the users and tickets tables if they don't exist."""
    from ticketdesk.db.engine import create_tables, engine

    async def _init():
        try:
            await create_tables()
        finally:
            await engine.dispose()

    _run(_init())
    click.secho("Database tables initialized.", fg="green")


@main.command()
@click.option("--host", default=None, help="Bind address (default: settings.host)")
@click.option("--port", default=None, type=int, help="Port (default: settings.port)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server with uvicorn."""
    import uvicorn

    from ticketdesk.config import settings

    uvicorn.run(
        "ticketdesk.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


# ---------------------------------------------------------------------------
# Client commands
# ---------------------------------------------------------------------------


@main.command()
@click.argument("email")
@click.password_option(confirmation_prompt=False)
def login(email: str, password: str):
    """Log in with email/password and print the session token."""
    _run(_login_impl(email, password))


async def _login_impl(email: str, password: str):
    async with _client() as c:
        resp = await c.post("/auth/login", json={"email": email, "password": password})
    data = _fail_on_error(resp)
    click.secho(f"Logged in as {data['user']['name']} <{data['user']['email']}>", fg="green", err=True)
    click.echo(data["token"])


@main.command()
@click.option("--token", help="Session token (or set TICKETDESK_TOKEN)")
@click.option("--status", "status_filter", type=click.Choice(["open", "resolved"]), help="Only show this status")
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def tickets(token: Optional[str], status_filter: Optional[str], as_json: bool):
    """List tickets."""
    _run(_tickets_impl(_require_token(token), status_filter, as_json))


async def _tickets_impl(token: str, status_filter: Optional[str], as_json: bool):
    async with _client(token) as c:
        resp = await c.get("/tickets")
    data = _fail_on_error(resp)
    rows = data["tickets"]
    if status_filter:
        rows = [t for t in rows if t["status"] == status_filter]

    if as_json:
        click.echo(json.dumps(rows, indent=2, default=str))
        return
    if not rows:
        click.echo("No tickets.")
        return

    _print_table(rows, [
        ("ID", "id", 6),
        ("STATUS", "status", 9),
        ("TITLE", "title", 40),
        ("OPENED BY", "user_email", 28),
    ])
    open_count = sum(1 for t in rows if t["status"] == "open")
    click.secho(f"\n{len(rows)} tickets, {open_count} open", fg=_status_color("open" if open_count else "resolved"))


@main.command("create-ticket")
@click.argument("title")
@click.option("--description", "-d", default="", help="Ticket description")
@click.option("--token", help="Session token (or set TICKETDESK_TOKEN)")
def create_ticket(title: str, description: str, token: Optional[str]):
    """Open a new ticket."""
    _run(_create_ticket_impl(_require_token(token), title, description))


async def _create_ticket_impl(token: str, title: str, description: str):
    async with _client(token) as c:
        resp = await c.post("/tickets", json={"title": title, "description": description})
    ticket = _fail_on_error(resp)["ticket"]
    click.secho(f"Opened ticket #{ticket['id']}: {ticket['title']}", fg="green")


@main.command()
@click.argument("ticket_id", type=int)
@click.option("--token", help="Session token (or set TICKETDESK_TOKEN)")
def resolve(ticket_id: int, token: Optional[str]):
    """Resolve a ticket."""
    _run(_resolve_impl(_require_token(token), ticket_id))


async def _resolve_impl(token: str, ticket_id: int):
    async with _client(token) as c:
        resp = await c.post(f"/tickets/{ticket_id}/resolve")
    ticket = _fail_on_error(resp)["ticket"]
    click.secho(f"Resolved ticket #{ticket['id']}", fg=_status_color(ticket["status"]))


if __name__ == "__main__":
    main()
