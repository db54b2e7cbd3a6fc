"""CLI commands that build and show digests: digest, inbox, read."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mailbrief.config import load_settings
from mailbrief.digest.builder import Digest, build_digest
from mailbrief.llm.context import header_value
from mailbrief.sources.base import RawMessage
from mailbrief.sources.gmail import GmailClient, GmailError

console = Console()
logger = logging.getLogger(__name__)


def _display_digest(digest: Digest) -> None:
    """Pretty-print a digest."""
    flag = "[red]action required[/red]" if digest.action_required else "[dim]no action[/dim]"
    console.print(f"[bold]{escape(digest.subject)}[/bold]  [cyan]{digest.category}[/cyan]  {flag}")
    console.print(
        f"[dim]From {escape(digest.sender)} · {escape(digest.date or 'no date')} · "
        f"{digest.full_body_length} chars[/dim]"
    )
    console.print()
    console.print(digest.summary, markup=False)
    if digest.key_points:
        console.print()
        for point in digest.key_points:
            console.print(f"  • {point}", markup=False)
    if digest.action_items:
        console.print()
        for item in digest.action_items:
            console.print(f"  ⬜ {item}", markup=False)
    if digest.dates:
        console.print(f"  📅 {', '.join(digest.dates)}", markup=False)
    if digest.amounts:
        console.print(f"  💰 {', '.join(digest.amounts)}", markup=False)


def _emit(digest: Digest, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(digest.to_dict(), indent=2, ensure_ascii=False))
    else:
        _display_digest(digest)


def _gmail_client() -> GmailClient:
    settings = load_settings()
    try:
        return GmailClient(api_url=settings.gmail_api_url, token_path=Path(settings.gmail_token_file).expanduser())
    except ValueError as exc:
        raise click.ClickException(str(exc))


@click.command("digest")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print the digest as JSON")
def digest(path: str, as_json: bool):
    """Build a digest from a message JSON file (no network).

    \b
    The file holds one message in provider shape:
        {"id": ..., "headers": {"from": ..., "subject": ...}, "body": ..., "snippet": ...}
    """
    try:
        with open(path, encoding="utf-8") as fh:
            data = json.load(fh)
    except json.JSONDecodeError as exc:
        raise click.ClickException(f"{path} is not valid JSON: {exc}")

    if not isinstance(data, dict):
        raise click.ClickException(f"{path} must contain a JSON object")

    _emit(build_digest(RawMessage.from_dict(data)), as_json)


@click.command("inbox")
@click.option("--max", "max_results", default=10, help="Max messages to list")
@click.option("--query", "-q", default="", help='Gmail search query, e.g. "is:unread"')
def inbox(max_results: int, query: str):
    """List recent messages."""
    client = _gmail_client()
    try:
        listing = client.list_emails(max_results=max_results, query=query)
    except GmailError as exc:
        raise click.ClickException(str(exc))

    messages = listing["messages"]
    if not messages:
        console.print("[yellow]No messages found.[/yellow]")
        return

    table = Table(title=f"Inbox ({len(messages)} messages)")
    table.add_column("ID", style="dim")
    table.add_column("From")
    table.add_column("Subject", style="bold")
    table.add_column("Date", style="dim")
    table.add_column("Labels", style="cyan")
    for entry in messages:
        table.add_row(
            escape(str(entry.get("id", ""))),
            escape(header_value(entry, "From")),
            escape(header_value(entry, "Subject")),
            escape(header_value(entry, "Date")),
            ", ".join(entry.get("labelIds") or []),
        )
    console.print(table)


@click.command("read")
@click.argument("message_id")
@click.option("--json", "as_json", is_flag=True, help="Print the digest as JSON")
def read(message_id: str, as_json: bool):
    """Fetch one message and show its digest."""
    client = _gmail_client()
    try:
        message = client.get_email(message_id)
    except GmailError as exc:
        raise click.ClickException(str(exc))
    _emit(build_digest(message), as_json)
