"""mailbrief CLI: talk to your mailbox through compact digests."""

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler

from mailbrief.cli.chat_cmd import chat
from mailbrief.cli.config_cmd import config
from mailbrief.cli.digest_cmd import digest, inbox, read
from mailbrief.config import load_settings, store_secret
from mailbrief.sources.gmail_auth import authorize

console = Console()

KEY_ACCOUNTS = ["gemini", "claude", "gmail"]


def configure_logging(level_name: str) -> None:
    """Route all module loggers through a single rich handler."""
    level = getattr(logging, level_name.upper(), logging.WARNING)
    root = logging.getLogger()
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))
    root.setLevel(level)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def cli(verbose: bool):
    """mailbrief: talk to your mailbox through compact digests."""
    configure_logging("DEBUG" if verbose else load_settings().log_level)


@cli.command("set-key")
@click.argument("provider", type=click.Choice(KEY_ACCOUNTS))
@click.option("--key", prompt=True, hide_input=True, help="API key or access token")
def set_key(provider, key):
    """Store an API key or Gmail token in macOS Keychain.

    Examples:

        mailbrief set-key gemini

        mailbrief set-key gmail
    """
    if store_secret(provider, key):
        console.print(f"[green]✓[/green] {provider} key stored in Keychain")
    else:
        console.print(f"[red]Failed to store {provider} key[/red]")
        raise SystemExit(1)


@cli.command("auth")
@click.option("--client-secrets", type=click.Path(dir_okay=False), default=None,
              help="OAuth client JSON (default: gmail_client_secrets setting)")
@click.option("--port", default=0, help="Local redirect port (0 picks a free one)")
def auth(client_secrets, port):
    """Authorize Gmail access in the browser and save a refreshable token.

    \b
    Examples:
        mailbrief auth
        mailbrief auth --client-secrets ~/Downloads/client_secret.json
    """
    settings = load_settings()
    secrets = Path(client_secrets or settings.gmail_client_secrets).expanduser()
    token_path = Path(settings.gmail_token_file).expanduser()
    try:
        authorize(secrets, token_path, port=port)
    except FileNotFoundError as exc:
        raise click.ClickException(str(exc))
    console.print(f"[green]✓[/green] Gmail authorized, token saved to {token_path}")


cli.add_command(digest)
cli.add_command(inbox)
cli.add_command(read)
cli.add_command(chat)
cli.add_command(config)


if __name__ == "__main__":
    cli()
