"""CLI commands for ~/.mailbrief/config.json: config show, config set."""

from __future__ import annotations

from dataclasses import asdict, fields

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mailbrief.config import Settings, load_config_file, load_settings, save_config_file

console = Console()

SETTING_NAMES = [f.name for f in fields(Settings)]
INT_SETTINGS = {"max_cache", "max_history", "max_steps"}


@click.group("config")
def config():
    """Show or change persistent settings."""


@config.command("show")
def show():
    """Print the resolved settings (defaults < config file < MAILBRIEF_* env)."""
    table = Table(title="mailbrief settings")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in asdict(load_settings()).items():
        table.add_row(name, escape("" if value is None else str(value)))
    console.print(table)


@config.command("set")
@click.argument("name", type=click.Choice(SETTING_NAMES))
@click.argument("value")
def set_value(name: str, value: str):
    """Save one setting to the config file.

    \b
    Examples:
        mailbrief config set provider claude
        mailbrief config set max_cache 100
    """
    if name in INT_SETTINGS:
        try:
            parsed = int(value)
        except ValueError:
            raise click.ClickException(f"{name} must be an integer, got {value!r}")
        if parsed < 1:
            raise click.ClickException(f"{name} must be at least 1")
        stored = parsed
    else:
        stored = value

    data = load_config_file()
    data[name] = stored
    save_config_file(data)
    console.print(f"[green]✓[/green] {name} = {escape(str(stored))}")
