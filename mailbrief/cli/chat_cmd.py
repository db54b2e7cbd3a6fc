"""CLI command for an interactive mailbox conversation."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from mailbrief.assistant.agent import APPROVE, REJECT, AssistantResponse, MailAssistant, Resume
from mailbrief.config import load_settings
from mailbrief.context.store import ContextState
from mailbrief.llm.client import LLMClient
from mailbrief.llm.loader import default_prompt, load_prompt_file
from mailbrief.sources.gmail import GmailClient

console = Console()
logger = logging.getLogger(__name__)

QUIT_COMMANDS = ("/quit", "/exit")


def _settle_interrupts(assistant: MailAssistant, response: AssistantResponse) -> AssistantResponse:
    """Ask the user about each paused tool call until the turn completes."""
    while response.interrupts:
        interrupt = response.interrupts[0]
        if response.reply:
            console.print(f"[dim]{escape(response.reply)}[/dim]")
        console.print(Panel(
            escape(json.dumps(interrupt.args, indent=2, ensure_ascii=False)),
            title=f"[bold yellow]Approve {interrupt.tool}?[/bold yellow]",
            border_style="yellow",
        ))
        decision = APPROVE if click.confirm("Proceed", default=False) else REJECT
        with console.status("[bold green]Thinking..."):
            response = assistant.handle_query("", resume=Resume(interrupt.id, decision))
    return response


@click.command("chat")
@click.option("--provider", type=click.Choice(["gemini", "claude"]), default=None)
@click.option("--model", default=None)
@click.option("--prompt-file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="Persona markdown with YAML frontmatter")
def chat(provider: Optional[str], model: Optional[str], prompt_file: Optional[str]):
    """Talk to your mailbox.

    \b
    Examples:
        mailbrief chat
        mailbrief chat --provider claude
        mailbrief chat --prompt-file ./persona.md

    \b
    In-session commands:
        /context   show the context block sent with the next message
        /clear     forget cached digests and conversation history
        /quit      leave
    """
    settings = load_settings()

    prompt = default_prompt()
    if prompt_file:
        loaded = load_prompt_file(Path(prompt_file))
        if loaded is None:
            raise click.ClickException(f"Could not load prompt file {prompt_file}")
        prompt = loaded

    try:
        llm = LLMClient(
            provider=provider or prompt.provider or settings.provider,
            model=model or prompt.model or settings.model,
        )
        mailbox = GmailClient(api_url=settings.gmail_api_url, token_path=Path(settings.gmail_token_file).expanduser())
    except (ValueError, ImportError) as exc:
        raise click.ClickException(str(exc))

    state = ContextState(max_cache=settings.max_cache, max_history=settings.max_history)
    assistant = MailAssistant(mailbox, llm, state=state, prompt=prompt, max_steps=settings.max_steps)

    console.print(f"[dim]Using {llm.provider} / {llm.model} · persona {escape(prompt.name)}[/dim]")
    console.print("[dim]Type /quit to leave.[/dim]")
    console.print()

    while True:
        query = click.prompt("You", prompt_suffix="> ", default="", show_default=False).strip()
        if not query:
            continue
        if query in QUIT_COMMANDS:
            break
        if query == "/clear":
            state.clear()
            console.print("[green]✓[/green] Session cleared")
            continue
        if query == "/context":
            block = state.render_context()
            if block:
                console.print(block, markup=False)
            else:
                console.print("[dim](empty)[/dim]")
            continue

        with console.status("[bold green]Thinking..."):
            response = assistant.handle_query(query)
        response = _settle_interrupts(assistant, response)

        console.print(Panel(escape(response.reply or "(no reply)"), title="[bold green]Oui[/bold green]", border_style="green"))
        if response.tool_calls:
            console.print(f"[dim]tools: {escape(', '.join(response.tool_calls))}[/dim]")
