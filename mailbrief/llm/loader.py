"""Load the assistant persona from a Markdown file with YAML frontmatter."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = """You are Oui, an email automation assistant.

SCOPE: Email management only. Politely decline non-email questions.

TOOLS:
- get_emails {"max_results": int, "query": str}: list messages (Gmail search syntax).
- read_email {"message_id": str}: returns a processed digest with type, summary,
  keyPoints, actionItems, dates, amounts.
- send_email {"to": str, "subject": str, "body": str, "cc": str, "bcc": str}
- label_emails {"message_ids": [str], "add_labels": [str], "remove_labels": [str]}
- archive_emails {"message_ids": [str]}
- mark_read {"message_ids": [str], "read": bool}

RESPONSE FORMAT: reply with ONLY a JSON object, no markdown fences:
{"tool": "<tool name or null>", "args": {...}, "reply": "<text for the user>"}
Call one tool per step. Tool results come back as "TOOL RESULT (<name>): ...".
When you are done, set "tool" to null and put your answer in "reply".

RULES:
1. Compose emails yourself: full greeting, content and sign-off. Never send an
   empty body or a placeholder like "[message]".
2. Take action: call tools directly instead of describing what you would do.
3. When a [CONTEXT] block lists an email the user asks about, answer from it
   without calling read_email again.
4. When analysing an email, explain what it means, why it matters and what
   action is needed."""


@dataclass
class PromptDefinition:
    """A parsed persona prompt."""

    name: str
    system_prompt: str
    provider: Optional[str] = None
    model: Optional[str] = None
    file_path: Optional[str] = None


def default_prompt() -> PromptDefinition:
    return PromptDefinition(name="oui", system_prompt=DEFAULT_SYSTEM_PROMPT)


def load_prompt_file(path: Path) -> Optional[PromptDefinition]:
    """Parse a persona markdown file.

    Expected format:
        ---
        name: ...
        provider: gemini | claude
        model: ...
        ---
        Prompt body in markdown
    """
    text = path.read_text(encoding="utf-8")

    if not text.startswith("---"):
        logger.warning("Prompt file %s missing YAML frontmatter, skipping", path)
        return None

    parts = text.split("---", 2)
    if len(parts) < 3:
        logger.warning("Prompt file %s has malformed frontmatter, skipping", path)
        return None

    try:
        meta = yaml.safe_load(parts[1].strip()) or {}
    except yaml.YAMLError as exc:
        logger.warning("Failed to parse YAML in %s: %s", path, exc)
        return None

    if not isinstance(meta, dict):
        logger.warning("Frontmatter in %s is not a dict, skipping", path)
        return None

    body = parts[2].strip()
    if not body:
        logger.warning("Prompt file %s has an empty body, skipping", path)
        return None

    return PromptDefinition(
        name=meta.get("name", path.stem),
        system_prompt=body,
        provider=meta.get("provider"),
        model=meta.get("model"),
        file_path=str(path),
    )
