"""Compose cleaner + extractor + classifier output into a bounded Digest.

The Digest is what gets handed to the LLM instead of the raw body, so
every list is capped and the summary never exceeds SUMMARY_MAX_CHARS.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from mailbrief.digest.classifier import classify_email
from mailbrief.digest.cleaner import clean_email_body
from mailbrief.digest.extractor import extract_key_info
from mailbrief.sources.base import RawMessage

SUMMARY_MAX_CHARS = 400
SUMMARY_BODY_CHARS = 300
ELLIPSIS = "..."

DEFAULT_SENDER = "Unknown"
DEFAULT_SUBJECT = "No Subject"
NO_CONTENT = "No readable content"


@dataclass(frozen=True)
class Digest:
    """Compact structured summary of one message.

    Immutable; the context store attaches ``cached_at`` by building a
    copy with ``dataclasses.replace`` at insertion time.
    """

    message_id: str
    sender: str
    to: str
    subject: str
    date: str
    category: str
    summary: str
    key_points: Tuple[str, ...]
    action_items: Tuple[str, ...]
    dates: Tuple[str, ...]
    amounts: Tuple[str, ...]
    full_body_length: int
    cached_at: Optional[datetime] = None

    @property
    def action_required(self) -> bool:
        return bool(self.action_items)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the wire field names used in tool-result payloads."""
        return {
            "id": self.message_id,
            "from": self.sender,
            "to": self.to,
            "subject": self.subject,
            "date": self.date,
            "type": self.category,
            "summary": self.summary,
            "keyPoints": list(self.key_points),
            "actionItems": list(self.action_items),
            "dates": list(self.dates),
            "amounts": list(self.amounts),
            "actionRequired": self.action_required,
            "fullBodyLength": self.full_body_length,
            "cachedAt": self.cached_at.isoformat() if self.cached_at else None,
        }


def truncate(text: str, limit: int) -> str:
    """Cap ``text`` at ``limit`` chars, ending in "..." when cut."""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def choose_summary(key_phrases: Tuple[str, ...], cleaned_body: str, snippet: str) -> str:
    if key_phrases:
        summary = ". ".join(key_phrases)
    elif cleaned_body:
        summary = cleaned_body[:SUMMARY_BODY_CHARS]
    else:
        summary = snippet or NO_CONTENT
    return truncate(summary, SUMMARY_MAX_CHARS)


def build_digest(message: RawMessage) -> Digest:
    """Build a Digest from a fetched message. Never raises on sparse input."""
    headers = message.headers
    body = message.body or ""
    snippet = message.snippet or ""

    cleaned = clean_email_body(body or snippet)
    info = extract_key_info(cleaned)

    return Digest(
        message_id=message.id,
        sender=headers.sender or DEFAULT_SENDER,
        to=headers.to or "",
        subject=headers.subject or DEFAULT_SUBJECT,
        date=headers.date or "",
        category=classify_email(headers, cleaned),
        summary=choose_summary(info.key_phrases, cleaned, snippet),
        key_points=info.key_phrases,
        action_items=info.action_items,
        dates=info.dates,
        amounts=info.amounts,
        full_body_length=len(body),
    )
