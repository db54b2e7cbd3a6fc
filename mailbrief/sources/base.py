"""Core message dataclasses consumed by the digest pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class MessageHeaders:
    """The handful of headers the pipeline reads. Free text, never parsed."""

    sender: str = ""
    to: str = ""
    subject: str = ""
    date: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "MessageHeaders":
        data = data or {}
        return cls(
            sender=str(data.get("from") or ""),
            to=str(data.get("to") or ""),
            subject=str(data.get("subject") or ""),
            date=str(data.get("date") or ""),
        )


@dataclass(frozen=True)
class RawMessage:
    """A fetched mailbox message. Immutable once fetched.

    Produced by mailbox providers (see ``mailbrief.sources.gmail``) and
    by ``RawMessage.from_dict`` for offline JSON fixtures.
    """

    id: str
    headers: MessageHeaders = field(default_factory=MessageHeaders)
    body: str = ""
    snippet: str = ""
    thread_id: Optional[str] = None
    label_ids: Tuple[str, ...] = ()
    internal_date: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RawMessage":
        """Build from the provider output shape:
        ``{id, threadId, labelIds, snippet, internalDate, headers, body}``.
        """
        return cls(
            id=str(data.get("id") or ""),
            headers=MessageHeaders.from_dict(data.get("headers")),
            body=str(data.get("body") or ""),
            snippet=str(data.get("snippet") or ""),
            thread_id=data.get("threadId"),
            label_ids=tuple(data.get("labelIds") or ()),
            internal_date=data.get("internalDate"),
        )
