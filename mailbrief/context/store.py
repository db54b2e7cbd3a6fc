"""ContextState: short-term memory for one conversation session.

Holds a bounded digest cache, the ids currently under discussion, and a
bounded log of recent exchanges, and renders them into the text block
injected ahead of each new query.

One instance per session. Each public method holds an internal lock, but
sequences of calls are not atomic: a render can interleave with writes
from a concurrent request. Shard by session key if more than one user
ever shares a process.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Union

from mailbrief.digest.builder import Digest, truncate

logger = logging.getLogger(__name__)

DEFAULT_MAX_CACHE = 50
DEFAULT_MAX_HISTORY = 10  # exchanges, i.e. 20 turns

RENDER_SUMMARY_CHARS = 200
RENDER_TURN_CHARS = 150
RENDER_RECENT_TURNS = 6

USER = "user"
AGENT = "agent"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ConversationTurn:
    role: str
    content: str
    timestamp: datetime = field(default_factory=_now)


def _as_id_list(ids: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(ids, str):
        return [ids]
    return list(ids)


def _dedupe(ids: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(ids))


class ContextState:
    """Digest cache + active set + conversation history for one session."""

    def __init__(self, max_cache: int = DEFAULT_MAX_CACHE, max_history: int = DEFAULT_MAX_HISTORY):
        if max_cache < 1 or max_history < 1:
            raise ValueError("max_cache and max_history must be positive")
        self.max_cache = max_cache
        self.max_history = max_history
        self._digests: Dict[str, Digest] = {}
        self._active_ids: List[str] = []
        self._history: List[ConversationTurn] = []
        self._lock = threading.RLock()

    @property
    def active_ids(self) -> List[str]:
        with self._lock:
            return list(self._active_ids)

    @property
    def history(self) -> List[ConversationTurn]:
        with self._lock:
            return list(self._history)

    def __len__(self) -> int:
        with self._lock:
            return len(self._digests)

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._digests

    # ══════════════════════════════════════════════════════════════
    # Digest cache
    # ══════════════════════════════════════════════════════════════

    def cache_digest(self, message_id: str, digest: Digest) -> Digest:
        """Insert a digest, evicting the oldest-inserted entry when full.

        Eviction is FIFO by insertion, not LRU: lookups never refresh an
        entry. Re-caching an id replaces it and counts as a new insertion.
        Returns the stored copy carrying ``cached_at``.
        """
        stamped = replace(digest, cached_at=_now())
        with self._lock:
            self._digests.pop(message_id, None)
            while len(self._digests) >= self.max_cache:
                oldest = next(iter(self._digests))
                del self._digests[oldest]
                logger.debug("Evicted digest %s (cache full at %d)", oldest, self.max_cache)
            self._digests[message_id] = stamped
        return stamped

    def get_cached_digest(self, message_id: str) -> Optional[Digest]:
        with self._lock:
            return self._digests.get(message_id)

    # ══════════════════════════════════════════════════════════════
    # Active set
    # ══════════════════════════════════════════════════════════════

    def set_active_emails(self, ids: Union[str, Iterable[str]]) -> None:
        """Replace the active set."""
        with self._lock:
            self._active_ids = _dedupe(_as_id_list(ids))

    def add_active_emails(self, ids: Union[str, Iterable[str]]) -> None:
        """Append ids to the active set, keeping first-seen order."""
        with self._lock:
            self._active_ids = _dedupe(self._active_ids + _as_id_list(ids))

    def get_active_digests(self) -> List[Digest]:
        """Digests for the active ids; ids no longer cached are skipped."""
        with self._lock:
            return [self._digests[i] for i in self._active_ids if i in self._digests]

    # ══════════════════════════════════════════════════════════════
    # Conversation history
    # ══════════════════════════════════════════════════════════════

    def record_exchange(self, user_text: str, agent_text: str) -> None:
        """Append one user turn and one agent turn, then trim from the front."""
        with self._lock:
            self._history.append(ConversationTurn(USER, user_text))
            self._history.append(ConversationTurn(AGENT, agent_text))
            overflow = len(self._history) - 2 * self.max_history
            if overflow > 0:
                del self._history[:overflow]
                logger.debug("Trimmed %d history turns", overflow)

    # ══════════════════════════════════════════════════════════════
    # Rendering
    # ══════════════════════════════════════════════════════════════

    def render_context(self) -> str:
        """Render the context block prepended to the next query.

        Returns "" when there is nothing to inject.
        """
        with self._lock:
            digests = self.get_active_digests()
            recent = self._history[-RENDER_RECENT_TURNS:]

        parts: List[str] = []

        if digests:
            parts.append("CURRENTLY DISCUSSED EMAILS:")
            for i, d in enumerate(digests, start=1):
                parts.append(f"Email {i}: From: {d.sender} | Subject: {d.subject} | Type: {d.category}")
                parts.append(f"Summary: {d.summary[:RENDER_SUMMARY_CHARS]}")
                if d.action_items:
                    parts.append(f"Action items: {'; '.join(d.action_items)}")
                if d.dates:
                    parts.append(f"Key dates: {', '.join(d.dates)}")
                if d.amounts:
                    parts.append(f"Amounts: {', '.join(d.amounts)}")

        if recent:
            parts.append("\nRECENT CONVERSATION:")
            for turn in recent:
                parts.append(f"{turn.role}: {truncate(turn.content, RENDER_TURN_CHARS)}")

        return "\n".join(parts)

    def clear(self) -> None:
        """Reset the session: cache, active set and history."""
        with self._lock:
            self._digests.clear()
            self._active_ids = []
            self._history = []
