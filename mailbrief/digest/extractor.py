"""Pull dates, amounts, action sentences and key phrases out of cleaned text.

Everything here is regex/heuristic and deterministic. Action items and
key phrases are computed independently from the same sentence list, so a
sentence can show up in both.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, Pattern, Tuple

from mailbrief.digest.cleaner import LINK_PLACEHOLDER

MAX_DATES = 5
MAX_AMOUNTS = 5
MAX_ACTION_ITEMS = 5
MAX_KEY_PHRASES = 3

MIN_SENTENCE_CHARS = 11
KEY_PHRASE_MIN_CHARS = 20  # exclusive
KEY_PHRASE_MAX_CHARS = 200  # exclusive

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)\w*"

# Scanned family by family; results keep that order.
DATE_PATTERNS: List[Pattern[str]] = [
    re.compile(rf"\b\d{{1,2}}\s+{_MONTH}\s*,?\s*\d{{2,4}}\b", re.IGNORECASE),
    re.compile(rf"\b{_MONTH}\s+\d{{1,2}}\s*,?\s*\d{{2,4}}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}/\d{1,2}/\d{2,4}\b"),
    re.compile(r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE),
    re.compile(r"\b(?:today|tomorrow|next week|this week)\b", re.IGNORECASE),
]

AMOUNT_RE = re.compile(
    r"[₹$€£]\s?[\d,]+(?:\.\d{2})?"
    r"|\d+(?:,\d{3})*(?:\.\d{2})?\s?(?:USD|INR|EUR|GBP)",
    re.IGNORECASE,
)

SENTENCE_SPLIT_RE = re.compile(r"[.!?\n]+")

ACTION_KEYWORDS = (
    "please", "kindly", "required", "must", "need to", "action", "deadline",
    "respond", "reply", "confirm", "submit", "complete", "attend", "join",
    "register", "rsvp",
)
ACTION_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in ACTION_KEYWORDS) + r")\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class KeyInfo:
    dates: Tuple[str, ...] = ()
    amounts: Tuple[str, ...] = ()
    action_items: Tuple[str, ...] = ()
    key_phrases: Tuple[str, ...] = ()


def _unique(values: Iterable[str], limit: int) -> Tuple[str, ...]:
    """First ``limit`` distinct values, in order of first appearance."""
    seen: List[str] = []
    for value in values:
        if value not in seen:
            seen.append(value)
            if len(seen) == limit:
                break
    return tuple(seen)


def extract_dates(text: str) -> Tuple[str, ...]:
    matches = (
        m.group(0).strip()
        for pattern in DATE_PATTERNS
        for m in pattern.finditer(text)
    )
    return _unique(matches, MAX_DATES)


def extract_amounts(text: str) -> Tuple[str, ...]:
    return _unique((m.group(0) for m in AMOUNT_RE.finditer(text)), MAX_AMOUNTS)


def split_sentences(text: str) -> List[str]:
    """Split on . ! ? and newlines, dropping fragments under 11 chars."""
    parts = (s.strip() for s in SENTENCE_SPLIT_RE.split(text))
    return [s for s in parts if len(s) >= MIN_SENTENCE_CHARS]


def find_action_items(sentences: List[str]) -> Tuple[str, ...]:
    return tuple(s for s in sentences if ACTION_RE.search(s))[:MAX_ACTION_ITEMS]


def find_key_phrases(sentences: List[str]) -> Tuple[str, ...]:
    phrases = (
        s for s in sentences
        if KEY_PHRASE_MIN_CHARS < len(s) < KEY_PHRASE_MAX_CHARS
        and not s.startswith(LINK_PLACEHOLDER)
    )
    return tuple(phrases)[:MAX_KEY_PHRASES]


def extract_key_info(cleaned_body: str) -> KeyInfo:
    """Extract dates, amounts, action items and key phrases from a cleaned body."""
    if not cleaned_body:
        return KeyInfo()

    sentences = split_sentences(cleaned_body)
    return KeyInfo(
        dates=extract_dates(cleaned_body),
        amounts=extract_amounts(cleaned_body),
        action_items=find_action_items(sentences),
        key_phrases=find_key_phrases(sentences),
    )
