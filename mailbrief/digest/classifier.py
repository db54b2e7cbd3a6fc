"""Heuristic email categorization.

Rules are an ordered list of (predicate, category) pairs and the first
match wins. Vocabulary is matched as plain substrings of the lower-cased
``from + subject + body`` text, so "order" also fires on "border". This is
best-effort labelling, not a guarantee; bump RULES_VERSION whenever a
vocabulary changes so pinned tests fail loudly.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from mailbrief.sources.base import MessageHeaders

RULES_VERSION = "1"

PROMOTIONAL = "promotional"
NEWSLETTER = "newsletter"
SECURITY = "security"
TRANSACTIONAL = "transactional"
EVENT = "event"
NOTIFICATION = "notification"
DEVELOPMENT = "development"
PERSONAL = "personal"

CATEGORIES = frozenset({
    PROMOTIONAL, NEWSLETTER, SECURITY, TRANSACTIONAL,
    EVENT, NOTIFICATION, DEVELOPMENT, PERSONAL,
})

BULK_SENDER_TERMS = (
    "noreply", "no-reply", "newsletter", "marketing", "promo", "offer",
    "sale", "discount", "deal", "unsubscribe",
)
PRICE_TERMS = ("off", "%", "discount", "sale", "deal", "coupon", "offer", "price", "save")
SECURITY_TERMS = (
    "alert", "security", "verification", "verify", "password", "signin",
    "login", "suspicious", "unusual",
)
BILLING_TERMS = ("invoice", "payment", "receipt", "order", "transaction", "billing", "subscription")
SCHEDULING_TERMS = (
    "meeting", "invite", "calendar", "event", "rsvp", "attend", "join",
    "webinar", "summit", "conference",
)
NOTICE_TERMS = ("notification", "update", "reminder", "notice")
DEV_TERMS = ("github", "gitlab", "jenkins", "deploy", "build", "commit", "pull request", "merge")


def _contains_any(text: str, terms: Tuple[str, ...]) -> bool:
    return any(term in text for term in terms)


def _bulk_category(text: str) -> Optional[str]:
    if not _contains_any(text, BULK_SENDER_TERMS):
        return None
    return PROMOTIONAL if _contains_any(text, PRICE_TERMS) else NEWSLETTER


def _term_rule(terms: Tuple[str, ...], category: str) -> Callable[[str], Optional[str]]:
    return lambda text: category if _contains_any(text, terms) else None


CLASSIFICATION_RULES: List[Callable[[str], Optional[str]]] = [
    _bulk_category,
    _term_rule(SECURITY_TERMS, SECURITY),
    _term_rule(BILLING_TERMS, TRANSACTIONAL),
    _term_rule(SCHEDULING_TERMS, EVENT),
    _term_rule(NOTICE_TERMS, NOTIFICATION),
    _term_rule(DEV_TERMS, DEVELOPMENT),
]


def classify_email(headers: Optional[MessageHeaders], cleaned_body: str) -> str:
    """Return one of CATEGORIES. Total: empty input yields ``personal``."""
    headers = headers or MessageHeaders()
    combined = " ".join((headers.sender, headers.subject, cleaned_body or "")).lower()

    for rule in CLASSIFICATION_RULES:
        category = rule(combined)
        if category:
            return category
    return PERSONAL
