"""
cleaner.py

Strip noise from raw email bodies before extraction and classification.

Removes, in order:
- URLs (replaced with a [link] placeholder)
- footer boilerplate: unsubscribe notices, "you received this email
  because", view-in-browser and preference links, copyright lines,
  trailing street addresses
- quoted reply lines ("> ...")
- "On <date>, <person> wrote:" attribution lines

then collapses whitespace. Later passes assume URLs are already gone,
so the order is fixed.
"""

import re
from typing import List, Pattern

LINK_PLACEHOLDER = "[link]"


# ------------------------------
# REGEXES
# ------------------------------

URL_RE = re.compile(r"https?://[^\s)>\]]+", re.IGNORECASE)

FOOTER_PATTERNS: List[Pattern[str]] = [
    re.compile(p, re.IGNORECASE | re.MULTILINE)
    for p in (
        r"unsubscribe.*$",
        r"you received this email because.*$",
        r"to stop receiving.*$",
        r"view this email in your browser.*$",
        r"click here to unsubscribe.*$",
        r"manage your preferences.*$",
        r"privacy policy.*terms of service.*$",
        r"©\s*\d{4}.*$",
        r"^[ \t]*\d{4}\s+(?:amphitheatre|street|avenue|road|blvd).*$",
    )
]

QUOTED_LINE_RE = re.compile(r"^[ \t]*>.*$", re.MULTILINE)

ON_WROTE_PATTERNS: List[Pattern[str]] = [
    # "On Mon, Jan 5, 2025 at 10:00 AM Jane <jane@x.com> wrote:"
    re.compile(r"^[ \t]*on\s+\w+,\s+\w+\s+\d+.*wrote:.*$", re.IGNORECASE | re.MULTILINE),
    # "On 3/15/2025 10:02, Jane wrote:"
    re.compile(r"^[ \t]*on\s+.+?(?:\d{4}|\d{1,2}:\d{2}).*?wrote:.*$", re.IGNORECASE | re.MULTILINE),
]

TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
BLANK_RUN_RE = re.compile(r"\n{3,}")
HSPACE_RUN_RE = re.compile(r"[ \t]{2,}")


# ------------------------------
# CLEANING
# ------------------------------

def replace_urls(text: str) -> str:
    return URL_RE.sub(LINK_PLACEHOLDER, text)


def strip_footers(text: str) -> str:
    for pattern in FOOTER_PATTERNS:
        text = pattern.sub("", text)
    return text


def strip_quoted_replies(text: str) -> str:
    """Drop quoted lines and the "On ... wrote:" lines that introduce them."""
    text = QUOTED_LINE_RE.sub("", text)
    for pattern in ON_WROTE_PATTERNS:
        text = pattern.sub("", text)
    return text


def collapse_whitespace(text: str) -> str:
    """At most one blank line between paragraphs, single spaces inside lines."""
    text = TRAILING_WS_RE.sub("", text)
    text = BLANK_RUN_RE.sub("\n\n", text)
    text = HSPACE_RUN_RE.sub(" ", text)
    return text.strip()


def clean_email_body(raw_body: str) -> str:
    """
    Remove links, boilerplate and quoted history from an email body.

    Deterministic and total: empty or missing input returns "".
    """
    if not raw_body:
        return ""

    text = raw_body.replace("\r\n", "\n")
    text = replace_urls(text)
    text = strip_footers(text)
    text = strip_quoted_replies(text)
    return collapse_whitespace(text)
