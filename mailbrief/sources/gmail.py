"""Gmail reader/writer: talks to the Gmail REST API with OAuth or a bearer token.

The pure helpers at the top turn a Gmail ``messages.get`` payload into a
``RawMessage``; they never raise on malformed payloads. ``GmailClient``
wraps the handful of endpoints the assistant needs and raises
``GmailError`` on HTTP failures.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from email.utils import formatdate
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests
from bs4 import BeautifulSoup
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import AuthorizedSession

from mailbrief.config import DEFAULT_GMAIL_API_URL, get_secret
from mailbrief.sources.base import MessageHeaders, RawMessage
from mailbrief.sources.gmail_auth import load_credentials

logger = logging.getLogger(__name__)

LISTING_HEADERS = ("From", "Subject", "Date", "To")
SNIPPET_PREVIEW_CHARS = 100
REQUEST_TIMEOUT = 30

# Block elements end a line of text; inline ones (b, a, span) do not.
BLOCK_TAGS = (
    "p", "div", "li", "tr", "table", "blockquote", "section", "article",
    "h1", "h2", "h3", "h4", "h5", "h6",
)
_HSPACE_RE = re.compile(r"[ \t]+")
_BLANK_RUN_RE = re.compile(r"\n{3,}")


class GmailError(Exception):
    """A Gmail API call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# ══════════════════════════════════════════════════════════════════
# Payload parsing
# ══════════════════════════════════════════════════════════════════


def parse_headers(headers: Iterable[Dict[str, Any]]) -> MessageHeaders:
    """Pick From/To/Subject/Date out of a Gmail header list (case-insensitive)."""
    found = {"from": "", "to": "", "subject": "", "date": ""}
    for header in headers or []:
        name = str(header.get("name", "")).lower()
        if name in found:
            found[name] = str(header.get("value", ""))
    return MessageHeaders.from_dict(found)


def decode_base64url(data: Optional[str]) -> str:
    if not data:
        return ""
    padded = data + "=" * (-len(data) % 4)
    try:
        return base64.urlsafe_b64decode(padded).decode("utf-8", errors="replace")
    except (binascii.Error, ValueError):
        return ""


def html_to_text(markup: Optional[str]) -> str:
    """Convert an HTML body to plain text, one line per block element.

    Script, style and head content is dropped. Runs of spaces collapse and
    blank lines collapse to at most one, so the line-oriented cleaner rules
    see the same shape a text/plain part would give them.
    """
    if not markup:
        return ""

    soup = BeautifulSoup(markup, "html.parser")
    for tag in soup(["script", "style", "head"]):
        tag.decompose()
    for br in soup.find_all("br"):
        br.replace_with("\n")
    for block in soup.find_all(list(BLOCK_TAGS)):
        block.append("\n")

    text = soup.get_text().replace("\xa0", " ")
    lines = [_HSPACE_RE.sub(" ", line).strip() for line in text.splitlines()]
    return _BLANK_RUN_RE.sub("\n\n", "\n".join(lines)).strip()


def extract_body(part: Optional[Dict[str, Any]]) -> str:
    """Find the readable body of a MIME part tree.

    Prefers an inline body, then a text/plain child, then a text/html
    child (tags stripped), then recurses into nested multiparts.
    """
    if not part:
        return ""

    data = (part.get("body") or {}).get("data")
    if data:
        decoded = decode_base64url(data)
        if part.get("mimeType") == "text/html":
            return html_to_text(decoded)
        return decoded

    children = part.get("parts") or []
    if not isinstance(children, list):
        return ""

    for mime_type in ("text/plain", "text/html"):
        for child in children:
            child_data = (child.get("body") or {}).get("data")
            if child.get("mimeType") == mime_type and child_data:
                decoded = decode_base64url(child_data)
                return html_to_text(decoded) if mime_type == "text/html" else decoded

    for child in children:
        found = extract_body(child)
        if found:
            return found

    return ""


def message_from_payload(data: Dict[str, Any]) -> RawMessage:
    """Convert a ``messages.get?format=full`` response into a RawMessage."""
    payload = data.get("payload") or {}
    snippet = data.get("snippet") or ""
    body = extract_body(payload) or snippet
    return RawMessage(
        id=str(data.get("id", "")),
        headers=parse_headers(payload.get("headers") or []),
        body=body,
        snippet=snippet,
        thread_id=data.get("threadId"),
        label_ids=tuple(data.get("labelIds") or ()),
        internal_date=data.get("internalDate"),
    )


def listing_entry(data: Dict[str, Any]) -> Dict[str, Any]:
    """Trim a full message response down to what a listing shows."""
    payload = data.get("payload") or {}
    headers = [h for h in payload.get("headers") or [] if h.get("name") in LISTING_HEADERS]
    return {
        "id": data.get("id"),
        "threadId": data.get("threadId"),
        "labelIds": data.get("labelIds") or [],
        "snippet": (data.get("snippet") or "")[:SNIPPET_PREVIEW_CHARS],
        "payload": {"headers": headers},
        "internalDate": data.get("internalDate"),
    }


def build_raw_email(
    to: str,
    subject: str,
    body: str,
    cc: Optional[str] = None,
    bcc: Optional[str] = None,
    reply_to: Optional[str] = None,
    html_body: bool = False,
) -> str:
    """Assemble an RFC 2822 message and base64url-encode it without padding."""
    headers = [
        "MIME-Version: 1.0",
        f"Date: {formatdate(usegmt=True)}",
        f"To: {to}",
        f"Subject: {subject}" if subject else "",
        f"Cc: {cc}" if cc else "",
        f"Bcc: {bcc}" if bcc else "",
        f"Reply-To: {reply_to}" if reply_to else "",
        f"Content-Type: {'text/html' if html_body else 'text/plain'}; charset=utf-8",
        "Content-Transfer-Encoding: 8bit",
    ]
    # The blank line between headers and body is mandatory.
    raw = "\r\n".join(h for h in headers if h) + "\r\n\r\n" + (body or "")
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")


# ══════════════════════════════════════════════════════════════════
# Client
# ══════════════════════════════════════════════════════════════════


class GmailClient:
    """Thin Gmail REST client for the operations the assistant exposes."""

    def __init__(
        self,
        access_token: Optional[str] = None,
        api_url: str = DEFAULT_GMAIL_API_URL,
        session: Optional[requests.Session] = None,
        token_path: Optional[Path] = None,
    ):
        """Authenticate with, in order: ``access_token``, the saved OAuth
        token from ``mailbrief auth`` (refreshed as it expires), or a raw
        ``GMAIL_ACCESS_TOKEN`` from env or Keychain.
        """
        self.api_url = api_url.rstrip("/")

        if access_token is None and session is None:
            credentials = load_credentials(token_path)
            if credentials is not None:
                self._session = AuthorizedSession(credentials)
                return

        token = access_token or get_secret("GMAIL_ACCESS_TOKEN", "gmail")
        if not token:
            raise ValueError(
                "No Gmail credentials found. Either:\n"
                "  • Run: mailbrief auth\n"
                "  • Or:  mailbrief set-key gmail  (short-lived access token)\n"
                "  • Or:  export GMAIL_ACCESS_TOKEN='ya29...'"
            )
        self._session = session or requests.Session()
        self._session.headers.update({"Authorization": f"Bearer {token}"})

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.api_url}{path}"
        try:
            resp = self._session.request(method, url, timeout=REQUEST_TIMEOUT, **kwargs)
        except (requests.RequestException, GoogleAuthError) as exc:
            raise GmailError(f"Gmail request failed: {exc}") from exc

        if resp.status_code >= 400:
            logger.warning("Gmail %s %s -> %s", method, path, resp.status_code)
            raise GmailError(
                f"Gmail API error {resp.status_code}: {resp.text[:300]}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return {}
        return resp.json()

    def list_emails(self, max_results: int = 10, query: str = "") -> Dict[str, Any]:
        """List messages matching a Gmail search query, with their headers."""
        listing = self._request(
            "GET", "/messages", params={"maxResults": max_results, "q": query},
        )
        refs = listing.get("messages") or []
        if not refs:
            return {"messages": [], "resultSizeEstimate": 0}

        messages = [
            listing_entry(self._request("GET", f"/messages/{ref['id']}", params={"format": "full"}))
            for ref in refs
        ]
        return {"messages": messages, "resultSizeEstimate": len(messages)}

    def get_email(self, message_id: str) -> RawMessage:
        data = self._request("GET", f"/messages/{message_id}", params={"format": "full"})
        return message_from_payload(data)

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        reply_to: Optional[str] = None,
        html: bool = False,
    ) -> Dict[str, Any]:
        raw = build_raw_email(to, subject, body, cc=cc, bcc=bcc, reply_to=reply_to, html_body=html)
        logger.info("Sending email to %s (%d body chars)", to, len(body or ""))
        return self._request("POST", "/messages/send", json={"raw": raw})

    def modify_labels(
        self,
        message_ids: List[str],
        add_labels: Optional[List[str]] = None,
        remove_labels: Optional[List[str]] = None,
    ) -> List[Dict[str, Any]]:
        body = {"addLabelIds": add_labels or [], "removeLabelIds": remove_labels or []}
        return [
            self._request("POST", f"/messages/{message_id}/modify", json=body)
            for message_id in message_ids
        ]

    def archive(self, message_ids: List[str]) -> Dict[str, Any]:
        self.modify_labels(message_ids, remove_labels=["INBOX"])
        return {"success": True, "count": len(message_ids)}

    def mark_read(self, message_ids: List[str], read: bool = True) -> Dict[str, Any]:
        if read:
            self.modify_labels(message_ids, remove_labels=["UNREAD"])
        else:
            self.modify_labels(message_ids, add_labels=["UNREAD"])
        return {"success": True, "count": len(message_ids)}
