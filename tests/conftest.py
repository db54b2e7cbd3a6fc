"""Shared fixtures: fake mailbox and scripted LLM collaborators."""

import json

import pytest

from mailbrief.digest.builder import Digest
from mailbrief.sources.base import MessageHeaders, RawMessage
from mailbrief.sources.gmail import GmailError


def make_message(message_id="m1", sender="", subject="", body="", snippet="", to="", date=""):
    return RawMessage(
        id=message_id,
        headers=MessageHeaders(sender=sender, to=to, subject=subject, date=date),
        body=body,
        snippet=snippet,
    )


def make_digest(message_id="m1", **overrides):
    fields = dict(
        message_id=message_id,
        sender="a@x.com",
        to="me@x.com",
        subject="Hi",
        date="",
        category="personal",
        summary="hello",
        key_points=(),
        action_items=(),
        dates=(),
        amounts=(),
        full_body_length=5,
    )
    fields.update(overrides)
    return Digest(**fields)


class FakeMailbox:
    """In-memory stand-in for GmailClient."""

    def __init__(self, messages=None):
        self.messages = {m.id: m for m in (messages or [])}
        self.fetches = []
        self.sent = []
        self.label_calls = []

    def list_emails(self, max_results=10, query=""):
        ids = list(self.messages)[:max_results]
        return {"messages": [{"id": i} for i in ids], "resultSizeEstimate": len(ids)}

    def get_email(self, message_id):
        self.fetches.append(message_id)
        if message_id not in self.messages:
            raise GmailError(f"Gmail API error 404: {message_id} not found", status_code=404)
        return self.messages[message_id]

    def send_email(self, to, subject, body, cc=None, bcc=None, html=False):
        self.sent.append({"to": to, "subject": subject, "body": body})
        return {"id": f"sent-{len(self.sent)}"}

    def modify_labels(self, message_ids, add_labels=None, remove_labels=None):
        self.label_calls.append((list(message_ids), add_labels, remove_labels))
        return [{} for _ in message_ids]

    def archive(self, message_ids):
        self.modify_labels(message_ids, remove_labels=["INBOX"])
        return {"success": True, "count": len(message_ids)}

    def mark_read(self, message_ids, read=True):
        self.modify_labels(message_ids, remove_labels=["UNREAD"] if read else None,
                           add_labels=None if read else ["UNREAD"])
        return {"success": True, "count": len(message_ids)}


class ScriptedLLM:
    """Returns queued replies in order and remembers every prompt."""

    def __init__(self, *replies):
        self.replies = [r if isinstance(r, str) else json.dumps(r) for r in replies]
        self.prompts = []

    def run(self, system_prompt, user_message):
        self.prompts.append(user_message)
        if not self.replies:
            raise AssertionError("ScriptedLLM ran out of replies")
        return self.replies.pop(0)


@pytest.fixture
def invoice_message():
    return make_message(
        "inv1",
        sender="billing@acme.com",
        subject="Your invoice",
        body="Invoice #123 due $250.00 by 3/15/2025\nPlease submit payment before the deadline.",
    )
