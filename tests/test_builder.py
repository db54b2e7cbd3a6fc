"""Unit tests for digest building."""

from mailbrief.digest.builder import SUMMARY_MAX_CHARS, build_digest, truncate
from mailbrief.sources.base import RawMessage
from tests.conftest import make_message


def test_missing_fields_fall_back_to_placeholders():
    digest = build_digest(RawMessage(id="m1"))
    assert digest.sender == "Unknown"
    assert digest.subject == "No Subject"
    assert digest.to == ""
    assert digest.date == ""
    assert digest.summary == "No readable content"
    assert digest.category == "personal"
    assert digest.full_body_length == 0
    assert digest.action_required is False
    assert digest.cached_at is None


def test_snippet_used_when_body_empty():
    digest = build_digest(make_message(snippet="Short note here"))
    assert digest.summary == "Short note here"


def test_summary_joins_key_phrases():
    body = "The quarterly report is attached for review. Numbers look strong this quarter."
    digest = build_digest(make_message(body=body))
    assert digest.summary == "The quarterly report is attached for review. Numbers look strong this quarter"
    assert len(digest.key_points) == 2


def test_summary_capped_with_ellipsis():
    body = ". ".join(["x" * 150, "y" * 150, "z" * 150])
    digest = build_digest(make_message(body=body))
    assert len(digest.summary) == SUMMARY_MAX_CHARS
    assert digest.summary.endswith("...")
    assert digest.summary.startswith("x" * 150 + ". " + "y" * 150)


def test_summary_falls_back_to_body_prefix():
    body = "w" * 1000
    digest = build_digest(make_message(body=body))
    assert digest.key_points == ()
    assert digest.summary == "w" * 300


def test_full_body_length_counts_raw_body():
    body = "Read https://example.com/a/very/long/tracking/url now"
    digest = build_digest(make_message(body=body))
    assert digest.full_body_length == len(body)


def test_action_required_tracks_action_items(invoice_message):
    digest = build_digest(invoice_message)
    assert digest.action_items
    assert digest.action_required is True

    quiet = build_digest(make_message(body="Lovely weather in the mountains today."))
    assert quiet.action_items == ()
    assert quiet.action_required is False


def test_meeting_invite_digest():
    digest = build_digest(make_message(
        subject="Meeting invite: Q3 planning", body="please confirm by Friday",
    ))
    assert digest.category == "event"
    assert "please confirm by Friday" in digest.action_items
    assert "Friday" in digest.dates


def test_invoice_digest(invoice_message):
    digest = build_digest(invoice_message)
    assert digest.category == "transactional"
    assert digest.amounts == ("$250.00",)
    assert "3/15/2025" in digest.dates
    assert digest.subject == "Your invoice"


def test_to_dict_uses_wire_names(invoice_message):
    payload = build_digest(invoice_message).to_dict()
    assert set(payload) == {
        "id", "from", "to", "subject", "date", "type", "summary", "keyPoints",
        "actionItems", "dates", "amounts", "actionRequired", "fullBodyLength", "cachedAt",
    }
    assert payload["id"] == "inv1"
    assert payload["from"] == "billing@acme.com"
    assert payload["type"] == "transactional"
    assert isinstance(payload["actionItems"], list)
    assert payload["cachedAt"] is None


def test_truncate():
    assert truncate("abc", 5) == "abc"
    assert truncate("abcdef", 5) == "ab..."
