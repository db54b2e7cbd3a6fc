"""Unit tests for email body cleaning."""

import re

import pytest

from mailbrief.digest.cleaner import URL_RE, clean_email_body


def test_empty_input_returns_empty_string():
    assert clean_email_body("") == ""
    assert clean_email_body(None) == ""


def test_urls_become_link_placeholder():
    cleaned = clean_email_body("See https://example.com/path?x=1 for details")
    assert cleaned == "See [link] for details"


def test_url_inside_parentheses_keeps_closing_paren():
    assert clean_email_body("Docs (http://docs.example.com) here") == "Docs ([link]) here"


def test_footer_lines_are_removed():
    body = (
        "Your package has shipped.\n"
        "You received this email because you ordered from us.\n"
        "To unsubscribe click the link below\n"
        "© 2024 Acme Inc. All rights reserved.\n"
        "1600 Amphitheatre Parkway, Mountain View"
    )
    cleaned = clean_email_body(body)
    assert cleaned.startswith("Your package has shipped.")
    assert "received this email" not in cleaned.lower()
    assert "unsubscribe" not in cleaned.lower()
    assert "©" not in cleaned
    assert "Amphitheatre" not in cleaned


def test_view_in_browser_line_removed_after_url_replacement():
    body = "Hello\nView this email in your browser: https://mail.example.com/v/123"
    assert clean_email_body(body) == "Hello"


def test_year_in_sentence_is_not_an_address():
    body = "We moved in 2019 street parties are fun"
    assert clean_email_body(body) == body


def test_quoted_reply_and_attribution_are_removed():
    body = (
        "Sounds good, see you then.\n"
        "\n"
        "On Mon, Jan 5, 2025 at 10:00 AM Jane <jane@example.com> wrote:\n"
        "> Can we meet on Friday?\n"
        ">> Earlier message"
    )
    assert clean_email_body(body) == "Sounds good, see you then."


def test_numeric_attribution_line_removed():
    body = "Thanks!\nOn 3/15/2025 10:02, Bob Smith wrote:\n> hi"
    assert clean_email_body(body) == "Thanks!"


def test_indented_quote_does_not_survive_as_leading_line():
    cleaned = clean_email_body("   > quoted reply\nactual text")
    assert cleaned == "actual text"


def test_whitespace_is_collapsed():
    body = "Hi   there\t\tfriend\n\n\n\n\nBye"
    assert clean_email_body(body) == "Hi there friend\n\nBye"


def test_whitespace_only_lines_count_as_blank():
    body = "Top\n  \n\t\n   \nBottom"
    assert clean_email_body(body) == "Top\n\nBottom"


def test_crlf_is_normalized():
    assert clean_email_body("One\r\n\r\n\r\n\r\nTwo") == "One\n\nTwo"


@pytest.mark.parametrize("body", [
    "Visit https://a.example.com and http://b.example.org/x now",
    "> a\n> b\nreply\n\n\n\n> c",
    "x\n\n\n\n\n\ny\n \n \n \nz",
    "   \n> indented\n  text https://t.co/abc  \n\n\n",
])
def test_cleaned_output_invariants(body):
    cleaned = clean_email_body(body)
    assert not URL_RE.search(cleaned)
    assert not any(line.startswith(">") for line in cleaned.split("\n"))
    assert not re.search(r"\n\s*\n\s*\n", cleaned)
