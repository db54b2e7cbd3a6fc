"""Tests for the assistant loop with a fake mailbox and a scripted LLM."""

import json

from mailbrief.assistant.agent import APPROVE, REJECT, MailAssistant, Resume, parse_step
from mailbrief.context.store import ContextState
from tests.conftest import FakeMailbox, ScriptedLLM, make_message


def _assistant(llm, messages=(), **kwargs):
    mailbox = FakeMailbox(list(messages))
    return MailAssistant(mailbox, llm, state=ContextState(), **kwargs), mailbox


def test_parse_step_variants():
    assert parse_step('{"tool": "read_email", "args": {"message_id": "m1"}}').tool == "read_email"
    assert parse_step('```json\n{"tool": null, "reply": "hi"}\n```').reply == "hi"
    assert parse_step('{"tool": "None", "args": "bad", "reply": null}').tool is None
    assert parse_step("Just plain text").reply == "Just plain text"


def test_read_email_caches_digest(invoice_message):
    assistant, mailbox = _assistant(ScriptedLLM(), [invoice_message])

    first = json.loads(assistant.read_email("inv1"))
    second = json.loads(assistant.read_email("inv1"))

    assert mailbox.fetches == ["inv1"]
    assert first["email"]["type"] == "transactional"
    assert second["email"]["cachedAt"] == first["email"]["cachedAt"]
    assert assistant.state.active_ids == ["inv1"]


def test_first_query_has_no_context_block():
    llm = ScriptedLLM({"tool": None, "reply": "Hello!"})
    assistant, _ = _assistant(llm)

    response = assistant.handle_query("hi")

    assert response.reply == "Hello!"
    assert llm.prompts == ["hi"]


def test_follow_up_query_gets_context(invoice_message):
    llm = ScriptedLLM(
        {"tool": "read_email", "args": {"message_id": "inv1"}, "reply": ""},
        {"tool": None, "reply": "It is an invoice for $250.00."},
        {"tool": None, "reply": "It is due 3/15/2025."},
    )
    assistant, mailbox = _assistant(llm, [invoice_message])

    first = assistant.handle_query("What is my latest email?")
    assert first.reply == "It is an invoice for $250.00."
    assert first.tool_calls == ["read_email"]
    assert "TOOL RESULT (read_email)" in llm.prompts[1]

    second = assistant.handle_query("When is it due?")
    assert second.reply == "It is due 3/15/2025."
    prompt = llm.prompts[2]
    assert prompt.startswith("[CONTEXT]\nCURRENTLY DISCUSSED EMAILS:")
    assert "Subject: Your invoice" in prompt
    assert "user: What is my latest email?" in prompt
    assert prompt.endswith("[/CONTEXT]\n\nUser: When is it due?")
    assert mailbox.fetches == ["inv1"]
    assert len(assistant.state.history) == 4


def test_send_email_waits_for_approval():
    args = {"to": "bob@x.com", "subject": "Lunch", "body": "Dear Bob,\n\nLunch Friday?\n\nBest regards,\nOui"}
    llm = ScriptedLLM(
        {"tool": "send_email", "args": args, "reply": "Sending the invite."},
        {"tool": None, "reply": "Sent!"},
    )
    assistant, mailbox = _assistant(llm)

    paused = assistant.handle_query("Invite Bob to lunch")
    assert len(paused.interrupts) == 1
    interrupt = paused.interrupts[0]
    assert interrupt.tool == "send_email"
    assert mailbox.sent == []
    assert assistant.state.history == []

    done = assistant.handle_query("", resume=Resume(interrupt.id, APPROVE))
    assert done.reply == "Sent!"
    assert mailbox.sent[0]["to"] == "bob@x.com"
    assert done.tool_calls == ["send_email"]
    assert [t.content for t in assistant.state.history] == ["Invite Bob to lunch", "Sent!"]
    assert assistant.pending_interrupts == []


def test_rejected_send_is_not_executed():
    args = {"to": "bob@x.com", "subject": "Hi", "body": "Hello Bob"}
    llm = ScriptedLLM(
        {"tool": "send_email", "args": args},
        {"tool": None, "reply": "Okay, I won't send it."},
    )
    assistant, mailbox = _assistant(llm)

    paused = assistant.handle_query("Say hi to Bob")
    done = assistant.handle_query("", resume=Resume(paused.interrupts[0].id, REJECT))

    assert mailbox.sent == []
    assert done.reply == "Okay, I won't send it."
    assert "rejected" in llm.prompts[1]


def test_empty_body_send_is_refused_without_interrupt():
    llm = ScriptedLLM(
        {"tool": "send_email", "args": {"to": "bob@x.com", "subject": "Hi", "body": "  "}},
        {"tool": None, "reply": "I need the message text."},
    )
    assistant, mailbox = _assistant(llm)

    response = assistant.handle_query("Email Bob")

    assert response.interrupts == []
    assert mailbox.sent == []
    assert "Email body is empty" in llm.prompts[1]


def test_unknown_resume_id():
    assistant, _ = _assistant(ScriptedLLM())
    response = assistant.handle_query("", resume=Resume("nope", APPROVE))
    assert "No pending action" in response.reply


def test_tool_failures_become_error_payloads():
    llm = ScriptedLLM(
        {"tool": "read_email", "args": {"message_id": "missing"}},
        {"tool": "explode", "args": {}},
        {"tool": "mark_read", "args": {"wrong_arg": 1}},
        {"tool": None, "reply": "Could not find it."},
    )
    assistant, _ = _assistant(llm)

    response = assistant.handle_query("Read missing")

    assert response.reply == "Could not find it."
    assert "404" in llm.prompts[1]
    assert "Unknown tool: explode" in llm.prompts[2]
    assert '"error"' in llm.prompts[3]
    assert assistant.state.active_ids == []


def test_max_steps_stops_the_loop():
    step = {"tool": "get_emails", "args": {"max_results": 1}}
    llm = ScriptedLLM(step, step)
    assistant, _ = _assistant(llm, [make_message("m1")], max_steps=2)

    response = assistant.handle_query("loop forever")

    assert "couldn't finish" in response.reply
    assert response.tool_calls == ["get_emails", "get_emails"]


def test_recorded_reply_is_truncated():
    llm = ScriptedLLM({"tool": None, "reply": "r" * 500})
    assistant, _ = _assistant(llm)

    assistant.handle_query("long please")

    assert assistant.state.history[-1].content == "r" * 300


def test_label_and_archive_tools():
    llm = ScriptedLLM(
        {"tool": "label_emails", "args": {"message_ids": ["m1"], "add_labels": ["IMPORTANT"]}},
        {"tool": "archive_emails", "args": {"message_ids": ["m1", "m2"]}},
        {"tool": None, "reply": "Done."},
    )
    assistant, mailbox = _assistant(llm)

    assistant.handle_query("tidy up")

    assert mailbox.label_calls[0] == (["m1"], ["IMPORTANT"], None)
    assert mailbox.label_calls[1] == (["m1", "m2"], None, ["INBOX"])
