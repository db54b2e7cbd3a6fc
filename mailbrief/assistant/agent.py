"""MailAssistant: the conversational loop over a mailbox.

Each turn:
    1. Render the session's ContextState and prepend it to the query.
    2. Ask the LLM for a JSON step: call a tool, or reply to the user.
    3. Feed tool results back until the LLM replies or max_steps is hit.
    4. Record the exchange so the next turn can see it.

read_email goes through the digest cache, so follow-up questions about a
message never re-fetch it. send_email is never executed directly: the
turn stops with an Interrupt, and the caller resumes it with approve or
reject.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from mailbrief.context.store import ContextState
from mailbrief.digest.builder import build_digest
from mailbrief.llm.client import parse_json_reply
from mailbrief.llm.context import format_digest_payload, format_error_payload, wrap_query
from mailbrief.llm.loader import PromptDefinition, default_prompt

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 6
RECORDED_REPLY_CHARS = 300
DEFAULT_LIST_RESULTS = 3

APPROVE = "approve"
REJECT = "reject"

# Tools that pause the turn for human confirmation.
APPROVAL_TOOLS = frozenset({"send_email"})


class AgentStep(BaseModel):
    """One validated LLM step."""

    tool: Optional[str] = None
    args: Dict[str, Any] = Field(default_factory=dict)
    reply: str = ""

    @field_validator("tool", mode="before")
    @classmethod
    def normalize_tool(cls, v):
        if v is None:
            return None
        v = str(v).strip().lower()
        return v if v and v not in ("null", "none") else None

    @field_validator("args", mode="before")
    @classmethod
    def coerce_args(cls, v):
        return v if isinstance(v, dict) else {}

    @field_validator("reply", mode="before")
    @classmethod
    def coerce_reply(cls, v):
        return "" if v is None else str(v)


@dataclass
class Interrupt:
    """A tool call waiting for the user's approve/reject decision."""

    id: str
    tool: str
    args: Dict[str, Any]
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "value": {"tool": self.tool, "args": self.args, "description": self.description}}


@dataclass
class Resume:
    interrupt_id: str
    decision: str


@dataclass
class AssistantResponse:
    reply: str
    interrupts: List[Interrupt] = field(default_factory=list)
    tool_calls: List[str] = field(default_factory=list)


@dataclass
class _PendingTurn:
    query: str
    transcript: List[str]
    tool: str
    args: Dict[str, Any]
    tool_calls: List[str]


def parse_step(raw: str) -> AgentStep:
    """Turn raw LLM output into an AgentStep; unparseable text becomes a reply."""
    data = parse_json_reply(raw)
    if "raw_text" in data:
        return AgentStep(reply=raw.strip())
    try:
        return AgentStep.model_validate(data)
    except ValidationError as exc:
        logger.warning("Invalid agent step, treating as plain reply: %s", exc)
        return AgentStep(reply=raw.strip())


class MailAssistant:
    """Drives the LLM over the mailbox tools with per-session context."""

    def __init__(
        self,
        mailbox: Any,
        llm: Any,
        state: Optional[ContextState] = None,
        prompt: Optional[PromptDefinition] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
    ):
        self.mailbox = mailbox
        self.llm = llm
        self.state = state if state is not None else ContextState()
        self.prompt = prompt or default_prompt()
        self.max_steps = max_steps
        self._pending: Dict[str, _PendingTurn] = {}

    @property
    def pending_interrupts(self) -> List[str]:
        return list(self._pending)

    # ══════════════════════════════════════════════════════════════
    # Tools
    # ══════════════════════════════════════════════════════════════

    def _tools(self) -> Dict[str, Callable[..., str]]:
        return {
            "get_emails": self.get_emails,
            "read_email": self.read_email,
            "send_email": self.send_email,
            "label_emails": self.label_emails,
            "archive_emails": self.archive_emails,
            "mark_read": self.mark_read,
        }

    def get_emails(self, max_results: int = DEFAULT_LIST_RESULTS, query: str = "") -> str:
        listing = self.mailbox.list_emails(max_results=int(max_results), query=query or "")
        return json.dumps(listing, ensure_ascii=False)

    def read_email(self, message_id: str) -> str:
        """Return the digest for a message, fetching and caching on a miss."""
        digest = self.state.get_cached_digest(message_id)
        if digest is None:
            message = self.mailbox.get_email(message_id)
            digest = self.state.cache_digest(message_id, build_digest(message))
            logger.debug("Cached digest for %s (%s)", message_id, digest.category)
        self.state.add_active_emails(message_id)
        return format_digest_payload(digest)

    def send_email(
        self,
        to: str,
        subject: str = "",
        body: str = "",
        cc: Optional[str] = None,
        bcc: Optional[str] = None,
        html: bool = False,
    ) -> str:
        if not body or not body.strip():
            return format_error_payload("Email body is empty. Please provide the message body text.")
        result = self.mailbox.send_email(to, subject, body.strip(), cc=cc, bcc=bcc, html=html)
        return json.dumps({"success": True, "messageId": result.get("id"), "to": to, "subject": subject})

    def label_emails(
        self,
        message_ids: List[str],
        add_labels: Optional[List[str]] = None,
        remove_labels: Optional[List[str]] = None,
    ) -> str:
        self.mailbox.modify_labels(message_ids, add_labels=add_labels, remove_labels=remove_labels)
        return json.dumps({"success": True, "count": len(message_ids)})

    def archive_emails(self, message_ids: List[str]) -> str:
        return json.dumps(self.mailbox.archive(message_ids))

    def mark_read(self, message_ids: List[str], read: bool = True) -> str:
        return json.dumps(self.mailbox.mark_read(message_ids, read=read))

    def call_tool(self, name: str, args: Dict[str, Any]) -> str:
        """Run a tool. Failures come back as error payloads, never exceptions."""
        handler = self._tools().get(name)
        if not handler:
            return format_error_payload(f"Unknown tool: {name}")
        try:
            return handler(**args)
        except Exception as e:
            logger.warning("Tool %s failed: %s", name, e)
            return format_error_payload(str(e))

    # ══════════════════════════════════════════════════════════════
    # Turn handling
    # ══════════════════════════════════════════════════════════════

    def handle_query(self, query: str, resume: Optional[Resume] = None) -> AssistantResponse:
        """Answer a user query, or continue a turn paused on an interrupt.

        The context block is only injected for fresh queries.
        """
        if resume is not None:
            return self._resume(resume)

        enriched = wrap_query(query, self.state.render_context())
        return self._run_turn(query, [enriched], [])

    def _resume(self, resume: Resume) -> AssistantResponse:
        pending = self._pending.pop(resume.interrupt_id, None)
        if pending is None:
            return AssistantResponse(reply=f"No pending action with id {resume.interrupt_id}.")

        if resume.decision == APPROVE:
            result = self.call_tool(pending.tool, pending.args)
            pending.tool_calls.append(pending.tool)
        else:
            result = format_error_payload(f"The user rejected the {pending.tool} call.")

        pending.transcript.append(f"TOOL RESULT ({pending.tool}): {result}")
        return self._run_turn(pending.query, pending.transcript, pending.tool_calls)

    def _run_turn(self, query: str, transcript: List[str], tool_calls: List[str]) -> AssistantResponse:
        reply = ""
        for _ in range(self.max_steps):
            raw = self.llm.run(self.prompt.system_prompt, "\n\n".join(transcript))
            step = parse_step(raw)

            if step.tool is None:
                reply = step.reply
                break

            transcript.append(f"ASSISTANT: {raw.strip()}")

            if step.tool in APPROVAL_TOOLS and str(step.args.get("body") or "").strip():
                interrupt = Interrupt(
                    id=uuid.uuid4().hex[:12],
                    tool=step.tool,
                    args=step.args,
                    description=step.reply or f"Approve {step.tool}?",
                )
                self._pending[interrupt.id] = _PendingTurn(query, transcript, step.tool, step.args, tool_calls)
                logger.info("Turn paused for approval of %s (%s)", step.tool, interrupt.id)
                return AssistantResponse(reply=step.reply, interrupts=[interrupt], tool_calls=tool_calls)

            result = self.call_tool(step.tool, step.args)
            tool_calls.append(step.tool)
            transcript.append(f"TOOL RESULT ({step.tool}): {result}")
        else:
            logger.warning("Turn hit max_steps=%d without a final reply", self.max_steps)
            reply = "I couldn't finish that request in the allowed number of steps."

        if query and reply:
            self.state.record_exchange(query, reply[:RECORDED_REPLY_CHARS])
        return AssistantResponse(reply=reply, tool_calls=tool_calls)
