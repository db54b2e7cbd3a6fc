"""Build LLM-facing strings: the [CONTEXT] frame and tool-result payloads."""

from __future__ import annotations

import json
from typing import Any, Dict

from mailbrief.digest.builder import Digest


def wrap_query(query: str, context_block: str) -> str:
    """Prefix a user query with the rendered context block.

    An empty block means there is nothing to inject; the query is
    returned untouched.
    """
    if not context_block:
        return query
    return f"[CONTEXT]\n{context_block}\n[/CONTEXT]\n\nUser: {query}"


def format_digest_payload(digest: Digest) -> str:
    """Tool result for read_email: the whole digest as JSON."""
    return json.dumps({"success": True, "email": digest.to_dict()}, ensure_ascii=False)


def format_error_payload(message: str, **extra: Any) -> str:
    payload: Dict[str, Any] = {"error": message}
    payload.update(extra)
    return json.dumps(payload, ensure_ascii=False)


def header_value(entry: Dict[str, Any], name: str) -> str:
    """Read a header off a listing entry (``payload.headers``)."""
    for header in (entry.get("payload") or {}).get("headers") or []:
        if str(header.get("name", "")).lower() == name.lower():
            return str(header.get("value", ""))
    return ""

