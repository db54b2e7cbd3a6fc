from mailbrief.sources.base import MessageHeaders, RawMessage
from mailbrief.sources.gmail import GmailClient, GmailError, message_from_payload

__all__ = [
    "MessageHeaders",
    "RawMessage",
    "GmailClient",
    "GmailError",
    "message_from_payload",
]
