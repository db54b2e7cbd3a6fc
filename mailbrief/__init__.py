"""mailbrief: conversational front-end over a mailbox with digest memory."""

__version__ = "0.1.0"
