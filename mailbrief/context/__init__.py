from mailbrief.context.store import ContextState, ConversationTurn

__all__ = ["ContextState", "ConversationTurn"]
