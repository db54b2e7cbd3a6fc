from mailbrief.assistant.agent import AssistantResponse, Interrupt, MailAssistant, Resume

__all__ = ["AssistantResponse", "Interrupt", "MailAssistant", "Resume"]
