from mailbrief.llm.client import LLMClient
from mailbrief.llm.context import wrap_query
from mailbrief.llm.loader import PromptDefinition, default_prompt, load_prompt_file

__all__ = [
    "LLMClient",
    "wrap_query",
    "PromptDefinition",
    "default_prompt",
    "load_prompt_file",
]
