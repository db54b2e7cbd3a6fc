"""LLM client abstraction for running the assistant against Gemini or Claude."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from json_repair import repair_json

from mailbrief.config import get_secret

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 4096


class LLMClient:
    """Unified interface for calling Gemini or Claude APIs."""

    def __init__(
        self,
        provider: str = "gemini",
        model: Optional[str] = None,
        temperature: float = 0.0,
    ):
        self.provider = provider.lower()
        self.temperature = temperature

        if self.provider == "gemini":
            self.model = model or "gemini-2.5-flash"
            self._init_gemini()
        elif self.provider == "claude":
            self.model = model or "claude-haiku-4-5-20251001"
            self._init_claude()
        else:
            raise ValueError(f"Unsupported provider: {provider}. Use 'gemini' or 'claude'.")

    def _init_gemini(self):
        try:
            from google import genai
        except ImportError:
            raise ImportError("Install google-genai: pip install google-genai")

        api_key = get_secret("GEMINI_API_KEY", "gemini")
        if not api_key:
            raise ValueError(
                "GEMINI_API_KEY not found. Either:\n"
                "  • Run: mailbrief set-key gemini\n"
                "  • Or:  export GEMINI_API_KEY='your-key'"
            )
        self._gemini_client = genai.Client(api_key=api_key)

    def _init_claude(self):
        try:
            import anthropic
        except ImportError:
            raise ImportError("Install anthropic: pip install anthropic")

        api_key = get_secret("ANTHROPIC_API_KEY", "claude")
        if not api_key:
            raise ValueError(
                "ANTHROPIC_API_KEY not found. Either:\n"
                "  • Run: mailbrief set-key claude\n"
                "  • Or:  export ANTHROPIC_API_KEY='sk-ant-...'"
            )
        self._claude_client = anthropic.Anthropic(api_key=api_key)

    def run(self, system_prompt: str, user_message: str) -> str:
        """Send system + user message to the LLM and return the text response."""
        if self.provider == "gemini":
            return self._run_gemini(system_prompt, user_message)
        return self._run_claude(system_prompt, user_message)

    def _run_gemini(self, system_prompt: str, user_message: str) -> str:
        from google.genai import types

        config = types.GenerateContentConfig(
            system_instruction=system_prompt,
            temperature=self.temperature,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )
        response = self._gemini_client.models.generate_content(
            model=self.model,
            contents=user_message,
            config=config,
        )

        # Skip thinking parts
        text_parts = []
        if response.candidates and response.candidates[0].content:
            for part in response.candidates[0].content.parts:
                if part.text and not getattr(part, "thought", False):
                    text_parts.append(part.text)

        return "".join(text_parts)

    def _run_claude(self, system_prompt: str, user_message: str) -> str:
        response = self._claude_client.messages.create(
            model=self.model,
            max_tokens=MAX_OUTPUT_TOKENS,
            temperature=self.temperature,
            system=system_prompt,
            messages=[{"role": "user", "content": user_message}],
        )
        return response.content[0].text


def parse_json_reply(raw: str) -> Dict[str, Any]:
    """Parse an LLM reply as a JSON object.

    Strips markdown fences, then falls back to json_repair. Anything that
    still isn't an object comes back as ``{"raw_text": raw}``.
    """
    cleaned = (raw or "").strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [line for line in lines if not line.strip().startswith("```")]
        cleaned = "\n".join(lines)

    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.debug("Strict JSON parse failed (%s), trying repair", e)
        parsed = repair_json(cleaned, return_objects=True)

    if isinstance(parsed, dict):
        return parsed

    logger.warning("LLM response is not a JSON object")
    logger.debug("Raw LLM response:\n%s", raw)
    return {"raw_text": raw}
