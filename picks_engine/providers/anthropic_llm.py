"""
Picks Engine — Anthropic Generator
────────────────────────────────────
Single-completion, non-streaming text generation. The sync SDK client runs
in the default executor so the event loop stays free.
"""

import asyncio
import logging
from typing import Optional

from anthropic import Anthropic

from picks_engine.config import DEFAULT_MODEL
from picks_engine.errors import ConfigurationError, GenerationError

log = logging.getLogger("pe.llm")


class AnthropicGenerator:

    def __init__(self, api_key: str, default_model: str = DEFAULT_MODEL,
                 client: Optional[Anthropic] = None):
        if client is None:
            if not api_key or "your_" in api_key:
                raise ConfigurationError("Anthropic API key not configured. Please add your API key to continue.")
            client = Anthropic(api_key=api_key)
        self._client = client
        self.default_model = default_model

    @classmethod
    def from_settings(cls, settings) -> Optional["AnthropicGenerator"]:
        """None when no key is configured; generation then fails per request."""
        try:
            return cls(settings.anthropic_api_key, settings.default_model)
        except ConfigurationError as e:
            log.warning(f"AI generation disabled: {e}")
            return None

    async def generate(self, prompt: str, temperature: float, max_tokens: int,
                       model: Optional[str] = None) -> str:
        model = model or self.default_model
        try:
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(None, lambda: self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                messages=[{"role": "user", "content": prompt}],
            ))
        except Exception as e:
            log.error(f"Claude API error: {e}")
            raise GenerationError(f"AI generation failed: {e}") from e

        text = "".join(getattr(block, "text", "") for block in response.content).strip()
        if not text:
            raise GenerationError("AI returned an empty response")
        return text
