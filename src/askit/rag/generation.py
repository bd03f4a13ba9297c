"""Chat-completion client used to compose grounded answers."""

from __future__ import annotations

import logging
from typing import Any

import openai
from openai import AsyncOpenAI

from askit.core.config import LLMSettings, OpenAISettings
from askit.rag.errors import GenerationError, ProviderErrorKind, classify_openai_error

logger = logging.getLogger(__name__)


class GenerationClient:
    """Send a single prompt and return the generated text, or ``None`` when
    the provider answered with no usable content."""

    def __init__(
        self,
        settings: OpenAISettings,
        llm: LLMSettings | None = None,
        *,
        client: Any | None = None,
    ) -> None:
        self._settings = settings
        self._llm = llm or LLMSettings()
        self._client = client

    async def generate(self, prompt: str) -> str | None:
        client = self._load_client()
        try:
            response = await client.chat.completions.create(
                model=self._settings.chat_model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._llm.temperature,
                max_tokens=self._llm.max_tokens,
            )
        except openai.OpenAIError as exc:
            kind, message = classify_openai_error(exc)
            logger.warning(
                "generation request failed",
                extra={"kind": kind.value, "model": self._settings.chat_model},
            )
            raise GenerationError(kind, message) from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError):
            logger.warning("generation response had unexpected shape")
            return None
        if not isinstance(content, str) or not content.strip():
            return None
        return content.strip()

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()

    def _load_client(self) -> Any:
        if self._client is not None:
            return self._client
        if not self._settings.api_key:
            raise GenerationError(
                ProviderErrorKind.UNAUTHORIZED, "generation api key not configured"
            )
        self._client = AsyncOpenAI(
            api_key=self._settings.api_key,
            base_url=self._settings.base_url,
            timeout=self._settings.timeout_seconds,
        )
        return self._client
