# src/llm/adapters/openai_adapter.py - v2
"""OpenAI chat-completions adapter implementing BaseLLMClient.

Uses the official openai SDK. SDK exceptions are translated into
classified ``ProviderCallError`` instances.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from nuggetwise.core.errors import ProviderCallError
from nuggetwise.llm.base_client import BaseLLMClient
from nuggetwise.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(self, model: str = "gpt-4", api_key: str = "", **kwargs: Any) -> None:
        self._model = model
        self._api_key = api_key
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init OpenAI client (only on first API call)."""
        if self.__client is None:
            import openai

            self.__client = openai.AsyncOpenAI(api_key=self._api_key, max_retries=0)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        t0 = time.monotonic()
        try:
            resp = await self._client.chat.completions.create(
                model=self._model,
                messages=oai_messages,
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except Exception as exc:
            raise _translate_error(exc) from exc
        latency = int((time.monotonic() - t0) * 1000)

        usage = resp.usage
        content = resp.choices[0].message.content if resp.choices else None
        return LLMResponse(
            content=content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model


def _translate_error(exc: Exception) -> ProviderCallError:
    """Map an openai SDK exception onto the provider failure taxonomy."""
    import openai

    status = getattr(exc, "status_code", None)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        kind = "authentication"
    elif isinstance(exc, openai.RateLimitError):
        kind = "rate_limit"
    elif isinstance(exc, (openai.APITimeoutError, openai.APIConnectionError)):
        kind = "timeout"
    elif isinstance(exc, openai.InternalServerError):
        kind = "server_error"
    elif isinstance(exc, openai.APIStatusError) and status is not None and status >= 500:
        kind = "server_error"
    else:
        kind = "unknown"
    logger.debug("OpenAI call failed (%s): %s", kind, exc)
    return ProviderCallError(f"OpenAI API error: {exc}", kind=kind, status_code=status)
