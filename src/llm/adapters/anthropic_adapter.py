# src/llm/adapters/anthropic_adapter.py - v2
"""Anthropic Claude adapter implementing BaseLLMClient.

Uses the official anthropic SDK.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from nuggetwise.core.errors import ProviderCallError
from nuggetwise.llm.base_client import BaseLLMClient
from nuggetwise.llm.models import LLMResponse, Message

logger = logging.getLogger(__name__)


class AnthropicAdapter(BaseLLMClient):
    """Adapter for Anthropic Claude models."""

    def __init__(
        self,
        model: str = "claude-sonnet-4-20250514",
        api_key: str | None = None,
        **kwargs: Any,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self.__client = None  # Lazy initialization

    @property
    def _client(self):
        """Lazy-init Anthropic client (only on first API call)."""
        if self.__client is None:
            import anthropic

            self.__client = anthropic.AsyncAnthropic(api_key=self._api_key or "", max_retries=0)
        return self.__client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Text completion via Anthropic Messages API."""
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            # System prompt travels separately in the Messages API
            "messages": [
                {"role": m.role, "content": m.content} for m in messages if m.role != "system"
            ],
        }
        if system:
            kwargs["system"] = system

        start = time.monotonic()
        try:
            response = await self._client.messages.create(**kwargs)
        except Exception as exc:
            raise _translate_error(exc) from exc
        latency_ms = int((time.monotonic() - start) * 1000)

        return LLMResponse(
            content=_extract_text(response),
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            provider="anthropic",
            latency_ms=latency_ms,
            raw_response=response,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def model_name(self) -> str:
        return self._model


def _extract_text(response: Any) -> str:
    """Concatenate text blocks from an Anthropic response."""
    return "".join(
        block.text for block in response.content if getattr(block, "type", None) == "text"
    )


def _translate_error(exc: Exception) -> ProviderCallError:
    """Map an anthropic SDK exception onto the provider failure taxonomy."""
    import anthropic

    status = getattr(exc, "status_code", None)
    if isinstance(exc, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        kind = "authentication"
    elif isinstance(exc, anthropic.RateLimitError):
        kind = "rate_limit"
    elif isinstance(exc, (anthropic.APITimeoutError, anthropic.APIConnectionError)):
        kind = "timeout"
    elif isinstance(exc, anthropic.InternalServerError):
        kind = "server_error"
    elif isinstance(exc, anthropic.APIStatusError) and status is not None and status >= 500:
        kind = "server_error"
    else:
        kind = "unknown"
    logger.debug("Anthropic call failed (%s): %s", kind, exc)
    return ProviderCallError(f"Anthropic API error: {exc}", kind=kind, status_code=status)
