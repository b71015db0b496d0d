# src/llm/base_client.py - v1
"""Abstract completion client interface.

Adapters must raise ``ProviderCallError`` (already classified) for every
provider-side failure, never the vendor SDK's own exception types.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from nuggetwise.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all completion providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4000,
        temperature: float = 0.7,
    ) -> LLMResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, anthropic)."""

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Model identifier used for pricing lookups."""
