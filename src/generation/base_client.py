# src/generation/base_client.py - v1
"""Abstract interface for code generation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod

from nuggetwise.generation.models import GenerationResult


class BaseGenerationClient(ABC):
    """Unified interface for the downstream generation call.

    Implementations raise ``ProviderCallError`` with a failure kind and the
    cost billed for the failed call.
    """

    @abstractmethod
    async def generate(self, prompt_text: str, model_tier: str | None = None) -> GenerationResult:
        """Generate code from a builder prompt."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (e.g. 'v0')."""
