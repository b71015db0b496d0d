# src/llm/config.py - v2
"""Per-stage LLM routing with cascade resolution.

Resolution order:
  1. Per-stage env var (LLM_VALIDATION=anthropic:claude-sonnet-4-20250514)
  2. Default provider + model (LLM_DEFAULT_PROVIDER + LLM_DEFAULT_MODEL)
  3. Hardcoded fallback (openai:gpt-4)
"""

from __future__ import annotations

from dataclasses import dataclass

from nuggetwise.config.settings import Settings
from nuggetwise.config.stages import STAGE_ORDER

_FALLBACK_PROVIDER = "openai"
_FALLBACK_MODEL = "gpt-4"


@dataclass(frozen=True)
class LLMAssignment:
    """Resolved LLM provider:model for a stage."""

    provider: str
    model: str
    source: str  # "stage", "default", or "fallback"

    @property
    def key(self) -> str:
        """Return 'provider:model' string."""
        return f"{self.provider}:{self.model}"


def _parse_assignment(value: str) -> tuple[str, str] | None:
    """Parse 'provider:model' string. Returns None if empty or malformed."""
    if not value or ":" not in value:
        return None
    provider, model = value.split(":", 1)
    return (provider.strip(), model.strip())


def resolve_llm(stage: str, settings: Settings) -> LLMAssignment:
    """Resolve the LLM assignment for a stage."""
    parsed = _parse_assignment(getattr(settings, f"llm_{stage}", ""))
    if parsed:
        return LLMAssignment(provider=parsed[0], model=parsed[1], source="stage")

    if settings.llm_default_provider and settings.llm_default_model:
        return LLMAssignment(
            provider=settings.llm_default_provider,
            model=settings.llm_default_model,
            source="default",
        )

    return LLMAssignment(provider=_FALLBACK_PROVIDER, model=_FALLBACK_MODEL, source="fallback")


def resolve_all(settings: Settings) -> dict[str, LLMAssignment]:
    """Resolve LLM assignments for every pipeline stage, in execution order."""
    return {stage: resolve_llm(stage, settings) for stage in STAGE_ORDER}
