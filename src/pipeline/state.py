# src/pipeline/state.py - v2
"""Pipeline state accumulating the structured output of every completed stage.

Later stages read from it directly; Requirement Synthesis, for instance,
needs the Intent, Pattern and Validation outputs together.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from nuggetwise.pipeline.schemas import (
    BuilderPrompt,
    IntentAnalysis,
    UIRequirement,
    UXPatternSelection,
    ValidationResult,
)


class PipelineState(BaseModel):
    """Mutable state owned by a single pipeline run."""

    # === REQUEST ===
    prompt: str
    caller_id: str
    budget_override: Decimal | None = None
    timeout_override_ms: int | None = None

    # === STAGE OUTPUTS ===
    intent: IntentAnalysis | None = None
    patterns: UXPatternSelection | None = None
    validation: ValidationResult | None = None
    requirements: UIRequirement | None = None
    builder_prompt: BuilderPrompt | None = None

    completed_stages: list[str] = Field(default_factory=list)

    def record(self, stage: str, state_key: str, payload: BaseModel) -> None:
        """Store a successful stage payload under its state key."""
        setattr(self, state_key, payload)
        self.completed_stages.append(stage)

    def require(self, state_key: str) -> BaseModel:
        """Return an upstream output, failing loudly if it is missing."""
        value = getattr(self, state_key)
        if value is None:
            raise LookupError(f"Upstream output '{state_key}' is not available")
        return value
