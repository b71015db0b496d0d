# src/api/models.py - v2
"""Request boundary models: BuildRequest, BuildSuccess, BuildFailure."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Literal, Union

from pydantic import BaseModel, Field, field_validator

from nuggetwise.generation.models import GenerationResult
from nuggetwise.pipeline.schemas import BuilderPrompt


class BuildRequest(BaseModel):
    """One caller request to turn a prompt into generated UI code."""

    prompt: str
    caller_id: str
    budget_override: Decimal | None = Field(default=None, gt=0)
    timeout_override_ms: int | None = Field(default=None, gt=0)
    model_tier: str | None = None

    @field_validator("prompt", "caller_id")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be empty")
        return v


class BuildSuccess(BaseModel):
    success: Literal[True] = True
    request_id: str
    run_id: str
    final_artifact: BuilderPrompt
    generation: GenerationResult
    pipeline_cost: Decimal
    total_cost: Decimal
    total_elapsed_ms: int
    remaining_budget: Decimal


class BuildFailure(BaseModel):
    """Typed failure outcome: {code, message, stage?, cost so far, remaining budget}."""

    success: Literal[False] = False
    request_id: str | None = None
    code: str
    message: str
    stage: str | None = None
    cost_incurred: Decimal = Decimal("0")
    remaining_budget: Decimal | None = None
    details: dict[str, Any] = Field(default_factory=dict)


BuildOutcome = Union[BuildSuccess, BuildFailure]
