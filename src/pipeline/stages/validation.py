# src/pipeline/stages/validation.py - v1
"""Validation stage: decide whether the analysed request can be built.

A well-formed reply that rejects the request (``isValid: false`` or any
error-level issue) is a failed stage, not a success. Downstream stages
assume an accepted request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from nuggetwise.pipeline.schemas import IntentAnalysis, UXPatternSelection, ValidationResult
from nuggetwise.pipeline.stages.base_stage import BaseStage

if TYPE_CHECKING:
    from nuggetwise.pipeline.state import PipelineState


class ValidationStage(BaseStage):

    @property
    def name(self) -> str:
        return "validation"

    @property
    def output_schema(self) -> type[BaseModel]:
        return ValidationResult

    @property
    def state_key(self) -> str:
        return "validation"

    def build_prompt(self, state: PipelineState) -> str:
        intent: IntentAnalysis = state.require("intent")  # type: ignore[assignment]
        patterns: UXPatternSelection = state.require("patterns")  # type: ignore[assignment]
        budget = state.budget_override if state.budget_override is not None else "unlimited"
        timeout = (
            f"{state.timeout_override_ms}ms" if state.timeout_override_ms is not None else "unlimited"
        )
        return "\n".join([
            "Validate the following requirements and UX patterns:",
            "",
            "Intent Analysis:",
            f"- Primary Intent: {intent.primary_intent}",
            f"- Complexity: {intent.complexity}",
            f"- Estimated Components: {intent.estimated_components}",
            f"- Features: {', '.join(intent.features)}",
            f"- Target Audience: {intent.target_audience}",
            f"- Platform: {intent.platform}",
            "",
            "UX Patterns:",
            f"- Primary Pattern: {patterns.primary_pattern.name}",
            f"- Recommended Components: {', '.join(patterns.recommended_components)}",
            f"- Layout Strategy: {patterns.layout_strategy}",
            f"- Navigation Strategy: {patterns.navigation_strategy}",
            "",
            "Constraints:",
            f"- Budget: {budget}",
            f"- Timeout: {timeout}",
            "",
            "Return only the JSON object with the validation results.",
        ])

    def check(self, payload: BaseModel, state: PipelineState) -> str | None:
        result: ValidationResult = payload  # type: ignore[assignment]
        blocking = result.blocking_issues
        if not result.is_valid:
            detail = "; ".join(i.message for i in blocking) or "request marked invalid"
            return f"request rejected: {detail}"
        if blocking:
            return "request rejected: " + "; ".join(i.message for i in blocking)
        return None
