# src/pipeline/stages/requirement_synthesis.py - v1
"""Requirement Synthesis stage: merge intent, patterns and validation into UI requirements."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from nuggetwise.pipeline.schemas import (
    IntentAnalysis,
    UIRequirement,
    UXPatternSelection,
    ValidationResult,
)
from nuggetwise.pipeline.stages.base_stage import BaseStage

if TYPE_CHECKING:
    from nuggetwise.pipeline.state import PipelineState


class RequirementSynthesisStage(BaseStage):

    @property
    def name(self) -> str:
        return "requirement_synthesis"

    @property
    def output_schema(self) -> type[BaseModel]:
        return UIRequirement

    @property
    def state_key(self) -> str:
        return "requirements"

    def build_prompt(self, state: PipelineState) -> str:
        intent: IntentAnalysis = state.require("intent")  # type: ignore[assignment]
        patterns: UXPatternSelection = state.require("patterns")  # type: ignore[assignment]
        validation: ValidationResult = state.require("validation")  # type: ignore[assignment]
        return "\n".join([
            "Synthesize UI requirements from the following analyses:",
            "",
            "Intent Analysis:",
            f"- Primary Intent: {intent.primary_intent}",
            f"- Features: {', '.join(intent.features)}",
            f"- Target Audience: {intent.target_audience}",
            f"- Platform: {intent.platform}",
            "",
            "UX Patterns:",
            f"- Primary Pattern: {patterns.primary_pattern.name}",
            f"- Layout Strategy: {patterns.layout_strategy}",
            f"- Navigation Strategy: {patterns.navigation_strategy}",
            f"- Recommended Components: {', '.join(patterns.recommended_components)}",
            "",
            "Validation:",
            f"- Complexity: {validation.complexity_assessment}",
            f"- Suggested Mode: {validation.suggested_mode}",
            f"- Issues: {', '.join(i.message for i in validation.issues)}",
            "",
            "Create comprehensive UI requirements that address all the above inputs "
            "and are ready for code generation.",
            "",
            "Return only the JSON object with the UI requirements.",
        ])
