# src/pipeline/stages/pattern_selection.py - v1
"""Pattern Selection stage: pick UX patterns that fit the analysed intent."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from nuggetwise.pipeline.schemas import IntentAnalysis, UXPatternSelection
from nuggetwise.pipeline.stages.base_stage import BaseStage

if TYPE_CHECKING:
    from nuggetwise.pipeline.state import PipelineState


class PatternSelectionStage(BaseStage):

    @property
    def name(self) -> str:
        return "pattern_selection"

    @property
    def output_schema(self) -> type[BaseModel]:
        return UXPatternSelection

    @property
    def state_key(self) -> str:
        return "patterns"

    def build_prompt(self, state: PipelineState) -> str:
        intent: IntentAnalysis = state.require("intent")  # type: ignore[assignment]
        return "\n".join([
            "Based on the following intent analysis, select appropriate UX patterns:",
            "",
            "Intent Analysis:",
            f"- Primary Intent: {intent.primary_intent}",
            f"- Secondary Intents: {', '.join(intent.secondary_intents)}",
            f"- Complexity: {intent.complexity}",
            f"- Estimated Components: {intent.estimated_components}",
            f"- Features: {', '.join(intent.features)}",
            f"- Target Audience: {intent.target_audience}",
            f"- Platform: {intent.platform}",
            f"- Urgency: {intent.urgency}",
            "",
            "Return only the JSON object with the UX pattern selection.",
        ])
