# src/pipeline/stages/intent_analysis.py - v1
"""Intent Analysis stage: extract what the user wants built from the raw prompt."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel

from nuggetwise.pipeline.schemas import IntentAnalysis
from nuggetwise.pipeline.stages.base_stage import BaseStage

if TYPE_CHECKING:
    from nuggetwise.pipeline.state import PipelineState


class IntentAnalysisStage(BaseStage):
    """First stage. Reads only the request prompt."""

    @property
    def name(self) -> str:
        return "intent_analysis"

    @property
    def output_schema(self) -> type[BaseModel]:
        return IntentAnalysis

    @property
    def state_key(self) -> str:
        return "intent"

    def build_prompt(self, state: PipelineState) -> str:
        return (
            "Analyze the following user prompt and extract the intent information:\n\n"
            f'"{state.prompt}"\n\n'
            "Return only the JSON object with the analysis results."
        )
