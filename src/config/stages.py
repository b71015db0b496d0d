# src/config/stages.py - v1
"""Declarative stage configuration.

The pipeline runs these stages strictly in this order; each one sees the
accumulated outputs of every stage before it.
"""

from __future__ import annotations

# Fully qualified class paths, in execution order.
STAGE_REGISTRY: list[str] = [
    "nuggetwise.pipeline.stages.intent_analysis.IntentAnalysisStage",
    "nuggetwise.pipeline.stages.pattern_selection.PatternSelectionStage",
    "nuggetwise.pipeline.stages.validation.ValidationStage",
    "nuggetwise.pipeline.stages.requirement_synthesis.RequirementSynthesisStage",
    "nuggetwise.pipeline.stages.prompt_building.PromptBuildingStage",
]

STAGE_ORDER: list[str] = [
    "intent_analysis",
    "pattern_selection",
    "validation",
    "requirement_synthesis",
    "prompt_building",
]

# Sampling temperature per stage.
STAGE_TEMPERATURES: dict[str, float] = {
    "intent_analysis": 0.3,
    "pattern_selection": 0.4,
    "validation": 0.3,
    "requirement_synthesis": 0.5,
    "prompt_building": 0.6,
}
