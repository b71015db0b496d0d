# src/pipeline/schemas.py - v1
"""Structured shapes produced by the five stages.

Replies arrive as camelCase JSON; fields are snake_case with camelCase
aliases, and either form is accepted.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StageSchema(BaseModel):
    """Base for all stage outputs."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Intent Analysis ===


class IntentAnalysis(StageSchema):
    primary_intent: str
    secondary_intents: list[str] = Field(default_factory=list)
    complexity: Literal["simple", "moderate", "complex"]
    estimated_components: int = Field(ge=0)
    features: list[str] = Field(default_factory=list)
    target_audience: str = ""
    platform: Literal["web", "mobile", "desktop", "multi"] = "web"
    urgency: Literal["low", "medium", "high"] = "medium"


# === Pattern Selection ===


class UXPattern(StageSchema):
    name: str
    description: str = ""
    components: list[str] = Field(default_factory=list)
    layout: str = ""
    navigation: str = ""
    interactions: list[str] = Field(default_factory=list)
    accessibility: list[str] = Field(default_factory=list)
    responsive: bool = True
    dark_mode: bool = False


class UXPatternSelection(StageSchema):
    primary_pattern: UXPattern
    secondary_patterns: list[UXPattern] = Field(default_factory=list)
    layout_strategy: str
    navigation_strategy: str
    responsive_strategy: str = ""
    accessibility_features: list[str] = Field(default_factory=list)
    recommended_components: list[str] = Field(default_factory=list)


# === Validation ===


class ValidationIssue(StageSchema):
    type: Literal["error", "warning", "info"]
    message: str
    component: str | None = None
    severity: Literal["low", "medium", "high"] = "low"


class ValidationResult(StageSchema):
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    complexity_assessment: Literal["simple", "moderate", "complex"]
    estimated_build_time: float = Field(default=0, ge=0)  # minutes
    estimated_cost: float = Field(default=0, ge=0)
    risk_level: Literal["low", "medium", "high"] = "low"
    suggested_mode: Literal["quick-build", "full-platform"] = "quick-build"

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.type == "error"]


# === Requirement Synthesis ===


class ComponentSpec(StageSchema):
    name: str
    template_id: str = "default"
    props: dict[str, Any] = Field(default_factory=dict)
    milestone: int = 1


class LayoutSpec(StageSchema):
    type: str
    structure: str = ""
    responsive: bool = True
    dark_mode: bool = False


class NavigationSpec(StageSchema):
    type: str = "none"
    structure: list[str] = Field(default_factory=list)
    breadcrumbs: bool = False


class StylingSpec(StageSchema):
    theme: str = ""
    colors: list[str] = Field(default_factory=list)
    typography: str = ""
    spacing: str = ""


class InteractionSpec(StageSchema):
    animations: list[str] = Field(default_factory=list)
    transitions: list[str] = Field(default_factory=list)
    hover_effects: list[str] = Field(default_factory=list)


class AccessibilitySpec(StageSchema):
    features: list[str] = Field(default_factory=list)
    aria_labels: bool = True
    keyboard_navigation: bool = True
    screen_reader: bool = True


class ResponsiveSpec(StageSchema):
    breakpoints: list[str] = Field(default_factory=list)
    mobile_first: bool = True
    adaptive_layout: bool = True


class UIRequirement(StageSchema):
    components: list[ComponentSpec] = Field(min_length=1)
    layout: LayoutSpec
    navigation: NavigationSpec = Field(default_factory=NavigationSpec)
    styling: StylingSpec = Field(default_factory=StylingSpec)
    interactions: InteractionSpec = Field(default_factory=InteractionSpec)
    accessibility: AccessibilitySpec = Field(default_factory=AccessibilitySpec)
    responsive: ResponsiveSpec = Field(default_factory=ResponsiveSpec)


# === Prompt Building ===


class BuilderPrompt(StageSchema):
    """Final artifact: the prompt handed to the generation call."""

    components: str = ""
    layout: str = ""
    styling: str = ""
    interactions: str = ""
    accessibility: str = ""
    responsive: str = ""
    complete_prompt: str = Field(min_length=1)
