# src/pipeline/stages/prompt_building.py - v1
"""Prompt Building stage: turn UI requirements into the generation prompt.

The model replies in Markdown. The whole reply becomes ``complete_prompt``;
the per-concern sections are lifted out of ``**Section:**`` blocks when the
model emits them. A JSON reply matching ``BuilderPrompt`` is accepted too.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from nuggetwise.pipeline.schemas import BuilderPrompt, LayoutSpec, StylingSpec, UIRequirement
from nuggetwise.pipeline.stages.base_stage import BaseStage, MalformedReply, strip_code_fences

if TYPE_CHECKING:
    from nuggetwise.pipeline.state import PipelineState

_THEME_REFERENCES = {
    "modern": "Notion or Linear",
    "minimal": "Stripe or Vercel",
    "playful": "Discord or Figma",
}


class PromptBuildingStage(BaseStage):

    @property
    def name(self) -> str:
        return "prompt_building"

    @property
    def output_schema(self) -> type[BaseModel]:
        return BuilderPrompt

    @property
    def state_key(self) -> str:
        return "builder_prompt"

    def build_prompt(self, state: PipelineState) -> str:
        req: UIRequirement = state.require("requirements")  # type: ignore[assignment]
        components = "\n".join(
            f"**{c.name}** ({c.template_id}): Component for user interaction" for c in req.components
        )
        breakpoints = ", ".join(req.responsive.breakpoints) or "sm, md, lg"
        return f"""Create a prompt for building a modern web application with the following requirements:

## WHO/WHAT/WHY Context
- WHO: Users who need to {_user_context(req)}
- WHAT: A {req.layout.type} application that helps users {_app_purpose(req)}
- WHY: To provide a seamless, modern experience that feels intuitive and responsive

## Components to Build
{components}

## Layout & Structure
{_layout_description(req.layout)}

## Styling & Feel
{_styling_description(req.styling)}

## User Interactions
{_interaction_description(req)}

## Accessibility Requirements
- ARIA labels and roles for all interactive elements
- Keyboard navigation support
- Screen reader compatibility
- Focus management and indicators

## Responsive Behavior
- Mobile-first design approach
- Breakpoints: {breakpoints}
- Adaptive layout that works on all screen sizes

## Technical Requirements
- Use modern React with TypeScript
- Implement with Tailwind CSS
- Include loading and error states

Generate a comprehensive, user-focused builder prompt."""

    def parse_reply(self, content: str) -> BaseModel:
        text = content.strip()
        if not text:
            raise MalformedReply("empty reply")

        unfenced = strip_code_fences(text)
        if unfenced.startswith("{"):
            try:
                return BuilderPrompt.model_validate(json.loads(unfenced))
            except (json.JSONDecodeError, ValidationError) as exc:
                raise MalformedReply(str(exc)) from exc

        sections = [s for s in text.split("##") if s.strip()]
        return BuilderPrompt(
            components="\n\n".join(f"##{s}" for s in sections),
            layout=extract_section(text, "Layout"),
            styling=extract_section(text, "Styling"),
            interactions=extract_section(text, "Interactions"),
            accessibility=extract_section(text, "Accessibility"),
            responsive=extract_section(text, "Responsive"),
            complete_prompt=text,
        )


def extract_section(markdown: str, section: str) -> str:
    """Return the body of a ``**Section:**`` block, or '' when absent."""
    pattern = re.compile(rf"\*\*{re.escape(section)}:\*\*\s*(.*?)(?=\*\*|$)", re.IGNORECASE | re.DOTALL)
    match = pattern.search(markdown)
    return match.group(1).strip() if match else ""


def _user_context(req: UIRequirement) -> str:
    template_ids = [c.template_id for c in req.components]
    has_forms = any("form" in t or "input" in t for t in template_ids)
    has_data = any("table" in t or "list" in t for t in template_ids)
    if has_forms and has_data:
        return "manage and interact with data through forms and displays"
    if has_forms:
        return "input and submit information through forms"
    if has_data:
        return "view and interact with data displays"
    if req.navigation.type != "none":
        return "navigate through different sections of the application"
    return "interact with a modern web interface"


def _app_purpose(req: UIRequirement) -> str:
    template_ids = [c.template_id for c in req.components]
    for needle, purpose in (
        ("dashboard", "view and manage information through a comprehensive dashboard"),
        ("form", "input and process information through intuitive forms"),
        ("table", "display and interact with structured data"),
        ("card", "browse and interact with content cards"),
    ):
        if any(needle in t for t in template_ids):
            return purpose
    return "accomplish their tasks efficiently"


def _layout_description(layout: LayoutSpec) -> str:
    return "\n".join([
        f"- Layout Type: {layout.type}",
        f"- Structure: {layout.structure}",
        f"- Responsive Design: {'Mobile-first responsive design' if layout.responsive else 'Fixed layout'}",
        f"- Dark Mode: {'Supports dark mode toggle' if layout.dark_mode else 'Light mode only'}",
    ])


def _styling_description(styling: StylingSpec) -> str:
    reference = _THEME_REFERENCES.get(styling.theme, "modern web applications")
    return "\n".join([
        f"- Theme: {styling.theme} design system",
        f"- Colors: {', '.join(styling.colors)}",
        f"- Typography: {styling.typography}",
        f"- Spacing: {styling.spacing}",
        "",
        f'"It should feel like {reference} with clean typography and thoughtful spacing."',
    ])


def _interaction_description(req: UIRequirement) -> str:
    inter = req.interactions
    phrases = []
    if inter.animations:
        phrases.append(f'"Add smooth animations for {", ".join(inter.animations)}"')
    if inter.transitions:
        phrases.append(f'"Let users experience smooth transitions when {", ".join(inter.transitions)}"')
    if inter.hover_effects:
        phrases.append(f'"Make interactive elements respond with {", ".join(inter.hover_effects)} on hover"')
    return "\n".join(phrases) or '"Let users interact with all elements smoothly and intuitively"'
