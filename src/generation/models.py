# src/generation/models.py - v1
"""Generation call result models."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class GeneratedFile(BaseModel):
    name: str
    content: str = ""
    path: str | None = None


class GenerationResult(BaseModel):
    """What the code generator produced for one builder prompt."""

    id: str
    preview_url: str | None = None
    project_url: str | None = None
    files: list[GeneratedFile] = Field(default_factory=list)
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    model_tier: str = ""
