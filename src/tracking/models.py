# src/tracking/models.py - v2
"""Tracking domain models: ModelPricing, LLMCallRecord."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel


class ModelPricing(BaseModel):
    """Completion model pricing, in currency units per 1K tokens."""

    provider: str
    model: str
    input_price_per_1k: Decimal
    output_price_per_1k: Decimal


class LLMCallRecord(BaseModel):
    """Individual completion call log entry."""

    call_id: str
    timestamp: datetime
    run_id: str | None = None
    stage: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    latency_ms: int
    status: Literal["success", "malformed", "failed"]
    cost: Decimal = Decimal("0")
