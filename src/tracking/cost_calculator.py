# src/tracking/cost_calculator.py - v2
"""Cost calculation from reported token usage against a static price table."""

from __future__ import annotations

from decimal import Decimal

from nuggetwise.tracking.models import LLMCallRecord, ModelPricing

_PER_1K = Decimal("1000")

# Default pricing per 1K tokens, keyed by (provider, model).
DEFAULT_PRICING: dict[tuple[str, str], ModelPricing] = {
    ("openai", "gpt-4"): ModelPricing(
        provider="openai", model="gpt-4",
        input_price_per_1k=Decimal("0.03"), output_price_per_1k=Decimal("0.06"),
    ),
    ("openai", "gpt-4o"): ModelPricing(
        provider="openai", model="gpt-4o",
        input_price_per_1k=Decimal("0.0025"), output_price_per_1k=Decimal("0.01"),
    ),
    ("openai", "gpt-4o-mini"): ModelPricing(
        provider="openai", model="gpt-4o-mini",
        input_price_per_1k=Decimal("0.00015"), output_price_per_1k=Decimal("0.0006"),
    ),
    ("anthropic", "claude-sonnet-4-20250514"): ModelPricing(
        provider="anthropic", model="claude-sonnet-4-20250514",
        input_price_per_1k=Decimal("0.003"), output_price_per_1k=Decimal("0.015"),
    ),
    ("anthropic", "claude-haiku-4-5-20251001"): ModelPricing(
        provider="anthropic", model="claude-haiku-4-5-20251001",
        input_price_per_1k=Decimal("0.0008"), output_price_per_1k=Decimal("0.004"),
    ),
}


def find_pricing(
    provider: str,
    model: str,
    pricing: dict[tuple[str, str], ModelPricing] | None = None,
) -> ModelPricing | None:
    """Look up pricing, falling back to the longest model-name prefix match.

    Providers report dated model names (``gpt-4-0613``) for aliases.
    """
    pricing = pricing or DEFAULT_PRICING
    exact = pricing.get((provider, model))
    if exact is not None:
        return exact
    candidates = [
        p for (prov, name), p in pricing.items()
        if prov == provider and model.startswith(name)
    ]
    if not candidates:
        return None
    return max(candidates, key=lambda p: len(p.model))


def compute_cost(
    provider: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
    pricing: dict[tuple[str, str], ModelPricing] | None = None,
) -> Decimal:
    """Compute the cost of one completion call. Unknown models cost 0."""
    p = find_pricing(provider, model, pricing)
    if p is None:
        return Decimal("0")
    return (
        Decimal(input_tokens) * p.input_price_per_1k / _PER_1K
        + Decimal(output_tokens) * p.output_price_per_1k / _PER_1K
    )


def compute_total_cost(records: list[LLMCallRecord]) -> Decimal:
    """Sum of recorded call costs."""
    return sum((r.cost for r in records), Decimal("0"))
