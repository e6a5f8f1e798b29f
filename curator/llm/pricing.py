"""Per-model token pricing."""

from __future__ import annotations

# USD per 1M tokens: (input, output)
MODEL_PRICING = {
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.0),
    "gpt-4.1-mini": (0.40, 1.60),
}
DEFAULT_PRICING = MODEL_PRICING["gpt-4o-mini"]


def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> float:
    """Cost estimate from the fixed price table; unknown models use gpt-4o-mini rates."""
    input_rate, output_rate = MODEL_PRICING.get(model, DEFAULT_PRICING)
    return (input_tokens * input_rate + output_tokens * output_rate) / 1_000_000
