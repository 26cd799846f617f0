"""Token estimation and cost calculation from model pricing."""

import math
from typing import Dict, Optional

from ..models.generation import ModelConfig

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Rough token count: about four characters per token."""
    if not text:
        return 0
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def calculate_cost(usage: Dict[str, int], config: ModelConfig) -> float:
    """Cost in USD of ``usage`` under the model's per-1k-token pricing."""
    prompt_tokens = usage.get("prompt_tokens", 0)
    completion_tokens = usage.get("completion_tokens", 0)
    input_cost = (prompt_tokens / 1000) * config.input_cost_per_1k_tokens
    output_cost = (completion_tokens / 1000) * config.output_cost_per_1k_tokens
    return input_cost + output_cost


def estimate_cost(prompt: str, config: ModelConfig, max_tokens: Optional[int] = None) -> float:
    """
    Pre-flight upper estimate of a call's cost.

    Input is estimated from the prompt length; output assumes the full
    ``max_tokens`` budget is used.
    """
    usage = {
        "prompt_tokens": estimate_tokens(prompt),
        "completion_tokens": max_tokens if max_tokens is not None else config.max_tokens,
    }
    return calculate_cost(usage, config)
