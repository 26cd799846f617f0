from .pricing import estimate_tokens, estimate_cost, calculate_cost, CHARS_PER_TOKEN
from .usage import normalize_usage

__all__ = [
    "estimate_tokens",
    "estimate_cost",
    "calculate_cost",
    "CHARS_PER_TOKEN",
    "normalize_usage",
]
