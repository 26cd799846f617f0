"""
Usage normalization.

Providers report token usage in slightly different shapes; everything
downstream reads the normalized ``prompt_tokens``/``completion_tokens``/
``total_tokens`` dict produced here.
"""

from typing import Any, Dict, Optional


def _as_int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError):
        return 0


def normalize_usage(usage_data: Optional[Any]) -> Dict[str, int]:
    """
    Normalize raw usage into the standard shape.

    Accepts a dict, a pydantic/SDK object with ``model_dump``, or an object
    with token attributes. Also understands ``input_tokens``/``output_tokens``.
    """
    if usage_data is None:
        data: Dict[str, Any] = {}
    elif isinstance(usage_data, dict):
        data = usage_data
    elif hasattr(usage_data, "model_dump"):
        data = usage_data.model_dump()
    else:
        data = {
            k: getattr(usage_data, k, None)
            for k in ("prompt_tokens", "completion_tokens", "total_tokens",
                      "input_tokens", "output_tokens")
        }

    prompt_tokens = _as_int(data.get("prompt_tokens", data.get("input_tokens")))
    completion_tokens = _as_int(data.get("completion_tokens", data.get("output_tokens")))
    total_tokens = _as_int(data.get("total_tokens")) or prompt_tokens + completion_tokens

    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": total_tokens,
    }
