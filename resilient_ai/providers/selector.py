from typing import Dict, Optional

from ..config.models import MODEL_CONFIGS as RAW_MODEL_CONFIGS, DEFAULT_MODEL, FAILOVER_MODEL
from ..models.generation import ModelConfig, Route


# Convert raw configs to Pydantic models
MODEL_CONFIGS: Dict[str, ModelConfig] = {
    k: ModelConfig(**v) for k, v in RAW_MODEL_CONFIGS.items()
}


def get_config(llm_model_id: Optional[str] = None) -> ModelConfig:
    """Get configuration for a model.

    Handles both model IDs and display names; unknown or missing ids fall
    back to the default model.
    """
    if not llm_model_id:
        return MODEL_CONFIGS[DEFAULT_MODEL]

    if llm_model_id in MODEL_CONFIGS:
        return MODEL_CONFIGS[llm_model_id]

    for config in MODEL_CONFIGS.values():
        if config.display_name == llm_model_id or config.name == llm_model_id:
            return config

    return MODEL_CONFIGS[DEFAULT_MODEL]


def get_failover_config() -> ModelConfig:
    return MODEL_CONFIGS[FAILOVER_MODEL]


def select_route(llm_model_id: Optional[str] = None) -> Route:
    """Route serving ``llm_model_id``; a pure function of the id."""
    return get_config(llm_model_id).route


def get_available_models() -> Dict[str, ModelConfig]:
    """Get all available models that are enabled."""
    return {k: v for k, v in MODEL_CONFIGS.items() if v.enabled}
