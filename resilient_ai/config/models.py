# Model catalogue. Pricing is USD per 1,000 tokens.

DEFAULT_MODEL = "moonshotai/kimi-k2-instruct"
FAILOVER_MODEL = "qwen/qwen3-coder:free"

MODEL_CONFIGS = {
    # Groq (primary route)
    "moonshotai/kimi-k2-instruct": {
        "name": "Kimi K2 Instruct",
        "display_name": "Kimi K2",
        "provider": "groq",
        "route": "primary",
        "llm_model_id": "moonshotai/kimi-k2-instruct",
        "description": "Moonshot Kimi K2 served by Groq, default model for generation",
        "max_tokens": 4000,
        "input_cost_per_1k_tokens": 0.001,
        "output_cost_per_1k_tokens": 0.003,
    },

    "llama-3.3-70b-versatile": {
        "name": "Llama 3.3 70B Versatile",
        "display_name": "Llama 3.3 70B",
        "provider": "groq",
        "route": "primary",
        "llm_model_id": "llama-3.3-70b-versatile",
        "description": "Meta Llama 3.3 70B served by Groq",
        "max_tokens": 4000,
        "input_cost_per_1k_tokens": 0.00059,
        "output_cost_per_1k_tokens": 0.00079,
    },

    # OpenRouter (failover route)
    "qwen/qwen3-coder:free": {
        "name": "Qwen3 Coder (free)",
        "display_name": "Qwen3 Coder",
        "provider": "openrouter",
        "route": "failover",
        "llm_model_id": "qwen/qwen3-coder:free",
        "description": "Free Qwen3 Coder tier on OpenRouter, used when the primary route fails",
        "max_tokens": 2000,
        "input_cost_per_1k_tokens": 0.0,
        "output_cost_per_1k_tokens": 0.0,
    },
}

# OpenAI-compatible endpoints per provider
PROVIDER_ENDPOINTS = {
    "groq": {
        "base_url": "https://api.groq.com/openai/v1",
        "api_key_env": "GROQ_API_KEY",
    },
    "openrouter": {
        "base_url": "https://openrouter.ai/api/v1",
        "api_key_env": "OPENROUTER_API_KEY",
    },
}
