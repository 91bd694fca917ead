"""LLM configuration for the task extractor.

Values come from config.py (environment / .env) and are grouped into one dict
so the extractor can be built from a single mapping.
"""
import config


# ============================================================================
# TASK EXTRACTOR CONFIGURATION
# ============================================================================
# Used for turning a whole transcript into a JSON list of tasks
# Needs: Structured output, low temperature, bounded latency

TASK_EXTRACTOR_CONFIG = {
    "model_name": config.LLM_MODEL,
    "api_url": config.LLM_API_URL,
    "api_key": config.LLM_API_KEY,
    "temperature": config.LLM_TEMPERATURE,
    "max_tokens": config.LLM_MAX_TOKENS,
    "timeout": config.LLM_TIMEOUT_SECONDS,
    "max_retries": config.LLM_MAX_RETRIES,
}
