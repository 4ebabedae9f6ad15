"""Centralized LLM usage logger for token/cost tracking."""

import logging

from contestacion_engine.core.logging import log_with_context

logger = logging.getLogger(__name__)

# Pricing per 1M tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    # Anthropic
    "claude-sonnet-4-20250514": (3.0, 15.0),
    "claude-sonnet-4-5-20250929": (3.0, 15.0),
    "claude-haiku-4-5-20251001": (0.80, 4.0),
    # OpenAI
    "gpt-4o": (2.50, 10.0),
    "gpt-4.1-mini": (0.40, 1.60),
    "gpt-4o-mini": (0.15, 0.60),
}


def _estimate_cost(model: str, tokens_input: int, tokens_output: int) -> float:
    """Estimate cost in USD based on model pricing."""
    pricing = MODEL_PRICING.get(model)
    if not pricing:
        # Try prefix match for dated model variants
        for key, val in MODEL_PRICING.items():
            if model.startswith(key.rsplit("-", 1)[0]):
                pricing = val
                break
    if not pricing:
        logger.debug(f"No pricing found for model '{model}', using $0")
        return 0.0

    input_rate, output_rate = pricing
    cost = (tokens_input * input_rate / 1_000_000) + (tokens_output * output_rate / 1_000_000)
    return round(cost, 6)


def log_llm_usage(
    chain: str,
    model: str,
    provider: str,
    tokens_input: int,
    tokens_output: int,
    duration_ms: int = 0,
    session_id: str | None = None,
) -> None:
    """Log a backend call with token counts and estimated cost. Never raises."""
    try:
        context = {
            "chain": chain,
            "model": model,
            "provider": provider,
            "tokens_input": tokens_input,
            "tokens_output": tokens_output,
            "duration_ms": duration_ms,
            "estimated_cost_usd": _estimate_cost(model, tokens_input, tokens_output),
        }
        if session_id:
            context["session_id"] = session_id
        log_with_context(logger, logging.INFO, "llm_usage", **context)
    except Exception as e:
        logger.warning(f"Failed to log LLM usage: {e}")
