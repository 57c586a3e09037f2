"""Cost estimation for logged calls."""

from llmobs.config import settings


def estimate_cost_usd(prompt_tokens: int, response_tokens: int, per_token_usd: float | None = None) -> float:
    """Flat per-token price; swap in a pricing table once real providers are wired in."""
    rate = settings.cost_per_token_usd if per_token_usd is None else per_token_usd
    return (prompt_tokens + response_tokens) * rate
