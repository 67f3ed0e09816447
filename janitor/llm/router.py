"""
Model Router
============
Decides which oracle model handles a fix attempt and what it costs.

Tiering Strategy:
    cheap      — fast, low-cost model for trivial lint / dead-code fixes
    standard   — default workhorse for most first and second attempts
    strong     — escalation target once cheaper attempts failed
    strongest  — security fixes only, where a wrong patch is expensive

Pricing:
    Static table of USD per 1M input / output tokens. The Cost Governor
    prices every call from this table; unknown models are priced at the
    most expensive entry so the ceiling can never be under-estimated.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from janitor.core.constants import (
    STRATEGY_AGGRESSIVE,
    STRATEGY_LAST_RESORT,
    STRATEGY_MINIMAL,
)
from janitor.models.issue import Issue

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Model configuration
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ModelConfig:
    """One oracle model and the provider endpoint that serves it."""
    name: str
    provider: str  # "openai" or "anthropic"
    input_price_per_million: float
    output_price_per_million: float
    max_output_tokens: int = 4096


MODELS: Dict[str, ModelConfig] = {
    "gpt-4o-mini": ModelConfig("gpt-4o-mini", "openai", 0.15, 0.60),
    "gpt-4o": ModelConfig("gpt-4o", "openai", 2.50, 10.00),
    "gpt-4": ModelConfig("gpt-4", "openai", 30.00, 60.00),
    "claude-3-haiku-20240307": ModelConfig("claude-3-haiku-20240307", "anthropic", 0.25, 1.25),
    "claude-3-5-sonnet-20241022": ModelConfig("claude-3-5-sonnet-20241022", "anthropic", 3.00, 15.00),
    "claude-3-opus-20240229": ModelConfig("claude-3-opus-20240229", "anthropic", 15.00, 75.00),
}

TIER_CHEAP = "cheap"
TIER_STANDARD = "standard"
TIER_STRONG = "strong"
TIER_STRONGEST = "strongest"

MODEL_TIERS: Dict[str, str] = {
    TIER_CHEAP: "gpt-4o-mini",
    TIER_STANDARD: "gpt-4o",
    TIER_STRONG: "claude-3-5-sonnet-20241022",
    TIER_STRONGEST: "claude-3-opus-20240229",
}

# Fallback pricing for models missing from the table
_MOST_EXPENSIVE = max(
    MODELS.values(),
    key=lambda m: m.input_price_per_million + m.output_price_per_million,
)


def model_for_tier(tier: str) -> str:
    """Resolve a tier name to a concrete model identifier."""
    return MODEL_TIERS.get(tier, MODEL_TIERS[TIER_STANDARD])


def get_model_config(model: str) -> Optional[ModelConfig]:
    return MODELS.get(model)


def price_for(model: str) -> ModelConfig:
    """
    Pricing entry for a model.

    Unknown models are priced like the most expensive known model and a
    warning is logged; this never raises.
    """
    config = MODELS.get(model)
    if config is None:
        logger.warning("No price known for model %r, assuming %s pricing", model, _MOST_EXPENSIVE.name)
        return _MOST_EXPENSIVE
    return config


def calculate_cost(model: str, input_tokens: int, output_tokens: int) -> float:
    """USD cost of one call with the given token counts."""
    config = price_for(model)
    input_tokens = max(0, int(input_tokens))
    output_tokens = max(0, int(output_tokens))
    return (
        input_tokens / 1_000_000 * config.input_price_per_million
        + output_tokens / 1_000_000 * config.output_price_per_million
    )


# ---------------------------------------------------------------------------
# Tier selection
# ---------------------------------------------------------------------------
_TRIVIAL_TYPES = ("lint", "dead_code")


def select_tier(issue: Issue, strategy: str) -> str:
    """
    Pick the model tier for an attempt of the generic escalating fixer.

    Parameters
    ----------
    issue : Issue
        The issue being fixed.
    strategy : str
        The strategy for this attempt.

    Returns
    -------
    str
        One of the TIER_* constants.
    """
    if strategy == STRATEGY_MINIMAL:
        if issue.severity == "low" or issue.type in _TRIVIAL_TYPES:
            return TIER_CHEAP
        return TIER_STANDARD
    if strategy == STRATEGY_AGGRESSIVE:
        return TIER_STANDARD
    if strategy == STRATEGY_LAST_RESORT:
        return TIER_STRONG
    # Learned strategies without a fixed tier fall back to the workhorse
    return TIER_STANDARD
