"""
Cost Governor & Router Tests
============================
Budget projection, refusal, monotonic spend and tier selection.
"""
import pytest

from janitor.llm.router import (
    MODELS,
    TIER_CHEAP,
    TIER_STANDARD,
    TIER_STRONG,
    calculate_cost,
    model_for_tier,
    price_for,
    select_tier,
)
from janitor.models.issue import Issue
from janitor.services.cost_governor import CostGovernor, estimate_tokens


def test_estimate_tokens_rounds_up():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2


def test_calculate_cost_uses_price_table():
    # gpt-4o: $2.50 in / $10.00 out per 1M tokens
    assert calculate_cost("gpt-4o", 1_000_000, 1_000_000) == pytest.approx(12.5)
    assert calculate_cost("gpt-4o-mini", 1000, 0) == pytest.approx(0.00015)


def test_unknown_model_priced_at_most_expensive():
    expensive = max(MODELS.values(), key=lambda m: m.input_price_per_million + m.output_price_per_million)
    assert price_for("mystery-model") == expensive
    assert calculate_cost("mystery-model", 1000, 1000) == calculate_cost(expensive.name, 1000, 1000)


def test_negative_tokens_clamp_to_zero():
    governor = CostGovernor()
    assert governor.record(-50, -10, "gpt-4o") == 0.0
    assert governor.spent == 0.0


def test_projection_assumes_output_is_80_percent_of_input():
    governor = CostGovernor()
    projected = governor.projected_cost(1000, "gpt-4o")
    assert projected == pytest.approx(calculate_cost("gpt-4o", 1000, 800))


def test_can_afford_refuses_past_ceiling():
    governor = CostGovernor(ceiling_usd=0.01)
    assert governor.can_afford(100, "gpt-4o-mini") is True
    # 10k tokens on opus: 10k*15/1M + 8k*75/1M = 0.75 > 0.01
    assert governor.can_afford(10_000, "claude-3-opus-20240229") is False
    assert governor.refusals == 1


def test_spend_is_monotonic_and_matches_call_log():
    governor = CostGovernor(ceiling_usd=1.0)
    totals = []
    for tokens in (100, 0, 2500, 40):
        governor.record(tokens, tokens // 2, "gpt-4o")
        totals.append(governor.spent)
    assert totals == sorted(totals)
    assert governor.spent == pytest.approx(sum(c.cost_usd for c in governor.calls))
    assert len(governor.calls) == 4
    assert governor.remaining == pytest.approx(1.0 - governor.spent)


def test_refusal_after_spend_accumulates():
    governor = CostGovernor(ceiling_usd=0.05)
    governor.record(10_000, 2_000, "gpt-4o")  # 0.025 + 0.02 = 0.045
    assert governor.can_afford(1_000, "gpt-4o") is False
    assert governor.can_afford(100, "gpt-4o-mini") is True


def test_broken_estimator_falls_back():
    def boom(text):
        raise RuntimeError("no tokenizer")

    governor = CostGovernor(estimator=boom)
    assert governor.estimate("abcdefgh") == 2


@pytest.mark.parametrize("issue_kw, strategy, tier", [
    (dict(type="lint", severity="low"), "minimal", TIER_CHEAP),
    (dict(type="dead_code", severity="medium"), "minimal", TIER_CHEAP),
    (dict(type="performance", severity="medium"), "minimal", TIER_STANDARD),
    (dict(type="performance", severity="medium"), "aggressive", TIER_STANDARD),
    (dict(type="performance", severity="medium"), "last_resort", TIER_STRONG),
])
def test_select_tier(issue_kw, strategy, tier):
    issue = Issue(file="a.py", description="x", **issue_kw)
    assert select_tier(issue, strategy) == tier


def test_model_for_unknown_tier_is_standard():
    assert model_for_tier("bogus") == model_for_tier(TIER_STANDARD)


def test_retry_guard_counts_unrecorded_usage():
    model = model_for_tier(TIER_CHEAP)
    one_call = CostGovernor().projected_cost(1000, model)
    governor = CostGovernor(ceiling_usd=one_call * 1.5)
    guard = governor.allows_retry(1000, model)

    assert guard(0, 0) is True
    assert guard(1000, 800) is False
    assert governor.refusals == 1
    assert governor.spent == 0.0
