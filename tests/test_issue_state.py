import pytest

from janitor.core.exceptions import InvalidTransitionError
from janitor.models.issue import Issue
from janitor.state.issue_state import IssueFixState, strategy_for_attempt

LADDER = ["minimal", "aggressive", "last_resort"]


def _state(**kw):
    issue = Issue(type="lint", file="a.py", description="E501: line too long")
    return IssueFixState(issue=issue, ladder=list(LADDER), max_attempts=kw.pop("max_attempts", 3), **kw)


def test_strategy_lookup_clamps_to_last_rung():
    assert strategy_for_attempt(LADDER, 1) == "minimal"
    assert strategy_for_attempt(LADDER, 3) == "last_resort"
    assert strategy_for_attempt(LADDER, 7) == "last_resort"
    assert strategy_for_attempt(["specialized"], 2) == "specialized"


def test_recommendation_replaces_first_attempt_only():
    assert strategy_for_attempt(LADDER, 1, "last_resort") == "last_resort"
    assert strategy_for_attempt(LADDER, 2, "last_resort") == "aggressive"
    # unknown recommendations are ignored
    assert strategy_for_attempt(LADDER, 1, "specialized") == "minimal"


def test_attempt_counter_and_ceiling():
    state = _state(max_attempts=2, recommended="aggressive")
    state.transition("fixing")
    assert state.next_attempt() == (1, "aggressive")
    assert state.has_attempts_left()
    assert state.next_attempt() == (2, "aggressive")
    assert not state.has_attempts_left()


def test_happy_path_transitions():
    state = _state()
    state.transition("fixing")
    state.next_attempt()
    state.mark_fixed("minimal")
    assert state.status == "fixed"
    assert state.issue.fix_strategy == "minimal"
    assert state.is_terminal
    assert state.history == ["fixing", "fixed"]


def test_terminal_states_cannot_move():
    state = _state()
    state.transition("fixing")
    state.transition("failed")
    with pytest.raises(InvalidTransitionError):
        state.transition("fixing")


def test_pending_cannot_jump_to_fixed():
    with pytest.raises(InvalidTransitionError):
        _state().transition("fixed")


def test_skip_from_pending_records_reason():
    state = _state()
    state.transition("skipped", "historically_unfixable")
    assert state.issue.skip_reason == "historically_unfixable"


def test_finish_unfixed_fails_after_real_attempts():
    state = _state()
    state.transition("fixing")
    state.next_attempt()
    state.finish_unfixed("budget_exhausted")
    assert state.status == "failed"
    assert state.issue.skip_reason is None


def test_finish_unfixed_skips_when_every_attempt_was_refused():
    state = _state()
    state.transition("fixing")
    for _ in range(2):
        state.next_attempt()
        state.budget_refusals += 1
    state.finish_unfixed("budget_exhausted")
    assert state.status == "skipped"
    assert state.issue.skip_reason == "budget_exhausted"


def test_finish_unfixed_skips_without_attempts():
    state = _state()
    state.transition("fixing")
    state.finish_unfixed("cancelled")
    assert state.status == "skipped"
    assert state.issue.skip_reason == "cancelled"
