"""
Issue Fix State
===============
Explicit per-issue state machine driven by the orchestrator's fix loop.

Lifecycle:
    pending → fixing → fixed | skipped | failed
    pending → skipped                     (filtered before any attempt)

The attempt counter, the attempt ceiling and the strategy ladder are held
here as data, so "which strategy does attempt N use" is a lookup rather
than control flow inside the loop.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from janitor.core.exceptions import InvalidTransitionError
from janitor.models.issue import Issue

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"fixing", "skipped"},
    "fixing": {"fixed", "skipped", "failed"},
    "fixed": set(),
    "skipped": set(),
    "failed": set(),
}


def strategy_for_attempt(
    ladder: Sequence[str],
    attempt_number: int,
    recommended: Optional[str] = None,
) -> str:
    """
    Strategy for a 1-based attempt number.

    A recommended strategy replaces the first rung only. Attempts past the
    end of the ladder reuse its last rung.
    """
    if attempt_number == 1 and recommended and recommended in ladder:
        return recommended
    index = min(max(attempt_number, 1), len(ladder)) - 1
    return ladder[index]


@dataclass
class IssueFixState:
    """
    Mutable fix-loop state for one issue.

    Fields
    ------
    issue : Issue
        The issue; its status field is kept in step with transitions.
    ladder : list[str]
        Strategies of the owning fixer, cheapest first.
    max_attempts : int
        Hard ceiling on attempts for this issue.
    recommended : str or None
        Learned strategy for attempt 1, if any.
    """
    issue: Issue
    ladder: List[str]
    max_attempts: int
    recommended: Optional[str] = None
    attempt_number: int = 0
    budget_refusals: int = 0
    history: List[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        return self.issue.status

    @property
    def is_terminal(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.issue.status]

    def transition(self, new_status: str, reason: Optional[str] = None) -> None:
        current = self.issue.status
        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(
                f"Issue {self.issue.id}: cannot move from {current} to {new_status}"
            )
        self.issue.status = new_status
        if new_status == "skipped" and reason:
            self.issue.skip_reason = reason
        self.history.append(new_status)

    def has_attempts_left(self) -> bool:
        return self.attempt_number < self.max_attempts

    def next_attempt(self) -> tuple[int, str]:
        """Advance the counter and return (attempt_number, strategy)."""
        self.attempt_number += 1
        return self.attempt_number, strategy_for_attempt(
            self.ladder, self.attempt_number, self.recommended,
        )

    def mark_fixed(self, strategy: str) -> None:
        self.transition("fixed")
        self.issue.fix_strategy = strategy

    def finish_unfixed(self, reason_if_skipped: str) -> None:
        """
        Close an issue whose attempts all failed.

        When every attempt was refused for budget (or the run was cancelled
        before any real attempt), the issue is skipped rather than failed:
        nothing was learned about whether it is fixable.
        """
        if self.attempt_number == 0 or self.budget_refusals >= self.attempt_number:
            self.transition("skipped", reason_if_skipped)
        else:
            self.transition("failed")
