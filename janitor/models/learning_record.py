"""
Learning Record Model
=====================
Accumulated fix history for one issue fingerprint. Outlives runs and is
never deleted.

Fields:
    fingerprint         — the issue identity this record belongs to
    issue_type          — issue kind, kept for stats grouping
    times_seen          — how many scans reported this fingerprint
    success_count       — validated fixes
    failure_count       — failed attempts that reached the oracle or a repair
    decline_count       — attempts the oracle refused or flagged for review
    successful_strategy — strategy of the most recent validated fix
    recommended_model   — model of the most recent validated fix
    strategy_stats      — per-strategy {"successes": n, "failures": n}
    strategies_tried    — every strategy attempted at least once
    failed_run_ids      — distinct runs that recorded a failure or decline
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StrategyStats(BaseModel):
    successes: int = 0
    failures: int = 0

    @property
    def total(self) -> int:
        return self.successes + self.failures

    @property
    def success_rate(self) -> float:
        return (self.successes / self.total) * 100 if self.total else 0.0


class LearningRecord(BaseModel):
    fingerprint: str
    issue_type: str = ""
    times_seen: int = 0
    success_count: int = 0
    failure_count: int = 0
    decline_count: int = 0
    successful_strategy: Optional[str] = None
    recommended_model: Optional[str] = None
    strategy_stats: Dict[str, StrategyStats] = {}
    strategies_tried: List[str] = []
    failed_run_ids: List[str] = []
    first_seen_at: datetime = Field(default_factory=_utcnow)
    last_seen_at: datetime = Field(default_factory=_utcnow)
    last_success_at: Optional[datetime] = None

    @property
    def success_rate(self) -> float:
        """Overall success percentage, 0–100."""
        total = self.success_count + self.failure_count
        return (self.success_count / total) * 100 if total else 0.0

    @property
    def confidence_score(self) -> int:
        """Grows with evidence: 5 points per recorded outcome, capped at 100."""
        return min(100, (self.success_count + self.failure_count) * 5)

    def strategy_success_rate(self, strategy: str) -> float:
        stats = self.strategy_stats.get(strategy)
        return stats.success_rate if stats else 0.0

    def best_strategy(self) -> Optional[str]:
        """Strategy with the highest success rate among those that ever succeeded."""
        winners = [
            (stats.success_rate, stats.successes, name)
            for name, stats in self.strategy_stats.items()
            if stats.successes > 0
        ]
        if not winners:
            return None
        winners.sort(reverse=True)
        return winners[0][2]
