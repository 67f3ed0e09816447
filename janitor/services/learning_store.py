"""
Learning Store
==============
Remembers, per issue fingerprint, what has been tried and what worked.

Answers two questions for the orchestrator:
    recommend(issue)   — which strategy should attempt 1 use?
    should_skip(issue) — is this fingerprint historically not worth trying?

Skip Rule:
    A fingerprint is skipped when ALL of these hold:
        - it has never been fixed successfully
        - failures + declines exceed the skip threshold
        - those failures span at least `min_runs` distinct runs
        - every strategy of the current ladder has been tried already
    A success (or a strategy nobody has tried yet) lifts the skip.

Recommendation Rule:
    The strategy with the best per-strategy success rate is recommended
    when that rate is at least `min_success_rate` percent.

Implementations:
    InMemoryLearningStore — ephemeral, used by tests and dry runs
    JsonLearningStore     — persisted to a single JSON file, rewritten
                            atomically after every update
"""
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from janitor.models.issue import Issue
from janitor.models.learning_record import LearningRecord, StrategyStats
from janitor.utils.fingerprint import fingerprint

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _key(issue: Issue) -> str:
    return issue.fingerprint or fingerprint(issue)


class LearningStore(ABC):
    """
    Interface and shared rules of every learning store.

    Parameters
    ----------
    skip_threshold : int
        Failures (plus declines) without success above which a fingerprint may be skipped.
    min_runs : int
        Distinct failing runs required before skipping.
    min_success_rate : float
        Minimum per-strategy success percentage for a recommendation.
    ladder : Iterable[str]
        Strategies currently available; an untried one lifts a skip.
    """

    def __init__(
        self,
        skip_threshold: int = 5,
        min_runs: int = 2,
        min_success_rate: float = 60.0,
        ladder: Iterable[str] = ("minimal", "aggressive", "last_resort"),
    ) -> None:
        self.skip_threshold = skip_threshold
        self.min_runs = min_runs
        self.min_success_rate = min_success_rate
        self.ladder = list(ladder)

    # -------------------------------------------------------------------
    # Storage primitives
    # -------------------------------------------------------------------
    @abstractmethod
    def get(self, fingerprint_value: str) -> Optional[LearningRecord]:
        """Return the record for a fingerprint, if any."""

    @abstractmethod
    def put(self, record: LearningRecord) -> None:
        """Insert or replace a record."""

    @abstractmethod
    def all_records(self) -> List[LearningRecord]:
        """Every record in the store."""

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def recommend(self, issue: Issue) -> Optional[str]:
        record = self.get(_key(issue))
        if record is None:
            return None
        best = record.best_strategy()
        if best is None:
            return None
        if record.strategy_success_rate(best) < self.min_success_rate:
            return None
        return best

    def should_skip(self, issue: Issue, ladder: Optional[Iterable[str]] = None) -> bool:
        """
        True when the fingerprint is historically not worth another attempt.

        `ladder` lists the strategies the owning fixer would use this time;
        it defaults to the store-wide ladder.
        """
        record = self.get(_key(issue))
        if record is None or record.success_count > 0:
            return False
        if record.failure_count + record.decline_count <= self.skip_threshold:
            return False
        if len(record.failed_run_ids) < self.min_runs:
            return False
        available = list(ladder) if ladder is not None else self.ladder
        untried = [s for s in available if s not in record.strategies_tried]
        if untried:
            logger.debug("Fingerprint %s has untried strategies %s", record.fingerprint, untried)
            return False
        return True

    def stats(self) -> Dict[str, object]:
        """Aggregate view for dashboards and the HTTP surface."""
        records = self.all_records()
        successes = sum(r.success_count for r in records)
        failures = sum(r.failure_count for r in records)
        total = successes + failures
        strategies: Dict[str, Dict[str, int]] = {}
        for record in records:
            for name, stats in record.strategy_stats.items():
                bucket = strategies.setdefault(name, {"successes": 0, "failures": 0})
                bucket["successes"] += stats.successes
                bucket["failures"] += stats.failures
        return {
            "patterns": len(records),
            "total_successes": successes,
            "total_failures": failures,
            "total_declines": sum(r.decline_count for r in records),
            "success_rate": round(successes / total * 100, 1) if total else 0.0,
            "skipped_patterns": sum(1 for r in records if self._is_skippable(r)),
            "strategies": strategies,
        }

    # -------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------
    def record_seen(self, issue: Issue) -> None:
        record = self._get_or_create(issue)
        record.times_seen += 1
        record.last_seen_at = _utcnow()
        self.put(record)

    def record_success(self, issue: Issue, strategy: str, model: Optional[str], run_id: str) -> None:
        record = self._get_or_create(issue)
        record.success_count += 1
        record.successful_strategy = strategy
        record.recommended_model = model
        record.last_success_at = _utcnow()
        self._strategy(record, strategy).successes += 1
        self._tried(record, strategy)
        self.put(record)
        logger.info("Learning: %s fixed with %s (run %s)", record.fingerprint, strategy, run_id)

    def record_failure(self, issue: Issue, strategy: str, run_id: str) -> None:
        record = self._get_or_create(issue)
        record.failure_count += 1
        self._strategy(record, strategy).failures += 1
        self._tried(record, strategy)
        if run_id not in record.failed_run_ids:
            record.failed_run_ids.append(run_id)
        self.put(record)

    def record_decline(self, issue: Issue, run_id: str, strategy: Optional[str] = None) -> None:
        record = self._get_or_create(issue)
        record.decline_count += 1
        if strategy:
            self._tried(record, strategy)
        if run_id not in record.failed_run_ids:
            record.failed_run_ids.append(run_id)
        self.put(record)

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    def _get_or_create(self, issue: Issue) -> LearningRecord:
        key = _key(issue)
        record = self.get(key)
        if record is None:
            return LearningRecord(fingerprint=key, issue_type=issue.type)
        # Work on a copy so a failed put never leaves a half-updated record behind
        return record.model_copy(deep=True)

    @staticmethod
    def _strategy(record: LearningRecord, strategy: str) -> StrategyStats:
        if strategy not in record.strategy_stats:
            record.strategy_stats[strategy] = StrategyStats()
        return record.strategy_stats[strategy]

    @staticmethod
    def _tried(record: LearningRecord, strategy: str) -> None:
        if strategy not in record.strategies_tried:
            record.strategies_tried.append(strategy)

    def _is_skippable(self, record: LearningRecord) -> bool:
        return (
            record.success_count == 0
            and record.failure_count + record.decline_count > self.skip_threshold
            and len(record.failed_run_ids) >= self.min_runs
        )


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------
class InMemoryLearningStore(LearningStore):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._records: Dict[str, LearningRecord] = {}

    def get(self, fingerprint_value: str) -> Optional[LearningRecord]:
        return self._records.get(fingerprint_value)

    def put(self, record: LearningRecord) -> None:
        self._records[record.fingerprint] = record

    def all_records(self) -> List[LearningRecord]:
        return list(self._records.values())


# ---------------------------------------------------------------------------
# JSON file implementation
# ---------------------------------------------------------------------------
class JsonLearningStore(InMemoryLearningStore):
    """
    Learning store persisted as one JSON document.

    The file is loaded once at construction and rewritten atomically
    (temp file + rename) after every update.
    """

    def __init__(self, path: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.path = path
        self._load()

    def put(self, record: LearningRecord) -> None:
        super().put(record)
        self._save()

    def _load(self) -> None:
        if not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("Could not load learning data from %s: %s", self.path, e)
            return
        for raw in data.get("records", []):
            try:
                record = LearningRecord.model_validate(raw)
            except ValueError as e:
                logger.warning("Skipping corrupt learning record: %s", e)
                continue
            self._records[record.fingerprint] = record
        logger.info("Loaded %d learning record(s) from %s", len(self._records), self.path)

    def _save(self) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        payload = {"records": [r.model_dump(mode="json") for r in self._records.values()]}
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".learning-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
