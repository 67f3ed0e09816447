"""
Run Repository
==============
Persists runs, their issues and their fix attempts for audit.

Operations:
    save_run(run)                 — upsert by run id
    save_issue(run_id, issue)     — insert
    update_issue(run_id, issue)   — replace an existing issue by id
    save_fix_attempt(attempt)     — insert (attempts are immutable)
    get_run / list_runs / get_issues / get_attempts

Implementations:
    InMemoryRunRepository — process-local dictionaries
    JsonRunRepository     — one JSON document per run under <data_dir>/runs/
"""
import json
import logging
import os
from typing import Dict, List, Optional

from janitor.models.fix_attempt import FixAttempt
from janitor.models.issue import Issue
from janitor.models.run import Run

logger = logging.getLogger(__name__)


class InMemoryRunRepository:
    """Keeps everything in process memory; the base for the JSON repository."""

    def __init__(self) -> None:
        self._runs: Dict[str, Run] = {}
        self._issues: Dict[str, Dict[str, Issue]] = {}
        self._attempts: Dict[str, List[FixAttempt]] = {}

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def save_run(self, run: Run) -> None:
        self._runs[run.id] = run.model_copy(deep=True)
        self._issues.setdefault(run.id, {})
        self._attempts.setdefault(run.id, [])
        self._flush(run.id)

    def save_issue(self, run_id: str, issue: Issue) -> None:
        bucket = self._issues.setdefault(run_id, {})
        if issue.id in bucket:
            raise ValueError(f"Issue {issue.id} already stored for run {run_id}")
        bucket[issue.id] = issue.model_copy(deep=True)
        self._flush(run_id)

    def update_issue(self, run_id: str, issue: Issue) -> None:
        bucket = self._issues.setdefault(run_id, {})
        if issue.id not in bucket:
            raise KeyError(f"Unknown issue {issue.id} for run {run_id}")
        bucket[issue.id] = issue.model_copy(deep=True)
        self._flush(run_id)

    def save_fix_attempt(self, attempt: FixAttempt) -> None:
        self._attempts.setdefault(attempt.run_id, []).append(attempt)
        self._flush(attempt.run_id)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def get_run(self, run_id: str) -> Optional[Run]:
        return self._runs.get(run_id)

    def list_runs(self, limit: int = 50) -> List[Run]:
        runs = sorted(self._runs.values(), key=lambda r: r.started_at, reverse=True)
        return runs[:limit]

    def get_issues(self, run_id: str) -> List[Issue]:
        return list(self._issues.get(run_id, {}).values())

    def get_attempts(self, run_id: str) -> List[FixAttempt]:
        return list(self._attempts.get(run_id, []))

    def _flush(self, run_id: str) -> None:
        """Hook for durable subclasses."""


class JsonRunRepository(InMemoryRunRepository):
    """
    Writes one JSON document per run: <runs_dir>/<run_id>.json

    Existing documents are loaded at construction so GET endpoints can
    serve history from previous processes.
    """

    def __init__(self, runs_dir: str) -> None:
        super().__init__()
        self.runs_dir = runs_dir
        os.makedirs(self.runs_dir, exist_ok=True)
        self._load_all()

    def _path(self, run_id: str) -> str:
        return os.path.join(self.runs_dir, f"{run_id}.json")

    def _flush(self, run_id: str) -> None:
        run = self._runs.get(run_id)
        if run is None:
            # Issues can arrive before the first run upsert only in misuse; keep them in memory
            return
        data = {
            "run": run.model_dump(mode="json"),
            "issues": [i.model_dump(mode="json") for i in self._issues.get(run_id, {}).values()],
            "fix_attempts": [a.model_dump(mode="json") for a in self._attempts.get(run_id, [])],
        }
        path = self._path(run_id)
        tmp_path = path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, path)

    def _load_all(self) -> None:
        for name in sorted(os.listdir(self.runs_dir)):
            if not name.endswith(".json"):
                continue
            path = os.path.join(self.runs_dir, name)
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                run = Run.model_validate(data["run"])
                issues = [Issue.model_validate(i) for i in data.get("issues", [])]
                attempts = [FixAttempt.model_validate(a) for a in data.get("fix_attempts", [])]
            except (OSError, ValueError, KeyError) as e:
                logger.warning("Skipping unreadable run file %s: %s", path, e)
                continue
            self._runs[run.id] = run
            self._issues[run.id] = {i.id: i for i in issues}
            self._attempts[run.id] = attempts
        if self._runs:
            logger.info("Loaded %d persisted run(s) from %s", len(self._runs), self.runs_dir)
