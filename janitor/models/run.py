"""
Run Models
==========
Pydantic models for one end-to-end invocation of the agent.

Run        — the persisted record (status, counts, cost, commit, summary).
RunResult  — what Orchestrator.run() hands back to its caller: the run
             fields plus the issues, the fix attempts and the derived
             figures (filtered count, hours saved).

A Run is terminal once its status leaves "running".
"""
import uuid
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .fix_attempt import FixAttempt
from .issue import Issue

RunStatus = Literal["running", "completed", "failed"]
TriggerType = Literal["manual", "cron", "api"]


class Run(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None
    status: RunStatus = "running"
    trigger_type: TriggerType = "manual"
    dry_run: bool = False
    tasks_found: int = 0
    tasks_completed: int = 0
    tasks_skipped: int = 0
    tasks_failed: int = 0
    total_cost_usd: float = 0.0
    commit_hash: Optional[str] = None
    commit_message: Optional[str] = None
    summary: str = ""
    errors: List[str] = []
    version: str = ""
    duration_seconds: float = 0.0

    @property
    def is_terminal(self) -> bool:
        return self.status != "running"


class RunResult(BaseModel):
    run_id: str
    status: RunStatus
    trigger_type: TriggerType = "manual"
    dry_run: bool = False
    tasks_found: int = 0
    tasks_completed: int = 0
    tasks_skipped: int = 0
    tasks_failed: int = 0
    tasks_filtered: int = 0
    improvements: List[Issue] = []
    issues: List[Issue] = []
    fix_attempts: List[FixAttempt] = []
    errors: List[str] = []
    commit_hash: Optional[str] = None
    summary: str = ""
    total_cost_usd: float = 0.0
    hours_saved: float = 0.0
    duration_seconds: float = 0.0

    @classmethod
    def from_run(
        cls,
        run: Run,
        issues: List[Issue],
        attempts: List[FixAttempt],
        tasks_filtered: int = 0,
        hours_saved: float = 0.0,
    ) -> "RunResult":
        return cls(
            run_id=run.id,
            status=run.status,
            trigger_type=run.trigger_type,
            dry_run=run.dry_run,
            tasks_found=run.tasks_found,
            tasks_completed=run.tasks_completed,
            tasks_skipped=run.tasks_skipped,
            tasks_failed=run.tasks_failed,
            tasks_filtered=tasks_filtered,
            improvements=[i for i in issues if i.status == "fixed"],
            issues=list(issues),
            fix_attempts=list(attempts),
            errors=list(run.errors),
            commit_hash=run.commit_hash,
            summary=run.summary,
            total_cost_usd=run.total_cost_usd,
            hours_saved=hours_saved,
            duration_seconds=run.duration_seconds,
        )
