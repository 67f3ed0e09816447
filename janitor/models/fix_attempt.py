"""
Fix Attempt Model
=================
Immutable audit record of one application of one fixer to one issue.
"""
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FixAttempt(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    issue_id: str
    run_id: str
    attempt_number: int = Field(ge=1)
    strategy: str
    fixer: str
    model: Optional[str] = None
    success: bool = False
    cost_usd: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    reasoning: str = ""
    error: str = ""
    escalation_reason: str = ""
    started_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime = Field(default_factory=_utcnow)
