"""
Issue Model
===========
Pydantic model for one defect found by a scan.
This is the contract between the scanner and every downstream consumer.

Fields:
    id              — uuid hex, unique per scan
    type            — lint / dead_code / type_error / dependency / security / performance / optimization
    file            — path relative to the project root, forward slashes
    line, column    — 1-based position, when the tool reports one
    description     — raw tool message
    severity        — derived by the classifier (low / medium / high / critical)
    priority        — derived by the classifier, integer 1–10
    fingerprint     — stable identity across scans (see utils/fingerprint.py)
    tool            — which tool reported it (ruff, mypy, bandit, pip, ...)
    code            — the tool's rule code, when known (F401, B608, ...)
    context         — short code excerpt around the line, for prompts and audit
    status          — pending → fixing → fixed | skipped | failed
    fix_strategy    — the strategy that produced the accepted fix
    skip_reason     — why the issue was skipped, when it was

Issues are created fresh on every scan. Only status, fix_strategy and
skip_reason change once classification has run.
"""
import uuid
from typing import Literal, Optional

from pydantic import BaseModel, Field

IssueType = Literal[
    "lint", "dead_code", "type_error", "dependency",
    "security", "performance", "optimization",
]
Severity = Literal["low", "medium", "high", "critical"]
IssueStatus = Literal["pending", "fixing", "fixed", "skipped", "failed"]


class Issue(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    type: IssueType
    file: str
    line: Optional[int] = None
    column: Optional[int] = None
    description: str
    severity: Severity = "low"
    priority: int = Field(default=3, ge=1, le=10)
    fingerprint: str = ""
    tool: str = ""
    code: str = ""
    context: str = ""
    status: IssueStatus = "pending"
    fix_strategy: Optional[str] = None
    skip_reason: Optional[str] = None
