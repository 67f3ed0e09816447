"""
Fix Result Model
=================
Pydantic model tracking what a fixer produced for one attempt.

Fields:
    success             — True if a candidate passed the fixer's own gates
    fixed_content       — full candidate file content (empty on failure)
    cost                — oracle spend for this attempt in USD (0 when no call was made)
    model               — model identifier used, if any
    input_tokens        — tokens sent to the oracle
    output_tokens       — tokens received from the oracle
    reasoning           — the oracle's (or the deterministic repair's) explanation
    error               — human-readable failure text
    escalation_reason   — standardised reason constant (see escalation_reasons.py)
    needs_review        — oracle says a human must review (security only)
    declined            — oracle says it cannot fix this issue

Fixers never write files; the orchestrator applies fixed_content and runs
the Validator.
"""
from pydantic import BaseModel

from janitor.utils.escalation_reasons import is_retryable


class FixResult(BaseModel):
    success: bool = False
    fixed_content: str = ""
    cost: float = 0.0
    model: str = ""
    input_tokens: int = 0
    output_tokens: int = 0
    reasoning: str = ""
    error: str = ""
    escalation_reason: str = ""
    needs_review: bool = False
    declined: bool = False

    @property
    def retryable(self) -> bool:
        """False when another attempt on the same issue is pointless."""
        if self.needs_review or self.declined:
            return False
        return is_retryable(self.escalation_reason)
