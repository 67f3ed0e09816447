"""
Fixer Base
==========
Shared contract and machinery for every fixer.

Contract:
    can_fix(issue)       — does this fixer claim the issue?
    ladder               — strategies it uses, cheapest first
    max_attempts()       — attempt ceiling for one issue
    async fix(request)   — produce a FixResult for ONE attempt

Oracle Call Pipeline (_ask_oracle):
    1. Estimate prompt tokens and ask the Cost Governor; refusal → BUDGET_EXCEEDED
    2. Call the oracle; every in-client retry is re-checked against the
       governor; transport failure → ORACLE_FAILURE / TOOL_TIMEOUT
    3. Record the actual spend (even for failed completions)
    4. Parse; NEEDS_HUMAN_REVIEW → needs_review, CANNOT_FIX → declined
    5. Acceptance gate: must differ, size change within the limit
    6. Fixer-specific post check (security regression check)

Fixers do NOT:
    - Write files (the orchestrator applies candidates)
    - Run the Validator
    - Update the learning store
"""
import difflib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Tuple

from janitor.core.config import Settings
from janitor.llm.client import OracleClient, parse_oracle_response
from janitor.models.fix_result import FixResult
from janitor.models.issue import Issue
from janitor.services.cost_governor import CostGovernor
from janitor.utils.escalation_reasons import (
    BUDGET_EXCEEDED,
    INVALID_RESPONSE,
    NEEDS_REVIEW,
    ORACLE_DECLINED,
    ORACLE_FAILURE,
    TOOL_TIMEOUT,
)
from janitor.utils.patch_gate import check_candidate

logger = logging.getLogger(__name__)

MANUAL_REVIEW_REASONING = "requires manual review"


@dataclass
class FixRequest:
    """Everything one attempt needs."""
    issue: Issue
    original_content: str
    attempt_number: int
    strategy: str
    governor: CostGovernor


class Fixer(ABC):
    """
    Base class for all fixers.

    Parameters
    ----------
    client : OracleClient
        Oracle transport.
    settings : Settings
        Gate limits and retry ceiling.
    """

    name: str = "fixer"
    kind: str = "specialized"
    ladder: List[str] = []

    def __init__(self, client: OracleClient, settings: Settings) -> None:
        self.client = client
        self.settings = settings

    # -------------------------------------------------------------------
    # Contract
    # -------------------------------------------------------------------
    @abstractmethod
    def can_fix(self, issue: Issue) -> bool:
        """True when this fixer claims the issue."""

    @abstractmethod
    async def fix(self, request: FixRequest) -> FixResult:
        """Produce a candidate for one attempt."""

    def max_attempts(self) -> int:
        return len(self.ladder)

    def post_check(self, original: str, candidate: str) -> Tuple[bool, str, str]:
        """Fixer-specific acceptance check; the default accepts everything."""
        return True, "", ""

    # -------------------------------------------------------------------
    # Shared machinery
    # -------------------------------------------------------------------
    async def _ask_oracle(
        self,
        request: FixRequest,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
    ) -> FixResult:
        """Run the oracle call pipeline described in the module docstring."""
        governor = request.governor
        estimated = governor.estimate(system_prompt + user_prompt)
        if not governor.can_afford(estimated, model):
            return FixResult(
                model=model,
                error=(
                    f"Budget exceeded: ${governor.spent:.4f} of ${governor.ceiling:.2f} "
                    f"spent, {model} call not affordable"
                ),
                escalation_reason=BUDGET_EXCEEDED,
            )

        response = await self.client.complete(
            system_prompt, user_prompt, model, temperature,
            before_retry=governor.allows_retry(estimated, model),
        )
        input_tokens = response.input_tokens
        output_tokens = response.output_tokens
        if response.success and not input_tokens:
            # Provider did not report usage; fall back to our own estimate
            input_tokens = estimated
            output_tokens = governor.estimate(response.text)
        cost = governor.record(input_tokens, output_tokens, model) if (input_tokens or output_tokens) else 0.0

        base = dict(model=model, cost=cost, input_tokens=input_tokens, output_tokens=output_tokens)

        if not response.success:
            return FixResult(
                **base,
                error=response.error or "Oracle call failed",
                escalation_reason=TOOL_TIMEOUT if response.timed_out else ORACLE_FAILURE,
            )

        parsed = parse_oracle_response(response.text)
        if parsed.needs_review:
            logger.warning("Oracle flagged %s for human review", request.issue.file)
            return FixResult(
                **base,
                reasoning=MANUAL_REVIEW_REASONING,
                error=parsed.reasoning or "Oracle flagged the issue for human review",
                escalation_reason=NEEDS_REVIEW,
                needs_review=True,
            )
        if parsed.declined:
            logger.info("Oracle declined to fix %s", request.issue.file)
            return FixResult(
                **base,
                reasoning=parsed.reasoning,
                error="Oracle declined to fix this issue",
                escalation_reason=ORACLE_DECLINED,
                declined=True,
            )
        if not parsed.valid:
            return FixResult(**base, error=parsed.error, escalation_reason=INVALID_RESPONSE)

        return self._accept(request, parsed.fixed_content, parsed.reasoning, **base)

    def _accept(self, request: FixRequest, candidate: str, reasoning: str, **base) -> FixResult:
        """Run the shared gate and the fixer's post check on a candidate."""
        original = request.original_content
        ok, reason, message = check_candidate(original, candidate, self.settings.max_size_change_ratio)
        if ok:
            ok, reason, message = self.post_check(original, candidate)
        if not ok:
            logger.warning("Rejected candidate for %s: %s", request.issue.file, message)
            return FixResult(
                **base,
                reasoning=reasoning,
                error=message,
                escalation_reason=reason,
            )
        logger.debug(
            "Candidate diff for %s:\n%s",
            request.issue.file, self._compute_diff(original, candidate, request.issue.file),
        )
        return FixResult(
            **base,
            success=True,
            fixed_content=candidate,
            reasoning=reasoning,
        )

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    @staticmethod
    def _compute_diff(original: str, patched: str, file_path: str) -> str:
        """Unified diff between original and patched content, for logs."""
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            patched.splitlines(keepends=True),
            fromfile=f"a/{file_path}",
            tofile=f"b/{file_path}",
            lineterm="",
        )
        return "\n".join(diff)
