"""
Static Type Fixer
=================
Specialized fixer for type checker errors.

Escalation (one prompt per attempt, temperature rising with each):
    1. minimal      — fix types without touching code structure       (0.1)
    2. aggressive   — add assertions, guards and None checks          (0.3)
    3. last_resort  — Any / cast / scoped type-ignore, must stay valid (0.5)

Context:
    The prompt carries a ±30-line window around the error line on top of
    the full file, so the model sees the surrounding function.
"""
import logging
from typing import Dict

from janitor.core.constants import (
    STRATEGY_AGGRESSIVE,
    STRATEGY_LAST_RESORT,
    STRATEGY_MINIMAL,
)
from janitor.fixers.base import Fixer, FixRequest
from janitor.llm.prompts import build_user_prompt, get_typecheck_prompt
from janitor.llm.router import TIER_STANDARD, TIER_STRONG, model_for_tier
from janitor.models.fix_result import FixResult
from janitor.models.issue import Issue
from janitor.utils.code_context import extract_snippet

logger = logging.getLogger(__name__)

CONTEXT_WINDOW = 30

TEMPERATURES: Dict[str, float] = {
    STRATEGY_MINIMAL: 0.1,
    STRATEGY_AGGRESSIVE: 0.3,
    STRATEGY_LAST_RESORT: 0.5,
}

TIERS: Dict[str, str] = {
    STRATEGY_MINIMAL: TIER_STANDARD,
    STRATEGY_AGGRESSIVE: TIER_STANDARD,
    STRATEGY_LAST_RESORT: TIER_STRONG,
}


class StaticTypeFixer(Fixer):
    name = "static_type"
    ladder = [STRATEGY_MINIMAL, STRATEGY_AGGRESSIVE, STRATEGY_LAST_RESORT]

    def can_fix(self, issue: Issue) -> bool:
        return issue.type == "type_error"

    def max_attempts(self) -> int:
        return self.settings.max_retries

    async def fix(self, request: FixRequest) -> FixResult:
        issue = request.issue
        strategy = request.strategy if request.strategy in TEMPERATURES else STRATEGY_MINIMAL
        model = model_for_tier(TIERS[strategy])
        logger.info(
            "Type fix attempt %d (%s) for %s:%s with %s",
            request.attempt_number, strategy, issue.file, issue.line, model,
        )
        user_prompt = build_user_prompt(
            issue,
            request.original_content,
            snippet=extract_snippet(request.original_content, issue.line, context=CONTEXT_WINDOW),
            attempt_number=request.attempt_number,
            strategy=strategy,
        )
        return await self._ask_oracle(
            request, get_typecheck_prompt(strategy), user_prompt, model, TEMPERATURES[strategy],
        )
