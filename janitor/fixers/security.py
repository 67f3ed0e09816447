"""
Security Fixer
==============
Specialized fixer for vulnerabilities and security-sensitive code.

Claims:
    - issues of type "security"
    - issues whose description mentions vulnerabilities, injection,
      XSS/CSRF, authentication/authorization or permissions
    - issues in an auth or security directory or module

Behaviour:
    - ONE attempt, strongest model tier, temperature 0.0
    - Post-hoc safety check rejects fixes that remove security checks or
      introduce dangerous constructs (see utils/patch_gate.py)
    - The oracle may answer NEEDS_HUMAN_REVIEW; that ends the issue with
      "requires manual review" and is never retried
"""
import logging
import re
from typing import Tuple

from janitor.core.constants import STRATEGY_SPECIALIZED
from janitor.fixers.base import Fixer, FixRequest
from janitor.llm.prompts import SECURITY_PROMPT, build_user_prompt
from janitor.llm.router import TIER_STRONGEST, model_for_tier
from janitor.models.fix_result import FixResult
from janitor.models.issue import Issue
from janitor.utils.code_context import extract_snippet, is_security_sensitive_path
from janitor.utils.patch_gate import check_security_regression

logger = logging.getLogger(__name__)

_SECURITY_TEXT_RE = re.compile(
    r"vulnerab|inject|\bxss\b|csrf|authenticat|authoriz|permission",
    re.I,
)

SECURITY_TEMPERATURE = 0.0


class SecurityFixer(Fixer):
    name = "security"
    ladder = [STRATEGY_SPECIALIZED]

    def can_fix(self, issue: Issue) -> bool:
        if issue.type == "security":
            return True
        if _SECURITY_TEXT_RE.search(issue.description):
            return True
        return is_security_sensitive_path(issue.file)

    def post_check(self, original: str, candidate: str) -> Tuple[bool, str, str]:
        return check_security_regression(original, candidate)

    async def fix(self, request: FixRequest) -> FixResult:
        issue = request.issue
        model = model_for_tier(TIER_STRONGEST)
        logger.info("Security fix for %s:%s with %s", issue.file, issue.line, model)
        user_prompt = build_user_prompt(
            issue,
            request.original_content,
            snippet=extract_snippet(request.original_content, issue.line, context=10),
            attempt_number=request.attempt_number,
            strategy=request.strategy,
        )
        return await self._ask_oracle(
            request, SECURITY_PROMPT, user_prompt, model, SECURITY_TEMPERATURE,
        )
