"""
Component Framework Fixer
=========================
Specialized fixer for UI component files (React, Vue, Svelte).

Claims files with a component extension (.jsx, .tsx, .vue, .svelte) and
issues whose description talks about hooks, effects, props, state,
lifecycle or rendering. One attempt on the strong tier.
"""
import logging
import re

from janitor.core.constants import STRATEGY_SPECIALIZED
from janitor.fixers.base import Fixer, FixRequest
from janitor.llm.prompts import COMPONENT_PROMPT, build_user_prompt
from janitor.llm.router import TIER_STRONG, model_for_tier
from janitor.models.fix_result import FixResult
from janitor.models.issue import Issue
from janitor.utils.code_context import extract_snippet, is_component_file

logger = logging.getLogger(__name__)

_COMPONENT_TEXT_RE = re.compile(
    r"\bhooks?\b|\buse(Effect|State|Memo|Callback|Ref)\b|\bprops\b|\bstate\b"
    r"|lifecycle|\brender(ing|ed)?\b",
    re.I,
)


class ComponentFrameworkFixer(Fixer):
    name = "component_framework"
    ladder = [STRATEGY_SPECIALIZED]

    def can_fix(self, issue: Issue) -> bool:
        if is_component_file(issue.file):
            return True
        return bool(_COMPONENT_TEXT_RE.search(issue.description))

    async def fix(self, request: FixRequest) -> FixResult:
        issue = request.issue
        model = model_for_tier(TIER_STRONG)
        logger.info("Component fix for %s:%s with %s", issue.file, issue.line, model)
        user_prompt = build_user_prompt(
            issue,
            request.original_content,
            snippet=extract_snippet(request.original_content, issue.line, context=15),
            attempt_number=request.attempt_number,
            strategy=request.strategy,
        )
        return await self._ask_oracle(request, COMPONENT_PROMPT, user_prompt, model, 0.2)
