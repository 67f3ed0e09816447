"""
Generic Escalating Fixer
========================
Fallback fixer for every issue no specialized fixer claims.

Strategy Ladder (data, not control flow):
    attempt 1  minimal      temperature 0.1   cheap tier for low / lint / dead code
    attempt 2  aggressive   temperature 0.4   standard tier
    attempt 3  last_resort  temperature 0.7   strong tier

Zero-Cost Repairs (minimal rung only, tried before any oracle call):
    - ruff-reported lint / dead code → `ruff check --fix` on the file
    - outdated dependency            → rewrite the pin in the manifest
A zero-cost candidate goes through the same acceptance gate as an oracle
candidate. When the tool changes nothing, the attempt falls through to the
oracle.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from janitor.core.constants import (
    STRATEGY_AGGRESSIVE,
    STRATEGY_LAST_RESORT,
    STRATEGY_MINIMAL,
)
from janitor.fixers.base import Fixer, FixRequest
from janitor.llm.prompts import build_user_prompt, get_strategy_prompt
from janitor.llm.router import model_for_tier, select_tier
from janitor.models.fix_result import FixResult
from janitor.models.issue import Issue
from janitor.services.scanner import Scanner
from janitor.services.workspace import Workspace
from janitor.utils.code_context import extract_snippet
from janitor.utils.manifest import bump_pin, parse_dependency_description

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StrategyStep:
    strategy: str
    temperature: float


STRATEGY_LADDER: List[StrategyStep] = [
    StrategyStep(STRATEGY_MINIMAL, 0.1),
    StrategyStep(STRATEGY_AGGRESSIVE, 0.4),
    StrategyStep(STRATEGY_LAST_RESORT, 0.7),
]

_AUTOFIX_TYPES = ("lint", "dead_code")


def step_for(strategy: str) -> StrategyStep:
    for step in STRATEGY_LADDER:
        if step.strategy == strategy:
            return step
    return STRATEGY_LADDER[0]


class GenericEscalatingFixer(Fixer):
    """
    Escalating fixer used for everything the specialized fixers decline.

    Parameters
    ----------
    scanner : Scanner, optional
        Needed for the lint auto-fix repair; without it that repair is skipped.
    workspace : Workspace, optional
        Used to restore the file after the lint auto-fix has run.
    """

    name = "generic_escalating"
    kind = "generic"
    ladder = [step.strategy for step in STRATEGY_LADDER]

    def __init__(
        self,
        client,
        settings,
        scanner: Optional[Scanner] = None,
        workspace: Optional[Workspace] = None,
    ) -> None:
        super().__init__(client, settings)
        self.scanner = scanner
        self.workspace = workspace

    def can_fix(self, issue: Issue) -> bool:
        return True

    def max_attempts(self) -> int:
        return self.settings.max_retries

    async def fix(self, request: FixRequest) -> FixResult:
        issue = request.issue
        step = step_for(request.strategy)

        if step.strategy == STRATEGY_MINIMAL:
            repaired = self._zero_cost_candidate(request)
            if repaired is not None:
                logger.info("Deterministic repair produced a candidate for %s", issue.file)
                return self._accept(request, repaired, "Deterministic tool repair")

        model = model_for_tier(select_tier(issue, step.strategy))
        logger.info(
            "Generic fix attempt %d (%s) for %s:%s with %s",
            request.attempt_number, step.strategy, issue.file, issue.line, model,
        )
        user_prompt = build_user_prompt(
            issue,
            request.original_content,
            snippet=extract_snippet(request.original_content, issue.line),
            attempt_number=request.attempt_number,
            strategy=step.strategy,
        )
        return await self._ask_oracle(
            request, get_strategy_prompt(step.strategy), user_prompt, model, step.temperature,
        )

    # -------------------------------------------------------------------
    # Zero-cost repairs
    # -------------------------------------------------------------------
    def _zero_cost_candidate(self, request: FixRequest) -> Optional[str]:
        issue = request.issue
        if issue.type == "dependency":
            return self._bump_dependency(request)
        if issue.type in _AUTOFIX_TYPES and issue.tool == "ruff":
            return self._lint_autofix(request)
        return None

    @staticmethod
    def _bump_dependency(request: FixRequest) -> Optional[str]:
        parsed = parse_dependency_description(request.issue.description)
        if parsed is None:
            return None
        name, current, latest = parsed
        candidate = bump_pin(request.original_content, name, current, latest)
        return candidate if candidate != request.original_content else None

    def _lint_autofix(self, request: FixRequest) -> Optional[str]:
        if self.scanner is None or self.workspace is None:
            return None
        path = request.issue.file
        snapshot = self.workspace.snapshot(path)
        try:
            output = self.scanner.lint_fix(path)
            if not output.usable:
                return None
            candidate = self.workspace.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Lint auto-fix on %s failed: %s", path, e)
            return None
        finally:
            self.workspace.restore(snapshot)
        return candidate if candidate != request.original_content else None
