"""
Orchestrator Agent
==================
The central brain of the maintenance agent.
Drives the Scan → Filter → Fix → Validate → Commit loop for one run.

Run Lifecycle:
    running → completed | failed

Algorithm:
    1. Scan, classify and fingerprint; record every fingerprint as seen
    2. Zero issues → completed with the clean summary
    3. Learning filter: historically unfixable issues become skipped
    4. Sort by priority (highest first) and keep the first MAX_TASKS_PER_RUN
    5. Per issue, the first claiming specialized fixer (else the generic
       fixer) owns every attempt:
           snapshot → fixer → write → validate → keep | roll back
    6. ≥1 fixed and not a dry run → one commit for the whole run
    7. Summary, persistence

Fault Tolerance:
    - An exception inside one attempt fails that attempt only (EXCEPTION)
    - Scan / filter / commit exceptions fail the run, fixes stay on disk
    - Persistence and learning-store write errors are logged, never fatal
    - run() never raises

Cancellation:
    cancel() stops further attempts. The attempt in flight finishes its
    write or rollback, fixes already validated are still committed.
"""
import logging
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from janitor.core.config import Settings
from janitor.core.constants import (
    AGENT_VERSION,
    CLEAN_RUN_SUMMARY,
    SKIP_BUDGET_EXHAUSTED,
    SKIP_CANCELLED,
    SKIP_HISTORICALLY_UNFIXABLE,
)
from janitor.core.context import AgentContext
from janitor.core.exceptions import GitCommandError
from janitor.fixers.base import Fixer, FixRequest
from janitor.fixers.component import ComponentFrameworkFixer
from janitor.fixers.generic import GenericEscalatingFixer
from janitor.fixers.security import SecurityFixer
from janitor.fixers.typecheck import StaticTypeFixer
from janitor.models.fix_attempt import FixAttempt
from janitor.models.fix_result import FixResult
from janitor.models.issue import Issue
from janitor.models.run import Run, RunResult
from janitor.parser.classification import calculate_time_saved
from janitor.services.cost_governor import CostGovernor
from janitor.services.workspace import FileSnapshot
from janitor.state.issue_state import IssueFixState
from janitor.utils.escalation_reasons import (
    BUDGET_EXCEEDED,
    CANCELLED,
    EXCEPTION,
    NON_LEARNING_REASONS,
    UNREADABLE_FILE,
    VALIDATION_FAILED,
)

logger = logging.getLogger(__name__)


def default_fixers(context: AgentContext) -> Tuple[List[Fixer], Fixer]:
    """Specialized fixers in priority order, plus the generic fallback."""
    settings = context.settings
    specialized: List[Fixer] = []
    if settings.enable_specialized_fixers:
        specialized = [
            SecurityFixer(context.client, settings),
            StaticTypeFixer(context.client, settings),
            ComponentFrameworkFixer(context.client, settings),
        ]
    generic = GenericEscalatingFixer(
        context.client, settings, scanner=context.scanner, workspace=context.workspace,
    )
    return specialized, generic


def build_summary(run: Run, fixed: List[Issue], hours_saved: float) -> str:
    cost_info = ""
    if run.total_cost_usd > 0:
        cost_info = f" (Cost: ${run.total_cost_usd:.4f}, Saved: {hours_saved:.1f}h)"
    if not fixed:
        return f"Found {run.tasks_found} issues but couldn't auto-fix any{cost_info}"
    by_type = Counter(issue.type for issue in fixed)
    type_summary = ", ".join(
        f"{count} {issue_type.replace('_', ' ')}" for issue_type, count in by_type.items()
    )
    return f"Fixed {len(fixed)}/{run.tasks_found} issues: {type_summary}{cost_info}"


class Orchestrator:
    """
    Runs one maintenance pass at a time.

    Parameters
    ----------
    context : AgentContext
        Collaborators (scanner, validator, git, stores, oracle client).
    specialized : list[Fixer], optional
        Specialized fixers in priority order; defaults to Security,
        StaticType, ComponentFramework (none when disabled in settings).
    generic : Fixer, optional
        Fallback fixer; defaults to GenericEscalatingFixer.
    """

    def __init__(
        self,
        context: AgentContext,
        specialized: Optional[List[Fixer]] = None,
        generic: Optional[Fixer] = None,
    ) -> None:
        self.context = context
        self.settings: Settings = context.settings
        default_specialized, default_generic = default_fixers(context)
        self.specialized = default_specialized if specialized is None else specialized
        self.generic = generic or default_generic
        self._cancelled = False

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    def cancel(self) -> None:
        logger.warning("Run cancellation requested")
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def select_fixer(self, issue: Issue) -> Fixer:
        for fixer in self.specialized:
            if fixer.can_fix(issue):
                return fixer
        return self.generic

    async def run(
        self,
        trigger_type: str = "manual",
        dry_run: Optional[bool] = None,
        max_tasks: Optional[int] = None,
    ) -> RunResult:
        """
        Execute one full maintenance run.

        Parameters
        ----------
        trigger_type : str
            "manual", "cron" or "api".
        dry_run : bool, optional
            Fix and validate without committing; defaults to settings.
        max_tasks : int, optional
            Per-run issue cap; defaults to settings.

        Returns
        -------
        RunResult
            Always returned, also when the run failed.
        """
        self._cancelled = False
        dry_run = self.settings.dry_run if dry_run is None else dry_run
        max_tasks = self.settings.max_tasks_per_run if max_tasks is None else max_tasks

        run = Run(trigger_type=trigger_type, dry_run=dry_run, version=AGENT_VERSION)
        governor = CostGovernor(ceiling_usd=self.settings.cost_ceiling_usd)
        issues: List[Issue] = []
        attempts: List[FixAttempt] = []
        filtered = 0
        run_start = time.time()

        logger.info("=" * 60)
        logger.info("Run %s started (trigger=%s, dry_run=%s)", run.id, trigger_type, dry_run)
        logger.info("=" * 60)
        self._persist("save run", self.context.repository.save_run, run)

        try:
            # ── 1. Scan ──
            issues = self.context.scanner.scan()
            run.tasks_found = len(issues)
            for issue in issues:
                self._persist("save issue", self.context.repository.save_issue, run.id, issue)
            if self.settings.enable_learning:
                for issue in issues:
                    self._learn("record_seen", issue)

            # ── 2. Clean codebase ──
            if not issues:
                run.summary = CLEAN_RUN_SUMMARY
                run.status = "completed"
            else:
                # ── 3–4. Filter, sort, cap ──
                queue, filtered = self._build_queue(issues, max_tasks)
                # Occurrences of each fingerprint still on disk; shrinks as fixes land
                baseline = Counter(issue.fingerprint for issue in issues)

                # ── 5. Fix loop ──
                for issue, fixer in queue:
                    if self._cancelled:
                        break
                    attempts.extend(
                        await self._fix_issue(run, issue, fixer, governor, baseline[issue.fingerprint])
                    )
                    if issue.status == "fixed":
                        baseline[issue.fingerprint] -= 1
                if self._cancelled:
                    run.errors.append("Run cancelled")

                # ── 6. Commit ──
                fixed = [i for i in issues if i.status == "fixed"]
                if fixed and not dry_run:
                    sha, message = self.context.git.commit_fixes(fixed, self.settings.commit_trailer_author)
                    run.commit_hash = sha or None
                    run.commit_message = message if sha else None
                elif fixed:
                    logger.info("Dry run: leaving %d fix(es) uncommitted", len(fixed))

                run.status = "completed"

        except GitCommandError as e:
            logger.error("Commit failed: %s", e, exc_info=True)
            run.status = "failed"
            run.errors.append(str(e))
        except Exception as e:
            logger.error("Orchestrator encountered a fatal error: %s", e, exc_info=True)
            run.status = "failed"
            run.errors.append(f"{type(e).__name__}: {e}")

        # ── 7. Summary & persistence ──
        fixed = [i for i in issues if i.status == "fixed"]
        hours_saved = calculate_time_saved(fixed)
        run.tasks_completed = len(fixed)
        run.tasks_skipped = sum(1 for i in issues if i.status == "skipped")
        run.tasks_failed = sum(1 for i in issues if i.status == "failed")
        run.total_cost_usd = round(governor.spent, 6)
        if run.status == "failed":
            run.summary = f"Run failed: {run.errors[-1] if run.errors else 'unknown error'}"
        elif issues:
            run.summary = build_summary(run, fixed, hours_saved)
        run.completed_at = datetime.now(timezone.utc)
        run.duration_seconds = round(time.time() - run_start, 3)

        for issue in issues:
            self._persist("update issue", self.context.repository.update_issue, run.id, issue)
        self._persist("save run", self.context.repository.save_run, run)

        logger.info("Run %s %s: %s", run.id, run.status, run.summary)
        return RunResult.from_run(
            run, issues, attempts, tasks_filtered=filtered, hours_saved=hours_saved,
        )

    # -------------------------------------------------------------------
    # Queue building
    # -------------------------------------------------------------------
    def _build_queue(
        self, issues: List[Issue], max_tasks: int,
    ) -> Tuple[List[Tuple[Issue, Fixer]], int]:
        candidates: List[Tuple[Issue, Fixer]] = []
        filtered = 0
        for issue in issues:
            fixer = self.select_fixer(issue)
            if self.settings.enable_learning and self.context.learning.should_skip(issue, fixer.ladder):
                IssueFixState(issue, fixer.ladder, 0).transition("skipped", SKIP_HISTORICALLY_UNFIXABLE)
                filtered += 1
                continue
            candidates.append((issue, fixer))
        if filtered:
            logger.info("Learning filter skipped %d historically unfixable issue(s)", filtered)

        # stable sort keeps scan order (file, line) among equal priorities
        candidates.sort(key=lambda pair: pair[0].priority, reverse=True)
        queue = candidates[:max(0, max_tasks)]
        logger.info(
            "Fix queue: %d of %d candidate issue(s) (cap %d)", len(queue), len(candidates), max_tasks,
        )
        return queue, filtered

    # -------------------------------------------------------------------
    # Per-issue fix loop
    # -------------------------------------------------------------------
    async def _fix_issue(
        self,
        run: Run,
        issue: Issue,
        fixer: Fixer,
        governor: CostGovernor,
        baseline: int,
    ) -> List[FixAttempt]:
        recommended = None
        if self.settings.enable_learning:
            recommended = self.context.learning.recommend(issue)
        state = IssueFixState(
            issue=issue,
            ladder=list(fixer.ladder),
            max_attempts=fixer.max_attempts(),
            recommended=recommended,
        )
        state.transition("fixing")
        logger.info(
            "Fixing %s:%s [%s/%s, priority %d] with %s%s",
            issue.file, issue.line, issue.type, issue.severity, issue.priority, fixer.name,
            f" (recommended: {recommended})" if recommended else "",
        )

        attempts: List[FixAttempt] = []
        while state.has_attempts_left():
            if self._cancelled:
                logger.warning("Run cancelled before attempt %d on %s", state.attempt_number + 1, issue.file)
                break

            number, strategy = state.next_attempt()
            started_at = datetime.now(timezone.utc)
            t0 = time.monotonic()
            result, validated = await self._attempt(issue, fixer, number, strategy, governor, baseline)
            attempt = FixAttempt(
                issue_id=issue.id,
                run_id=run.id,
                attempt_number=number,
                strategy=strategy,
                fixer=fixer.name,
                model=result.model or None,
                success=validated,
                cost_usd=result.cost,
                input_tokens=result.input_tokens,
                output_tokens=result.output_tokens,
                duration_ms=int((time.monotonic() - t0) * 1000),
                reasoning=result.reasoning,
                error=result.error,
                escalation_reason=result.escalation_reason,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc),
            )
            attempts.append(attempt)
            self._persist("save fix attempt", self.context.repository.save_fix_attempt, attempt)

            if validated:
                state.mark_fixed(strategy)
                logger.info("Fixed %s:%s on attempt %d (%s)", issue.file, issue.line, number, strategy)
                if self.settings.enable_learning:
                    self._learn("record_success", issue, strategy, result.model or None, run.id)
                break

            reason = result.escalation_reason
            logger.info(
                "Attempt %d on %s failed [%s]: %s", number, issue.file, reason, result.error,
            )
            if reason == BUDGET_EXCEEDED:
                state.budget_refusals += 1
                continue
            if result.needs_review or result.declined:
                if self.settings.enable_learning:
                    self._learn("record_decline", issue, run.id, strategy)
                break
            if self.settings.enable_learning and reason not in NON_LEARNING_REASONS:
                self._learn("record_failure", issue, strategy, run.id)
            if reason == UNREADABLE_FILE:
                break

        if not state.is_terminal:
            skip_reason = SKIP_CANCELLED if self._cancelled and not state.budget_refusals else SKIP_BUDGET_EXHAUSTED
            state.finish_unfixed(skip_reason)
            logger.info("Issue %s:%s ended %s", issue.file, issue.line, issue.status)
        return attempts

    async def _attempt(
        self,
        issue: Issue,
        fixer: Fixer,
        number: int,
        strategy: str,
        governor: CostGovernor,
        baseline: int,
    ) -> Tuple[FixResult, bool]:
        """One attempt: snapshot, fix, write, validate, roll back on failure."""
        workspace = self.context.workspace
        snapshot: Optional[FileSnapshot] = None
        result: Optional[FixResult] = None
        try:
            snapshot = workspace.snapshot(issue.file)
            try:
                original = workspace.read_text(issue.file)
            except (OSError, UnicodeDecodeError) as e:
                return FixResult(error=f"Cannot read {issue.file}: {e}", escalation_reason=UNREADABLE_FILE), False

            result = await fixer.fix(FixRequest(
                issue=issue,
                original_content=original,
                attempt_number=number,
                strategy=strategy,
                governor=governor,
            ))
            if not result.success:
                return result, False

            workspace.write_text(issue.file, result.fixed_content)
            if self.context.validator.validate(issue, baseline):
                return result, True

            self._rollback(snapshot)
            tool_problem = self.context.validator.last_failure
            return result.model_copy(update={
                "success": False,
                "error": (
                    f"Validation could not run ({tool_problem})" if tool_problem
                    else "Validation failed: issue still reported after the fix"
                ),
                "escalation_reason": tool_problem or VALIDATION_FAILED,
            }), False

        except Exception as e:
            logger.error("Attempt %d on %s raised: %s", number, issue.file, e, exc_info=True)
            if snapshot is not None:
                self._rollback(snapshot)
            base = result.model_dump() if result is not None else {}
            base.update(
                success=False,
                fixed_content="",
                error=f"{type(e).__name__}: {e}",
                escalation_reason=CANCELLED if self._cancelled else EXCEPTION,
            )
            return FixResult(**base), False

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    def _rollback(self, snapshot: FileSnapshot) -> None:
        """Restore the snapshot; fall back to version control if that fails."""
        try:
            self.context.workspace.restore(snapshot)
        except OSError as e:
            logger.error("Snapshot restore of %s failed (%s), discarding via git", snapshot.path, e)
            try:
                self.context.git.discard_changes(snapshot.path)
            except GitCommandError as git_error:
                logger.error("Could not roll back %s: %s", snapshot.path, git_error)

    def _learn(self, method: str, *args) -> None:
        try:
            getattr(self.context.learning, method)(*args)
        except (OSError, ValueError) as e:
            logger.error("Learning store %s failed: %s", method, e)

    @staticmethod
    def _persist(what: str, action: Callable, *args) -> None:
        try:
            action(*args)
        except (OSError, ValueError, KeyError) as e:
            logger.error("Persistence failed (%s): %s", what, e)
