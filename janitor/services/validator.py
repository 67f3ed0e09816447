"""
Validator
=========
Decides whether an applied fix actually resolved its issue.

Per issue type:
    type_error            — re-run the type checker on the file
    lint, dead_code       — re-run the linter on the file
    security              — re-run the security auditor (or the linter, for
                            ruff S-rules) on the file
    dependency            — the manifest must no longer pin the old version
    performance,
    optimization          — ruff-reported ones re-run the linter; others
                            only get the syntax check

A fix passes iff the re-run tool actually ran (not missing, not timed out)
and fewer issues with the same fingerprint remain than before the fix.
When the tool could not run, last_failure names why (TOOL_UNAVAILABLE or
TOOL_TIMEOUT) so the failure is not mistaken for a bad fix.
Python sources must additionally still parse.
"""
import ast
import logging
from typing import Callable, List, Optional, Tuple

from janitor.models.issue import Issue
from janitor.services.scanner import Scanner
from janitor.services.tool_runner import ToolOutput
from janitor.utils.code_context import is_python_file
from janitor.utils.escalation_reasons import TOOL_TIMEOUT, TOOL_UNAVAILABLE
from janitor.utils.fingerprint import fingerprint
from janitor.utils.manifest import parse_dependency_description, pins_version

logger = logging.getLogger(__name__)


def syntax_ok(file_path: str, content: Optional[str]) -> bool:
    """Parse check for Python files; other languages are assumed fine."""
    if content is None:
        return False
    if not is_python_file(file_path):
        return True
    try:
        ast.parse(content, filename=file_path)
    except (SyntaxError, ValueError) as e:
        logger.info("Syntax check failed for %s: %s", file_path, e)
        return False
    return True


class Validator:
    """
    Re-runs the relevant tool scoped to the fixed file.

    Parameters
    ----------
    scanner : Scanner
        Provides the scoped tool runs and file access.
    """

    def __init__(self, scanner: Scanner) -> None:
        self.scanner = scanner
        self.last_failure = ""

    def validate(self, issue: Issue, baseline: int = 1) -> bool:
        """
        Check whether the issue is gone from the working tree.

        Parameters
        ----------
        issue : Issue
            The issue the fix targeted.
        baseline : int
            How many issues shared this fingerprint before the fix.

        Returns
        -------
        bool
            True when the fix is confirmed.
        """
        self.last_failure = ""
        content = self.scanner.read_file(issue.file)
        if not syntax_ok(issue.file, content):
            return False

        if issue.type == "dependency":
            return self._validate_dependency(issue, content or "")

        check = self._tool_for(issue)
        if check is None:
            logger.info("No re-check tool for %s issue, syntax check only", issue.type)
            return True

        remaining, output = check(issue.file)
        if not output.usable:
            self.last_failure = TOOL_TIMEOUT if output.timed_out else TOOL_UNAVAILABLE
            logger.warning("Validation tool unusable (%s) for %s – treating as failed", self.last_failure, issue.file)
            return False

        target = issue.fingerprint or fingerprint(issue)
        still_there = sum(1 for found in remaining if fingerprint(found) == target)
        passed = still_there < max(1, baseline)
        logger.info(
            "Validation %s for %s (%d of %d matching issue(s) remain)",
            "passed" if passed else "failed", issue.file, still_there, baseline,
        )
        return passed

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    def _tool_for(
        self, issue: Issue,
    ) -> Optional[Callable[[str], Tuple[List[Issue], ToolOutput]]]:
        if issue.type == "type_error":
            return self.scanner.typecheck
        if issue.type in ("lint", "dead_code"):
            return self.scanner.lint
        if issue.type == "security":
            return self.scanner.lint if issue.tool == "ruff" else self.scanner.audit
        if issue.tool == "ruff":
            return self.scanner.lint
        return None

    def _validate_dependency(self, issue: Issue, manifest: str) -> bool:
        parsed = parse_dependency_description(issue.description)
        if parsed is None:
            logger.warning("Unrecognised dependency issue %r", issue.description)
            return False
        name, current, _latest = parsed
        if pins_version(manifest, name, current):
            logger.info("Manifest %s still pins %s==%s", issue.file, name, current)
            return False
        return True

