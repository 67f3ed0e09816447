"""
Scanner Service
===============
Deterministic issue detection layer.

NO LLM ALLOWED HERE. This module runs the linter, the type checker, the
security auditor and the dependency lister against the project root and
turns their output into classified, fingerprinted Issue objects.

Degradation Contract:
    - A missing tool contributes zero issues and a warning, never an error
    - A timed-out tool contributes zero issues
    - Partial / malformed output is parsed as far as possible

OUTPUT CONTRACT:
    scan() -> List[Issue]
    Classified, fingerprinted, deduplicated, sorted by (file, line).
"""
import logging
import os
from typing import Callable, List, Optional, Tuple

from janitor.core.config import Settings
from janitor.models.issue import Issue
from janitor.parser.classification import classify_issue
from janitor.parser.tool_output import (
    parse_bandit_json,
    parse_pip_outdated,
    parse_ruff_json,
    parse_typecheck_output,
)
from janitor.services.tool_runner import ToolOutput, ToolRunner
from janitor.utils.code_context import extract_snippet
from janitor.utils.manifest import MANIFEST_CANDIDATES

logger = logging.getLogger(__name__)


class Scanner:
    """
    Runs every analyser and merges the results.

    Parameters
    ----------
    settings : Settings
        Tool commands and the project root.
    runner : ToolRunner
        Subprocess executor (injected so tests can fake it).
    """

    def __init__(self, settings: Settings, runner: ToolRunner) -> None:
        self.settings = settings
        self.runner = runner
        self.root = settings.project_root

    # -------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------
    def scan(self) -> List[Issue]:
        """Run all analysers over the whole project."""
        raw: List[Issue] = []
        stages: List[Tuple[str, Callable[[], List[Issue]]]] = [
            ("lint", self.scan_lint),
            ("typecheck", self.scan_types),
            ("security", self.scan_security),
            ("dependencies", self.scan_dependencies),
        ]
        for name, stage in stages:
            found = stage()
            logger.info("Scanner stage %s found %d issue(s)", name, len(found))
            raw.extend(found)

        issues = self._finalise(raw)
        logger.info("Scan complete: %d unique issue(s)", len(issues))
        return issues

    def scan_lint(self, target: str = ".") -> List[Issue]:
        issues, _ = self.lint(target)
        return issues

    def scan_types(self, target: str = ".") -> List[Issue]:
        issues, _ = self.typecheck(target)
        return issues

    def scan_security(self, target: str = ".") -> List[Issue]:
        issues, _ = self.audit(target)
        return issues

    def scan_dependencies(self) -> List[Issue]:
        manifest = self.find_manifest()
        if manifest is None:
            logger.info("No dependency manifest found – skipping dependency scan")
            return []
        output = self.runner.run(self.settings.outdated_command)
        if not output.usable:
            return []
        content = self.read_file(manifest) or ""
        return parse_pip_outdated(output.stdout, manifest, content)

    # -------------------------------------------------------------------
    # Scoped runs (also used by the Validator)
    # -------------------------------------------------------------------
    def lint(self, target: str) -> Tuple[List[Issue], ToolOutput]:
        output = self.runner.run([*self.settings.lint_command, target])
        if not output.usable:
            return [], output
        return parse_ruff_json(output.stdout, self.root), output

    def typecheck(self, target: str) -> Tuple[List[Issue], ToolOutput]:
        output = self.runner.run([*self.settings.typecheck_command, target])
        if not output.usable:
            return [], output
        # mypy writes diagnostics to stdout, tsc sometimes to stderr
        return parse_typecheck_output(output.stdout + "\n" + output.stderr, self.root), output

    def audit(self, target: str) -> Tuple[List[Issue], ToolOutput]:
        output = self.runner.run([*self.settings.security_command, target])
        if not output.usable:
            return [], output
        return parse_bandit_json(output.stdout, self.root), output

    def lint_fix(self, target: str) -> ToolOutput:
        """Run the linter's auto-fix mode on one file (modifies it in place)."""
        return self.runner.run([*self.settings.lint_fix_command, target])

    # -------------------------------------------------------------------
    # Internal Helpers
    # -------------------------------------------------------------------
    def find_manifest(self) -> Optional[str]:
        for candidate in MANIFEST_CANDIDATES:
            if os.path.isfile(os.path.join(self.root, candidate)):
                return candidate
        return None

    def read_file(self, rel_path: str) -> Optional[str]:
        try:
            with open(os.path.join(self.root, rel_path), "r", encoding="utf-8", newline="") as f:
                return f.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.debug("Could not read %s: %s", rel_path, e)
            return None

    def _finalise(self, raw: List[Issue]) -> List[Issue]:
        """Classify, fingerprint, attach context, deduplicate and sort."""
        seen: set[tuple] = set()
        contents: dict[str, Optional[str]] = {}
        issues: List[Issue] = []
        for issue in raw:
            classified = classify_issue(issue)
            key = (classified.fingerprint, classified.line)
            if key in seen:
                continue
            seen.add(key)
            if classified.line:
                if classified.file not in contents:
                    contents[classified.file] = self.read_file(classified.file)
                content = contents[classified.file]
                if content:
                    classified.context = extract_snippet(content, classified.line)
            issues.append(classified)
        issues.sort(key=lambda i: (i.file, i.line or 0))
        return issues
