"""
Tool Output Parsers
===================
Converts raw analyser output into (unclassified) Issue objects.

NO LLM ALLOWED HERE. Every mapping is explicit.

Parsers:
    parse_ruff_json        — linter JSON   → lint / dead_code / security / performance / optimization
    parse_typecheck_output — mypy and tsc  → type_error
    parse_bandit_json      — bandit JSON   → security
    parse_pip_outdated     — pip JSON      → dependency (patch-level bumps only)

Tolerance Contract:
    A malformed record or line is skipped with a debug log; the rest of
    the output is still parsed. Completely unparseable output yields an
    empty list, never an exception.
"""
import json
import logging
import os
import re
from typing import Any, List, Optional

from janitor.models.issue import Issue
from janitor.utils.manifest import dependency_description, mentions

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------
def relative_path(path: str, root: str) -> str:
    """Repo-relative forward-slash path; paths outside root are kept as given."""
    if not path:
        return path
    if os.path.isabs(path) and root:
        try:
            rel = os.path.relpath(path, root)
        except ValueError:
            rel = path
        if not rel.startswith(".."):
            path = rel
    path = path.replace("\\", "/")
    while path.startswith("./"):
        path = path[2:]
    return path


def _load_json(raw: str, tool: str) -> Optional[Any]:
    if not raw or not raw.strip():
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        # Some tools print banners before the JSON payload
        start = min((i for i in (raw.find("["), raw.find("{")) if i != -1), default=-1)
        if start > 0:
            try:
                return json.loads(raw[start:])
            except json.JSONDecodeError:
                pass
        logger.warning("%s produced unparseable JSON – ignoring output", tool)
        return None


# ---------------------------------------------------------------------------
# Linter (ruff)
# ---------------------------------------------------------------------------
DEAD_CODE_CODES = {"F401", "F811", "F841", "F842"}
DEAD_CODE_PREFIXES = ("ERA",)
SECURITY_PREFIXES = ("S",)
PERFORMANCE_PREFIXES = ("PERF",)
OPTIMIZATION_PREFIXES = ("C4", "UP")


def issue_type_for_lint_code(code: str) -> str:
    """Map a linter rule code to an issue type."""
    if not code:
        return "lint"
    if code in DEAD_CODE_CODES or code.startswith(DEAD_CODE_PREFIXES):
        return "dead_code"
    if code.startswith(PERFORMANCE_PREFIXES):
        return "performance"
    # "S" must not swallow "SIM" (flake8-simplify)
    if code.startswith(SECURITY_PREFIXES) and code[1:2].isdigit():
        return "security"
    if code.startswith(OPTIMIZATION_PREFIXES):
        return "optimization"
    return "lint"


def parse_ruff_json(raw: str, root: str = "") -> List[Issue]:
    """
    Parse `ruff check --output-format=json` output.

    Parameters
    ----------
    raw : str
        Tool stdout.
    root : str
        Project root used to relativise file names.

    Returns
    -------
    list[Issue]
        One issue per diagnostic.
    """
    data = _load_json(raw, "ruff")
    if not isinstance(data, list):
        return []

    issues: List[Issue] = []
    for record in data:
        try:
            code = record.get("code") or ""
            location = record.get("location") or {}
            issues.append(Issue(
                type=issue_type_for_lint_code(code),
                file=relative_path(record["filename"], root),
                line=location.get("row"),
                column=location.get("column"),
                description=f"{code}: {record['message']}" if code else record["message"],
                tool="ruff",
                code=code,
            ))
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            logger.debug("Skipping malformed ruff record %r: %s", record, exc)
    return issues


# ---------------------------------------------------------------------------
# Type checker (mypy, tsc)
# ---------------------------------------------------------------------------
_MYPY_RE = re.compile(
    r"^(?P<file>.+?):(?P<line>\d+):(?:(?P<col>\d+):)?\s*error:\s*(?P<msg>.+?)"
    r"(?:\s+\[(?P<code>[\w-]+)\])?\s*$"
)
_TSC_RE = re.compile(
    r"^(?P<file>.+?)\((?P<line>\d+),(?P<col>\d+)\):\s*error\s+(?P<code>TS\d+):\s*(?P<msg>.+?)\s*$"
)


def parse_typecheck_output(raw: str, root: str = "") -> List[Issue]:
    """
    Parse type checker output line by line.

    Both the mypy format (`file:line:col: error: message  [code]`) and the
    tsc format (`file(line,col): error TS1234: message`) are understood.
    Notes, warnings and summary lines are ignored.
    """
    issues: List[Issue] = []
    for line in (raw or "").splitlines():
        line = line.rstrip()
        match = _MYPY_RE.match(line) or _TSC_RE.match(line)
        if not match:
            continue
        col = match.group("col")
        tool = "tsc" if match.re is _TSC_RE else "mypy"
        issues.append(Issue(
            type="type_error",
            file=relative_path(match.group("file").strip(), root),
            line=int(match.group("line")),
            column=int(col) if col else None,
            description=match.group("msg").strip(),
            tool=tool,
            code=match.group("code") or "",
        ))
    return issues


# ---------------------------------------------------------------------------
# Security auditor (bandit)
# ---------------------------------------------------------------------------
def parse_bandit_json(raw: str, root: str = "") -> List[Issue]:
    """Parse `bandit -f json` output into security issues."""
    data = _load_json(raw, "bandit")
    if not isinstance(data, dict):
        return []

    issues: List[Issue] = []
    for record in data.get("results") or []:
        try:
            col = record.get("col_offset")
            issues.append(Issue(
                type="security",
                file=relative_path(record["filename"], root),
                line=record.get("line_number"),
                column=col + 1 if isinstance(col, int) else None,
                description=f"{record['test_id']}: {record['issue_text']}",
                tool="bandit",
                code=record["test_id"],
            ))
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            logger.debug("Skipping malformed bandit record %r: %s", record, exc)
    return issues


# ---------------------------------------------------------------------------
# Dependency lister (pip)
# ---------------------------------------------------------------------------
def _release_parts(version: str) -> Optional[List[int]]:
    parts = []
    for piece in version.split(".")[:3]:
        digits = re.match(r"\d+", piece)
        if not digits:
            return None
        parts.append(int(digits.group(0)))
    return parts


def is_patch_update(current: str, latest: str) -> bool:
    """True when only the patch component changed (same major.minor)."""
    cur = _release_parts(current)
    new = _release_parts(latest)
    if not cur or not new or len(cur) < 2 or len(new) < 2:
        return False
    return cur[:2] == new[:2] and new != cur


def parse_pip_outdated(raw: str, manifest_path: str, manifest_content: str) -> List[Issue]:
    """
    Parse `pip list --outdated --format=json`.

    Only packages declared in the manifest with a patch-level update
    available are reported; everything else is too risky to bump blindly.
    """
    data = _load_json(raw, "pip")
    if not isinstance(data, list) or not manifest_content:
        return []

    issues: List[Issue] = []
    for record in data:
        try:
            name = record["name"]
            current = record["version"]
            latest = record["latest_version"]
        except (KeyError, TypeError) as exc:
            logger.debug("Skipping malformed pip record %r: %s", record, exc)
            continue
        if not mentions(manifest_content, name) or not is_patch_update(current, latest):
            continue
        issues.append(Issue(
            type="dependency",
            file=manifest_path,
            description=dependency_description(name, current, latest),
            tool="pip",
        ))
    return issues
