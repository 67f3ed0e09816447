"""
Classification
==============
Derives severity and priority for an Issue from its type, description and path.

Severity (first match wins):
    critical — security issues, or descriptions mentioning vulnerabilities,
               injection, XSS or authentication/authorization
    high     — type errors, or descriptions mentioning crashes, runtime
               errors, undefined values or null dereferences
    medium   — performance / optimization issues, or descriptions
               mentioning memory or performance
    low      — everything else

Priority (1–10):
    base from severity, adjusted by where the file lives (request handlers
    matter more, auth code matters most, test files matter less). Security
    issues are always 10.

Classification Strategy:
    1. ISSUE TYPE FIRST, THEN KEYWORD PATTERNS
    2. NEVER dynamic inference or LLM

Also estimates how long a human would have needed for a fix, which feeds
the "hours saved" figure of the run summary.
"""
import re
from typing import Iterable, Tuple

from janitor.models.issue import Issue
from janitor.utils.fingerprint import fingerprint


# ---------------------------------------------------------------------------
# Severity keywords
# ---------------------------------------------------------------------------
_CRITICAL_RE = re.compile(
    r"security|vulnerab|injection|\bxss\b|authenticat|authoriz", re.I
)
_HIGH_RE = re.compile(
    r"crash|runtime error|undefined|null reference|none reference"
    r"|cannot read propert|nonetype",
    re.I,
)
_MEDIUM_RE = re.compile(r"memory|performance", re.I)


# ---------------------------------------------------------------------------
# Priority
# ---------------------------------------------------------------------------
BASE_PRIORITY: dict[str, int] = {
    "critical": 10,
    "high": 7,
    "medium": 5,
    "low": 3,
}

_ROUTE_MARKERS = ("api/", "route", "views", "handlers", "endpoints")
_AUTH_MARKERS = ("auth", "security")
_TEST_MARKERS = ("test_", "_test.", ".test.", "spec.", "/tests/", "tests/")

PRIORITY_MIN = 1
PRIORITY_MAX = 10


def severity_of(issue: Issue) -> str:
    """Return the severity for an issue (see module docstring)."""
    if issue.type == "security" or _CRITICAL_RE.search(issue.description):
        return "critical"
    if issue.type == "type_error" or _HIGH_RE.search(issue.description):
        return "high"
    if issue.type in ("performance", "optimization") or _MEDIUM_RE.search(issue.description):
        return "medium"
    return "low"


def priority_of(issue: Issue, severity: str) -> int:
    """Return the clamped 1–10 priority for an issue of the given severity."""
    if issue.type == "security":
        return PRIORITY_MAX

    path = issue.file.replace("\\", "/").lower()
    priority = BASE_PRIORITY.get(severity, BASE_PRIORITY["low"])

    if any(marker in path for marker in _ROUTE_MARKERS):
        priority += 1
    if any(marker in path for marker in _AUTH_MARKERS):
        priority += 2
    if any(marker in path for marker in _TEST_MARKERS):
        priority -= 1

    return max(PRIORITY_MIN, min(PRIORITY_MAX, priority))


def classify(issue: Issue) -> Tuple[str, int]:
    """
    Derive (severity, priority) for an issue.

    Pure: the issue is not modified and the same input always yields the
    same output.

    Parameters
    ----------
    issue : Issue
        The issue to classify.

    Returns
    -------
    tuple[str, int]
        Severity label and priority in [1, 10].
    """
    severity = severity_of(issue)
    return severity, priority_of(issue, severity)


def classify_issue(issue: Issue) -> Issue:
    """Return a copy of the issue with severity, priority and fingerprint filled in."""
    severity, priority = classify(issue)
    return issue.model_copy(update={
        "severity": severity,
        "priority": priority,
        "fingerprint": fingerprint(issue),
    })


# ---------------------------------------------------------------------------
# Manual effort estimate
# ---------------------------------------------------------------------------
MANUAL_FIX_MINUTES: dict[str, int] = {
    "lint": 2,
    "dead_code": 5,
    "type_error": 15,
    "dependency": 10,
    "optimization": 30,
    "security": 60,
    "performance": 45,
}

SEVERITY_MULTIPLIER: dict[str, float] = {
    "low": 1.0,
    "medium": 1.5,
    "high": 2.0,
    "critical": 3.0,
}


def estimate_manual_fix_minutes(issue: Issue) -> float:
    """Minutes a developer would plausibly spend fixing this issue by hand."""
    base = MANUAL_FIX_MINUTES.get(issue.type, 10)
    return base * SEVERITY_MULTIPLIER.get(issue.severity, 1.0)


def calculate_time_saved(issues: Iterable[Issue]) -> float:
    """Hours saved by the given fixed issues, rounded to the hundredth."""
    minutes = sum(estimate_manual_fix_minutes(issue) for issue in issues)
    return round(minutes / 60, 2)
