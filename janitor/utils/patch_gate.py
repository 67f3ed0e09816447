"""
Patch Gate
==========
Acceptance checks every candidate fix must pass before it is written to disk.

Rules:
    1. The candidate must differ from the original once whitespace is
       collapsed; a whitespace-only "fix" is rejected as UNCHANGED.
    2. The size change |len(new) - len(old)| / len(old) must not exceed the
       configured ratio (default 50%); larger rewrites are DIFF_TOO_LARGE.

Security Safety Check (security fixer only):
    3. Occurrences of authenticate / authorize / validate / sanitize /
       escape / permission must not go down.
    4. Dangerous constructs (dynamic evaluation, raw HTML injection, ...)
       must not appear more often than in the original.

All checks return (ok, escalation_reason, message) so callers can build a
FixResult directly.
"""
import re
from typing import Tuple

from janitor.utils.escalation_reasons import (
    DIFF_TOO_LARGE,
    UNCHANGED,
    UNSAFE_FIX_REJECTED,
)

GateVerdict = Tuple[bool, str, str]

_WHITESPACE_RE = re.compile(r"\s+")

SECURITY_KEYWORDS = ("authenticate", "authorize", "validate", "sanitize", "escape", "permission")

DANGEROUS_PATTERNS: list[tuple[str, re.Pattern]] = [
    ("eval", re.compile(r"\beval\s*\(")),
    ("exec", re.compile(r"\bexec\s*\(")),
    ("new Function", re.compile(r"\bnew\s+Function\s*\(")),
    ("dangerouslySetInnerHTML", re.compile(r"dangerouslySetInnerHTML")),
    ("innerHTML assignment", re.compile(r"\.innerHTML\s*=")),
    ("document.write", re.compile(r"document\.write\s*\(")),
    ("mark_safe", re.compile(r"\bmark_safe\s*\(")),
    ("Markup", re.compile(r"\bMarkup\s*\(")),
    ("|safe filter", re.compile(r"\|\s*safe\b")),
    ("v-html", re.compile(r"\bv-html\b")),
]


def normalize_whitespace(content: str) -> str:
    return _WHITESPACE_RE.sub(" ", content).strip()


def check_changed(original: str, candidate: str) -> GateVerdict:
    """Reject candidates identical to the original modulo whitespace."""
    if normalize_whitespace(original) == normalize_whitespace(candidate):
        return False, UNCHANGED, "Candidate is identical to the original (ignoring whitespace)"
    return True, "", ""


def size_change_ratio(original: str, candidate: str) -> float:
    if not original:
        return 0.0 if not candidate else float("inf")
    return abs(len(candidate) - len(original)) / len(original)


def check_size(original: str, candidate: str, max_ratio: float = 0.5) -> GateVerdict:
    """Reject candidates whose length moved by more than max_ratio."""
    ratio = size_change_ratio(original, candidate)
    if ratio > max_ratio:
        return (
            False,
            DIFF_TOO_LARGE,
            f"Size changed by {ratio:.0%}, limit is {max_ratio:.0%}",
        )
    return True, "", ""


def check_candidate(original: str, candidate: str, max_ratio: float = 0.5) -> GateVerdict:
    """Shared acceptance gate: must differ, must stay within the size limit."""
    ok, reason, message = check_changed(original, candidate)
    if not ok:
        return ok, reason, message
    return check_size(original, candidate, max_ratio)


# ---------------------------------------------------------------------------
# Security safety check
# ---------------------------------------------------------------------------
def count_security_keywords(content: str) -> dict[str, int]:
    lowered = content.lower()
    return {keyword: lowered.count(keyword) for keyword in SECURITY_KEYWORDS}


def count_dangerous_constructs(content: str) -> dict[str, int]:
    return {name: len(pattern.findall(content)) for name, pattern in DANGEROUS_PATTERNS}


def check_security_regression(original: str, candidate: str) -> GateVerdict:
    """
    Reject a security fix that removes checks or introduces dangerous constructs.

    Parameters
    ----------
    original : str
        File content before the fix.
    candidate : str
        Proposed file content.

    Returns
    -------
    tuple[bool, str, str]
        (ok, escalation_reason, message).
    """
    before = count_security_keywords(original)
    after = count_security_keywords(candidate)
    removed = [k for k in SECURITY_KEYWORDS if after[k] < before[k]]
    if removed:
        return (
            False,
            UNSAFE_FIX_REJECTED,
            f"Fix removes security checks: {', '.join(removed)}",
        )

    danger_before = count_dangerous_constructs(original)
    danger_after = count_dangerous_constructs(candidate)
    introduced = [name for name, count in danger_after.items() if count > danger_before[name]]
    if introduced:
        return (
            False,
            UNSAFE_FIX_REJECTED,
            f"Fix introduces dangerous constructs: {', '.join(introduced)}",
        )
    return True, "", ""
