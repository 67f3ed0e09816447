"""
Issue Fingerprint Utility
=========================
Generates stable fingerprints that identify "the same issue" across scans.

A fingerprint combines:
    - issue type
    - normalised file path   (separators → "/", lowercased)
    - normalised description (trimmed, lowercased, positions masked)

Line and column numbers are masked so an issue that merely moved keeps its
identity; the learning store and the validator both rely on that.

Rules:
    - SHA-256 truncated to 16 hex chars, same as every other hash in the agent.
    - Pure: identical inputs always produce identical output.
"""
import hashlib
import re

from janitor.models.issue import Issue

# Position tokens that change when code moves but the defect does not
_POSITION_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"\bline \d+"), "line X"),
    (re.compile(r"\bcolumn \d+"), "column X"),
    (re.compile(r"\(\d+,\s*\d+\)"), "(X,X)"),
    (re.compile(r":\d+:\d+\b"), ":X:X"),
]


def normalize_path(file_path: str) -> str:
    """Forward slashes, lowercase, no leading './'."""
    normalized = file_path.replace("\\", "/").lower()
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized


def normalize_description(description: str) -> str:
    """Trim, lowercase and mask positional numbers."""
    normalized = description.strip().lower()
    for pattern, replacement in _POSITION_PATTERNS:
        normalized = pattern.sub(replacement, normalized)
    return normalized


def compute_fingerprint(issue_type: str, file_path: str, description: str) -> str:
    """
    Generate the fingerprint from raw fields.

    Parameters
    ----------
    issue_type : str
        Issue kind (lint, type_error, ...).
    file_path : str
        Path as reported by the tool.
    description : str
        Tool message.

    Returns
    -------
    str
        16-character hex digest.
    """
    data = f"{issue_type}:{normalize_path(file_path)}:{normalize_description(description)}"
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:16]


def fingerprint(issue: Issue) -> str:
    """Fingerprint an Issue; line, column and status never contribute."""
    return compute_fingerprint(issue.type, issue.file, issue.description)
