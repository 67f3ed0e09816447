"""
Code Context Helpers
====================
Path and content heuristics shared by the fixers.
"""
import re
from typing import Optional

COMPONENT_EXTENSIONS = (".jsx", ".tsx", ".vue", ".svelte")

# A directory or module named for auth or security, e.g. app/auth/, security.py, auth_utils.py
_SECURITY_PATH_RE = re.compile(
    r"(?:^|/)(?:auth|authentication|authorization|security)(?:[_-][^/]*)?(?:/|\.[^/]*$|$)",
    re.I,
)
_COMPONENT_IMPORT_RE = re.compile(
    r"from\s+['\"](react|vue|svelte)['\"]|require\(['\"]react['\"]\)"
)


def extract_snippet(content: str, line_number: Optional[int], context: int = 3) -> str:
    """
    Extract ±context lines around a 1-based line, numbered, with ">>>" on the line itself.

    An empty string comes back for empty content or when no line is known.
    """
    lines = content.splitlines()
    if not lines or not line_number:
        return ""

    idx = max(0, min(line_number - 1, len(lines) - 1))
    start = max(0, idx - context)
    end = min(len(lines), idx + context + 1)

    snippet_lines: list[str] = []
    for i in range(start, end):
        line_num = i + 1
        prefix = ">>>" if line_num == line_number else "   "
        snippet_lines.append(f"{prefix} {line_num:4} | {lines[i]}")
    return "\n".join(snippet_lines)


def is_security_sensitive_path(file_path: str) -> bool:
    return bool(_SECURITY_PATH_RE.search(file_path.replace("\\", "/")))


def is_component_file(file_path: str, content: str = "") -> bool:
    """True for component-framework sources, by extension or framework import."""
    if file_path.lower().endswith(COMPONENT_EXTENSIONS):
        return True
    return bool(content) and bool(_COMPONENT_IMPORT_RE.search(content))


def is_python_file(file_path: str) -> bool:
    return file_path.lower().endswith((".py", ".pyi"))
