"""
Oracle Prompts
==============
Centralised store for fixer system and user prompts.

Prompt Design Rules:
    - Fix only the reported issue; leave unrelated code untouched
    - Preserve comments, formatting and public signatures
    - Return the COMPLETE file, never a fragment or a diff
    - Admit defeat explicitly (CANNOT_FIX) instead of guessing

Strategy-Specific Prompts:
    - minimal      — smallest possible change, structure preserved
    - aggressive   — broader local rewrite allowed
    - last_resort  — unsafe escape hatches allowed if the result stays valid
    - specialized  — security / static typing / component framework rules

Response Format:
    JSON object {"fixed_content": "...", "reasoning": "..."} or one of the
    bare sentinels NEEDS_HUMAN_REVIEW / CANNOT_FIX.
"""
import logging

from janitor.core.constants import (
    CANNOT_FIX_SENTINEL,
    NEEDS_REVIEW_SENTINEL,
    STRATEGY_AGGRESSIVE,
    STRATEGY_LAST_RESORT,
    STRATEGY_MINIMAL,
)
from janitor.models.issue import Issue

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared pieces
# ---------------------------------------------------------------------------
RESPONSE_FORMAT = (
    "RESPONSE FORMAT — respond with ONLY valid JSON:\n"
    '{"fixed_content": "<the complete file with your fix applied>", '
    '"reasoning": "<one or two sentences on what you changed>"}\n'
    f"If the issue cannot be fixed safely, respond with exactly {CANNOT_FIX_SENTINEL}.\n"
    "No other text. No markdown code fences."
)

BASE_RULES = (
    "HARD RULES:\n"
    "1. Fix ONLY the reported issue.\n"
    "2. Preserve ALL comments and formatting of untouched lines.\n"
    "3. Do NOT rename public functions, classes or arguments.\n"
    "4. Do NOT add explanations inside the code.\n"
    "5. Return the COMPLETE file content.\n"
)


# ---------------------------------------------------------------------------
# Generic escalating prompts
# ---------------------------------------------------------------------------
STRATEGY_PROMPTS: dict[str, str] = {
    STRATEGY_MINIMAL: (
        "You are a careful code maintainer. Apply the SMALLEST change that "
        "resolves the reported issue. Keep the structure of the code exactly "
        "as it is.\n\n" + BASE_RULES + "\n" + RESPONSE_FORMAT
    ),
    STRATEGY_AGGRESSIVE: (
        "You are a senior code maintainer. A minimal fix for this issue has "
        "already failed validation. You may rewrite the surrounding function "
        "or block if that is what it takes, but keep behaviour and public "
        "interfaces intact.\n\n" + BASE_RULES + "\n" + RESPONSE_FORMAT
    ),
    STRATEGY_LAST_RESORT: (
        "You are the final fallback for an issue that two earlier fixes did "
        "not resolve. Unsafe escape hatches are allowed: loosened types, "
        "suppression comments scoped to the exact rule, or explicit casts. "
        "The file MUST still be syntactically valid and behave the same at "
        "runtime.\n\n" + BASE_RULES + "\n" + RESPONSE_FORMAT
    ),
}


def get_strategy_prompt(strategy: str) -> str:
    """System prompt for a generic strategy; unknown strategies get the minimal one."""
    return STRATEGY_PROMPTS.get(strategy, STRATEGY_PROMPTS[STRATEGY_MINIMAL])


# ---------------------------------------------------------------------------
# Specialized prompts
# ---------------------------------------------------------------------------
SECURITY_PROMPT = (
    "You are an application security engineer fixing one reported "
    "vulnerability.\n\n"
    "SECURITY RULES:\n"
    "1. Fix the vulnerability using the framework's safe primitives "
    "(parameterised queries, escaping helpers, constant-time comparison).\n"
    "2. NEVER remove or weaken authentication, authorization, validation, "
    "sanitization, escaping or permission checks.\n"
    "3. NEVER introduce eval/exec, dynamic code construction or raw HTML "
    "injection.\n"
    "4. Do not change behaviour for legitimate inputs.\n"
    f"5. If a safe fix requires a design decision, respond with exactly "
    f"{NEEDS_REVIEW_SENTINEL}.\n\n" + BASE_RULES + "\n" + RESPONSE_FORMAT
)

TYPECHECK_PROMPTS: dict[str, str] = {
    STRATEGY_MINIMAL: (
        "You fix static type checker errors. Correct the types so the "
        "checker passes WITHOUT changing the structure of the code: fix "
        "annotations, return types or the offending expression only.\n\n"
        + BASE_RULES + "\n" + RESPONSE_FORMAT
    ),
    STRATEGY_AGGRESSIVE: (
        "You fix static type checker errors. The structure-preserving fix "
        "failed. Add type assertions, isinstance guards, None checks or "
        "narrowing branches around the failing expression.\n\n"
        + BASE_RULES + "\n" + RESPONSE_FORMAT
    ),
    STRATEGY_LAST_RESORT: (
        "You fix static type checker errors. Two fixes already failed. You "
        "may loosen typing: Any, cast(), or a '# type: ignore[<code>]' "
        "comment on the exact line, as long as the file stays syntactically "
        "valid.\n\n" + BASE_RULES + "\n" + RESPONSE_FORMAT
    ),
}

COMPONENT_PROMPT = (
    "You maintain UI components written for a declarative component "
    "framework (React, Vue, Svelte).\n\n"
    "COMPONENT RULES:\n"
    "1. Hooks are called unconditionally and in the same order on every render.\n"
    "2. Effect dependency lists are complete; no stale closures.\n"
    "3. Event handlers are typed.\n"
    "4. Items rendered from lists carry a stable key.\n"
    "5. State is never mutated directly; always use the setter.\n\n"
    + BASE_RULES + "\n" + RESPONSE_FORMAT
)


def get_typecheck_prompt(strategy: str) -> str:
    return TYPECHECK_PROMPTS.get(strategy, TYPECHECK_PROMPTS[STRATEGY_MINIMAL])


# ---------------------------------------------------------------------------
# User Prompt Builder
# ---------------------------------------------------------------------------
def build_user_prompt(
    issue: Issue,
    file_content: str,
    snippet: str = "",
    attempt_number: int = 1,
    strategy: str = STRATEGY_MINIMAL,
) -> str:
    """
    Build the user prompt sent to the oracle.

    Parameters
    ----------
    issue : Issue
        The issue to fix.
    file_content : str
        Complete current content of the file.
    snippet : str
        Numbered excerpt around the issue line (">>>" marks the line).
    attempt_number : int
        1-based attempt number; later attempts are told earlier ones failed.
    strategy : str
        Strategy for this attempt.

    Returns
    -------
    str
        Formatted user prompt string.
    """
    parts: list[str] = []

    parts.append(f"ISSUE TYPE: {issue.type}")
    parts.append(f"SEVERITY: {issue.severity}")
    location = issue.file
    if issue.line:
        location += f":{issue.line}"
        if issue.column:
            location += f":{issue.column}"
    parts.append(f"LOCATION: {location}")
    if issue.code:
        parts.append(f"RULE: {issue.code}")
    parts.append(f"DESCRIPTION:\n{issue.description}")

    if attempt_number > 1:
        parts.append(
            f"This is attempt {attempt_number} ({strategy}). Earlier fixes did "
            "not pass validation. Do NOT repeat them; try a different approach."
        )

    if snippet:
        parts.append(f"CODE AROUND THE ISSUE:\n```\n{snippet}\n```")
    parts.append(f"FULL FILE CONTENT:\n```\n{file_content}\n```")

    parts.append(
        "INSTRUCTIONS:\n"
        "- Return the COMPLETE file content with the fix applied.\n"
        "- Respond with ONLY the JSON object described in the system prompt."
    )
    return "\n\n".join(parts)
