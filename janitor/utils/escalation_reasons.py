"""
Escalation Reasons
==================
Standardised constants for why a fix attempt did not land.

Used by FixResult.escalation_reason and FixAttempt.escalation_reason to give
the orchestrator, the learning store and the persisted audit trail clean,
machine-readable failure reasons.
"""


# ---------------------------------------------------------------------------
# Escalation Reason Constants
# ---------------------------------------------------------------------------
TOOL_UNAVAILABLE = "TOOL_UNAVAILABLE"
TOOL_TIMEOUT = "TOOL_TIMEOUT"
BUDGET_EXCEEDED = "BUDGET_EXCEEDED"
ORACLE_DECLINED = "ORACLE_DECLINED"
NEEDS_REVIEW = "NEEDS_REVIEW"
ORACLE_FAILURE = "ORACLE_FAILURE"
INVALID_RESPONSE = "INVALID_RESPONSE"
VALIDATION_FAILED = "VALIDATION_FAILED"
UNSAFE_FIX_REJECTED = "UNSAFE_FIX_REJECTED"
DIFF_TOO_LARGE = "DIFF_TOO_LARGE"
UNCHANGED = "UNCHANGED"
UNREADABLE_FILE = "UNREADABLE_FILE"
EXCEPTION = "EXCEPTION"
CANCELLED = "CANCELLED"

# The oracle has told us a human must look at this issue; retrying is pointless.
NON_RETRYABLE_REASONS = frozenset({ORACLE_DECLINED, NEEDS_REVIEW})

# Failures that say nothing about whether the issue is fixable.
NON_LEARNING_REASONS = frozenset({BUDGET_EXCEEDED, CANCELLED, TOOL_UNAVAILABLE})


def is_retryable(reason: str) -> bool:
    """
    Check whether a failed attempt with this reason may be retried.

    Parameters
    ----------
    reason : str
        One of the escalation reason constants (empty = no reason).

    Returns
    -------
    bool
        False only for oracle declines and needs-review verdicts.
    """
    return reason not in NON_RETRYABLE_REASONS
