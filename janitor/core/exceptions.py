"""
Exceptions
==========
Small exception hierarchy for failures that must cross a component boundary.

Most recoverable problems are reported as escalation reasons on a FixResult
(see janitor/utils/escalation_reasons.py). Exceptions are reserved for the
few cases where the caller has to stop what it is doing.
"""


class JanitorError(Exception):
    """Base class for all agent errors."""


class GitCommandError(JanitorError):
    """A version-control command exited non-zero."""

    def __init__(self, command: list[str], stderr: str = "") -> None:
        self.command = command
        self.stderr = stderr
        super().__init__(f"git command failed: {' '.join(command)}: {stderr.strip()}")


class InvalidTransitionError(JanitorError):
    """An issue was moved between states the lifecycle does not allow."""
