"""
Git Agent
=========
Version-control surface: staging, the single per-run commit, and revision lookup.

Rules:
    - At most one commit per run, containing every validated fix
    - The message lists each fixed issue and ends with a machine-readable
      trailer identifying the agent as author
    - The agent's data directory is never staged
    - Commands are argv lists, never shell strings, so descriptions with
      quotes or newlines cannot break the command line
"""
import logging
import os
import subprocess
from typing import List, Sequence

from janitor.core.constants import (
    COMMIT_DESCRIPTION_LIMIT,
    COMMIT_TITLE,
    COMMIT_TRAILER_KEY,
)
from janitor.core.exceptions import GitCommandError
from janitor.models.issue import Issue

logger = logging.getLogger(__name__)


def build_commit_message(fixed: Sequence[Issue], trailer_author: str) -> str:
    """
    Build the commit message for a batch of fixed issues.

    Parameters
    ----------
    fixed : Sequence[Issue]
        Issues whose fixes were validated this run.
    trailer_author : str
        Value of the Automated-By trailer.

    Returns
    -------
    str
        Title, one bullet per issue, blank line, trailer.
    """
    lines: List[str] = [COMMIT_TITLE, ""]
    for issue in fixed:
        description = " ".join(issue.description.split())[:COMMIT_DESCRIPTION_LIMIT]
        lines.append(f"- {issue.type} [{issue.severity}]: {description}")
    lines.append("")
    lines.append(f"{COMMIT_TRAILER_KEY}: {trailer_author}")
    return "\n".join(lines)


class GitAgent:
    """
    Runs git inside the project root.

    Parameters
    ----------
    repo_path : str
        Working tree to operate on.
    exclude : Sequence[str]
        Paths, relative to the repository root, that are never staged
        (the agent's own data directory).
    """

    def __init__(self, repo_path: str, exclude: Sequence[str] = ()) -> None:
        self.repo_path = repo_path
        self.exclude = [p.replace(os.sep, "/").rstrip("/") for p in exclude if p and p != "."]

    def _git(self, *args: str) -> str:
        command = ["git", *args]
        try:
            proc = subprocess.run(
                command,
                cwd=self.repo_path,
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as e:
            raise GitCommandError(command, e.stderr or "") from e
        except FileNotFoundError as e:
            raise GitCommandError(command, "git executable not found") from e
        return (proc.stdout or "").strip()

    def stage_all(self) -> None:
        if not self.exclude:
            self._git("add", "-A")
            return
        self._git("add", "-A", "--", ".", *(f":(exclude){path}" for path in self.exclude))

    def has_staged_changes(self) -> bool:
        """True when the index differs from HEAD."""
        command = ["git", "diff", "--cached", "--quiet"]
        try:
            proc = subprocess.run(command, cwd=self.repo_path, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise GitCommandError(command, "git executable not found") from e
        # returncode 0 = NO differences
        return proc.returncode != 0

    def commit(self, message: str) -> str:
        """
        Commit the staged changes and return the short revision id.

        Raises
        ------
        GitCommandError
            If git refuses the commit.
        """
        self._git("commit", "-m", message)
        sha = self.current_revision()
        logger.info("Committed %s: %s", sha, message.splitlines()[0] if message else "")
        return sha

    def current_revision(self) -> str:
        return self._git("rev-parse", "--short", "HEAD")

    def discard_changes(self, rel_path: str) -> None:
        """Restore one file to its committed state."""
        self._git("checkout", "--", rel_path)

    def commit_fixes(self, fixed: Sequence[Issue], trailer_author: str) -> tuple[str, str]:
        """Stage everything and create the single run commit; returns (sha, message)."""
        message = build_commit_message(fixed, trailer_author)
        self.stage_all()
        if not self.has_staged_changes():
            logger.warning("Fixes produced no staged diff, skipping commit")
            return "", message
        return self.commit(message), message
