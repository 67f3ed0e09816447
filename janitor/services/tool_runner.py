"""
Tool Runner
===========
Runs external analysis tools (linter, type checker, security auditor,
dependency lister) as subprocesses with a hard timeout.

Failure Handling:
    - Executable missing      → available=False, never raises
    - Timeout                 → timed_out=True, partial output discarded
    - Non-zero exit codes are NOT errors: most analysers exit 1 when they
      find something. Interpretation is left to the parsers.
"""
import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


@dataclass
class ToolOutput:
    """
    Structured output from one tool invocation.

    Fields
    ------
    command : list[str]
        The argv that was executed.
    exit_code : int
        Process exit code (-1 when the process never completed).
    stdout, stderr : str
        Captured streams.
    available : bool
        False when the executable could not be found.
    timed_out : bool
        True when the timeout killed the process.
    duration_seconds : float
        Wall clock duration.
    """
    command: list
    exit_code: int = -1
    stdout: str = ""
    stderr: str = ""
    available: bool = True
    timed_out: bool = False
    duration_seconds: float = 0.0

    @property
    def usable(self) -> bool:
        """True when the tool actually ran to completion."""
        return self.available and not self.timed_out


class ToolRunner:
    """
    Executes tool commands inside the project root.

    Parameters
    ----------
    cwd : str
        Working directory for every command (the project root).
    timeout : int
        Seconds before a command is killed (default: 120).
    """

    def __init__(self, cwd: str, timeout: int = 120) -> None:
        self.cwd = cwd
        self.timeout = timeout

    def run(self, command: Sequence[str], timeout: Optional[int] = None) -> ToolOutput:
        """
        Run one command and capture its output.

        Parameters
        ----------
        command : Sequence[str]
            argv list; never passed through a shell.
        timeout : int or None
            Override for the default timeout.

        Returns
        -------
        ToolOutput
            Captured result; see class docs for the failure flags.
        """
        argv = list(command)
        if not argv:
            return ToolOutput(command=argv, available=False)
        limit = timeout or self.timeout
        start = time.time()
        try:
            proc = subprocess.run(
                argv,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                timeout=limit,
            )
        except FileNotFoundError:
            logger.warning("%s not installed – skipping", argv[0])
            return ToolOutput(command=argv, available=False)
        except subprocess.TimeoutExpired:
            logger.warning("%s timed out after %ss", argv[0], limit)
            return ToolOutput(command=argv, timed_out=True, duration_seconds=time.time() - start)

        return ToolOutput(
            command=argv,
            exit_code=proc.returncode,
            stdout=proc.stdout or "",
            stderr=proc.stderr or "",
            duration_seconds=time.time() - start,
        )
