"""
Workspace
=========
File access for the fix loop: read, write, and byte-exact rollback.

Rollback works from an in-memory snapshot of the file's bytes taken before
the attempt, not from version control, so uncommitted user edits and
earlier fixes in the same run survive a failed attempt untouched.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileSnapshot:
    """Exact bytes of a file at one moment (None = the file did not exist)."""
    path: str
    data: Optional[bytes]


class Workspace:
    """
    Path-safe file operations relative to the project root.

    Parameters
    ----------
    root : str
        Project root; every path handed in is relative to it.
    """

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def resolve(self, rel_path: str) -> str:
        abs_path = os.path.normpath(os.path.join(self.root, rel_path))
        if os.path.commonpath([abs_path, self.root]) != self.root:
            raise ValueError(f"Path escapes the project root: {rel_path}")
        return abs_path

    def read_text(self, rel_path: str) -> str:
        with open(self.resolve(rel_path), "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, rel_path: str, content: str) -> None:
        with open(self.resolve(rel_path), "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def snapshot(self, rel_path: str) -> FileSnapshot:
        abs_path = self.resolve(rel_path)
        try:
            with open(abs_path, "rb") as f:
                return FileSnapshot(rel_path, f.read())
        except FileNotFoundError:
            return FileSnapshot(rel_path, None)

    def restore(self, snapshot: FileSnapshot) -> None:
        """Put the file back exactly as it was when the snapshot was taken."""
        abs_path = self.resolve(snapshot.path)
        if snapshot.data is None:
            if os.path.exists(abs_path):
                os.remove(abs_path)
            return
        with open(abs_path, "wb") as f:
            f.write(snapshot.data)
        logger.info("Rolled back %s", snapshot.path)
