import os

import pytest

from janitor.services.workspace import Workspace


def test_rollback_is_byte_exact(tmp_path):
    original = b"line one\r\nline two\r\n\xff\xfe raw bytes\n"
    (tmp_path / "mixed.py").write_bytes(original)
    workspace = Workspace(str(tmp_path))

    snapshot = workspace.snapshot("mixed.py")
    workspace.write_text("mixed.py", "rewritten\n")
    assert (tmp_path / "mixed.py").read_bytes() == b"rewritten\n"

    workspace.restore(snapshot)
    assert (tmp_path / "mixed.py").read_bytes() == original


def test_read_text_keeps_line_endings(tmp_path):
    (tmp_path / "crlf.py").write_bytes(b"a = 1\r\nb = 2\r\n")
    workspace = Workspace(str(tmp_path))
    content = workspace.read_text("crlf.py")
    assert content == "a = 1\r\nb = 2\r\n"
    workspace.write_text("crlf.py", content.replace("1", "3"))
    assert (tmp_path / "crlf.py").read_bytes() == b"a = 3\r\nb = 2\r\n"


def test_restore_removes_file_created_after_snapshot(tmp_path):
    workspace = Workspace(str(tmp_path))
    snapshot = workspace.snapshot("new.py")
    assert snapshot.data is None
    workspace.write_text("new.py", "x = 1\n")
    workspace.restore(snapshot)
    assert not os.path.exists(tmp_path / "new.py")


def test_read_text_rejects_non_utf8(tmp_path):
    (tmp_path / "bin.py").write_bytes(b"\xff\xfe\x00")
    with pytest.raises(UnicodeDecodeError):
        Workspace(str(tmp_path)).read_text("bin.py")


def test_paths_cannot_escape_root(tmp_path):
    workspace = Workspace(str(tmp_path / "repo"))
    with pytest.raises(ValueError):
        workspace.resolve("../outside.py")
    assert workspace.resolve("src/./a.py") == os.path.join(workspace.root, "src", "a.py")
