import shutil
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from janitor.agents.git_agent import GitAgent, build_commit_message
from janitor.core.config import Settings
from janitor.core.context import build_context
from janitor.core.exceptions import GitCommandError
from janitor.models.issue import Issue


def _fixed(type="lint", severity="low", description="E711: comparison to None"):
    return Issue(type=type, severity=severity, file="a.py", description=description, status="fixed")


def test_commit_message_format():
    message = build_commit_message(
        [_fixed(), _fixed(type="security", severity="critical",
                          description="B608:   possible SQL\ninjection " + "x" * 80)],
        "repo-janitor <janitor@localhost>",
    )
    lines = message.splitlines()
    assert lines[0] == "chore: automated maintenance"
    assert lines[1] == ""
    assert lines[2] == "- lint [low]: E711: comparison to None"
    assert lines[3].startswith("- security [critical]: B608: possible SQL injection x")
    assert len(lines[3]) == len("- security [critical]: ") + 60
    assert lines[-1] == "Automated-By: repo-janitor <janitor@localhost>"
    assert lines[-2] == ""


@patch("janitor.agents.git_agent.subprocess.run")
def test_commit_fixes_stages_and_commits(mock_run):
    mock_run.side_effect = [
        MagicMock(stdout=""),                 # git add -A
        MagicMock(returncode=1),              # git diff --cached --quiet → changes
        MagicMock(stdout=""),                 # git commit
        MagicMock(stdout="abc1234\n"),        # git rev-parse
    ]
    sha, message = GitAgent("/repo").commit_fixes([_fixed()], "bot <bot@x>")
    assert sha == "abc1234"
    assert message.endswith("Automated-By: bot <bot@x>")
    commands = [c.args[0] for c in mock_run.call_args_list]
    assert commands[0] == ["git", "add", "-A"]
    assert commands[2][:3] == ["git", "commit", "-m"]
    assert commands[2][3] == message
    assert all(c.kwargs["cwd"] == "/repo" for c in mock_run.call_args_list)


@patch("janitor.agents.git_agent.subprocess.run")
def test_commit_fixes_skips_when_nothing_staged(mock_run):
    mock_run.side_effect = [MagicMock(stdout=""), MagicMock(returncode=0)]
    sha, _ = GitAgent("/repo").commit_fixes([_fixed()], "bot")
    assert sha == ""
    assert mock_run.call_count == 2


@patch("janitor.agents.git_agent.subprocess.run")
def test_git_failure_raises_git_command_error(mock_run):
    mock_run.side_effect = subprocess.CalledProcessError(128, "git", stderr="not a git repository")
    with pytest.raises(GitCommandError) as exc:
        GitAgent("/repo").stage_all()
    assert "not a git repository" in str(exc.value)


@patch("janitor.agents.git_agent.subprocess.run", side_effect=FileNotFoundError("git"))
def test_missing_git_raises_git_command_error(mock_run):
    with pytest.raises(GitCommandError):
        GitAgent("/repo").current_revision()


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_repository_commit(tmp_path):
    def git(*args):
        subprocess.run(["git", *args], cwd=tmp_path, check=True, capture_output=True)

    git("init", "-q")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    (tmp_path / "a.py").write_text("x = 1\n")
    git("add", "-A")
    git("commit", "-q", "-m", "initial")

    agent = GitAgent(str(tmp_path))
    (tmp_path / "a.py").write_text("x = 2\n")
    agent.discard_changes("a.py")
    assert (tmp_path / "a.py").read_text() == "x = 1\n"

    (tmp_path / "a.py").write_text("x = 3\n")
    sha, _ = agent.commit_fixes([_fixed()], "bot <bot@x>")
    assert sha == agent.current_revision()
    log = subprocess.run(["git", "log", "-1", "--format=%B"], cwd=tmp_path,
                         capture_output=True, text=True).stdout
    assert "Automated-By: bot <bot@x>" in log


@patch("janitor.agents.git_agent.subprocess.run")
def test_stage_all_excludes_data_directory(mock_run):
    mock_run.return_value = MagicMock(stdout="")
    GitAgent("/repo", exclude=[".janitor/"]).stage_all()
    assert mock_run.call_args.args[0] == ["git", "add", "-A", "--", ".", ":(exclude).janitor"]


def test_context_excludes_in_tree_data_directory(tmp_path):
    inside = build_context(Settings(project_root=str(tmp_path), data_dir=".janitor"))
    assert inside.git.exclude == [".janitor"]
    outside = build_context(Settings(project_root=str(tmp_path / "repo"), data_dir=str(tmp_path / "state")))
    assert outside.git.exclude == []


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_commit_leaves_out_learning_data(tmp_path):
    def git(*args):
        return subprocess.run(["git", *args], cwd=tmp_path, check=True,
                              capture_output=True, text=True).stdout

    git("init", "-q")
    git("config", "user.email", "dev@example.com")
    git("config", "user.name", "Dev")
    (tmp_path / "a.py").write_text("x = 1\n")
    git("add", "-A")
    git("commit", "-q", "-m", "initial")

    (tmp_path / ".janitor").mkdir()
    (tmp_path / ".janitor" / "learning.json").write_text('{"records": []}')
    (tmp_path / "a.py").write_text("x = None\n")
    sha, _ = GitAgent(str(tmp_path), exclude=[".janitor"]).commit_fixes([_fixed()], "bot <bot@x>")

    assert sha
    assert git("show", "--name-only", "--format=", "HEAD").split() == ["a.py"]
    assert "?? .janitor/" in git("status", "--porcelain")
