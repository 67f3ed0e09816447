"""
Scanner Tests
=============
Tool output parsers and the Scanner's merge / classify / dedupe pass.
All subprocesses are faked.
"""
import json
import subprocess
from unittest.mock import patch

from janitor.core.config import Settings
from janitor.parser.tool_output import (
    issue_type_for_lint_code,
    is_patch_update,
    parse_bandit_json,
    parse_pip_outdated,
    parse_ruff_json,
    parse_typecheck_output,
    relative_path,
)
from janitor.services.scanner import Scanner
from janitor.services.tool_runner import ToolOutput, ToolRunner

RUFF_OUTPUT = json.dumps([
    {"code": "F401", "filename": "/repo/src/app.py", "message": "`os` imported but unused",
     "location": {"row": 1, "column": 8}},
    {"code": "E711", "filename": "/repo/src/app.py", "message": "Comparison to `None`",
     "location": {"row": 3, "column": 6}},
    {"code": "S105", "filename": "/repo/src/settings.py", "message": "Possible hardcoded password",
     "location": {"row": 9, "column": 1}},
    {"broken": True},
])

MYPY_OUTPUT = (
    "src/models.py:12:5: error: Incompatible return value type (got \"str\", expected \"int\")  [return-value]\n"
    "src/models.py:13: note: See https://mypy.rtfd.io\n"
    "web/app.ts(4,10): error TS2322: Type 'string' is not assignable to type 'number'.\n"
    "Found 2 errors in 2 files\n"
)

BANDIT_OUTPUT = "[main]\tINFO\tprofile include tests: None\n" + json.dumps({
    "results": [{
        "filename": "./src/db.py", "line_number": 20, "col_offset": 4,
        "test_id": "B608", "issue_text": "Possible SQL injection vector through string-based query construction.",
    }],
})

PIP_OUTPUT = json.dumps([
    {"name": "httpx", "version": "0.27.0", "latest_version": "0.27.2"},
    {"name": "fastapi", "version": "0.110.0", "latest_version": "0.115.0"},
    {"name": "leftpad", "version": "1.0.0", "latest_version": "1.0.1"},
])


# ===================================================================
# Parsers
# ===================================================================
def test_lint_code_mapping():
    assert issue_type_for_lint_code("F401") == "dead_code"
    assert issue_type_for_lint_code("ERA001") == "dead_code"
    assert issue_type_for_lint_code("S608") == "security"
    assert issue_type_for_lint_code("SIM108") == "lint"
    assert issue_type_for_lint_code("PERF401") == "performance"
    assert issue_type_for_lint_code("UP006") == "optimization"
    assert issue_type_for_lint_code("E501") == "lint"


def test_parse_ruff_skips_malformed_records():
    issues = parse_ruff_json(RUFF_OUTPUT, "/repo")
    assert [i.type for i in issues] == ["dead_code", "lint", "security"]
    assert issues[0].file == "src/app.py"
    assert issues[0].description == "F401: `os` imported but unused"
    assert (issues[1].line, issues[1].column) == (3, 6)
    assert all(i.tool == "ruff" for i in issues)


def test_parse_ruff_garbage_yields_nothing():
    assert parse_ruff_json("Traceback: ruff exploded") == []
    assert parse_ruff_json("") == []


def test_parse_typecheck_mypy_and_tsc():
    issues = parse_typecheck_output(MYPY_OUTPUT)
    assert len(issues) == 2
    mypy, tsc = issues
    assert (mypy.file, mypy.line, mypy.column, mypy.code) == ("src/models.py", 12, 5, "return-value")
    assert mypy.description.startswith("Incompatible return value type")
    assert (tsc.file, tsc.line, tsc.column, tsc.code, tsc.tool) == ("web/app.ts", 4, 10, "TS2322", "tsc")


def test_parse_bandit_with_banner():
    issues = parse_bandit_json(BANDIT_OUTPUT)
    assert len(issues) == 1
    assert issues[0].type == "security"
    assert issues[0].file == "src/db.py"
    assert issues[0].column == 5
    assert issues[0].description.startswith("B608: Possible SQL injection")


def test_patch_update_detection():
    assert is_patch_update("0.27.0", "0.27.2")
    assert not is_patch_update("0.110.0", "0.115.0")
    assert not is_patch_update("1.0", "1.0")
    assert not is_patch_update("dev", "1.0.1")


def test_parse_pip_outdated_keeps_declared_patch_bumps():
    manifest = "fastapi==0.110.0\nhttpx==0.27.0\n"
    issues = parse_pip_outdated(PIP_OUTPUT, "requirements.txt", manifest)
    assert len(issues) == 1
    assert issues[0].description == "Update httpx from 0.27.0 to 0.27.2"
    assert issues[0].file == "requirements.txt"


def test_relative_path():
    assert relative_path("/repo/a/b.py", "/repo") == "a/b.py"
    assert relative_path("./a/b.py", "/repo") == "a/b.py"
    assert relative_path("/elsewhere/c.py", "/repo") == "/elsewhere/c.py"


# ===================================================================
# Scanner
# ===================================================================
class FakeRunner:
    def __init__(self, outputs):
        self.outputs = outputs
        self.commands = []

    def run(self, command, timeout=None):
        self.commands.append(list(command))
        return self.outputs.get(command[0], ToolOutput(command=list(command), available=False))


def _settings(root):
    return Settings(project_root=str(root))


def test_scan_merges_classifies_and_sorts(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("import os\n\nif x == None:\n    pass\n")
    (tmp_path / "requirements.txt").write_text("httpx==0.27.0\n")
    runner = FakeRunner({
        "ruff": ToolOutput(command=["ruff"], exit_code=1,
                           stdout=RUFF_OUTPUT.replace("/repo", str(tmp_path))),
        "mypy": ToolOutput(command=["mypy"], exit_code=1, stdout=MYPY_OUTPUT),
        "bandit": ToolOutput(command=["bandit"], exit_code=1, stdout=BANDIT_OUTPUT),
        "pip": ToolOutput(command=["pip"], exit_code=0, stdout=PIP_OUTPUT),
    })
    issues = Scanner(_settings(tmp_path), runner).scan()

    assert len(issues) == 7
    assert [i.file for i in issues] == sorted(i.file for i in issues)
    assert all(i.fingerprint for i in issues)
    by_desc = {i.description: i for i in issues}
    assert by_desc["S105: Possible hardcoded password"].priority == 10
    assert by_desc["Update httpx from 0.27.0 to 0.27.2"].type == "dependency"
    # snippet attached from the real file
    assert ">>>" in by_desc["F401: `os` imported but unused"].context


def test_scan_deduplicates_same_fingerprint_and_line(tmp_path):
    duplicate = json.dumps([
        {"code": "E711", "filename": "a.py", "message": "Comparison to `None`", "location": {"row": 3, "column": 6}},
        {"code": "E711", "filename": "a.py", "message": "Comparison to `None`", "location": {"row": 3, "column": 9}},
        {"code": "E711", "filename": "a.py", "message": "Comparison to `None`", "location": {"row": 7, "column": 2}},
    ])
    runner = FakeRunner({"ruff": ToolOutput(command=["ruff"], exit_code=1, stdout=duplicate)})
    issues = Scanner(_settings(tmp_path), runner).scan_lint()
    assert len(issues) == 3  # scoped stage returns raw issues
    assert len(Scanner(_settings(tmp_path), runner).scan()) == 2


def test_missing_tools_yield_zero_issues(tmp_path):
    issues = Scanner(_settings(tmp_path), FakeRunner({})).scan()
    assert issues == []


def test_tool_runner_missing_executable(tmp_path):
    output = ToolRunner(str(tmp_path)).run(["definitely-not-a-real-tool-xyz"])
    assert output.available is False
    assert output.usable is False


@patch("janitor.services.tool_runner.subprocess.run")
def test_tool_runner_timeout(mock_run, tmp_path):
    mock_run.side_effect = subprocess.TimeoutExpired(cmd="mypy", timeout=1)
    output = ToolRunner(str(tmp_path), timeout=1).run(["mypy", "."])
    assert output.timed_out is True
    assert output.usable is False
