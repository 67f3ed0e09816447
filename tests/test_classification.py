"""
Classification Tests
====================
Severity rules, priority adjustments and the manual-effort estimate.
"""
import pytest

from janitor.models.issue import Issue
from janitor.parser.classification import (
    calculate_time_saved,
    classify,
    classify_issue,
    estimate_manual_fix_minutes,
)
from janitor.utils.fingerprint import fingerprint


def _issue(type="lint", file="src/util.py", description="E501: line too long"):
    return Issue(type=type, file=file, line=1, description=description)


@pytest.mark.parametrize("issue, expected", [
    (_issue(type="security", description="B105: hardcoded password"), "critical"),
    (_issue(description="possible SQL injection in query"), "critical"),
    (_issue(type="type_error", description="Incompatible types"), "high"),
    (_issue(description="'NoneType' object has no attribute 'x'"), "high"),
    (_issue(type="performance", description="PERF401: use a list comprehension"), "medium"),
    (_issue(description="excessive memory use"), "medium"),
    (_issue(), "low"),
])
def test_severity_rules(issue, expected):
    severity, _ = classify(issue)
    assert severity == expected


def test_security_is_always_priority_10():
    _, priority = classify(_issue(type="security", file="tests/test_auth.py", description="B101"))
    assert priority == 10


def test_priority_adjustments():
    assert classify(_issue())[1] == 3
    assert classify(_issue(file="app/api/users.py"))[1] == 4
    assert classify(_issue(file="app/auth/session.py"))[1] == 5
    assert classify(_issue(file="tests/test_util.py"))[1] == 2


def test_priority_clamped_to_range():
    _, priority = classify(_issue(type="type_error", file="api/auth/routes.py",
                                  description="crash in handler"))
    assert priority == 10
    _, low = classify(_issue(file="tests/test_x.py"))
    assert 1 <= low <= 10


def test_classify_is_idempotent_and_pure():
    issue = _issue(file="app/api/x.py")
    once = classify_issue(issue)
    twice = classify_issue(once)
    assert (once.severity, once.priority) == (twice.severity, twice.priority)
    assert once.fingerprint == fingerprint(issue)
    assert issue.fingerprint == ""


def test_time_saved():
    fixed = [
        _issue(type="security").model_copy(update={"severity": "critical"}),
        _issue(type="lint"),
    ]
    assert estimate_manual_fix_minutes(fixed[0]) == 180
    assert calculate_time_saved(fixed) == round(182 / 60, 2)
    assert calculate_time_saved([]) == 0
