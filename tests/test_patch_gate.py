"""
Patch Gate Tests
================
Shared acceptance gate and the security regression check.
"""
import pytest

from janitor.utils.escalation_reasons import DIFF_TOO_LARGE, UNCHANGED, UNSAFE_FIX_REJECTED
from janitor.utils.patch_gate import (
    check_candidate,
    check_security_regression,
    check_size,
    size_change_ratio,
)

ORIGINAL = "def handler(request):\n    user = authenticate(request)\n    return render(user)\n"


def test_whitespace_only_change_is_unchanged():
    ok, reason, _ = check_candidate(ORIGINAL, ORIGINAL.replace("    ", "\t") + "\n\n")
    assert ok is False
    assert reason == UNCHANGED


def test_small_change_passes():
    candidate = ORIGINAL.replace("render(user)", "render(user, safe=True)")
    assert check_candidate(ORIGINAL, candidate) == (True, "", "")


@pytest.mark.parametrize("factor", [0.51, 0.75, 1.0, 3.0])
def test_growth_above_half_rejected(factor):
    original = "x" * 1000
    candidate = original + "y" * int(1000 * factor)
    ok, reason, _ = check_size(original, candidate)
    assert ok is False
    assert reason == DIFF_TOO_LARGE


def test_shrink_above_half_rejected():
    original = "a = 1\n" * 100
    ok, reason, _ = check_candidate(original, "a = 1\n" * 40)
    assert (ok, reason) == (False, DIFF_TOO_LARGE)


def test_exactly_half_is_allowed():
    assert size_change_ratio("x" * 100, "x" * 150) == 0.5
    assert check_size("x" * 100, "x" * 150)[0] is True


def test_size_limit_is_configurable():
    assert check_candidate("abcd" * 10, "abcd" * 13, max_ratio=0.2)[1] == DIFF_TOO_LARGE


def test_security_check_rejects_removed_checks():
    candidate = ORIGINAL.replace("authenticate(request)", "request.user")
    ok, reason, message = check_security_regression(ORIGINAL, candidate)
    assert ok is False
    assert reason == UNSAFE_FIX_REJECTED
    assert "authenticate" in message


def test_security_check_rejects_new_dangerous_construct():
    candidate = ORIGINAL.replace("return render(user)", "return eval(render(user))")
    ok, reason, message = check_security_regression(ORIGINAL, candidate)
    assert ok is False
    assert "eval" in message


def test_security_check_allows_existing_construct():
    original = "el.innerHTML = sanitize(x)\n"
    candidate = "el.innerHTML = sanitize(escape(x))\n"
    assert check_security_regression(original, candidate) == (True, "", "")
