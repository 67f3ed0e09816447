"""
Fingerprint Tests
=================
Stability of issue identity across scans.
"""
from janitor.models.issue import Issue
from janitor.utils.fingerprint import (
    compute_fingerprint,
    fingerprint,
    normalize_description,
    normalize_path,
)


def _issue(**kw):
    base = dict(type="lint", file="src/app.py", line=10, description="F401: `os` imported but unused")
    base.update(kw)
    return Issue(**base)


def test_fingerprint_is_16_hex_chars():
    fp = fingerprint(_issue())
    assert len(fp) == 16
    int(fp, 16)


def test_fingerprint_ignores_line_and_status():
    a = _issue(line=10)
    b = _issue(line=99, column=4, status="failed")
    assert fingerprint(a) == fingerprint(b)


def test_fingerprint_normalises_path_and_case():
    a = _issue(file="src/App.py", description="  F401: `os` imported but unused ")
    b = _issue(file="./src\\app.py")
    assert fingerprint(a) == fingerprint(b)


def test_fingerprint_masks_positions_in_description():
    a = compute_fingerprint("type_error", "a.ts", "Error at line 12 column 3 (12, 3)")
    b = compute_fingerprint("type_error", "a.ts", "Error at line 40 column 9 (40,9)")
    assert a == b


def test_fingerprint_differs_by_type_and_file():
    base = fingerprint(_issue())
    assert fingerprint(_issue(type="dead_code")) != base
    assert fingerprint(_issue(file="src/other.py")) != base


def test_normalisers():
    assert normalize_path(".\\Src\\Mod.py") == "src/mod.py"
    assert normalize_path("./a/./b.py") == "a/./b.py"
    assert normalize_description("app.py:3:7 bad") == "app.py:X:X bad"
