from __future__ import annotations

import itertools

import pytest

from reviewbot.severity import SEVERITY_ORDER, normalize_severity, severity_at_least


@pytest.mark.parametrize("raw", ["", "   ", "blocker", "MAJOR", "info", None, 3])
def test_unknown_severity_normalizes_to_medium(raw) -> None:
    assert normalize_severity(raw) == "medium"


def test_normalize_is_case_insensitive_and_trimmed() -> None:
    assert normalize_severity("  HIGH ") == "high"
    assert normalize_severity("Nit") == "nit"


def test_at_least_is_a_total_order() -> None:
    for a in SEVERITY_ORDER:
        assert severity_at_least(a, a)

    for a, b in itertools.permutations(SEVERITY_ORDER, 2):
        if severity_at_least(a, b) and severity_at_least(b, a):
            pytest.fail(f"{a} and {b} compare equal")
        assert severity_at_least(a, b) or severity_at_least(b, a)

    for a, b, c in itertools.product(SEVERITY_ORDER, repeat=3):
        if severity_at_least(a, b) and severity_at_least(b, c):
            assert severity_at_least(a, c)


def test_at_least_follows_declared_order() -> None:
    assert severity_at_least("critical", "high")
    assert not severity_at_least("nit", "low")
    assert severity_at_least("unknown", "medium")
