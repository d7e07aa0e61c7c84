"""Severity ordering used to gate inline findings."""

from __future__ import annotations

from typing import Final

SEVERITY_ORDER: Final[tuple[str, ...]] = ("nit", "low", "medium", "high", "critical")
DEFAULT_SEVERITY: Final[str] = "medium"


def normalize_severity(value: object | None) -> str:
    """Map arbitrary input onto a known severity, defaulting to ``medium``."""

    if value is None:
        return DEFAULT_SEVERITY
    normalized = str(value).strip().lower()
    if normalized in SEVERITY_ORDER:
        return normalized
    return DEFAULT_SEVERITY


def severity_rank(value: object | None) -> int:
    return SEVERITY_ORDER.index(normalize_severity(value))


def severity_at_least(candidate: object | None, floor: object | None) -> bool:
    """Return True when ``candidate`` is at or above ``floor`` in the severity order."""

    return severity_rank(candidate) >= severity_rank(floor)
