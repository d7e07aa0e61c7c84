"""Parsing of ``/review`` commands left in pull request comments."""

from __future__ import annotations

import re
from typing import Dict

_COMMAND_PATTERN = re.compile(r"/(review)\b([^\n]*)", re.IGNORECASE)
_ARG_SEPARATOR = re.compile(r"[\s,]+")


def parse_review_command(text: str | None) -> Dict[str, str] | None:
    """Return the ``key=value`` arguments of a ``/review`` command, or None if there is none.

    ``/review focus=security max_comments=3`` and ``/review focus=security,max_comments=3``
    both give ``{"focus": "security", "max_comments": "3"}``. A bare ``/review`` gives ``{}``.
    """

    match = _COMMAND_PATTERN.search(text or "")
    if not match:
        return None

    arguments: Dict[str, str] = {}
    for part in _ARG_SEPARATOR.split(match.group(2).strip()):
        key, sep, value = part.partition("=")
        if not key or not sep:
            continue
        arguments[key.strip().lower()] = value.strip()
    return arguments
