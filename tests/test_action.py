from __future__ import annotations

import json
from pathlib import Path

import pytest

from reviewbot.action import load_github_event, main, read_repository


def test_load_github_event(tmp_path: Path) -> None:
    event_file = tmp_path / "event.json"
    event_file.write_text(json.dumps({"pull_request": {"number": 3}}))
    assert load_github_event({"GITHUB_EVENT_PATH": str(event_file)}) == {"pull_request": {"number": 3}}


def test_load_github_event_missing() -> None:
    with pytest.raises(FileNotFoundError):
        load_github_event({})


def test_read_repository() -> None:
    assert read_repository({"GITHUB_REPOSITORY": "acme/widgets"}) == "acme/widgets"
    with pytest.raises(ValueError):
        read_repository({})


async def test_main_returns_nonzero_on_missing_inputs() -> None:
    assert await main({}) == 1


async def test_main_returns_nonzero_without_event(tmp_path: Path) -> None:
    environ = {
        "INPUT_REVIEW_API_URL": "https://review.example/review",
        "GITHUB_TOKEN": "t",
        "GITHUB_REPOSITORY": "acme/widgets",
        "GITHUB_EVENT_PATH": str(tmp_path / "missing.json"),
    }
    assert await main(environ) == 1
