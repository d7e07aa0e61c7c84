from __future__ import annotations

import pytest

from tests.factories import FakeGitHub


@pytest.fixture
def fake_github() -> FakeGitHub:
    return FakeGitHub()
