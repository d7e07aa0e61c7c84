from __future__ import annotations

from types import SimpleNamespace

import httpx
import openai
import pytest

from reviewbot.errors import ReviewGenerationError
from reviewbot.models.review import FileChange, PullRequestMeta, ReviewRequest, ReviewResult
from reviewbot.server.generator import SYSTEM_PROMPT, ReviewGenerator, build_prompt
from tests.factories import make_review


class FakeResponses:
    def __init__(self, result=None, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.kwargs: dict = {}

    async def parse(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return SimpleNamespace(output_parsed=self.result)


def _generator(responses: FakeResponses) -> ReviewGenerator:
    return ReviewGenerator(api_key="sk-test", model="gpt-test", client=SimpleNamespace(responses=responses))


def _request(**overrides) -> ReviewRequest:
    data = {
        "repo": "acme/widgets",
        "pull_number": 7,
        "pr": PullRequestMeta(title="Add login", body=""),
        "files": [FileChange(path="src/app.py", status="modified", additions=2, deletions=1, patch="@@ +x")],
    }
    data.update(overrides)
    return ReviewRequest(**data)


def test_prompt_contains_diffs_and_mode() -> None:
    messages = build_prompt(_request(focus="security"), repository="acme/widgets")

    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    user = messages[1]["content"]
    assert "Repo: acme/widgets" in user
    assert "PR body: (empty)" in user
    assert "Focus area: security" in user
    assert "Mode: safe" in user
    assert "FILE: src/app.py\nSTATUS: modified (+2/-1)\nPATCH:\n@@ +x" in user


def test_prompt_trusted_mode_and_general_focus() -> None:
    user = build_prompt(_request(mode="trusted"), repository="acme/widgets")[1]["content"]
    assert "Mode: trusted" in user
    assert "Focus area: general" in user


async def test_generate_requests_structured_output() -> None:
    responses = FakeResponses(result=make_review())

    result = await _generator(responses).generate(_request(), repository="acme/widgets")

    assert isinstance(result, ReviewResult)
    assert responses.kwargs["model"] == "gpt-test"
    assert responses.kwargs["text_format"] is ReviewResult


async def test_missing_parsed_output_is_generation_error() -> None:
    with pytest.raises(ReviewGenerationError):
        await _generator(FakeResponses(result=None)).generate(_request(), repository="acme/widgets")


@pytest.mark.parametrize(
    "error",
    [
        openai.APIConnectionError(request=httpx.Request("POST", "https://api.openai.com/v1/responses")),
        httpx.ReadTimeout("timed out"),
        ValueError("bad schema"),
    ],
)
async def test_provider_errors_become_generation_errors(error: Exception) -> None:
    with pytest.raises(ReviewGenerationError):
        await _generator(FakeResponses(error=error)).generate(_request(), repository="acme/widgets")
