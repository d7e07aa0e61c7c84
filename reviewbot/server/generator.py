"""Structured review generation through the OpenAI Responses API."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx
from openai import AsyncOpenAI, OpenAIError

from reviewbot.errors import ReviewGenerationError
from reviewbot.logger import get_logger, log_timing, log_with_context
from reviewbot.models.review import ReviewRequest, ReviewResult

logger = get_logger()

SYSTEM_PROMPT = """You are ReviewBot, an expert code reviewer.
Rules:
- Only comment on what is present in the diff.
- If the diff is tiny (e.g. comment-only), still provide useful repo-agnostic suggestions (tests/checks, docs consistency) BUT do not invent bugs.
- Prioritize correctness, security, and maintainability.
- Provide actionable suggestions with clear reasoning.
- Inline comments MUST reference a file path and an added-line number (RIGHT side) within the diff. If unsure, omit inline comment.
- meta must be an empty object {}."""


def build_prompt(request: ReviewRequest, *, repository: str) -> List[Dict[str, str]]:
    focus_line = f"Focus area: {request.focus}" if request.focus else "Focus area: general"
    if request.mode == "trusted":
        mode_line = "Mode: trusted (assume internal repo)."
    else:
        mode_line = (
            "Mode: safe (do not assume access to secrets; be cautious about suggestions "
            "that require running untrusted code)."
        )

    file_blocks = "\n\n---\n\n".join(
        f"FILE: {file.path}\nSTATUS: {file.status} (+{file.additions}/-{file.deletions})\nPATCH:\n{file.patch}"
        for file in request.files
    )
    user = (
        f"Repo: {repository}\n"
        f"PR title: {request.pr.title}\n"
        f"PR body: {request.pr.body or '(empty)'}\n"
        f"{focus_line}\n"
        f"{mode_line}\n\n"
        f"DIFFS:\n{file_blocks}\n\n"
        "Now produce the review JSON matching the schema."
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user},
    ]


class ReviewGenerator:
    """Asks the model for a review constrained to the ``ReviewResult`` schema."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str | None = None,
        timeout: float = 120.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self._model = model
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def generate(self, request: ReviewRequest, *, repository: str) -> ReviewResult:
        ctx_logger = log_with_context(logger, repository=repository, pull_number=request.pull_number)
        messages = build_prompt(request, repository=repository)
        ctx_logger.info(f"LLM request: model={self._model}, files={len(request.files)}")

        try:
            with log_timing(ctx_logger, "generate_review"):
                response = await self._client.responses.parse(
                    model=self._model,
                    input=messages,
                    text_format=ReviewResult,
                    temperature=0.2,
                )
        except (OpenAIError, httpx.HTTPError, ValueError) as exc:
            raise ReviewGenerationError(f"OpenAI error: {exc}") from exc

        parsed: Any = response.output_parsed
        if parsed is None:
            raise ReviewGenerationError("OpenAI response missing structured output")
        ctx_logger.info(f"LLM response: {len(parsed.comments)} inline finding(s)")
        return parsed

    async def aclose(self) -> None:
        await self._client.close()
