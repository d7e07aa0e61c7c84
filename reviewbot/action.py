"""GitHub Action entrypoint: review the pull request named by the current workflow event."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping

from reviewbot.errors import ReviewBotError
from reviewbot.github_client import GitHubClient
from reviewbot.identity import ActionsIdentityProvider
from reviewbot.inputs import ActionInputs, load_action_inputs
from reviewbot.logger import get_logger, log_failure
from reviewbot.review_client import ReviewAPIClient
from reviewbot.services.pipeline import PipelineOutcome, PullRequestEvent, ReviewPipeline

logger = get_logger()


def load_github_event(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Load the GitHub Actions event payload."""

    event_path = environ.get("GITHUB_EVENT_PATH")
    if not event_path or not Path(event_path).exists():
        raise FileNotFoundError("GITHUB_EVENT_PATH not set or file not found")
    with open(event_path, encoding="utf-8") as f:
        return json.load(f)


def read_repository(environ: Mapping[str, str]) -> str:
    repository = environ.get("GITHUB_REPOSITORY", "")
    if "/" not in repository:
        raise ValueError("GITHUB_REPOSITORY not set")
    return repository


async def run_action(
    environ: Mapping[str, str] | None = None,
    *,
    inputs: ActionInputs | None = None,
) -> PipelineOutcome:
    env = os.environ if environ is None else environ
    inputs = inputs or load_action_inputs(env)
    event = PullRequestEvent.from_payload(read_repository(env), load_github_event(env))
    workspace = env.get("GITHUB_WORKSPACE") or os.getcwd()

    github = GitHubClient(token=inputs.github_token, base_url=env.get("GITHUB_API_URL") or "https://api.github.com")
    identity = ActionsIdentityProvider(environ=env)
    review_client = ReviewAPIClient(
        endpoint=inputs.review_api_url,
        audience=inputs.oidc_audience,
        identity=identity,
    )
    try:
        pipeline = ReviewPipeline(github=github, review_client=review_client, inputs=inputs, workspace=workspace)
        return await pipeline.run(event)
    finally:
        await review_client.aclose()
        await identity.aclose()
        await github.aclose()


async def main(environ: Mapping[str, str] | None = None) -> int:
    """Run the action and return its process exit code."""

    try:
        outcome = await run_action(environ)
    except (ReviewBotError, OSError, ValueError) as exc:
        log_failure(logger, "ReviewBot action failed", exc)
        logger.exception("Full exception traceback:")
        return 1
    return 0 if outcome.succeeded else 1
