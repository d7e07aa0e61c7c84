"""Review service: verifies the calling workflow, enforces quota and returns a structured review."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, Tuple, Type

from fastapi import Depends, FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from reviewbot.errors import (
    InvalidReviewRequestError,
    InvalidTokenError,
    MalformedClaimsError,
    NoFilesToReviewError,
    QuotaExceededError,
    RepoNotAllowedError,
    ReviewBotError,
    ReviewGenerationError,
    UnauthenticatedError,
)
from reviewbot.logger import get_logger, log_failure, log_success, log_with_context
from reviewbot.models.review import ReviewRequest
from reviewbot.server.dependencies import (
    allow_list_dependency,
    generator_dependency,
    quota_dependency,
    verifier_dependency,
)
from reviewbot.server.generator import ReviewGenerator
from reviewbot.server.oidc import OIDCVerifier, RepositoryAllowList
from reviewbot.server.quota import QuotaGate

logger = get_logger()

ALLOW_LIST_HINT = "Ask the maintainer to add your repo to ALLOW_REPOS or your org to ALLOW_ORGS."

_STATUS_BY_ERROR: Tuple[Tuple[Type[ReviewBotError], int], ...] = (
    (UnauthenticatedError, status.HTTP_401_UNAUTHORIZED),
    (InvalidTokenError, status.HTTP_401_UNAUTHORIZED),
    (MalformedClaimsError, status.HTTP_401_UNAUTHORIZED),
    (RepoNotAllowedError, status.HTTP_403_FORBIDDEN),
    (QuotaExceededError, status.HTTP_429_TOO_MANY_REQUESTS),
    (NoFilesToReviewError, status.HTTP_400_BAD_REQUEST),
    (InvalidReviewRequestError, 422),
    (ReviewGenerationError, status.HTTP_502_BAD_GATEWAY),
)

app = FastAPI(title="ReviewBot Review API")


def _status_for(exc: ReviewBotError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _error_fields(exc: ReviewBotError) -> Dict[str, Any]:
    if isinstance(exc, RepoNotAllowedError):
        return {"repo": exc.repository, "hint": ALLOW_LIST_HINT}
    if isinstance(exc, QuotaExceededError):
        return {"repo": exc.repository, "limit": exc.limit}
    if isinstance(exc, NoFilesToReviewError):
        return {}
    return {"detail": str(exc)}


@app.exception_handler(ReviewBotError)
async def review_error_handler(request: Request, exc: ReviewBotError) -> JSONResponse:
    status_code = _status_for(exc)
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        log_failure(logger, f"Review request failed ({exc.code})", exc)
    else:
        logger.warning(f"Review request rejected ({exc.code}): {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": exc.code, **_error_fields(exc)},
    )


@app.get("/health")
def health() -> Dict[str, bool]:
    return {"ok": True}


async def _read_review_request(request: Request) -> ReviewRequest:
    try:
        payload = await request.json()
    except ValueError as exc:
        raise InvalidReviewRequestError("Request body is not valid JSON") from exc
    try:
        return ReviewRequest.model_validate(payload)
    except ValidationError as exc:
        raise InvalidReviewRequestError(f"Request body is not a review request: {exc}") from exc


@app.post("/review", summary="Generate a structured review for a pull request diff")
async def review(
    request: Request,
    verifier: OIDCVerifier = Depends(verifier_dependency),
    allow_list: RepositoryAllowList = Depends(allow_list_dependency),
    quota: QuotaGate = Depends(quota_dependency),
    generator: ReviewGenerator = Depends(generator_dependency),
) -> Any:
    start_time = time.time()

    # The body is parsed only after the bearer token verifies.
    identity = await run_in_threadpool(verifier.verify, request.headers.get("Authorization"))
    body = await _read_review_request(request)

    repo = identity.repository
    ctx_logger = log_with_context(logger, repository=repo, pull_number=body.pull_number)

    if not allow_list.is_allowed(repo):
        ctx_logger.warning(f"Repository not allowed (actor={identity.actor})")
        raise RepoNotAllowedError(repo)

    decision = quota.check_and_consume(repo)
    if not decision.allowed:
        raise QuotaExceededError(repo, decision.limit)

    if not body.files:
        raise NoFilesToReviewError("Request contains no files to review")

    result = await generator.generate(body, repository=repo)

    processing_time = time.time() - start_time
    log_success(logger, f"Review generated for {repo} in {processing_time:.3f}s",
                repository=repo, pull_number=body.pull_number)

    return {
        "ok": True,
        "review": result.model_dump(mode="json"),
        "meta": {},
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "repo": repo,
        "actor": identity.actor,
        "workflow": identity.workflow,
        "quota_remaining": decision.remaining,
    }
