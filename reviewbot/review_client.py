"""Client wrapper for the ReviewBot review service."""

from __future__ import annotations

from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from reviewbot.errors import MalformedResponseError, RemoteReviewError
from reviewbot.logger import get_logger, log_timing, log_with_context
from reviewbot.models.review import ReviewRequest, ReviewResponse

logger = get_logger()

BODY_EXCERPT_CHARS = 2000


class IdentityProvider(Protocol):
    async def fetch_token(self, audience: str) -> str: ...


class ReviewAPIClient:
    def __init__(
        self,
        *,
        endpoint: str,
        audience: str,
        identity: IdentityProvider,
        timeout: float = 180.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint
        self._audience = audience
        self._identity = identity
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def submit(self, request: ReviewRequest) -> ReviewResponse:
        """Send a shaped review request and return the validated response envelope."""

        ctx_logger = log_with_context(logger, repository=request.repo, pull_number=request.pull_number)
        token = await self._identity.fetch_token(self._audience)

        ctx_logger.info(f"Submitting {len(request.files)} file(s) to review service")
        try:
            with log_timing(ctx_logger, "review_api_call"):
                response = await self._client.post(
                    self._endpoint,
                    json=request.model_dump(mode="json"),
                    headers={
                        "Content-Type": "application/json",
                        "Authorization": f"Bearer {token}",
                    },
                )
        except httpx.HTTPError as exc:
            raise RemoteReviewError(f"Review API request failed: {exc}", 0) from exc

        _raise_for_status(response)
        return _parse_response(response)

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def _error_detail(payload: Any) -> str | None:
    if not isinstance(payload, dict):
        return None
    error = payload.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        return str(message) if message else None
    if error:
        return str(error)
    return None


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    excerpt = response.text[:BODY_EXCERPT_CHARS]
    try:
        detail = _error_detail(response.json())
    except ValueError:
        detail = None
    logger.error(f"Review API error: {response.status_code}")
    logger.error(excerpt)
    raise RemoteReviewError(
        f"Review API request failed ({response.status_code}): {detail or excerpt}",
        response.status_code,
        excerpt,
    )


def _parse_response(response: httpx.Response) -> ReviewResponse:
    try:
        payload = response.json()
    except ValueError as exc:
        raise MalformedResponseError("Review API returned non-JSON response") from exc

    if not isinstance(payload, dict):
        raise MalformedResponseError("Review API response is not a JSON object")
    if not isinstance(payload.get("review"), dict):
        raise MalformedResponseError("Review API response is missing the 'review' object")
    if not isinstance(payload.get("meta"), dict):
        raise MalformedResponseError("Review API response is missing the 'meta' object")

    try:
        return ReviewResponse.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"Review API response does not match the review schema: {exc}") from exc
