"""Fetch GitHub Actions OIDC tokens for calling the review service."""

from __future__ import annotations

import os
from typing import Mapping
from urllib.parse import quote

import httpx

from reviewbot.errors import IdentityUnavailableError
from reviewbot.logger import get_logger

logger = get_logger()

REQUEST_URL_ENV = "ACTIONS_ID_TOKEN_REQUEST_URL"
REQUEST_TOKEN_ENV = "ACTIONS_ID_TOKEN_REQUEST_TOKEN"


class ActionsIdentityProvider:
    """Mints audience-scoped identity tokens from the Actions runtime."""

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._environ = os.environ if environ is None else environ
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def fetch_token(self, audience: str) -> str:
        request_url = self._environ.get(REQUEST_URL_ENV)
        request_token = self._environ.get(REQUEST_TOKEN_ENV)
        if not request_url or not request_token:
            raise IdentityUnavailableError(
                "OIDC token not available. Ensure the workflow has permissions: id-token: write"
            )

        separator = "&" if "?" in request_url else "?"
        url = f"{request_url}{separator}audience={quote(audience, safe='')}"
        try:
            response = await self._client.get(url, headers={"Authorization": f"Bearer {request_token}"})
        except httpx.HTTPError as exc:
            raise IdentityUnavailableError(f"Failed to fetch OIDC token: {exc}") from exc

        if response.status_code >= 400:
            raise IdentityUnavailableError(
                f"Failed to fetch OIDC token: {response.status_code} {response.text[:500]}"
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise IdentityUnavailableError("OIDC token response was not JSON") from exc

        value = data.get("value") if isinstance(data, dict) else None
        if not value:
            raise IdentityUnavailableError("OIDC token response missing 'value'")
        logger.debug(f"Obtained OIDC token for audience {audience}")
        return value

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
