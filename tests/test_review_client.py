from __future__ import annotations

import json

import httpx
import pytest

from reviewbot.errors import MalformedResponseError, RemoteReviewError
from reviewbot.models.review import FileChange, ReviewRequest
from reviewbot.review_client import ReviewAPIClient
from tests.factories import make_review_payload

ENDPOINT = "https://review.example/review"


class StaticIdentity:
    def __init__(self) -> None:
        self.audiences: list[str] = []

    async def fetch_token(self, audience: str) -> str:
        self.audiences.append(audience)
        return "oidc-token"


def _client(handler) -> tuple[ReviewAPIClient, StaticIdentity]:
    identity = StaticIdentity()
    client = ReviewAPIClient(
        endpoint=ENDPOINT,
        audience="reviewbot",
        identity=identity,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return client, identity


def _request() -> ReviewRequest:
    return ReviewRequest(
        repo="acme/widgets",
        pull_number=7,
        files=[FileChange(path="src/app.py", patch="@@ -1 +1 @@")],
    )


async def test_submit_sends_bearer_token_and_parses_review() -> None:
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"ok": True, "review": make_review_payload(), "meta": {}, "quota_remaining": 4},
        )

    client, identity = _client(handler)
    response = await client.submit(_request())

    assert identity.audiences == ["reviewbot"]
    assert seen["auth"] == "Bearer oidc-token"
    assert seen["body"]["repo"] == "acme/widgets"
    assert seen["body"]["files"][0]["path"] == "src/app.py"
    assert response.review.overall.decision == "comment"
    assert response.quota_remaining == 4


async def test_error_status_surfaces_service_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": {"message": "boom"}})

    client, _ = _client(handler)
    with pytest.raises(RemoteReviewError) as excinfo:
        await client.submit(_request())

    assert excinfo.value.status_code == 500
    assert "boom" in str(excinfo.value)
    assert "boom" in excinfo.value.body_excerpt


async def test_error_excerpt_is_bounded() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="x" * 5000)

    client, _ = _client(handler)
    with pytest.raises(RemoteReviewError) as excinfo:
        await client.submit(_request())

    assert len(excinfo.value.body_excerpt) == 2000


async def test_transport_error_is_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client, _ = _client(handler)
    with pytest.raises(RemoteReviewError) as excinfo:
        await client.submit(_request())
    assert excinfo.value.status_code == 0


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
        httpx.Response(200, json={"ok": True, "review": make_review_payload()}),
        httpx.Response(200, json={"ok": True, "meta": {}}),
        httpx.Response(200, json={"ok": True, "review": {"overall": {}}, "meta": {}}),
    ],
)
async def test_unusable_success_body_is_malformed(response: httpx.Response) -> None:
    client, _ = _client(lambda request: response)
    with pytest.raises(MalformedResponseError):
        await client.submit(_request())
