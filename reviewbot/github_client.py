"""GitHub API client helpers."""

from __future__ import annotations

from typing import Any, Dict, List

import httpx

from reviewbot.errors import GitHubAPIError

DEFAULT_BASE_URL = "https://api.github.com"
DEFAULT_ACCEPT_HEADER = "application/vnd.github+json"
DEFAULT_API_VERSION = "2022-11-28"
PER_PAGE = 100
MAX_FILE_PAGES = 20
MAX_COMMENT_PAGES = 3


class GitHubClient:
    """Repository-scoped GitHub REST operations authenticated with a workflow token."""

    def __init__(
        self,
        *,
        token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        user_agent: str = "ReviewBot/1.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout,
            headers={
                "User-Agent": user_agent,
                "Accept": DEFAULT_ACCEPT_HEADER,
                "X-GitHub-Api-Version": DEFAULT_API_VERSION,
            },
        )
        self._owns_client = client is None
        self._auth_headers = {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: Dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method, url, headers=self._auth_headers, params=params, json=json
            )
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GitHub API {method} {url} failed: {exc}", 0, url) from exc

        if response.status_code >= 400:
            detail: Any | None
            if response.content:
                try:
                    detail = response.json()
                except ValueError:
                    detail = response.text
            else:
                detail = None
            message = detail.get("message") if isinstance(detail, dict) else detail
            raise GitHubAPIError(
                f"GitHub API {method} {url} failed: {response.status_code} {message or ''}".rstrip(),
                response.status_code,
                url,
                detail,
            )
        return response

    @staticmethod
    def _split_full_name(full_name: str) -> tuple[str, str]:
        if "/" not in full_name:
            raise ValueError(f"Repository full name '{full_name}' is invalid.")
        owner, repo = full_name.split("/", 1)
        return owner, repo

    async def _paginate(self, url: str, *, max_pages: int) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while page <= max_pages:
            response = await self._request("GET", url, params={"per_page": PER_PAGE, "page": page})
            batch = response.json()
            if not isinstance(batch, list):
                raise GitHubAPIError(
                    f"Unexpected response while listing {url}.",
                    response.status_code,
                    url,
                    batch,
                )
            items.extend(batch)
            if len(batch) < PER_PAGE:
                break
            page += 1
        return items

    async def get_pull_request(self, *, full_name: str, pull_number: int) -> Dict[str, Any]:
        owner, repo = self._split_full_name(full_name)
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pull_number}")
        return response.json()

    async def list_pull_request_files(self, *, full_name: str, pull_number: int) -> List[Dict[str, Any]]:
        owner, repo = self._split_full_name(full_name)
        return await self._paginate(
            f"/repos/{owner}/{repo}/pulls/{pull_number}/files", max_pages=MAX_FILE_PAGES
        )

    async def list_issue_comments(self, *, full_name: str, issue_number: int) -> List[Dict[str, Any]]:
        owner, repo = self._split_full_name(full_name)
        return await self._paginate(
            f"/repos/{owner}/{repo}/issues/{issue_number}/comments", max_pages=MAX_COMMENT_PAGES
        )

    async def create_issue_comment(self, *, full_name: str, issue_number: int, body: str) -> Dict[str, Any]:
        owner, repo = self._split_full_name(full_name)
        response = await self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{issue_number}/comments", json={"body": body}
        )
        return response.json()

    async def update_issue_comment(self, *, full_name: str, comment_id: int, body: str) -> Dict[str, Any]:
        owner, repo = self._split_full_name(full_name)
        response = await self._request(
            "PATCH", f"/repos/{owner}/{repo}/issues/comments/{comment_id}", json={"body": body}
        )
        return response.json()

    async def create_review_comment(
        self,
        *,
        full_name: str,
        pull_number: int,
        body: str,
        path: str,
        line: int,
        side: str = "RIGHT",
        start_line: int | None = None,
        start_side: str | None = None,
        commit_id: str | None = None,
    ) -> Dict[str, Any]:
        owner, repo = self._split_full_name(full_name)
        payload: Dict[str, Any] = {"body": body, "path": path, "side": side or "RIGHT", "line": line}
        if start_line and start_side:
            payload["start_line"] = start_line
            payload["start_side"] = start_side
        if commit_id:
            payload["commit_id"] = commit_id
        response = await self._request(
            "POST", f"/repos/{owner}/{repo}/pulls/{pull_number}/comments", json=payload
        )
        return response.json()

    async def create_check_run(
        self,
        *,
        full_name: str,
        head_sha: str,
        name: str,
        conclusion: str,
        title: str,
        summary: str,
    ) -> Dict[str, Any]:
        owner, repo = self._split_full_name(full_name)
        payload = {
            "name": name,
            "head_sha": head_sha,
            "status": "completed",
            "conclusion": conclusion,  # success, failure, neutral
            "output": {"title": title, "summary": summary},
        }
        response = await self._request("POST", f"/repos/{owner}/{repo}/check-runs", json=payload)
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None
