"""Error taxonomy shared by the action pipeline and the review service."""

from __future__ import annotations

from typing import Any


class ReviewBotError(RuntimeError):
    """Base class for every failure the pipeline knows how to report."""

    code = "reviewbot_error"


class SettingsError(ReviewBotError):
    """Raised when process configuration is invalid or incomplete."""

    code = "settings_error"


class ConfigParseError(ReviewBotError):
    """Raised when the repository config file cannot be read. Callers fall back to defaults."""

    code = "config_parse_error"

    def __init__(self, message: str, path: str) -> None:
        super().__init__(message)
        self.path = path


class UnauthenticatedError(ReviewBotError):
    """No bearer credential was presented."""

    code = "unauthenticated"


class InvalidTokenError(ReviewBotError):
    """The identity token failed signature, issuer, audience or expiry checks."""

    code = "invalid_token"


class MalformedClaimsError(ReviewBotError):
    """The identity token verified but lacks a required claim."""

    code = "malformed_claims"


class RepoNotAllowedError(ReviewBotError):
    code = "repo_not_allowed"

    def __init__(self, repository: str) -> None:
        super().__init__(f"Repository '{repository}' is not on the allow-list.")
        self.repository = repository


class QuotaExceededError(ReviewBotError):
    code = "quota_exceeded"

    def __init__(self, repository: str, limit: int) -> None:
        super().__init__(f"Daily review quota of {limit} exhausted for '{repository}'.")
        self.repository = repository
        self.limit = limit


class NoFilesToReviewError(ReviewBotError):
    code = "no_files"


class InvalidReviewRequestError(ReviewBotError):
    """An authenticated caller sent a body that is not a review request."""

    code = "invalid_request"


class IdentityUnavailableError(ReviewBotError):
    """The execution environment cannot mint an OIDC token."""

    code = "identity_unavailable"


class RemoteReviewError(ReviewBotError):
    """The review service answered with a non-success status."""

    code = "remote_review_error"

    def __init__(self, message: str, status_code: int, body_excerpt: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body_excerpt = body_excerpt


class MalformedResponseError(ReviewBotError):
    """The review service answered 2xx but the body is not a usable review."""

    code = "malformed_response"


class ReviewGenerationError(ReviewBotError):
    """The language model call failed on the service side."""

    code = "review_generation_failed"


class GitHubAPIError(ReviewBotError):
    """Raised when a GitHub API request fails."""

    code = "github_api_error"

    def __init__(
        self,
        message: str,
        status_code: int,
        path: str | None = None,
        response_body: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.path = path
        self.response_body = response_body
