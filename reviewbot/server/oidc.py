"""GitHub Actions OIDC verification and repository allow-listing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable

import jwt

from reviewbot.config import GITHUB_OIDC_ISSUER, Settings
from reviewbot.errors import InvalidTokenError, MalformedClaimsError, UnauthenticatedError
from reviewbot.logger import get_logger

logger = get_logger()

BEARER_PREFIX = "Bearer "
SIGNING_ALGORITHMS = ["RS256"]

KeyResolver = Callable[[str], Any]


@dataclass(frozen=True)
class VerifiedIdentity:
    repository: str
    actor: str | None = None
    workflow: str | None = None
    workflow_ref: str | None = None
    claims: Dict[str, Any] = field(default_factory=dict)


class OIDCVerifier:
    """Verifies identity tokens against the issuer's published key set."""

    def __init__(
        self,
        *,
        audience: str,
        issuer: str = GITHUB_OIDC_ISSUER,
        jwks_url: str | None = None,
        key_resolver: KeyResolver | None = None,
    ) -> None:
        self._audience = audience
        self._issuer = issuer
        if key_resolver is None:
            jwks_client = jwt.PyJWKClient(jwks_url or f"{issuer}/.well-known/jwks")

            def key_resolver(token: str) -> Any:
                return jwks_client.get_signing_key_from_jwt(token).key

        self._key_resolver = key_resolver

    def verify(self, authorization: str | None) -> VerifiedIdentity:
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            raise UnauthenticatedError("Missing Authorization: Bearer <OIDC_TOKEN>")
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            raise UnauthenticatedError("Missing Authorization: Bearer <OIDC_TOKEN>")

        try:
            key = self._key_resolver(token)
            claims = jwt.decode(
                token,
                key,
                algorithms=SIGNING_ALGORITHMS,
                audience=self._audience,
                issuer=self._issuer,
            )
        except jwt.PyJWTError as exc:
            logger.warning(f"OIDC token rejected: {exc}")
            raise InvalidTokenError(f"OIDC token verification failed: {exc}") from exc

        repository = claims.get("repository")
        if not repository:
            raise MalformedClaimsError("OIDC token missing 'repository' claim")

        return VerifiedIdentity(
            repository=repository,
            actor=claims.get("actor"),
            workflow=claims.get("workflow"),
            workflow_ref=claims.get("job_workflow_ref") or claims.get("workflow_ref"),
            claims=claims,
        )


class RepositoryAllowList:
    def __init__(self, *, allow_all: bool = False, repos: Iterable[str] = (), orgs: Iterable[str] = ()) -> None:
        self._allow_all = allow_all
        self._repos = frozenset(repos)
        self._orgs = frozenset(org.strip().lower() for org in orgs if org.strip())

    @classmethod
    def from_settings(cls, settings: Settings) -> "RepositoryAllowList":
        return cls(allow_all=settings.allow_all, repos=settings.allow_repos, orgs=settings.allow_orgs)

    def is_allowed(self, repository: str) -> bool:
        if self._allow_all:
            return True
        if repository in self._repos:
            return True
        org = str(repository).split("/", 1)[0].lower()
        return org in self._orgs
