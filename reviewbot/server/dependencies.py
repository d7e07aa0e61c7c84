"""FastAPI dependency factories."""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from reviewbot.config import Settings, get_settings
from reviewbot.errors import SettingsError
from reviewbot.logger import get_logger
from reviewbot.server.generator import ReviewGenerator
from reviewbot.server.oidc import OIDCVerifier, RepositoryAllowList
from reviewbot.server.quota import QuotaGate

logger = get_logger()


def settings_dependency() -> Settings:
    """Resolve application settings, surfacing configuration errors via HTTPException."""

    try:
        return get_settings()
    except SettingsError as exc:
        logger.error(f"Failed to load settings: {exc}")
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@lru_cache(maxsize=1)
def _verifier_factory(audience: str, issuer: str, jwks_url: str) -> OIDCVerifier:
    return OIDCVerifier(audience=audience, issuer=issuer, jwks_url=jwks_url)


@lru_cache(maxsize=1)
def _quota_factory(limit: int) -> QuotaGate:
    return QuotaGate(limit)


@lru_cache(maxsize=1)
def _generator_factory(api_key: str, model: str, base_url: str | None) -> ReviewGenerator:
    return ReviewGenerator(api_key=api_key, model=model, base_url=base_url)


def verifier_dependency() -> OIDCVerifier:
    settings = settings_dependency()
    return _verifier_factory(settings.oidc_audience, settings.oidc_issuer, settings.normalized_jwks_url)


def allow_list_dependency() -> RepositoryAllowList:
    return RepositoryAllowList.from_settings(settings_dependency())


def quota_dependency() -> QuotaGate:
    """Provide the process-wide quota gate, created on first use."""

    return _quota_factory(settings_dependency().quota_per_repo_per_day)


def generator_dependency() -> ReviewGenerator:
    settings = settings_dependency()
    try:
        credentials = settings.require_openai_credentials()
    except SettingsError as exc:
        logger.error(f"Review generation unavailable: {exc}")
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return _generator_factory(credentials.api_key, credentials.model, credentials.base_url)


def reset_dependency_caches() -> None:
    """Clear cached service collaborators (primarily for tests)."""

    _verifier_factory.cache_clear()
    _quota_factory.cache_clear()
    _generator_factory.cache_clear()
