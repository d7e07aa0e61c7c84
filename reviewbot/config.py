"""Application configuration helpers for the review service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Final, List, Mapping

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, ValidationError

from reviewbot.errors import SettingsError

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

GITHUB_OIDC_ISSUER: Final[str] = "https://token.actions.githubusercontent.com"
DEFAULT_OIDC_AUDIENCE: Final[str] = "reviewbot-api"
DEFAULT_QUOTA_PER_REPO_PER_DAY: Final[int] = 200
DEFAULT_OPENAI_MODEL: Final[str] = "gpt-4o-mini"


@dataclass(frozen=True)
class OpenAICredentials:
    api_key: str
    model: str
    base_url: str | None


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    oidc_audience: str = DEFAULT_OIDC_AUDIENCE
    oidc_issuer: str = GITHUB_OIDC_ISSUER
    oidc_jwks_url: AnyHttpUrl = f"{GITHUB_OIDC_ISSUER}/.well-known/jwks"
    allow_all: bool = False
    allow_repos: List[str] = []
    allow_orgs: List[str] = []
    quota_per_repo_per_day: int = DEFAULT_QUOTA_PER_REPO_PER_DAY
    openai_api_key: str | None = None
    openai_model: str = DEFAULT_OPENAI_MODEL
    openai_base_url: AnyHttpUrl | None = None

    @property
    def normalized_jwks_url(self) -> str:
        return str(self.oidc_jwks_url)

    def require_openai_credentials(self) -> OpenAICredentials:
        """Ensure the model provider is configured and return its credentials."""

        if not self.openai_api_key:
            raise SettingsError("Review generation is not configured. Missing environment variable: OPENAI_API_KEY.")
        base_url = str(self.openai_base_url).rstrip("/") if self.openai_base_url else None
        return OpenAICredentials(api_key=self.openai_api_key, model=self.openai_model, base_url=base_url)


_TRUE_VALUES: Final[set[str]] = {"1", "true", "yes", "y", "on"}


def parse_bool_env(raw_value: str | None, *, default: bool = False) -> bool:
    """Convert an environment variable string to a boolean value."""

    if raw_value is None or not raw_value.strip():
        return default
    return raw_value.strip().lower() in _TRUE_VALUES


def parse_list_env(raw_value: str | None, *, lower: bool = False) -> List[str]:
    """Split a comma separated environment value, dropping empty entries."""

    if not raw_value:
        return []
    items = [item.strip() for item in raw_value.split(",")]
    return [item.lower() if lower else item for item in items if item]


def build_settings(environ: Mapping[str, str] | None = None) -> Settings:
    env = os.environ if environ is None else environ

    quota_raw = env.get("QUOTA_PER_REPO_PER_DAY")
    try:
        quota = int(quota_raw) if quota_raw and quota_raw.strip() else DEFAULT_QUOTA_PER_REPO_PER_DAY
    except ValueError as exc:
        raise SettingsError("Invalid value for QUOTA_PER_REPO_PER_DAY. It must be an integer.") from exc

    issuer = (env.get("OIDC_ISSUER") or GITHUB_OIDC_ISSUER).rstrip("/")
    try:
        return Settings(
            oidc_audience=env.get("OIDC_AUDIENCE") or DEFAULT_OIDC_AUDIENCE,
            oidc_issuer=issuer,
            oidc_jwks_url=env.get("OIDC_JWKS_URL") or f"{issuer}/.well-known/jwks",
            allow_all=parse_bool_env(env.get("ALLOW_ALL"), default=False),
            allow_repos=parse_list_env(env.get("ALLOW_REPOS")),
            allow_orgs=parse_list_env(env.get("ALLOW_ORGS"), lower=True),
            quota_per_repo_per_day=quota,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL,
            openai_base_url=env.get("OPENAI_BASE_URL") or None,
        )
    except ValidationError as exc:
        raise SettingsError("Invalid application configuration.") from exc


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return build_settings()


def get_settings() -> Settings:
    """Retrieve cached application settings."""
    return _cached_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()
