"""GitHub Action inputs (``INPUT_<NAME>`` environment variables)."""

from __future__ import annotations

import os
from typing import Literal, Mapping

from pydantic import BaseModel, ValidationError

from reviewbot.config import DEFAULT_OIDC_AUDIENCE, parse_bool_env
from reviewbot.errors import SettingsError
from reviewbot.repo_config import DEFAULT_CONFIG_PATH


class ActionInputs(BaseModel):
    mode: Literal["safe", "trusted"] = "safe"
    dry_run: bool = False
    post_inline: bool = True
    post_summary: bool = True
    create_check_run: bool = False
    config_path: str = DEFAULT_CONFIG_PATH
    focus: str | None = None
    max_comments: int | None = None
    min_severity: str | None = None
    review_api_url: str
    oidc_audience: str = DEFAULT_OIDC_AUDIENCE
    github_token: str


def _input_key(name: str) -> str:
    return f"INPUT_{name.replace(' ', '_').upper()}"


def get_input(environ: Mapping[str, str], name: str, default: str | None = None) -> str | None:
    raw = environ.get(_input_key(name))
    if raw is None or raw == "":
        return default
    return raw


def _get_int_input(environ: Mapping[str, str], name: str) -> int | None:
    raw = get_input(environ, name)
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


def load_action_inputs(environ: Mapping[str, str] | None = None) -> ActionInputs:
    """Read the action's inputs, falling back to plain environment variables where the action does."""

    env = os.environ if environ is None else environ

    review_api_url = get_input(env, "review_api_url", env.get("REVIEW_API_URL"))
    if not review_api_url:
        raise SettingsError("Missing review_api_url input (or env REVIEW_API_URL).")
    github_token = get_input(env, "github_token", env.get("GITHUB_TOKEN"))
    if not github_token:
        raise SettingsError("Missing GitHub token. Set env.GITHUB_TOKEN or input github_token.")

    try:
        return ActionInputs(
            mode=(get_input(env, "mode", "safe") or "safe").strip().lower(),
            dry_run=parse_bool_env(get_input(env, "dry_run"), default=False),
            post_inline=parse_bool_env(get_input(env, "post_inline"), default=True),
            post_summary=parse_bool_env(get_input(env, "post_summary"), default=True),
            create_check_run=parse_bool_env(get_input(env, "create_check_run"), default=False),
            config_path=get_input(env, "config_path", DEFAULT_CONFIG_PATH),
            focus=get_input(env, "focus"),
            max_comments=_get_int_input(env, "max_comments"),
            min_severity=get_input(env, "min_severity"),
            review_api_url=review_api_url,
            oidc_audience=get_input(env, "oidc_audience", env.get("OIDC_AUDIENCE") or DEFAULT_OIDC_AUDIENCE),
            github_token=github_token,
        )
    except ValidationError as exc:
        raise SettingsError(f"Invalid action inputs: {exc}") from exc
