"""Repository-local review configuration (``.reviewbot.json``) merged over defaults."""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Final, Iterable, List

from pydantic import BaseModel, ConfigDict, ValidationError

from reviewbot.errors import ConfigParseError

DEFAULT_CONFIG_PATH: Final[str] = ".reviewbot.json"

DEFAULT_CONFIG: Final[Dict[str, Any]] = {
    "review": {
        "max_files": 25,
        "max_inline_comments": 10,
        "min_confidence": 0.65,
        "min_severity_for_inline": "medium",
        "max_patch_chars_total": 120000,
        "max_patch_chars_per_file": 12000,
    },
    "policies": {
        "ignore_paths": ["dist/", "build/", "coverage/", "node_modules/", "vendor/"],
        "skip_if_label_present": ["no-ai-review"],
        "run_only_if_label_present": [],
    },
}


class ReviewSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    max_files: int
    max_inline_comments: int
    min_confidence: float
    min_severity_for_inline: str
    max_patch_chars_total: int
    max_patch_chars_per_file: int


class PolicySettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    ignore_paths: List[str]
    skip_if_label_present: List[str]
    run_only_if_label_present: List[str]


class RepoConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    review: ReviewSettings
    policies: PolicySettings

    @classmethod
    def defaults(cls) -> "RepoConfig":
        return cls.model_validate(DEFAULT_CONFIG)


@dataclass(frozen=True)
class ConfigResolution:
    config: RepoConfig
    found: bool
    path: Path
    error: ConfigParseError | None = None


def deep_merge(base: Any, override: Any) -> Any:
    """Merge ``override`` onto ``base`` without mutating either.

    Dicts merge key by key, lists and scalars replace, ``None`` keeps ``base``.
    """

    if override is None:
        return copy.deepcopy(base)
    if isinstance(base, dict) and isinstance(override, dict):
        merged = copy.deepcopy(base)
        for key, value in override.items():
            merged[key] = deep_merge(base.get(key), value)
        return merged
    return copy.deepcopy(override)


def resolve_config(workspace: str | Path, config_path: str | Path = DEFAULT_CONFIG_PATH) -> ConfigResolution:
    """Load the repository config, falling back to defaults on any failure."""

    candidate = Path(config_path)
    full_path = candidate if candidate.is_absolute() else Path(workspace) / candidate

    if not full_path.exists():
        return ConfigResolution(config=RepoConfig.defaults(), found=False, path=full_path)

    try:
        raw = json.loads(full_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError("top-level value must be a JSON object")
        config = RepoConfig.model_validate(deep_merge(DEFAULT_CONFIG, raw))
    except (OSError, ValueError, ValidationError) as exc:
        error = ConfigParseError(f"Failed to parse config at {full_path}: {exc}", str(full_path))
        return ConfigResolution(config=RepoConfig.defaults(), found=False, path=full_path, error=error)

    return ConfigResolution(config=config, found=True, path=full_path)


def matches_ignore_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """Return True if ``path`` starts with any of ``prefixes`` (plain prefix match, not glob)."""

    text = str(path)
    return any(text.startswith(prefix) for prefix in prefixes)
