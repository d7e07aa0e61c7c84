"""Scaffold the ReviewBot workflow and default config into a repository."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import List

from reviewbot.repo_config import DEFAULT_CONFIG, DEFAULT_CONFIG_PATH

DEFAULT_ACTION_REF = "reviewbot/reviewbot-action@v1"
WORKFLOW_PATH = Path(".github") / "workflows" / "reviewbot.yml"

_WORKFLOW_TEMPLATE = """name: ReviewBot

on:
  pull_request_target:
    types: [opened, synchronize, reopened, ready_for_review]
  issue_comment:
    types: [created]

permissions:
  contents: read
  pull-requests: write
  issues: write
  checks: write
  id-token: write

jobs:
  review:
    runs-on: ubuntu-latest
    if: |
      github.event_name != 'issue_comment' ||
      (github.event.issue.pull_request && contains(github.event.comment.body, '/review'))

    steps:
      - name: Checkout base branch (safe)
        if: github.event_name == 'pull_request_target'
        uses: actions/checkout@v4
        with:
          ref: ${{{{ github.event.pull_request.base.ref }}}}
          fetch-depth: 1

      - name: Checkout default branch (for /review comments)
        if: github.event_name == 'issue_comment'
        uses: actions/checkout@v4
        with:
          ref: ${{{{ github.event.repository.default_branch }}}}
          fetch-depth: 1

      - name: Run ReviewBot
        uses: {action_ref}
        with:
          mode: {mode}
          config_path: {config_path}
          review_api_url: {endpoint}
        env:
          GITHUB_TOKEN: ${{{{ github.token }}}}
"""


@dataclass(frozen=True)
class WriteResult:
    path: Path
    written: bool


def workflow_yaml(*, endpoint: str, action_ref: str = DEFAULT_ACTION_REF, mode: str = "safe") -> str:
    return _WORKFLOW_TEMPLATE.format(
        action_ref=action_ref,
        mode=mode,
        config_path=DEFAULT_CONFIG_PATH,
        endpoint=endpoint,
    )


def default_config_json() -> str:
    return json.dumps(DEFAULT_CONFIG, indent=2) + "\n"


def write_file_safe(path: Path, content: str, *, force: bool = False) -> WriteResult:
    """Write ``content`` unless the file already exists and ``force`` is not set."""

    if path.exists() and not force:
        return WriteResult(path=path, written=False)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return WriteResult(path=path, written=True)


def install(
    root: str | Path,
    *,
    endpoint: str,
    action_ref: str = DEFAULT_ACTION_REF,
    mode: str = "safe",
    force: bool = False,
) -> List[WriteResult]:
    repo_root = Path(root)
    return [
        write_file_safe(
            repo_root / WORKFLOW_PATH,
            workflow_yaml(endpoint=endpoint, action_ref=action_ref, mode=mode),
            force=force,
        ),
        write_file_safe(repo_root / DEFAULT_CONFIG_PATH, default_config_json(), force=force),
    ]
