"""Helpers that turn a pull request's changed files into a size-bounded review request."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from reviewbot.logger import get_logger
from reviewbot.models.review import (
    FileChange,
    PullRequestMeta,
    ReviewConstraints,
    ReviewRequest,
)
from reviewbot.repo_config import RepoConfig, matches_ignore_prefix

logger = get_logger()


@dataclass(frozen=True, slots=True)
class PayloadLimits:
    max_files: int
    max_patch_chars_per_file: int
    max_patch_chars_total: int

    @classmethod
    def from_config(cls, config: RepoConfig) -> "PayloadLimits":
        return cls(
            max_files=config.review.max_files,
            max_patch_chars_per_file=config.review.max_patch_chars_per_file,
            max_patch_chars_total=config.review.max_patch_chars_total,
        )


@dataclass(slots=True)
class ShapedPayload:
    files: List[FileChange] = field(default_factory=list)
    total_chars: int = 0


def serialize_files(files: Iterable[Dict[str, Any]]) -> List[FileChange]:
    serialized: List[FileChange] = []
    skipped_count = 0
    for file in files:
        # GitHub API may return "filename" or "path" depending on endpoint
        path = file.get("filename") or file.get("path")
        if not path:
            skipped_count += 1
            continue
        serialized.append(
            FileChange(
                path=path,
                status=file.get("status") or "",
                additions=int(file.get("additions", 0) or 0),
                deletions=int(file.get("deletions", 0) or 0),
                patch=file.get("patch") or "",
            )
        )
    if skipped_count > 0:
        logger.warning(f"Skipped {skipped_count} file(s) due to missing path/filename")
    return serialized


def filter_ignored(files: Iterable[FileChange], prefixes: Iterable[str]) -> List[FileChange]:
    prefixes = list(prefixes)
    return [file for file in files if not matches_ignore_prefix(file.path, prefixes)]


def shape_files(candidates: Iterable[FileChange], limits: PayloadLimits) -> ShapedPayload:
    """Select files greedily in input order under the file-count and character budgets.

    Files without patch text are skipped. Each patch is cut to the per-file ceiling;
    the first file that would push the running total past the overall ceiling ends
    selection, as does reaching ``max_files``.
    """

    shaped = ShapedPayload()
    if limits.max_files <= 0:
        return shaped

    for file in candidates:
        if not file.patch:
            continue
        trimmed = file.patch[: max(limits.max_patch_chars_per_file, 0)]
        next_total = shaped.total_chars + len(trimmed)
        if next_total > limits.max_patch_chars_total:
            break
        shaped.files.append(file.model_copy(update={"patch": trimmed}))
        shaped.total_chars = next_total
        if len(shaped.files) >= limits.max_files:
            break
    return shaped


def build_review_request(
    *,
    repository: str,
    pull_number: int,
    pull_request: Dict[str, Any],
    files: List[FileChange],
    config: RepoConfig,
    mode: str,
    focus: str | None,
) -> ReviewRequest:
    head = pull_request.get("head") or {}
    return ReviewRequest(
        repo=repository,
        pull_number=pull_number,
        pr=PullRequestMeta(
            title=pull_request.get("title") or "",
            body=pull_request.get("body") or "",
            url=pull_request.get("html_url") or "",
            head_sha=head.get("sha") or "",
        ),
        focus=focus or None,
        mode=mode,
        config=ReviewConstraints(
            min_confidence=config.review.min_confidence,
            min_severity_for_inline=config.review.min_severity_for_inline,
            max_inline_comments=config.review.max_inline_comments,
        ),
        files=files,
    )
