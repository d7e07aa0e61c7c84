"""Idempotent summary comments and capped inline findings on pull requests."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Literal

from reviewbot.errors import GitHubAPIError
from reviewbot.github_client import GitHubClient
from reviewbot.logger import get_logger, log_with_context
from reviewbot.models.review import FindingComment
from reviewbot.render import SUMMARY_MARKER, render_finding
from reviewbot.severity import severity_at_least

logger = get_logger()


@dataclass(frozen=True, slots=True)
class InlinePolicy:
    min_confidence: float
    min_severity: str
    max_comments: int


@dataclass(frozen=True, slots=True)
class SummaryUpsert:
    action: Literal["updated", "created"]
    id: int


def finding_qualifies(finding: FindingComment, policy: InlinePolicy) -> bool:
    confidence = finding.confidence if finding.confidence is not None else 0.0
    if confidence < policy.min_confidence:
        return False
    return severity_at_least(finding.severity, policy.min_severity)


class CommentReconciler:
    def __init__(self, github: GitHubClient, repository: str, *, commit_id: str | None = None) -> None:
        self._github = github
        self._repository = repository
        self._commit_id = commit_id

    async def upsert_summary(self, issue_number: int, body: str) -> SummaryUpsert:
        """Replace the newest marked summary comment, or create one if none exists."""

        ctx_logger = log_with_context(logger, repository=self._repository, pull_number=issue_number)
        comments = await self._github.list_issue_comments(full_name=self._repository, issue_number=issue_number)

        for comment in reversed(comments):
            existing_body = comment.get("body")
            if isinstance(existing_body, str) and SUMMARY_MARKER in existing_body:
                await self._github.update_issue_comment(
                    full_name=self._repository, comment_id=comment["id"], body=body
                )
                ctx_logger.info(f"Updated summary comment {comment['id']}")
                return SummaryUpsert(action="updated", id=comment["id"])

        created = await self._github.create_issue_comment(
            full_name=self._repository, issue_number=issue_number, body=body
        )
        ctx_logger.info(f"Created summary comment {created.get('id')}")
        return SummaryUpsert(action="created", id=created["id"])

    async def post_findings(
        self,
        pull_number: int,
        findings: Iterable[FindingComment],
        policy: InlinePolicy,
    ) -> int:
        """Post qualifying findings in order until the cap; return how many were posted."""

        ctx_logger = log_with_context(logger, repository=self._repository, pull_number=pull_number)
        posted = 0
        for finding in findings:
            if posted >= policy.max_comments:
                break
            if not finding.path or not finding.line:
                continue
            if not finding_qualifies(finding, policy):
                continue

            try:
                await self._github.create_review_comment(
                    full_name=self._repository,
                    pull_number=pull_number,
                    body=render_finding(finding),
                    path=finding.path,
                    line=finding.line,
                    side=finding.side or "RIGHT",
                    start_line=finding.start_line,
                    start_side=finding.start_side,
                    commit_id=self._commit_id,
                )
            except GitHubAPIError as exc:
                ctx_logger.warning(f"Failed to post inline comment for {finding.path}:{finding.line} ({exc})")
                continue
            posted += 1

        ctx_logger.info(f"Posted {posted} inline comment(s)")
        return posted
