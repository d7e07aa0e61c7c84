"""Pull request review pipeline: policy checks, shaping, remote review and publishing."""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from reviewbot.commands import parse_review_command
from reviewbot.errors import GitHubAPIError, ReviewBotError
from reviewbot.github_client import GitHubClient
from reviewbot.inputs import ActionInputs
from reviewbot.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from reviewbot.models.review import ReviewResponse
from reviewbot.render import render_summary
from reviewbot.repo_config import RepoConfig, resolve_config
from reviewbot.review_client import ReviewAPIClient
from reviewbot.services.payload import (
    PayloadLimits,
    build_review_request,
    filter_ignored,
    serialize_files,
    shape_files,
)
from reviewbot.services.reconciler import CommentReconciler, InlinePolicy
from reviewbot.severity import normalize_severity

logger = get_logger()

REPORT_FILENAME = "reviewbot-report.json"
CHECK_RUN_NAME = "ReviewBot"
CHECK_SUMMARY_LIMIT = 65000


class PipelineState(str, enum.Enum):
    START = "start"
    LABEL_POLICY_CHECK = "label_policy_check"
    SKIPPED = "skipped"
    FILE_COLLECTION = "file_collection"
    PAYLOAD_SHAPING = "payload_shaping"
    REMOTE_REVIEW = "remote_review"
    RESPONSE_HANDLING = "response_handling"
    DRY_RUN_REPORT = "dry_run_report"
    PUBLISHING = "publishing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineOutcome:
    state: PipelineState
    reason: str | None = None
    summary: str | None = None
    posted_inline: int = 0
    error: ReviewBotError | None = None
    failed_step: PipelineState | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is not PipelineState.FAILED


@dataclass(frozen=True)
class PullRequestEvent:
    repository: str
    pull_number: int
    command: Dict[str, str] | None = None

    @classmethod
    def from_payload(cls, repository: str, payload: Dict[str, Any]) -> "PullRequestEvent":
        pull_number = (payload.get("pull_request") or {}).get("number")
        issue = payload.get("issue") or {}
        if not pull_number and issue.get("number") and issue.get("pull_request"):
            pull_number = issue["number"]
        if not pull_number:
            raise ValueError("Could not determine pull request number from event payload.")
        comment = payload.get("comment") or {}
        return cls(
            repository=repository,
            pull_number=int(pull_number),
            command=parse_review_command(comment.get("body")),
        )


def label_skip_reason(pull_request: Dict[str, Any], config: RepoConfig) -> str | None:
    """Return why the label policy rules this pull request out, or None when it may run."""

    labels = {str(label.get("name") or "").lower() for label in pull_request.get("labels") or []}
    skip_labels = [label.lower() for label in config.policies.skip_if_label_present]
    required_labels = [label.lower() for label in config.policies.run_only_if_label_present]

    if any(label in labels for label in skip_labels):
        return f"PR has skip label ({', '.join(skip_labels)})"
    if required_labels and not any(label in labels for label in required_labels):
        return f"PR does not have required label ({', '.join(required_labels)})"
    return None


def _command_int(command: Dict[str, str], key: str) -> int | None:
    raw = command.get(key)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _first_set(*values: Any) -> Any:
    """Return the first value that is not None, so explicit zeros still win."""

    for value in values:
        if value is not None:
            return value
    return None


class ReviewPipeline:
    def __init__(
        self,
        *,
        github: GitHubClient,
        review_client: ReviewAPIClient,
        inputs: ActionInputs,
        workspace: str | Path,
    ) -> None:
        self._github = github
        self._review_client = review_client
        self._inputs = inputs
        self._workspace = Path(workspace)
        self._state = PipelineState.START

    @property
    def state(self) -> PipelineState:
        return self._state

    def _enter(self, state: PipelineState, ctx_logger) -> None:
        self._state = state
        ctx_logger.debug(f"Pipeline step: {state.value}")

    async def run(self, event: PullRequestEvent) -> PipelineOutcome:
        ctx_logger = log_with_context(logger, repository=event.repository, pull_number=event.pull_number)
        ctx_logger.info("=== PIPELINE: Starting review ===")
        self._enter(PipelineState.START, ctx_logger)
        try:
            outcome = await self._run(event, ctx_logger)
        except ReviewBotError as exc:
            log_failure(logger, f"Review pipeline failed during {self._state.value}: {exc}", exc,
                        repository=event.repository, pull_number=event.pull_number)
            return PipelineOutcome(state=PipelineState.FAILED, reason=exc.code, error=exc, failed_step=self._state)

        if outcome.state is PipelineState.FAILED:
            log_failure(logger, f"Review pipeline failed: {outcome.reason}",
                        repository=event.repository, pull_number=event.pull_number)
        elif outcome.state is PipelineState.SKIPPED:
            ctx_logger.info(f"Skipping review: {outcome.reason}")
        else:
            log_success(logger, f"Review completed for PR #{event.pull_number}",
                        repository=event.repository, pull_number=event.pull_number)
        return outcome

    async def _run(self, event: PullRequestEvent, ctx_logger) -> PipelineOutcome:
        resolution = resolve_config(self._workspace, self._inputs.config_path)
        if resolution.error is not None:
            ctx_logger.warning(f"{resolution.error}; using defaults.")
        ctx_logger.info(f"Config: {resolution.path if resolution.found else 'defaults (config not found)'}")
        config = resolution.config

        self._enter(PipelineState.LABEL_POLICY_CHECK, ctx_logger)
        with log_timing(ctx_logger, "fetch_pull_request"):
            pull_request = await self._github.get_pull_request(
                full_name=event.repository, pull_number=event.pull_number
            )

        skip_reason = label_skip_reason(pull_request, config)
        if skip_reason:
            return PipelineOutcome(state=PipelineState.SKIPPED, reason=skip_reason)

        self._enter(PipelineState.FILE_COLLECTION, ctx_logger)
        with log_timing(ctx_logger, "list_pull_request_files"):
            raw_files = await self._github.list_pull_request_files(
                full_name=event.repository, pull_number=event.pull_number
            )
        candidates = filter_ignored(serialize_files(raw_files), config.policies.ignore_paths)

        self._enter(PipelineState.PAYLOAD_SHAPING, ctx_logger)
        shaped = shape_files(candidates, PayloadLimits.from_config(config))
        ctx_logger.info(f"Reviewing {len(shaped.files)} file(s); estimated patch chars: {shaped.total_chars}")
        if not shaped.files:
            return PipelineOutcome(
                state=PipelineState.SKIPPED,
                reason="No text patches available to review (binary files or empty patch).",
            )

        command = event.command or {}
        request = build_review_request(
            repository=event.repository,
            pull_number=event.pull_number,
            pull_request=pull_request,
            files=shaped.files,
            config=config,
            mode=self._inputs.mode,
            focus=command.get("focus") or self._inputs.focus,
        )
        self._enter(PipelineState.REMOTE_REVIEW, ctx_logger)
        response = await self._review_client.submit(request)

        self._enter(PipelineState.RESPONSE_HANDLING, ctx_logger)
        self._write_report(response, ctx_logger)
        summary = render_summary(response.review, generated_at=response.generated_at)

        if self._inputs.dry_run:
            self._enter(PipelineState.DRY_RUN_REPORT, ctx_logger)
            ctx_logger.info("dry_run=true. Not posting to PR.")
            ctx_logger.info(summary)
            return PipelineOutcome(state=PipelineState.DONE, reason=PipelineState.DRY_RUN_REPORT.value, summary=summary)

        policy = InlinePolicy(
            min_confidence=config.review.min_confidence,
            min_severity=normalize_severity(
                _first_set(
                    command.get("min_severity") or None,
                    self._inputs.min_severity,
                    config.review.min_severity_for_inline,
                )
            ),
            max_comments=_first_set(
                _command_int(command, "max_comments"),
                self._inputs.max_comments,
                config.review.max_inline_comments,
            ),
        )
        self._enter(PipelineState.PUBLISHING, ctx_logger)
        return await self._publish(event, pull_request, response, summary, policy, ctx_logger)

    async def _publish(
        self,
        event: PullRequestEvent,
        pull_request: Dict[str, Any],
        response: ReviewResponse,
        summary: str,
        policy: InlinePolicy,
        ctx_logger,
    ) -> PipelineOutcome:
        head_sha = (pull_request.get("head") or {}).get("sha")
        reconciler = CommentReconciler(self._github, event.repository, commit_id=head_sha)
        failures: List[str] = []
        summary_error: GitHubAPIError | None = None
        posted = 0

        if self._inputs.post_summary:
            try:
                upsert = await reconciler.upsert_summary(event.pull_number, summary)
                ctx_logger.info(f"Posted/updated summary comment ({upsert.action} {upsert.id}).")
            except GitHubAPIError as exc:
                ctx_logger.error(f"Failed to upsert summary comment: {exc}")
                failures.append("summary")
                summary_error = exc

        if self._inputs.create_check_run:
            if not head_sha:
                ctx_logger.warning("Pull request has no head SHA; skipping check run")
            else:
                conclusion = "failure" if response.review.overall.decision == "request_changes" else "success"
                try:
                    await self._github.create_check_run(
                        full_name=event.repository,
                        head_sha=head_sha,
                        name=CHECK_RUN_NAME,
                        conclusion=conclusion,
                        title=CHECK_RUN_NAME,
                        summary=summary[:CHECK_SUMMARY_LIMIT],
                    )
                except GitHubAPIError as exc:
                    # Check permissions vary between repositories.
                    ctx_logger.warning(f"Could not create check run: {exc}")

        if self._inputs.post_inline and self._inputs.post_summary:
            posted = await reconciler.post_findings(event.pull_number, response.review.comments, policy)
        elif self._inputs.post_inline:
            ctx_logger.info("post_summary=false; inline findings are not posted")

        if failures:
            return PipelineOutcome(
                state=PipelineState.FAILED,
                reason=f"publishing failed: {', '.join(failures)}",
                error=summary_error,
                summary=summary,
                posted_inline=posted,
                failed_step=PipelineState.PUBLISHING,
            )
        return PipelineOutcome(state=PipelineState.DONE, summary=summary, posted_inline=posted)

    def _write_report(self, response: ReviewResponse, ctx_logger) -> None:
        report_path = self._workspace / REPORT_FILENAME
        report = {
            "review": response.review.model_dump(mode="json"),
            "meta": response.meta,
            "response": response.model_dump(mode="json"),
        }
        try:
            report_path.write_text(json.dumps(report, indent=2), encoding="utf-8")
            ctx_logger.info(f"Wrote {REPORT_FILENAME}")
        except OSError as exc:
            ctx_logger.warning(f"Could not write {REPORT_FILENAME}: {exc}")
