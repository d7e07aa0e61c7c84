from __future__ import annotations

import json
from pathlib import Path

import pytest

from reviewbot.errors import GitHubAPIError, RemoteReviewError
from reviewbot.inputs import ActionInputs
from reviewbot.models.review import ReviewRequest, ReviewResponse
from reviewbot.render import SUMMARY_MARKER
from reviewbot.repo_config import RepoConfig
from reviewbot.services.pipeline import (
    PipelineState,
    PullRequestEvent,
    ReviewPipeline,
    label_skip_reason,
)
from tests.factories import FakeGitHub, make_finding, make_review_payload

FILES = [
    {"filename": "src/app.py", "status": "modified", "additions": 4, "deletions": 1, "patch": "@@ -1 +1 @@\n+x"},
    {"filename": "dist/bundle.js", "status": "modified", "additions": 1, "deletions": 1, "patch": "@@ bundle"},
    {"filename": "logo.png", "status": "added", "additions": 0, "deletions": 0},
]


class FakeReviewClient:
    def __init__(self, payload: dict | None = None, error: Exception | None = None) -> None:
        self.payload = payload or make_review_payload()
        self.error = error
        self.requests: list[ReviewRequest] = []

    async def submit(self, request: ReviewRequest) -> ReviewResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return ReviewResponse.model_validate(
            {"ok": True, "review": self.payload, "meta": {"model": "test"}, "generated_at": "2024-05-01T00:00:00Z"}
        )


def _inputs(**overrides) -> ActionInputs:
    data = {"review_api_url": "https://review.example/review", "github_token": "ghs_test"}
    data.update(overrides)
    return ActionInputs(**data)


def _pipeline(github: FakeGitHub, client: FakeReviewClient, workspace: Path, **inputs) -> ReviewPipeline:
    return ReviewPipeline(github=github, review_client=client, inputs=_inputs(**inputs), workspace=workspace)


def _event(command: str | None = None) -> PullRequestEvent:
    payload: dict = {"pull_request": {"number": 7}}
    if command is not None:
        payload = {"issue": {"number": 7, "pull_request": {"url": "x"}}, "comment": {"body": command}}
    return PullRequestEvent.from_payload("acme/widgets", payload)


async def test_skip_label_stops_before_listing_files(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    github.pull_request["labels"] = [{"name": "No-AI-Review"}]
    client = FakeReviewClient()

    outcome = await _pipeline(github, client, tmp_path).run(_event())

    assert outcome.state is PipelineState.SKIPPED
    assert outcome.succeeded
    assert "list_pull_request_files" not in github.calls
    assert client.requests == []


async def test_required_label_missing_skips(tmp_path: Path) -> None:
    (tmp_path / ".reviewbot.json").write_text(json.dumps({"policies": {"run_only_if_label_present": ["ai"]}}))
    github = FakeGitHub(files=FILES)

    outcome = await _pipeline(github, FakeReviewClient(), tmp_path).run(_event())

    assert outcome.state is PipelineState.SKIPPED
    assert "required label" in outcome.reason


async def test_no_text_patches_skips_without_remote_call(tmp_path: Path) -> None:
    github = FakeGitHub(files=[FILES[2]])
    client = FakeReviewClient()

    outcome = await _pipeline(github, client, tmp_path).run(_event())

    assert outcome.state is PipelineState.SKIPPED
    assert client.requests == []


async def test_dry_run_writes_report_and_posts_nothing(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    client = FakeReviewClient(make_review_payload(comments=[make_finding().model_dump()]))

    outcome = await _pipeline(github, client, tmp_path, dry_run=True).run(_event())

    assert outcome.state is PipelineState.DONE
    assert outcome.reason == "dry_run_report"
    assert outcome.summary.startswith(SUMMARY_MARKER)
    assert github.issue_comments == []
    assert github.review_comments == []
    report = json.loads((tmp_path / "reviewbot-report.json").read_text())
    assert report["meta"] == {"model": "test"}
    assert report["review"]["overall"]["decision"] == "comment"


async def test_full_run_posts_summary_findings_and_check(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    findings = [
        make_finding(path="src/app.py", confidence=0.9).model_dump(),
        make_finding(path="src/app.py", line=20, confidence=0.3).model_dump(),
    ]
    client = FakeReviewClient(make_review_payload(comments=findings))

    outcome = await _pipeline(github, client, tmp_path, create_check_run=True).run(_event())

    assert outcome.state is PipelineState.DONE
    assert outcome.posted_inline == 1
    assert [f.path for f in client.requests[0].files] == ["src/app.py"]
    assert len(github.issue_comments) == 1
    assert github.review_comments[0]["commit_id"] == "abc123"
    assert github.check_runs[0]["conclusion"] == "success"
    assert github.check_runs[0]["head_sha"] == "abc123"


async def test_request_changes_fails_the_check(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    payload = make_review_payload()
    payload["overall"]["decision"] = "request_changes"

    await _pipeline(github, FakeReviewClient(payload), tmp_path, create_check_run=True).run(_event())

    assert github.check_runs[0]["conclusion"] == "failure"


async def test_summary_disabled_suppresses_inline(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    client = FakeReviewClient(make_review_payload(comments=[make_finding().model_dump()]))

    outcome = await _pipeline(github, client, tmp_path, post_summary=False).run(_event())

    assert outcome.state is PipelineState.DONE
    assert github.issue_comments == []
    assert github.review_comments == []


async def test_summary_failure_marks_run_failed(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    github.fail_issue_comments = True

    outcome = await _pipeline(github, FakeReviewClient(), tmp_path).run(_event())

    assert outcome.state is PipelineState.FAILED
    assert not outcome.succeeded
    assert isinstance(outcome.error, GitHubAPIError)


async def test_remote_error_fails_run(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    client = FakeReviewClient(error=RemoteReviewError("Review API request failed (500): boom", 500))

    outcome = await _pipeline(github, client, tmp_path).run(_event())

    assert outcome.state is PipelineState.FAILED
    assert outcome.reason == "remote_review_error"
    assert github.issue_comments == []


async def test_command_arguments_override_inputs(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    findings = [
        make_finding(path="a.py", severity="low").model_dump(),
        make_finding(path="b.py", severity="high").model_dump(),
        make_finding(path="c.py", severity="critical").model_dump(),
    ]
    client = FakeReviewClient(make_review_payload(comments=findings))

    outcome = await _pipeline(github, client, tmp_path, focus="style", min_severity="high").run(
        _event("/review focus=security min_severity=low max_comments=2")
    )

    assert client.requests[0].focus == "security"
    assert outcome.posted_inline == 2
    assert [c["path"] for c in github.review_comments] == ["a.py", "b.py"]


async def test_explicit_zero_cap_input_posts_no_inline_comments(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    client = FakeReviewClient(make_review_payload(comments=[make_finding().model_dump()]))

    outcome = await _pipeline(github, client, tmp_path, max_comments=0).run(_event())

    assert outcome.state is PipelineState.DONE
    assert outcome.posted_inline == 0
    assert github.review_comments == []
    assert len(github.issue_comments) == 1


async def test_explicit_zero_cap_command_overrides_input(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    client = FakeReviewClient(make_review_payload(comments=[make_finding().model_dump()]))

    outcome = await _pipeline(github, client, tmp_path, max_comments=5).run(_event("/review max_comments=0"))

    assert outcome.posted_inline == 0
    assert github.review_comments == []


async def test_remote_failure_records_failed_step(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    client = FakeReviewClient(error=RemoteReviewError("Review API request failed (500): boom", 500))
    pipeline = _pipeline(github, client, tmp_path)

    outcome = await pipeline.run(_event())

    assert outcome.failed_step is PipelineState.REMOTE_REVIEW
    assert pipeline.state is PipelineState.REMOTE_REVIEW


async def test_summary_failure_records_publishing_step(tmp_path: Path) -> None:
    github = FakeGitHub(files=FILES)
    github.fail_issue_comments = True

    outcome = await _pipeline(github, FakeReviewClient(), tmp_path).run(_event())

    assert outcome.failed_step is PipelineState.PUBLISHING


async def test_dry_run_passes_through_report_step(tmp_path: Path) -> None:
    pipeline = _pipeline(FakeGitHub(files=FILES), FakeReviewClient(), tmp_path, dry_run=True)

    outcome = await pipeline.run(_event())

    assert outcome.failed_step is None
    assert pipeline.state is PipelineState.DRY_RUN_REPORT


def test_event_from_issue_comment_on_plain_issue_is_rejected() -> None:
    with pytest.raises(ValueError):
        PullRequestEvent.from_payload("acme/widgets", {"issue": {"number": 3}, "comment": {"body": "/review"}})


def test_event_without_command_has_none() -> None:
    event = _event()
    assert event.pull_number == 7
    assert event.command is None


def test_label_policy_is_case_insensitive() -> None:
    config = RepoConfig.defaults()
    assert label_skip_reason({"labels": [{"name": "NO-AI-REVIEW"}]}, config)
    assert label_skip_reason({"labels": []}, config) is None
