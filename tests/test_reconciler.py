from __future__ import annotations

from reviewbot.render import SUMMARY_MARKER
from reviewbot.services.reconciler import CommentReconciler, InlinePolicy, finding_qualifies
from tests.factories import FakeGitHub, make_finding

POLICY = InlinePolicy(min_confidence=0.65, min_severity="medium", max_comments=10)


async def test_upsert_twice_leaves_single_marker_comment(fake_github: FakeGitHub) -> None:
    reconciler = CommentReconciler(fake_github, "acme/widgets")

    first = await reconciler.upsert_summary(7, f"{SUMMARY_MARKER}\nfirst")
    second = await reconciler.upsert_summary(7, f"{SUMMARY_MARKER}\nsecond")

    assert first.action == "created"
    assert second.action == "updated"
    assert second.id == first.id
    marked = [c for c in fake_github.issue_comments if SUMMARY_MARKER in c["body"]]
    assert len(marked) == 1
    assert marked[0]["body"].endswith("second")


async def test_upsert_updates_newest_marked_comment(fake_github: FakeGitHub) -> None:
    fake_github.issue_comments = [
        {"id": 1, "body": f"{SUMMARY_MARKER}\nold"},
        {"id": 2, "body": "human comment"},
        {"id": 3, "body": f"{SUMMARY_MARKER}\nnewer"},
        {"id": 4, "body": None},
    ]
    result = await CommentReconciler(fake_github, "acme/widgets").upsert_summary(7, f"{SUMMARY_MARKER}\nnew")

    assert result.id == 3
    assert fake_github.issue_comments[0]["body"].endswith("old")
    assert "create_issue_comment" not in fake_github.calls


async def test_cap_applies_after_filtering_in_input_order(fake_github: FakeGitHub) -> None:
    findings = [
        make_finding(path="a.py", confidence=0.9),
        make_finding(path="b.py", confidence=0.5),
        make_finding(path="c.py", confidence=0.8),
    ]
    policy = InlinePolicy(min_confidence=0.65, min_severity="medium", max_comments=1)

    posted = await CommentReconciler(fake_github, "acme/widgets").post_findings(7, findings, policy)

    assert posted == 1
    assert [c["path"] for c in fake_github.review_comments] == ["a.py"]


async def test_failed_post_does_not_stop_remaining(fake_github: FakeGitHub) -> None:
    fake_github.fail_review_comment_paths = {"a.py"}
    findings = [make_finding(path="a.py"), make_finding(path="b.py")]

    posted = await CommentReconciler(fake_github, "acme/widgets").post_findings(7, findings, POLICY)

    assert posted == 1
    assert [c["path"] for c in fake_github.review_comments] == ["b.py"]


async def test_findings_without_path_are_skipped(fake_github: FakeGitHub) -> None:
    findings = [make_finding(path=""), make_finding(path="b.py")]
    posted = await CommentReconciler(fake_github, "acme/widgets").post_findings(7, findings, POLICY)
    assert posted == 1
    assert fake_github.calls.count("create_review_comment") == 1


async def test_post_passes_range_and_commit(fake_github: FakeGitHub) -> None:
    finding = make_finding(line=12, start_line=8, start_side="RIGHT")
    reconciler = CommentReconciler(fake_github, "acme/widgets", commit_id="abc123")

    await reconciler.post_findings(7, [finding], POLICY)

    posted = fake_github.review_comments[0]
    assert posted["line"] == 12
    assert posted["start_line"] == 8
    assert posted["start_side"] == "RIGHT"
    assert posted["commit_id"] == "abc123"
    assert posted["body"].startswith("**Possible None dereference**")


def test_finding_qualifies_gates_on_confidence_and_severity() -> None:
    assert finding_qualifies(make_finding(), POLICY)
    assert not finding_qualifies(make_finding(confidence=0.6), POLICY)
    assert not finding_qualifies(make_finding(confidence=None), POLICY)
    assert not finding_qualifies(make_finding(severity="low"), POLICY)
    assert finding_qualifies(make_finding(severity="medium", confidence=0.65), POLICY)
