"""Markdown rendering of structured reviews for pull request comments."""

from __future__ import annotations

from typing import Iterable, List

from reviewbot.models.review import FindingComment, ReviewResult
from reviewbot.severity import normalize_severity

SUMMARY_MARKER = "<!-- reviewbot-summary -->"
MAX_SECTION_ITEMS = 10

_RISK_EMOJI = {
    "critical": "🔴",
    "high": "🟠",
    "medium": "🟡",
}


def risk_indicator(risk: str | None) -> str:
    return _RISK_EMOJI.get(str(risk or "").lower(), "🟢")


def _section(lines: List[str], heading: str, items: Iterable[str]) -> None:
    bullets = [f"- {item}" for item in list(items)[:MAX_SECTION_ITEMS]]
    if not bullets:
        return
    lines.append(f"## {heading}")
    lines.extend(bullets)
    lines.append("")


def render_summary(result: ReviewResult, *, generated_at: str | None = None) -> str:
    overall = result.overall
    lines: List[str] = [
        SUMMARY_MARKER,
        "🤖 **ReviewBot**",
        "",
        f"Risk: {risk_indicator(overall.risk)} **{overall.risk}** | Decision: **{overall.decision}**",
        "",
    ]
    if overall.summary.strip():
        lines.append(overall.summary.strip())
        lines.append("")

    _section(lines, "Top findings", result.highlights)
    _section(lines, "Suggested checks / tests", overall.test_suggestions)
    _section(
        lines,
        "File summaries",
        (f"`{item.path}` (**{item.risk}**): {item.summary}" for item in result.file_summaries),
    )
    _section(lines, "What looks good", overall.positives)
    _section(lines, "Caveats / questions", overall.caveats)

    if generated_at:
        lines.append(f"_Generated at {generated_at}_")
    return "\n".join(lines)


def render_finding(comment: FindingComment) -> str:
    labels = [comment.category or "other", normalize_severity(comment.severity)]
    if comment.confidence is not None:
        labels.append(f"{comment.confidence * 100:.0f}%")
    heading = f"**{comment.title or 'Suggestion'}** · _{' | '.join(labels)}_"

    body = f"{heading}\n\n{(comment.message or '').strip()}"
    if comment.suggestion:
        body += f"\n\n**Suggested change:**\n\n```\n{comment.suggestion}\n```"
    return body
