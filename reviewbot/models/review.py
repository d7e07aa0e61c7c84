"""Shared data structures for review requests and structured review results.

The ``ReviewResult`` family is the single definition of the model's output
contract: the service hands it to the model as a strict JSON schema and the
action validates the service's answer against it. Every field is required and
extra fields are forbidden, which is what strict structured output demands.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Risk = Literal["low", "medium", "high", "critical"]
Decision = Literal["approve", "comment", "request_changes"]
Side = Literal["RIGHT", "LEFT"]
Category = Literal[
    "bug",
    "security",
    "performance",
    "testing",
    "readability",
    "style",
    "design",
    "documentation",
    "other",
]
Severity = Literal["nit", "low", "medium", "high", "critical"]
ReviewMode = Literal["safe", "trusted"]


class _StrictModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class OverallVerdict(_StrictModel):
    risk: Risk
    decision: Decision
    summary: str
    test_suggestions: List[str]
    positives: List[str]
    caveats: List[str]


class FileSummary(_StrictModel):
    path: str
    risk: Risk
    summary: str


class FindingComment(_StrictModel):
    path: str
    side: Side
    line: int = Field(ge=1)
    start_line: Optional[Annotated[int, Field(ge=1)]]
    start_side: Optional[Side]
    category: Category
    severity: Severity
    confidence: Optional[Annotated[float, Field(ge=0, le=1)]]
    title: str
    message: str
    suggestion: Optional[str]


class ReviewMeta(_StrictModel):
    pass


class ReviewResult(_StrictModel):
    overall: OverallVerdict
    highlights: List[str]
    file_summaries: List[FileSummary]
    comments: List[FindingComment]
    meta: ReviewMeta


class FileChange(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: str
    status: str = ""
    additions: int = 0
    deletions: int = 0
    patch: str = ""


class PullRequestMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    body: str = ""
    url: str = ""
    head_sha: str = ""


class ReviewConstraints(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_confidence: float = 0.65
    min_severity_for_inline: str = "medium"
    max_inline_comments: int = 10


class ReviewRequest(BaseModel):
    """Outbound payload of the action and inbound body of the review service."""

    model_config = ConfigDict(frozen=True)

    repo: str = ""
    pull_number: int = 0
    pr: PullRequestMeta = Field(default_factory=PullRequestMeta)
    focus: Optional[str] = None
    mode: ReviewMode = "safe"
    config: ReviewConstraints = Field(default_factory=ReviewConstraints)
    files: List[FileChange] = Field(default_factory=list)


class ReviewResponse(BaseModel):
    """Envelope returned by the review service."""

    ok: bool = True
    review: ReviewResult
    meta: Dict[str, Any]
    generated_at: Optional[str] = None
    repo: Optional[str] = None
    actor: Optional[str] = None
    workflow: Optional[str] = None
    quota_remaining: Optional[int] = None
