"""Pydantic schemas for civic issues."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Category(str, Enum):
    """Issue category, including the transient pre-classification values."""

    ROAD = "Road"
    WATER = "Water"
    ELECTRICITY = "Electricity"
    SANITATION = "Sanitation"
    INFRASTRUCTURE = "Infrastructure"
    FIRE = "Fire"
    OTHER = "Other"
    ANALYZING = "Analyzing…"
    UNCATEGORIZED = "Uncategorized"


class IssueStatus(str, Enum):
    """Issue lifecycle status."""

    PENDING = "Pending"
    NEEDS_REVIEW = "Needs Review"
    CRITICAL = "Critical"
    ASSIGNED = "Assigned"
    IN_PROGRESS = "In Progress"
    ESCALATED = "Escalated"
    RESOLVED = "Resolved"


class Coordinates(BaseModel):
    """Geographic coordinates."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class MediaItem(BaseModel):
    """A piece of evidence attached to an issue."""

    media_type: str = "image"
    source_type: str
    uri: str
    confidence: float = Field(1.0, ge=0.0, le=1.0)
    tags: set[str] = Field(default_factory=set)
    is_suspected_fake: bool = False
    bot_probability: float = Field(0.0, ge=0.0, le=1.0)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class MediaUpload(BaseModel):
    """Client media attach request."""

    uri: str = Field(..., min_length=1)
    source_type: str = "Citizen Uploads"
    media_type: str = "image"


class Issue(BaseModel):
    """A reported civic problem tracked by the registry."""

    model_config = ConfigDict(validate_assignment=True)

    id: int | None = None
    title: str
    description: str | None = None
    category: Category = Category.UNCATEGORIZED
    location: str
    ward: str = ""
    authority: str = "BBMP"
    hashtag: str | None = None
    coordinates: Coordinates | None = None

    votes: int = Field(0, ge=0)
    duplicate_reports: int = Field(0, ge=0)
    social_mentions: int = Field(0, ge=0)
    trend: int = Field(0, ge=0)

    severity: float = Field(5.0, ge=0.0, le=10.0)
    status: IssueStatus = IssueStatus.PENDING
    progress_percent: int = Field(0, ge=0, le=100)
    priority_score: int = Field(0, ge=0, le=100)

    created_at_ms: int = 0
    sla_hours: float = Field(24.0, ge=0.0)
    sla_elapsed_hours: float = Field(0.0, ge=0.0)
    recurrence: int = Field(0, ge=0)

    ai_insight: str | None = None
    classification_confidence: float | None = Field(None, ge=0.0, le=1.0)
    manpower: int | None = None
    estimated_hours: int | None = None

    evidence: list[MediaItem] = Field(default_factory=list)


class RawReport(BaseModel):
    """Citizen report as submitted by a client.

    Carries no score field: the registry always computes it.
    """

    title: str = ""
    description: str | None = None
    category: Category | None = None
    location: str = ""
    ward: str | None = None
    coordinates: Coordinates | None = None
    severity: float = Field(5.0, ge=0.0, le=10.0)
    votes: int = Field(1, ge=0)
    duplicate_reports: int = Field(1, ge=0)
    social_mentions: int = Field(0, ge=0)
    recurrence: int = Field(0, ge=0)
    media: list[MediaUpload] = Field(default_factory=list)


class Enrichment(BaseModel):
    """Classification/triage fields merged into an issue.

    Unset fields are left untouched on the issue.
    """

    category: Category | None = None
    severity: float | None = Field(None, ge=0.0, le=10.0)
    authority: str | None = None
    ai_insight: str | None = None
    manpower: int | None = Field(None, ge=0)
    estimated_hours: int | None = Field(None, ge=0)
    status: IssueStatus | None = None
    classification_confidence: float | None = Field(None, ge=0.0, le=1.0)


class DraftAnalysis(BaseModel):
    """Classification preview for a report that has not been submitted."""

    enrichment: Enrichment
    priority: str
    estimated_resolution: str
    hashtag: str
    risk_if_delayed: str
    similar_issue_ids: list[int] = Field(default_factory=list)


class ActionPlan(BaseModel):
    """Generated resolution plan for an issue."""

    issue_id: int
    text: str


class IssueInsight(BaseModel):
    """Short agent explanation of an issue."""

    issue_id: int
    text: str


class StatusUpdate(BaseModel):
    """Explicit status progress request."""

    status: IssueStatus


class VoteResult(BaseModel):
    """Outcome of a vote request."""

    issue: Issue
    counted: bool


class IssuesResponse(BaseModel):
    """List response for issues."""

    issues: list[Issue]
    total: int
