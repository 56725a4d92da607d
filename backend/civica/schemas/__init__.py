"""Pydantic schemas for API request/response validation."""

from civica.schemas.activity import (
    ActivityEntry,
    CityStats,
    SentimentCounts,
    SocialPost,
)
from civica.schemas.issue import (
    ActionPlan,
    Category,
    Coordinates,
    DraftAnalysis,
    Enrichment,
    Issue,
    IssueInsight,
    IssuesResponse,
    IssueStatus,
    MediaItem,
    MediaUpload,
    RawReport,
    StatusUpdate,
    VoteResult,
)

__all__ = [
    "ActionPlan",
    "ActivityEntry",
    "Category",
    "CityStats",
    "Coordinates",
    "DraftAnalysis",
    "Enrichment",
    "Issue",
    "IssueInsight",
    "IssueStatus",
    "IssuesResponse",
    "MediaItem",
    "MediaUpload",
    "RawReport",
    "SentimentCounts",
    "SocialPost",
    "StatusUpdate",
    "VoteResult",
]
