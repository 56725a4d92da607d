"""Pydantic schemas for activity entries, social posts and city statistics."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

Sentiment = Literal["pos", "neu", "neg"]


class ActivityEntry(BaseModel):
    """One line of the agent activity feed."""

    id: int
    agent: str
    action: str
    details: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SocialPost(BaseModel):
    """A citizen post picked up from the social stream."""

    id: int
    user: str
    text: str
    sentiment: Sentiment
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SentimentCounts(BaseModel):
    """Running sentiment tally of the social stream."""

    pos: int = 0
    neu: int = 0
    neg: int = 0


class CityStats(BaseModel):
    """Aggregate view of the registry for the analytics panel."""

    total: int
    active: int
    resolved: int
    critical: int
    average_score: float
    risk: int
    by_category: dict[str, int]
    by_status: dict[str, int]
    sentiment: SentimentCounts = Field(default_factory=SentimentCounts)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))
