"""WebSocket message schemas."""

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from civica.schemas.activity import ActivityEntry, CityStats, SocialPost
from civica.schemas.issue import ActionPlan, DraftAnalysis, Issue, IssueInsight, RawReport


def _now() -> datetime:
    return datetime.now(UTC)


# Client -> Server


class VoteMessage(BaseModel):
    """Upvote an issue. voter_id defaults to the connection's session id."""

    type: Literal["vote"] = "vote"
    issue_id: int
    voter_id: str | None = None


class SubmitReportMessage(BaseModel):
    """Submit a new citizen report."""

    type: Literal["submit_report"] = "submit_report"
    report: RawReport


class RequestActionPlanMessage(BaseModel):
    """Ask for a generated action plan for an issue."""

    type: Literal["request_action_plan"] = "request_action_plan"
    issue_id: int


class RequestClassificationMessage(BaseModel):
    """Ask for a classification preview of a draft report."""

    type: Literal["request_classification"] = "request_classification"
    draft: RawReport


class RequestIssueInsightMessage(BaseModel):
    """Ask the agent to explain an issue."""

    type: Literal["request_issue_insight"] = "request_issue_insight"
    issue_id: int


class PingMessage(BaseModel):
    """Ping message for keep-alive."""

    type: Literal["ping"] = "ping"


# Server -> Client


class SnapshotMessage(BaseModel):
    """Full registry state, always the first message on a connection."""

    type: Literal["snapshot"] = "snapshot"
    data: list[Issue]
    timestamp: datetime = Field(default_factory=_now)


class IssueEventMessage(BaseModel):
    """Single-issue change."""

    type: Literal["issue_created", "issue_updated", "issue_voted"]
    data: Issue
    timestamp: datetime = Field(default_factory=_now)


class NotificationMessage(BaseModel):
    """Out-of-band alert such as a new incident or an accepted submission."""

    type: Literal["notification"] = "notification"
    title: str
    message: str
    level: str = "info"
    timestamp: datetime = Field(default_factory=_now)


class ActionPlanMessage(BaseModel):
    type: Literal["action_plan"] = "action_plan"
    data: ActionPlan


class ClassificationResultMessage(BaseModel):
    type: Literal["classification_result"] = "classification_result"
    data: DraftAnalysis


class IssueInsightMessage(BaseModel):
    type: Literal["issue_insight"] = "issue_insight"
    data: IssueInsight


class ActivityMessage(BaseModel):
    type: Literal["agent_log"] = "agent_log"
    data: ActivityEntry


class SocialPostMessage(BaseModel):
    """Post from the social stream."""

    type: Literal["social_post"] = "social_post"
    data: SocialPost


class StatsMessage(BaseModel):
    type: Literal["stats_update"] = "stats_update"
    data: CityStats


class PongMessage(BaseModel):
    """Pong response for keep-alive."""

    type: Literal["pong"] = "pong"


class ErrorMessage(BaseModel):
    """Error message from server."""

    type: Literal["error"] = "error"
    message: str
