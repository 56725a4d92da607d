"""API routes for civic issues."""

import logging
from typing import Annotated, Literal

from fastapi import APIRouter, Depends, Header, Query, Request, status

from civica.rate_limit import SUBMISSION_LIMIT, limiter
from civica.runtime import Runtime, get_runtime
from civica.schemas.issue import (
    ActionPlan,
    Category,
    Issue,
    IssueInsight,
    IssuesResponse,
    IssueStatus,
    MediaUpload,
    RawReport,
    StatusUpdate,
    VoteResult,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/issues", tags=["issues"])

SortKey = Literal["score", "votes", "recent"]

_SORT_KEYS = {
    "score": lambda issue: (issue.priority_score, issue.votes),
    "votes": lambda issue: (issue.votes, issue.priority_score),
    "recent": lambda issue: (issue.created_at_ms, issue.id or 0),
}


@router.get("", response_model=IssuesResponse)
async def list_issues(
    runtime: Annotated[Runtime, Depends(get_runtime)],
    sort: SortKey = "score",
    status_filter: list[IssueStatus] | None = Query(None, alias="status"),
    category: list[Category] | None = Query(None, description="Filter by category"),
    limit: int = Query(100, ge=1, le=500),
) -> IssuesResponse:
    """
    List issues, highest first by the chosen sort key.

    The registry keeps no meaningful order, so sorting happens here.
    """
    issues = await runtime.registry.list()

    if status_filter:
        issues = [i for i in issues if i.status in status_filter]
    if category:
        issues = [i for i in issues if i.category in category]

    issues.sort(key=_SORT_KEYS[sort], reverse=True)

    return IssuesResponse(issues=issues[:limit], total=len(issues))


@router.post("", response_model=Issue, status_code=status.HTTP_202_ACCEPTED)
@limiter.limit(SUBMISSION_LIMIT)
async def submit_report(
    request: Request,
    report: RawReport,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> Issue:
    """
    Submit a citizen report.

    Returns the provisional entry (category "Analyzing…"); classification
    completes in the background and is pushed to WebSocket subscribers.
    """
    return await runtime.gateway.submit_report(report)


@router.get("/{issue_id}", response_model=Issue)
async def get_issue(
    issue_id: int,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> Issue:
    """Get a specific issue by id."""
    return await runtime.registry.get(issue_id)


@router.post("/{issue_id}/vote", response_model=VoteResult)
async def vote(
    issue_id: int,
    request: Request,
    runtime: Annotated[Runtime, Depends(get_runtime)],
    x_voter_id: Annotated[str | None, Header()] = None,
) -> VoteResult:
    """
    Upvote an issue.

    Votes are deduplicated per voter (X-Voter-Id header, else client address).
    """
    voter = x_voter_id or (request.client.host if request.client else "anonymous")
    return await runtime.gateway.vote(issue_id, voter)


@router.post("/{issue_id}/media", response_model=Issue, status_code=status.HTTP_201_CREATED)
async def attach_media(
    issue_id: int,
    upload: MediaUpload,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> Issue:
    """Attach evidence to an issue."""
    return await runtime.gateway.attach_media(issue_id, upload)


@router.post("/{issue_id}/status", response_model=Issue)
async def advance_status(
    issue_id: int,
    update: StatusUpdate,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> Issue:
    """Move an issue forward in its lifecycle."""
    return await runtime.registry.advance_status(issue_id, update.status)


@router.post("/{issue_id}/plan", response_model=ActionPlan)
async def request_action_plan(
    issue_id: int,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> ActionPlan:
    """Generate an action plan for an issue."""
    return await runtime.gateway.request_action_plan(issue_id)


@router.post("/{issue_id}/insight", response_model=IssueInsight)
async def request_issue_insight(
    issue_id: int,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> IssueInsight:
    """Explain an issue from historical data."""
    return await runtime.gateway.request_issue_insight(issue_id)
