"""API routes for classification previews, activity, social feed and statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from civica.runtime import Runtime, get_runtime
from civica.schemas.activity import ActivityEntry, CityStats, SocialPost
from civica.schemas.issue import DraftAnalysis, RawReport
from civica.services.stats import compute_stats

router = APIRouter(tags=["insights"])


@router.post("/classify", response_model=DraftAnalysis)
async def classify_draft(
    draft: RawReport,
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> DraftAnalysis:
    """Preview the classification of a draft report and list similar issues."""
    return await runtime.gateway.request_classification(draft)


@router.get("/activity", response_model=list[ActivityEntry])
async def list_activity(
    runtime: Annotated[Runtime, Depends(get_runtime)],
    limit: int = Query(50, ge=1, le=200),
) -> list[ActivityEntry]:
    """Recent agent activity, newest first."""
    return runtime.activity.entries()[:limit]


@router.get("/social", response_model=list[SocialPost])
async def list_social(
    runtime: Annotated[Runtime, Depends(get_runtime)],
    limit: int = Query(20, ge=1, le=100),
) -> list[SocialPost]:
    """Recent social stream posts, newest first."""
    return runtime.social.posts()[:limit]


@router.get("/stats", response_model=CityStats)
async def city_stats(
    runtime: Annotated[Runtime, Depends(get_runtime)],
) -> CityStats:
    """Aggregate statistics over the current registry."""
    return compute_stats(await runtime.registry.list(), runtime.social.sentiment())
