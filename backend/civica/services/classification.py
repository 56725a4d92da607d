"""Classification workers that turn raw reports into enrichment fields."""

import asyncio
import logging
import math
import random
from abc import ABC, abstractmethod
from collections.abc import Awaitable
from typing import TypeVar

import httpx

from civica.config import Settings
from civica.errors import ClassificationError, ClassificationTimeoutError
from civica.schemas.issue import (
    ActionPlan,
    Category,
    Enrichment,
    Issue,
    IssueInsight,
    IssueStatus,
    RawReport,
)
from civica.services import lifecycle

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEVERITY_TIERS: list[tuple[float, tuple[str, ...]]] = [
    (9.5, ("fire", "blood", "accident", "collapse", "explosion", "dead")),
    (7.5, ("blocked", "flood", "spark", "wire", "sewage")),
    (5.5, ("pothole", "garbage", "light", "water")),
]
BASELINE_SEVERITY = 3.0
URGENT_WORDS = ("urgent", "danger")
URGENT_SEVERITY = 9.0

# First match wins
CATEGORY_KEYWORDS: list[tuple[Category, tuple[str, ...]]] = [
    (Category.FIRE, ("fire", "smoke", "blaze")),
    (Category.WATER, ("water", "leak", "pipeline", "burst", "flood")),
    (Category.ELECTRICITY, ("streetlight", "light", "power", "transformer", "wire", "spark")),
    (Category.SANITATION, ("garbage", "sewage", "drain", "manhole", "waste", "trash")),
    (Category.ROAD, ("pothole", "road", "traffic", "footpath", "parking", "signal")),
    (Category.INFRASTRUCTURE, ("bridge", "tree", "building", "wall", "collapse")),
]

AUTHORITIES: dict[Category, str] = {
    Category.WATER: "BWSSB",
    Category.ELECTRICITY: "BESCOM",
    Category.ROAD: "BBMP Roads",
    Category.SANITATION: "BBMP SWM",
    Category.INFRASTRUCTURE: "BBMP Engineering",
    Category.FIRE: "Fire Dept",
}
DEFAULT_AUTHORITY = "BBMP"

TRANSIENT_CATEGORIES = (Category.ANALYZING, Category.UNCATEGORIZED)

FALLBACK_SEVERITY = 5.0


def authority_for(category: Category) -> str:
    return AUTHORITIES.get(category, DEFAULT_AUTHORITY)


def priority_label(severity: float) -> str:
    if severity >= lifecycle.CRITICAL_SEVERITY:
        return "Critical"
    if severity > 7:
        return "High"
    if severity >= 5:
        return "Medium"
    return "Low"


def _hint(report: RawReport) -> Category:
    if report.category is None or report.category in TRANSIENT_CATEGORIES:
        return Category.UNCATEGORIZED
    return report.category


def triage(report: RawReport) -> Enrichment:
    """Keyword triage of a report. Pure and deterministic."""
    text = " ".join(
        part
        for part in (report.title, report.description, report.category and report.category.value)
        if part
    ).lower()

    severity = BASELINE_SEVERITY
    for tier_severity, words in SEVERITY_TIERS:
        if any(word in text for word in words):
            severity = tier_severity
            break
    if any(word in text for word in URGENT_WORDS):
        severity = max(severity, URGENT_SEVERITY)

    category = _hint(report)
    confidence = 0.6
    for candidate, words in CATEGORY_KEYWORDS:
        if any(word in text for word in words):
            category = candidate
            confidence = 0.9
            break

    authority = authority_for(category)
    priority = priority_label(severity)

    return Enrichment(
        category=category,
        severity=severity,
        authority=authority,
        ai_insight=(
            f"Classified as {priority} based on keyword analysis. "
            f"Assigned to {authority}."
        ),
        manpower=math.ceil(severity / 2),
        estimated_hours=math.ceil(severity * 3),
        status=lifecycle.triage_status(severity),
        classification_confidence=confidence,
    )


def fallback_enrichment(report: RawReport) -> Enrichment:
    """Conservative enrichment used when classification fails or times out."""
    category = _hint(report)
    return Enrichment(
        category=category,
        severity=FALLBACK_SEVERITY,
        authority=authority_for(category),
        ai_insight="Automated classification unavailable. Queued for manual review.",
        manpower=math.ceil(FALLBACK_SEVERITY / 2),
        estimated_hours=math.ceil(FALLBACK_SEVERITY * 3),
        status=IssueStatus.NEEDS_REVIEW,
        classification_confidence=0.0,
    )


def build_action_plan(issue: Issue) -> ActionPlan:
    """Rule-based resolution plan for an issue."""
    urgency = (
        "IMMEDIATE MOBILIZATION"
        if issue.severity > lifecycle.ESCALATION_SEVERITY
        else "STANDARD RESPONSE"
    )
    units = issue.manpower or math.ceil(issue.severity / 2)
    text = (
        f"**ACTION PLAN: {issue.title}**\n"
        f"1. STRATEGY: {urgency} protocol initiated.\n"
        f"2. DEPLOYMENT: Dispatch {units} unit(s) with {issue.category.value} repair kit.\n"
        f"3. COMMUNITY: Notify {issue.duplicate_reports} reporting citizens via app push.\n"
        f"4. PREVENTIVE: Schedule infrastructure audit for {issue.ward or issue.location}."
    )
    return ActionPlan(issue_id=issue.id, text=text)


def fallback_plan(issue: Issue) -> ActionPlan:
    return ActionPlan(
        issue_id=issue.id,
        text=(
            f"**ACTION PLAN: {issue.title}**\n"
            f"Plan generation unavailable. Escalate to {issue.authority} duty officer."
        ),
    )


def build_insight(issue: Issue) -> IssueInsight:
    """Template explanation of an issue for the insight panel."""
    resolution = (
        f"about {issue.estimated_hours} hours" if issue.estimated_hours else "12-18 hours"
    )
    text = (
        "**AGENT RESPONSE:**\n"
        f"Based on historical data for {issue.category.value}, this issue typically "
        f"resolves in {resolution}.\n\n"
        "Recommendation: Monitor social sentiment."
    )
    return IssueInsight(issue_id=issue.id, text=text)


def fallback_insight(issue: Issue) -> IssueInsight:
    return IssueInsight(
        issue_id=issue.id,
        text="**AGENT RESPONSE:**\nInsight unavailable. Check the issue timeline manually.",
    )


class ClassificationWorker(ABC):
    """
    Base class for classification backends.

    Subclasses implement _classify (and optionally _plan and _explain). The
    public methods bound every call by a timeout and absorb any failure into a
    conservative default, so callers always get a usable result. Workers never
    touch the registry; the caller applies what they return.
    """

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    async def classify(self, report: RawReport) -> Enrichment:
        """Classify a report, falling back to a default enrichment on failure."""
        try:
            return await self._bounded(self._classify(report))
        except ClassificationError as e:
            logger.warning(f"Classification failed for '{report.title}': {e}")
            return fallback_enrichment(report)

    async def plan(self, issue: Issue) -> ActionPlan:
        """Generate an action plan, falling back to a short default plan on failure."""
        try:
            return await self._bounded(self._plan(issue))
        except ClassificationError as e:
            logger.warning(f"Action plan failed for issue {issue.id}: {e}")
            return fallback_plan(issue)

    async def explain(self, issue: Issue) -> IssueInsight:
        """Explain an issue, falling back to a short default on failure."""
        try:
            return await self._bounded(self._explain(issue))
        except ClassificationError as e:
            logger.warning(f"Issue insight failed for issue {issue.id}: {e}")
            return fallback_insight(issue)

    async def _bounded(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout)
        except TimeoutError as e:
            raise ClassificationTimeoutError(
                f"No result after {self.timeout}s"
            ) from e
        except ClassificationError:
            raise
        except Exception as e:
            raise ClassificationError(f"Worker error: {e}") from e

    @abstractmethod
    async def _classify(self, report: RawReport) -> Enrichment: ...

    async def _plan(self, issue: Issue) -> ActionPlan:
        return build_action_plan(issue)

    async def _explain(self, issue: Issue) -> IssueInsight:
        return build_insight(issue)


class KeywordClassifier(ClassificationWorker):
    """Template classifier simulating the latency of an external model call."""

    def __init__(
        self,
        timeout: float = 5.0,
        min_latency: float = 0.8,
        max_latency: float = 2.5,
        plan_latency: float = 2.0,
        rng: random.Random | None = None,
    ):
        super().__init__(timeout=timeout)
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.plan_latency = plan_latency
        self.rng = rng or random.Random()

    async def _classify(self, report: RawReport) -> Enrichment:
        await asyncio.sleep(self.rng.uniform(self.min_latency, self.max_latency))
        return triage(report)

    async def _plan(self, issue: Issue) -> ActionPlan:
        await asyncio.sleep(self.plan_latency)
        return build_action_plan(issue)


class HttpClassifier(ClassificationWorker):
    """
    Classifier backed by a remote model service.

    POSTs the report as JSON and expects an Enrichment object back. Retries
    server errors and transport errors; anything else, including a response
    that does not validate, counts as a failure.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        max_retries: int = 2,
        backoff: float = 0.25,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(timeout=timeout)
        self.url = url
        self.max_retries = max_retries
        self.backoff = backoff
        self.transport = transport
        self.headers: dict[str, str] = {"Accept": "application/json"}

    async def _classify(self, report: RawReport) -> Enrichment:
        last_error: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self.transport
                ) as client:
                    response = await client.post(
                        self.url,
                        headers=self.headers,
                        json=report.model_dump(mode="json", exclude={"media"}),
                    )
                    response.raise_for_status()
                    return Enrichment.model_validate(response.json())

            except httpx.HTTPStatusError as e:
                last_error = e
                if e.response.status_code >= 500:
                    wait_time = self.backoff * 2**attempt
                    logger.warning(
                        f"Classifier error {e.response.status_code}, retry in {wait_time}s"
                    )
                    await asyncio.sleep(wait_time)
                else:
                    raise ClassificationError(f"HTTP error: {e}") from e

            except httpx.RequestError as e:
                last_error = e
                wait_time = self.backoff * 2**attempt
                logger.warning(f"Classifier request error: {e}, retry in {wait_time}s")
                await asyncio.sleep(wait_time)

            except ValueError as e:
                raise ClassificationError(f"Malformed classification response: {e}") from e

        raise ClassificationError(f"Failed after {self.max_retries} attempts: {last_error}")


def build_worker(settings: Settings) -> ClassificationWorker:
    """Create the classification worker selected by configuration."""
    if settings.classifier_backend == "http":
        if not settings.classifier_url:
            raise ValueError("classifier_url is required for the http classifier backend")
        return HttpClassifier(
            url=settings.classifier_url,
            timeout=settings.classification_timeout_seconds,
        )
    return KeywordClassifier(
        timeout=settings.classification_timeout_seconds,
        min_latency=settings.classification_min_latency_seconds,
        max_latency=settings.classification_max_latency_seconds,
        plan_latency=settings.action_plan_latency_seconds,
    )
