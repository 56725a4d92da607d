"""Gateway between client actions and the issue registry."""

import asyncio
import logging
from collections.abc import Hashable

from civica import errors
from civica.schemas.issue import (
    ActionPlan,
    Category,
    DraftAnalysis,
    Issue,
    IssueInsight,
    MediaItem,
    MediaUpload,
    RawReport,
    VoteResult,
)
from civica.services.activity import ActivityLog
from civica.services.classification import ClassificationWorker, priority_label
from civica.services.dedup import DuplicatePolicy, SubstringDuplicatePolicy, find_similar
from civica.services.registry import IssueRegistry
from civica.services.votes import VoteLedger
from civica.websocket.hub import BroadcastHub

logger = logging.getLogger(__name__)

CITIZEN_SOURCE = "Citizen Uploads"
USER_UPLOAD_TAG = "user_upload"


def media_item_from_upload(upload: MediaUpload) -> MediaItem:
    """Attach default trust fields to an uploaded media item."""
    tags = {USER_UPLOAD_TAG}
    if upload.source_type == CITIZEN_SOURCE:
        confidence = 1.0
    else:
        confidence = 0.8
        tags.add(upload.source_type.lower().replace(" ", "_"))
    return MediaItem(
        media_type=upload.media_type,
        source_type=upload.source_type,
        uri=upload.uri,
        confidence=confidence,
        tags=tags,
        is_suspected_fake=False,
        bot_probability=0.0,
    )


def _hashtag(report: RawReport, category: Category) -> str:
    place = "".join((report.ward or report.location).split())
    return f"#{place}{category.value}" if place else f"#{category.value}Issue"


class ReportGateway:
    """
    Validates client actions and turns them into registry mutations.

    Submissions are inserted as provisional entries straight away and
    classified in background tasks; the worker's result is applied through
    the registry like any other mutation. Pending classifications are
    cancelled on shutdown and their provisional entries stay as they are.
    """

    def __init__(
        self,
        registry: IssueRegistry,
        hub: BroadcastHub,
        worker: ClassificationWorker,
        activity: ActivityLog,
        ledger: VoteLedger | None = None,
        duplicate_policy: DuplicatePolicy | None = None,
    ):
        self.registry = registry
        self.hub = hub
        self.worker = worker
        self.activity = activity
        self.ledger = ledger or VoteLedger()
        self.duplicate_policy = duplicate_policy or SubstringDuplicatePolicy()
        self._pending: set[asyncio.Task] = set()

    @property
    def pending_classifications(self) -> int:
        return len(self._pending)

    async def submit_report(
        self,
        report: RawReport,
        notify_title: str = "Report Submitted",
        source: str = "GATEWAY",
    ) -> Issue:
        """
        Accept a report: insert a provisional entry, then classify it in the background.

        Returns the provisional issue, which every client has already been
        sent by the time this returns.
        """
        self._validate(report)
        self.activity.record(source, "RECEIVED", f"New submission: {report.title}")

        provisional = Issue(
            title=report.title.strip(),
            description=report.description,
            category=Category.ANALYZING,
            location=report.location.strip(),
            ward=(report.ward or report.location).strip(),
            coordinates=report.coordinates,
            hashtag=_hashtag(report, report.category or Category.OTHER),
            votes=report.votes,
            duplicate_reports=report.duplicate_reports,
            social_mentions=report.social_mentions,
            recurrence=report.recurrence,
            severity=report.severity,
            trend=1,
            ai_insight="Analyzing incoming report...",
            evidence=[media_item_from_upload(upload) for upload in report.media],
        )
        issue = await self.registry.insert(provisional)
        self.hub.notify(notify_title, f"{issue.title} ({issue.location})")

        task = asyncio.create_task(self._classify_and_apply(issue.id, report))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return issue

    async def vote(self, issue_id: int, voter: Hashable) -> VoteResult:
        """Vote once per (voter, issue). A repeat vote is reported as not counted."""
        if not self.ledger.claim(voter, issue_id):
            return VoteResult(issue=await self.registry.get(issue_id), counted=False)
        try:
            issue = await self.registry.vote(issue_id)
        except errors.NotFoundError:
            self.ledger.release(voter, issue_id)
            raise
        return VoteResult(issue=issue, counted=True)

    async def attach_media(self, issue_id: int, upload: MediaUpload) -> Issue:
        return await self.registry.attach_media(issue_id, media_item_from_upload(upload))

    async def request_action_plan(self, issue_id: int) -> ActionPlan:
        issue = await self.registry.get(issue_id)
        self.activity.record(
            "ADVISOR_AGENT", "THINKING", f"Drafting resolution plan for Issue #{issue_id}..."
        )
        plan = await self.worker.plan(issue)
        self.activity.record(
            "ADVISOR_AGENT", "COMPLETE", f"Plan generated. Length: {len(plan.text)} chars."
        )
        return plan

    async def request_issue_insight(self, issue_id: int) -> IssueInsight:
        issue = await self.registry.get(issue_id)
        self.activity.record(
            "ANALYST_AGENT", "EXPLAINING", f"Reviewing history for Issue #{issue_id}..."
        )
        return await self.worker.explain(issue)

    async def request_classification(self, draft: RawReport) -> DraftAnalysis:
        """Classify a draft without touching the registry."""
        self.activity.record("ANALYST_AGENT", "CLASSIFYING", f'Draft report: "{draft.title}"')
        enrichment = await self.worker.classify(draft)

        severity = enrichment.severity if enrichment.severity is not None else draft.severity
        category = enrichment.category or Category.UNCATEGORIZED
        candidate = Issue(
            title=draft.title,
            description=draft.description,
            category=category,
            location=draft.location,
            coordinates=draft.coordinates,
        )
        similar = find_similar(candidate, await self.registry.list(), self.duplicate_policy)

        return DraftAnalysis(
            enrichment=enrichment,
            priority=priority_label(severity),
            estimated_resolution="4-6 hours" if severity > 7 else "24-48 hours",
            hashtag=f"#{category.value}Issue",
            risk_if_delayed="Public safety risk" if severity > 7 else "Inconvenience",
            similar_issue_ids=[issue.id for issue in similar],
        )

    async def shutdown(self) -> None:
        """Abandon classifications still in flight."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Abandoned {len(tasks)} pending classifications")

    async def wait_for_classifications(self) -> None:
        """Wait for every classification in flight to be applied."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _validate(self, report: RawReport) -> None:
        missing = [
            name for name in ("title", "location") if not getattr(report, name).strip()
        ]
        if missing:
            raise errors.ValidationError(f"Report is missing {', '.join(missing)}")

    async def _classify_and_apply(self, issue_id: int, report: RawReport) -> None:
        self.activity.record("TRIAGE_AGENT", "ANALYZING", f'Processing report: "{report.title}"')
        enrichment = await self.worker.classify(report)
        try:
            issue = await self.registry.apply_enrichment(issue_id, enrichment)
        except errors.NotFoundError:
            logger.warning(f"Issue {issue_id} vanished before enrichment")
            return
        self.activity.record(
            "GOV_AGENT",
            "ROUTING",
            f"Issue #{issue.id} rated {issue.severity}/10, "
            f"dispatching to {issue.authority} ({issue.status.value})",
        )
