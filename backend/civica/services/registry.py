"""In-memory issue registry: the single serialized writer of issue state."""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Literal

from civica.errors import ConflictError, NotFoundError, TransitionError
from civica.schemas.issue import Enrichment, Issue, IssueStatus, MediaItem
from civica.services import lifecycle
from civica.services.scoring import score

logger = logging.getLogger(__name__)

EventKind = Literal["issue_created", "issue_updated", "issue_voted"]


@dataclass(frozen=True)
class RegistryEvent:
    """A single-issue change, carrying a copy of the issue after the change."""

    kind: EventKind
    issue: Issue


Listener = Callable[[RegistryEvent], None]


def _now_ms() -> int:
    return int(time.time() * 1000)


class IssueRegistry:
    """
    Owns every issue and every mutation of one.

    All operations take the same asyncio lock, so concurrent votes,
    enrichments and engagement ticks are applied one at a time and none is
    lost. Listeners are called synchronously while the lock is held, which
    makes the order in which they observe events for an issue the order in
    which the changes were applied.

    Callers only ever receive copies; the stored issues are not reachable
    from outside.
    """

    def __init__(self):
        self._issues: dict[int, Issue] = {}
        self._lock = asyncio.Lock()
        self._next_id = 1
        self._listeners: list[Listener] = []

    def __len__(self) -> int:
        return len(self._issues)

    def add_listener(self, listener: Listener) -> None:
        """Register a callback for every mutation event."""
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def insert(self, issue: Issue) -> Issue:
        """
        Store a new issue and return the stored copy.

        Assigns an id when absent, derives progress and computes the initial
        score. Raises ConflictError if the id is already taken.
        """
        async with self._lock:
            stored = issue.model_copy(deep=True)
            if stored.id is None:
                stored.id = self._allocate_id()
            elif stored.id in self._issues:
                raise ConflictError(f"Issue {stored.id} already exists")
            else:
                self._next_id = max(self._next_id, stored.id + 1)

            if not stored.created_at_ms:
                stored.created_at_ms = _now_ms()
            stored.progress_percent = lifecycle.progress_for(stored.status)
            self._rescore(stored)

            self._issues[stored.id] = stored
            logger.debug(f"Inserted issue {stored.id}: {stored.title}")
            return self._emit("issue_created", stored)

    async def vote(self, issue_id: int) -> Issue:
        """Add one vote and rescore. Deduplication is the caller's job."""
        async with self._lock:
            issue = self._require(issue_id)
            issue.votes += 1
            self._rescore(issue)
            return self._emit("issue_voted", issue)

    async def apply_enrichment(self, issue_id: int, enrichment: Enrichment) -> Issue:
        """
        Merge classification/triage fields into an issue.

        Last writer wins per field. A status that is not a legal transition
        from the current one is ignored so re-classification never moves an
        issue backwards. The score is recomputed from the merged issue.
        """
        async with self._lock:
            issue = self._require(issue_id)
            previous_severity = issue.severity

            updates = enrichment.model_dump(exclude_none=True)
            status = updates.pop("status", None)
            for field_name, value in updates.items():
                setattr(issue, field_name, value)

            if status is not None and status != issue.status:
                if lifecycle.can_transition(issue.status, status):
                    self._set_status(issue, status)
                else:
                    logger.info(
                        f"Ignoring enrichment status {status.value} for issue "
                        f"{issue_id} in status {issue.status.value}"
                    )

            self._maybe_escalate(issue, previous_severity)
            self._rescore(issue)
            return self._emit("issue_updated", issue)

    async def record_engagement(
        self,
        issue_id: int,
        votes: int = 0,
        social_mentions: int = 0,
        duplicate_reports: int = 0,
        trend: int = 0,
    ) -> Issue:
        """Add non-negative increments to the engagement counters and rescore."""
        if min(votes, social_mentions, duplicate_reports, trend) < 0:
            raise ValueError("Engagement increments must be non-negative")

        async with self._lock:
            issue = self._require(issue_id)
            issue.votes += votes
            issue.social_mentions += social_mentions
            issue.duplicate_reports += duplicate_reports
            issue.trend += trend
            self._rescore(issue)
            return self._emit("issue_updated", issue)

    async def advance_status(self, issue_id: int, status: IssueStatus) -> Issue:
        """Move an issue forward in its lifecycle. Raises TransitionError otherwise."""
        async with self._lock:
            issue = self._require(issue_id)
            if not lifecycle.can_transition(issue.status, status):
                raise TransitionError(
                    f"Issue {issue_id} cannot move from "
                    f"{issue.status.value} to {status.value}"
                )
            self._set_status(issue, status)
            self._rescore(issue)
            return self._emit("issue_updated", issue)

    async def attach_media(self, issue_id: int, item: MediaItem) -> Issue:
        """Append an evidence item to an issue."""
        async with self._lock:
            issue = self._require(issue_id)
            issue.evidence.append(item.model_copy(deep=True))
            return self._emit("issue_updated", issue)

    async def get(self, issue_id: int) -> Issue:
        async with self._lock:
            return self._require(issue_id).model_copy(deep=True)

    async def watch(self, on_snapshot: Callable[[list[Issue]], None]) -> None:
        """
        Run on_snapshot with the current snapshot while holding the lock.

        Anything the callback registers will see every mutation that follows
        the snapshot and none that precede it.
        """
        async with self._lock:
            on_snapshot(self._snapshot())

    def _snapshot(self) -> list[Issue]:
        return [issue.model_copy(deep=True) for issue in self._issues.values()]

    def _allocate_id(self) -> int:
        while self._next_id in self._issues:
            self._next_id += 1
        issue_id = self._next_id
        self._next_id += 1
        return issue_id

    def _require(self, issue_id: int) -> Issue:
        issue = self._issues.get(issue_id)
        if issue is None:
            raise NotFoundError(issue_id)
        return issue

    def _set_status(self, issue: Issue, status: IssueStatus) -> None:
        issue.status = status
        issue.progress_percent = lifecycle.progress_for(status)

    def _maybe_escalate(self, issue: Issue, previous_severity: float) -> None:
        if lifecycle.should_escalate(issue.status, previous_severity, issue.severity):
            logger.info(
                f"Issue {issue.id} escalated: severity {previous_severity} -> {issue.severity}"
            )
            self._set_status(issue, IssueStatus.ESCALATED)

    def _rescore(self, issue: Issue) -> None:
        issue.priority_score = score(issue)

    def _emit(self, kind: EventKind, issue: Issue) -> Issue:
        event = RegistryEvent(kind=kind, issue=issue.model_copy(deep=True))
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.exception(f"Registry listener failed on {kind}: {e}")
        return issue.model_copy(deep=True)

    # Defined last: the method name shadows the builtin inside the class body.
    async def list(self) -> list[Issue]:
        """Full snapshot of the registry. Order carries no meaning."""
        async with self._lock:
            return self._snapshot()
