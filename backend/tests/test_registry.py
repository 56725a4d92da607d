"""Tests for the issue registry."""

import asyncio

import pytest

from civica.errors import ConflictError, NotFoundError, TransitionError
from civica.schemas.issue import Category, Enrichment, IssueStatus, MediaItem
from civica.services import lifecycle
from civica.services.registry import IssueRegistry


@pytest.fixture
def registry() -> IssueRegistry:
    return IssueRegistry()


class TestInsert:
    """Tests for IssueRegistry.insert."""

    @pytest.mark.asyncio
    async def test_assigns_id_and_score(self, registry, pothole):
        """Insert assigns an id and computes the initial score."""
        stored = await registry.insert(pothole)

        assert stored.id == 1
        assert stored.priority_score == 17
        assert stored.created_at_ms > 0
        assert pothole.id is None  # caller's object untouched

    @pytest.mark.asyncio
    async def test_ids_increase(self, registry, pothole):
        first = await registry.insert(pothole)
        second = await registry.insert(pothole)

        assert second.id > first.id

    @pytest.mark.asyncio
    async def test_explicit_id_advances_counter(self, registry, pothole):
        """Generated ids never collide with explicitly inserted ones."""
        await registry.insert(pothole.model_copy(update={"id": 10}))
        generated = await registry.insert(pothole)

        assert generated.id == 11

    @pytest.mark.asyncio
    async def test_duplicate_id_conflict(self, registry, pothole):
        await registry.insert(pothole.model_copy(update={"id": 5}))

        with pytest.raises(ConflictError):
            await registry.insert(pothole.model_copy(update={"id": 5}))
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_client_score_is_overwritten(self, registry, pothole):
        """A score supplied on the way in is replaced by the computed one."""
        stored = await registry.insert(pothole.model_copy(update={"priority_score": 100}))

        assert stored.priority_score == 17

    @pytest.mark.asyncio
    async def test_progress_derived_from_status(self, registry, pothole):
        stored = await registry.insert(
            pothole.model_copy(update={"status": IssueStatus.IN_PROGRESS})
        )

        assert stored.progress_percent == lifecycle.progress_for(IssueStatus.IN_PROGRESS)


class TestVote:
    """Tests for IssueRegistry.vote."""

    @pytest.mark.asyncio
    async def test_vote_increments_and_rescores(self, registry, pothole):
        stored = await registry.insert(pothole.model_copy(update={"votes": 250}))

        voted = await registry.vote(stored.id)

        assert voted.votes == 251
        assert voted.priority_score == 19

    @pytest.mark.asyncio
    async def test_vote_unknown_issue(self, registry):
        with pytest.raises(NotFoundError):
            await registry.vote(404)

    @pytest.mark.asyncio
    async def test_concurrent_votes_not_lost(self, registry, pothole):
        """N concurrent votes add exactly N."""
        stored = await registry.insert(pothole)

        await asyncio.gather(*(registry.vote(stored.id) for _ in range(100)))

        issue = await registry.get(stored.id)
        assert issue.votes == stored.votes + 100


class TestApplyEnrichment:
    """Tests for IssueRegistry.apply_enrichment."""

    @pytest.mark.asyncio
    async def test_merges_fields_and_rescores(self, registry, pothole):
        stored = await registry.insert(
            pothole.model_copy(update={"category": Category.ANALYZING})
        )

        enriched = await registry.apply_enrichment(
            stored.id,
            Enrichment(
                category=Category.WATER,
                severity=7.5,
                authority="BWSSB",
                ai_insight="Leak",
                manpower=4,
                estimated_hours=23,
                status=IssueStatus.ASSIGNED,
                classification_confidence=0.9,
            ),
        )

        assert enriched.category == Category.WATER
        assert enriched.authority == "BWSSB"
        assert enriched.status == IssueStatus.ASSIGNED
        assert enriched.progress_percent == 25
        assert enriched.classification_confidence == 0.9
        # 7.5 x 1.4 x 1.0006 x 1.002 x 2.8 = 29.47
        assert enriched.priority_score == 29

    @pytest.mark.asyncio
    async def test_unset_fields_untouched(self, registry, pothole):
        stored = await registry.insert(pothole.model_copy(update={"authority": "BBMP Roads"}))

        enriched = await registry.apply_enrichment(stored.id, Enrichment(ai_insight="Noted"))

        assert enriched.authority == "BBMP Roads"
        assert enriched.severity == stored.severity
        assert enriched.ai_insight == "Noted"

    @pytest.mark.asyncio
    async def test_repeated_enrichment_not_accumulated(self, registry, pothole):
        """Applying the same patch twice leaves the same score."""
        stored = await registry.insert(pothole)
        patch = Enrichment(severity=6.0, category=Category.SANITATION)

        first = await registry.apply_enrichment(stored.id, patch)
        second = await registry.apply_enrichment(stored.id, patch)

        assert first.priority_score == second.priority_score

    @pytest.mark.asyncio
    async def test_backward_status_ignored(self, registry, pothole):
        """Re-classification cannot move an issue backwards."""
        stored = await registry.insert(
            pothole.model_copy(update={"status": IssueStatus.IN_PROGRESS})
        )

        enriched = await registry.apply_enrichment(
            stored.id, Enrichment(status=IssueStatus.ASSIGNED, ai_insight="Re-run")
        )

        assert enriched.status == IssueStatus.IN_PROGRESS
        assert enriched.ai_insight == "Re-run"

    @pytest.mark.asyncio
    async def test_severity_crossing_escalates(self, registry, pothole):
        stored = await registry.insert(
            pothole.model_copy(update={"status": IssueStatus.IN_PROGRESS})
        )

        enriched = await registry.apply_enrichment(stored.id, Enrichment(severity=8.6))

        assert enriched.status == IssueStatus.ESCALATED
        assert enriched.progress_percent == 40

    @pytest.mark.asyncio
    async def test_resolved_not_escalated(self, registry, pothole):
        stored = await registry.insert(
            pothole.model_copy(update={"status": IssueStatus.RESOLVED})
        )

        enriched = await registry.apply_enrichment(stored.id, Enrichment(severity=9.0))

        assert enriched.status == IssueStatus.RESOLVED

    @pytest.mark.asyncio
    async def test_vote_concurrent_with_enrichment(self, registry, pothole):
        """Neither a vote nor an enrichment racing it is lost."""
        stored = await registry.insert(pothole)

        await asyncio.gather(
            registry.vote(stored.id),
            registry.apply_enrichment(stored.id, Enrichment(severity=7.0)),
            registry.vote(stored.id),
        )

        issue = await registry.get(stored.id)
        assert issue.votes == stored.votes + 2
        assert issue.severity == 7.0

    @pytest.mark.asyncio
    async def test_unknown_issue(self, registry):
        with pytest.raises(NotFoundError):
            await registry.apply_enrichment(1, Enrichment(severity=1.0))


class TestOtherMutations:
    """Tests for engagement, status and media mutations."""

    @pytest.mark.asyncio
    async def test_record_engagement(self, registry, pothole):
        stored = await registry.insert(pothole)

        updated = await registry.record_engagement(
            stored.id, votes=3, social_mentions=40, duplicate_reports=2, trend=1
        )

        assert updated.votes == stored.votes + 3
        assert updated.social_mentions == 40
        assert updated.duplicate_reports == stored.duplicate_reports + 2
        assert updated.trend == 1
        assert updated.priority_score >= stored.priority_score

    @pytest.mark.asyncio
    async def test_record_engagement_rejects_negative(self, registry, pothole):
        stored = await registry.insert(pothole)

        with pytest.raises(ValueError):
            await registry.record_engagement(stored.id, votes=-1)

        assert (await registry.get(stored.id)).votes == stored.votes

    @pytest.mark.asyncio
    async def test_advance_status_forward(self, registry, pothole):
        stored = await registry.insert(pothole)

        assigned = await registry.advance_status(stored.id, IssueStatus.ASSIGNED)
        resolved = await registry.advance_status(stored.id, IssueStatus.RESOLVED)

        assert assigned.status == IssueStatus.ASSIGNED
        assert resolved.status == IssueStatus.RESOLVED
        assert resolved.progress_percent == 100

    @pytest.mark.asyncio
    async def test_advance_status_backward_rejected(self, registry, pothole):
        stored = await registry.insert(
            pothole.model_copy(update={"status": IssueStatus.RESOLVED})
        )

        with pytest.raises(TransitionError):
            await registry.advance_status(stored.id, IssueStatus.PENDING)

    @pytest.mark.asyncio
    async def test_attach_media(self, registry, pothole):
        stored = await registry.insert(pothole)
        item = MediaItem(source_type="CCTV", uri="https://example.test/cam.mp4")

        updated = await registry.attach_media(stored.id, item)

        assert len(updated.evidence) == 1
        assert updated.evidence[0].uri == item.uri


class TestSnapshotsAndListeners:
    """Tests for list, copies and listener fan-out."""

    @pytest.mark.asyncio
    async def test_list_returns_copies(self, registry, pothole):
        stored = await registry.insert(pothole)

        snapshot = await registry.list()
        snapshot[0].votes = 9999

        assert (await registry.get(stored.id)).votes == stored.votes

    @pytest.mark.asyncio
    async def test_listener_sees_events_in_order(self, registry, pothole):
        events = []
        registry.add_listener(lambda event: events.append((event.kind, event.issue.votes)))

        stored = await registry.insert(pothole)
        await registry.vote(stored.id)
        await registry.apply_enrichment(stored.id, Enrichment(ai_insight="x"))

        assert events == [
            ("issue_created", 1),
            ("issue_voted", 2),
            ("issue_updated", 2),
        ]

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_mutation(self, registry, pothole):
        def broken(event):
            raise RuntimeError("boom")

        seen = []
        registry.add_listener(broken)
        registry.add_listener(seen.append)

        stored = await registry.insert(pothole)

        assert stored.id == 1
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_remove_listener(self, registry, pothole):
        seen = []
        registry.add_listener(seen.append)
        registry.remove_listener(seen.append)

        await registry.insert(pothole)

        assert seen == []

    @pytest.mark.asyncio
    async def test_watch_receives_snapshot(self, registry, pothole):
        await registry.insert(pothole)
        received = []

        await registry.watch(received.extend)

        assert [issue.title for issue in received] == ["Large pothole"]


class TestLifecycle:
    """Tests for the status state machine."""

    def test_triage_status(self):
        assert lifecycle.triage_status(9.5) == IssueStatus.CRITICAL
        assert lifecycle.triage_status(8.5) == IssueStatus.ESCALATED
        assert lifecycle.triage_status(8.0) == IssueStatus.ASSIGNED
        assert lifecycle.triage_status(3.0) == IssueStatus.ASSIGNED

    def test_resolved_is_terminal(self):
        for status in IssueStatus:
            assert not lifecycle.can_transition(IssueStatus.RESOLVED, status)

    def test_no_self_transitions(self):
        for status in IssueStatus:
            assert not lifecycle.can_transition(status, status)

    def test_critical_only_from_pending_or_review(self):
        sources = {s for s in IssueStatus if lifecycle.can_transition(s, IssueStatus.CRITICAL)}
        assert sources == {IssueStatus.PENDING, IssueStatus.NEEDS_REVIEW}

    def test_should_escalate_requires_upward_crossing(self):
        assert lifecycle.should_escalate(IssueStatus.ASSIGNED, 7.0, 8.5)
        assert not lifecycle.should_escalate(IssueStatus.ASSIGNED, 8.5, 9.0)
        assert not lifecycle.should_escalate(IssueStatus.ASSIGNED, 7.0, 8.0)
        assert not lifecycle.should_escalate(IssueStatus.CRITICAL, 7.0, 9.0)
