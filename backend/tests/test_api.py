"""Tests for the REST API endpoints."""

import pytest

from civica.schemas.issue import Category, Issue, IssueStatus


async def _add(runtime, **fields) -> Issue:
    defaults = {"title": "Large pothole", "category": Category.ROAD, "location": "X"}
    defaults.update(fields)
    return await runtime.registry.insert(Issue(**defaults))


class TestHealth:
    """Tests for health and info endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client, runtime):
        await _add(runtime)

        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["issue_count"] == 1
        assert data["connections"] == 0
        assert data["pending_classifications"] == 0
        assert data["simulation_running"] is False

    @pytest.mark.asyncio
    async def test_probes(self, client):
        assert (await client.get("/ready")).json() == {"status": "ready"}
        assert (await client.get("/live")).json() == {"status": "alive"}

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Civica API"
        assert data["websocket"] == "/ws/issues"


class TestListIssues:
    """Tests for GET /api/v1/issues."""

    @pytest.mark.asyncio
    async def test_empty(self, client):
        response = await client.get("/api/v1/issues")

        assert response.status_code == 200
        assert response.json() == {"issues": [], "total": 0}

    @pytest.mark.asyncio
    async def test_sorted_by_score(self, client, runtime):
        low = await _add(runtime, severity=2.0)
        high = await _add(runtime, severity=9.0, category=Category.WATER)

        response = await client.get("/api/v1/issues")

        ids = [issue["id"] for issue in response.json()["issues"]]
        assert ids == [high.id, low.id]

    @pytest.mark.asyncio
    async def test_sorted_by_votes(self, client, runtime):
        popular = await _add(runtime, votes=300, severity=1.0)
        severe = await _add(runtime, votes=1, severity=9.0)

        response = await client.get("/api/v1/issues", params={"sort": "votes"})

        ids = [issue["id"] for issue in response.json()["issues"]]
        assert ids == [popular.id, severe.id]

    @pytest.mark.asyncio
    async def test_filters(self, client, runtime):
        await _add(runtime, status=IssueStatus.RESOLVED)
        water = await _add(runtime, category=Category.WATER)
        await _add(runtime)

        by_status = await client.get("/api/v1/issues", params={"status": "Resolved"})
        by_category = await client.get("/api/v1/issues", params={"category": "Water"})

        assert by_status.json()["total"] == 1
        assert [i["id"] for i in by_category.json()["issues"]] == [water.id]

    @pytest.mark.asyncio
    async def test_limit(self, client, runtime):
        for _ in range(3):
            await _add(runtime)

        response = await client.get("/api/v1/issues", params={"limit": 2})

        data = response.json()
        assert len(data["issues"]) == 2
        assert data["total"] == 3


class TestSubmitReport:
    """Tests for POST /api/v1/issues."""

    @pytest.mark.asyncio
    async def test_accepted(self, client, runtime, sample_report):
        response = await client.post(
            "/api/v1/issues", json=sample_report.model_dump(mode="json")
        )

        assert response.status_code == 202
        data = response.json()
        assert data["category"] == "Analyzing…"
        assert data["priority_score"] == 14

        await runtime.gateway.wait_for_classifications()
        issue = await runtime.registry.get(data["id"])
        assert issue.category == Category.WATER

    @pytest.mark.asyncio
    async def test_missing_location(self, client, runtime):
        response = await client.post("/api/v1/issues", json={"title": "Broken bench"})

        assert response.status_code == 422
        assert response.json()["detail"] == "Report is missing location"
        assert len(runtime.registry) == 0

    @pytest.mark.asyncio
    async def test_severity_out_of_range(self, client):
        response = await client.post(
            "/api/v1/issues", json={"title": "Pothole", "location": "X", "severity": 42}
        )

        assert response.status_code == 422


class TestIssueActions:
    """Tests for per-issue endpoints."""

    @pytest.mark.asyncio
    async def test_get_issue(self, client, runtime):
        stored = await _add(runtime)

        response = await client.get(f"/api/v1/issues/{stored.id}")

        assert response.status_code == 200
        assert response.json()["title"] == "Large pothole"

    @pytest.mark.asyncio
    async def test_get_issue_not_found(self, client):
        response = await client.get("/api/v1/issues/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Issue 999 not found"

    @pytest.mark.asyncio
    async def test_vote_deduplicated(self, client, runtime):
        stored = await _add(runtime, votes=1)
        headers = {"X-Voter-Id": "citizen-42"}

        first = await client.post(f"/api/v1/issues/{stored.id}/vote", headers=headers)
        second = await client.post(f"/api/v1/issues/{stored.id}/vote", headers=headers)

        assert first.json()["counted"] is True
        assert second.json()["counted"] is False
        assert second.json()["issue"]["votes"] == 2

    @pytest.mark.asyncio
    async def test_vote_not_found(self, client):
        response = await client.post("/api/v1/issues/999/vote")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_attach_media(self, client, runtime):
        stored = await _add(runtime)

        response = await client.post(
            f"/api/v1/issues/{stored.id}/media",
            json={"uri": "https://example.test/c.jpg", "source_type": "Twitter"},
        )

        assert response.status_code == 201
        evidence = response.json()["evidence"]
        assert evidence[0]["confidence"] == 0.8
        assert sorted(evidence[0]["tags"]) == ["twitter", "user_upload"]

    @pytest.mark.asyncio
    async def test_advance_status(self, client, runtime):
        stored = await _add(runtime)

        forward = await client.post(
            f"/api/v1/issues/{stored.id}/status", json={"status": "Assigned"}
        )
        backward = await client.post(
            f"/api/v1/issues/{stored.id}/status", json={"status": "Pending"}
        )

        assert forward.status_code == 200
        assert forward.json()["progress_percent"] == 25
        assert backward.status_code == 409

    @pytest.mark.asyncio
    async def test_action_plan(self, client, runtime):
        stored = await _add(runtime)

        response = await client.post(f"/api/v1/issues/{stored.id}/plan")

        assert response.status_code == 200
        assert response.json()["issue_id"] == stored.id

    @pytest.mark.asyncio
    async def test_issue_insight(self, client, runtime):
        stored = await _add(runtime)

        response = await client.post(f"/api/v1/issues/{stored.id}/insight")

        assert response.status_code == 200
        data = response.json()
        assert data["issue_id"] == stored.id
        assert "historical data for Road" in data["text"]

    @pytest.mark.asyncio
    async def test_issue_insight_not_found(self, client):
        response = await client.post("/api/v1/issues/404/insight")

        assert response.status_code == 404


class TestInsights:
    """Tests for classification preview, activity, social feed and stats."""

    @pytest.mark.asyncio
    async def test_classify(self, client, runtime):
        response = await client.post(
            "/api/v1/classify",
            json={"title": "Fire near transformer", "location": "Indiranagar"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["enrichment"]["category"] == "Fire"
        assert data["priority"] == "Critical"
        assert len(runtime.registry) == 0

    @pytest.mark.asyncio
    async def test_stats(self, client, runtime):
        await _add(runtime, status=IssueStatus.CRITICAL)
        await _add(runtime, status=IssueStatus.RESOLVED)

        response = await client.get("/api/v1/stats")

        data = response.json()
        assert data["total"] == 2
        assert data["active"] == 1
        assert data["critical"] == 1
        assert data["sentiment"] == {"pos": 30, "neu": 50, "neg": 20}

    @pytest.mark.asyncio
    async def test_activity(self, client, runtime):
        runtime.activity.record("GATEWAY", "RECEIVED", "one")
        runtime.activity.record("GATEWAY", "RECEIVED", "two")

        response = await client.get("/api/v1/activity", params={"limit": 1})

        assert [entry["details"] for entry in response.json()] == ["two"]

    @pytest.mark.asyncio
    async def test_social(self, client, runtime):
        runtime.social.record("@user_1", "Streetlights fixed on 80ft road", "pos")
        runtime.social.record("@user_2", "Garbage not collected for a week", "neg")

        response = await client.get("/api/v1/social", params={"limit": 1})

        assert response.status_code == 200
        assert [post["user"] for post in response.json()] == ["@user_2"]
        stats = (await client.get("/api/v1/stats")).json()
        assert stats["sentiment"] == {"pos": 31, "neu": 50, "neg": 21}
