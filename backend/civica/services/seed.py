"""Demo issues loaded into a fresh registry."""

import logging
import time

from civica.schemas.issue import Category, Coordinates, Issue, IssueStatus, MediaItem
from civica.services.registry import IssueRegistry

logger = logging.getLogger(__name__)

_HOUR_MS = 3_600_000

_DEMO_ISSUES: list[dict] = [
    {
        "id": 1,
        "title": "Pipeline burst — road flooding + traffic chaos",
        "category": Category.WATER,
        "location": "Whitefield Main Rd",
        "ward": "Whitefield",
        "votes": 1847,
        "severity": 9.8,
        "status": IssueStatus.CRITICAL,
        "duplicate_reports": 412,
        "social_mentions": 8621,
        "hashtag": "#WhitefieldFlood",
        "authority": "BWSSB",
        "sla_hours": 2,
        "sla_elapsed_hours": 0.4,
        "age_hours": 0.5,
        "recurrence": 3,
        "coordinates": (12.9698, 77.7500),
        "ai_insight": "CRITICAL: Infrastructure failure. Emergency team required immediately.",
        "trend": 892,
        "manpower": 8,
        "estimated_hours": 6,
    },
    {
        "id": 2,
        "title": "Massive pothole cluster causing daily accidents",
        "category": Category.ROAD,
        "location": "MG Road near Trinity Circle",
        "ward": "Shivajinagar",
        "votes": 1204,
        "severity": 9.2,
        "status": IssueStatus.IN_PROGRESS,
        "duplicate_reports": 287,
        "social_mentions": 5341,
        "hashtag": "#MGRoadPothole",
        "authority": "BBMP Roads",
        "sla_hours": 24,
        "sla_elapsed_hours": 18,
        "age_hours": 2,
        "recurrence": 7,
        "coordinates": (12.9762, 77.6033),
        "ai_insight": "High accident probability. Road closure + patching crew needed.",
        "trend": 234,
        "manpower": 6,
        "estimated_hours": 8,
    },
    {
        "id": 3,
        "title": "Garbage overflow — 4 days uncollected, health risk",
        "category": Category.SANITATION,
        "location": "Koramangala 5th Block",
        "ward": "Koramangala",
        "votes": 912,
        "severity": 8.7,
        "status": IssueStatus.ASSIGNED,
        "duplicate_reports": 198,
        "social_mentions": 3876,
        "hashtag": "#KoraGarbage",
        "authority": "BBMP SWM",
        "sla_hours": 12,
        "sla_elapsed_hours": 9,
        "age_hours": 5,
        "recurrence": 12,
        "coordinates": (12.9352, 77.6245),
        "ai_insight": "Disease vector risk elevated. Dual vehicle dispatch needed.",
        "trend": 67,
        "manpower": 4,
        "estimated_hours": 3,
    },
    {
        "id": 4,
        "title": "Street lights out on entire 80ft stretch — crime risk",
        "category": Category.ELECTRICITY,
        "location": "80 Feet Rd, Indiranagar",
        "ward": "Indiranagar",
        "votes": 623,
        "severity": 7.4,
        "status": IssueStatus.PENDING,
        "duplicate_reports": 111,
        "social_mentions": 1934,
        "hashtag": "#IndiSafety",
        "authority": "BESCOM",
        "sla_hours": 8,
        "sla_elapsed_hours": 1,
        "age_hours": 24,
        "recurrence": 2,
        "coordinates": (12.9784, 77.6408),
        "ai_insight": "Crime index +40% after dark without lighting. Priority deployment.",
        "trend": 31,
        "manpower": 3,
        "estimated_hours": 4,
    },
    {
        "id": 5,
        "title": "Storm drain blocked — flooding risk in 2 localities",
        "category": Category.INFRASTRUCTURE,
        "location": "JP Nagar 7th Phase",
        "ward": "JP Nagar",
        "votes": 534,
        "severity": 7.1,
        "status": IssueStatus.PENDING,
        "duplicate_reports": 89,
        "social_mentions": 1234,
        "hashtag": "#JPNagarFlood",
        "authority": "BBMP Engineering",
        "sla_hours": 16,
        "sla_elapsed_hours": 2,
        "age_hours": 12,
        "recurrence": 4,
        "coordinates": (12.9082, 77.5946),
        "ai_insight": "Pre-monsoon clearance critical. Multi-locality impact.",
        "trend": 44,
        "manpower": 5,
        "estimated_hours": 5,
    },
    {
        "id": 6,
        "title": "Fallen tree blocking ambulance access route",
        "category": Category.INFRASTRUCTURE,
        "location": "Jayanagar 4th Block",
        "ward": "Jayanagar",
        "votes": 389,
        "severity": 8.1,
        "status": IssueStatus.PENDING,
        "duplicate_reports": 67,
        "social_mentions": 987,
        "hashtag": "#JayanagarEmergency",
        "authority": "BBMP Parks",
        "sla_hours": 4,
        "sla_elapsed_hours": 3,
        "age_hours": 1.5,
        "recurrence": 1,
        "coordinates": (12.9299, 77.5912),
        "ai_insight": "Emergency access risk! Rapid response tree removal needed.",
        "trend": 189,
        "manpower": 4,
        "estimated_hours": 2,
    },
    {
        "id": 7,
        "title": "Open manhole near school — child safety emergency",
        "category": Category.SANITATION,
        "location": "Hebbal Ring Road",
        "ward": "Hebbal",
        "votes": 1102,
        "severity": 9.5,
        "status": IssueStatus.ESCALATED,
        "duplicate_reports": 234,
        "social_mentions": 6120,
        "hashtag": "#HebbalManholeRisk",
        "authority": "BBMP Engineering",
        "sla_hours": 3,
        "sla_elapsed_hours": 1,
        "age_hours": 1,
        "recurrence": 0,
        "coordinates": (13.0358, 77.5970),
        "ai_insight": "Child safety critical. Temporary cover + permanent fix needed.",
        "trend": 445,
        "manpower": 3,
        "estimated_hours": 1,
    },
    {
        "id": 8,
        "title": "Transformer fire risk — sparking wires after rain",
        "category": Category.ELECTRICITY,
        "location": "Banashankari 2nd Stage",
        "ward": "Banashankari",
        "votes": 445,
        "severity": 8.9,
        "status": IssueStatus.IN_PROGRESS,
        "duplicate_reports": 78,
        "social_mentions": 2341,
        "hashtag": "#BanashankariFire",
        "authority": "BESCOM",
        "sla_hours": 2,
        "sla_elapsed_hours": 1.5,
        "age_hours": 0.25,
        "recurrence": 0,
        "coordinates": (12.9387, 77.5456),
        "ai_insight": "Fire hazard. Disconnect and repair within 2 hours.",
        "trend": 298,
        "manpower": 4,
        "estimated_hours": 3,
    },
]

_DEMO_EVIDENCE: dict[int, list[MediaItem]] = {
    1: [
        MediaItem(
            media_type="image",
            source_type="Drone",
            uri="https://images.unsplash.com/photo-1473968512647-3e447244af8f",
            confidence=0.92,
            tags={"aerial", "flood"},
        ),
    ],
    2: [
        MediaItem(
            media_type="image",
            source_type="Citizen Uploads",
            uri="https://images.unsplash.com/photo-1515162816999-a0c47dc192f7",
            confidence=0.98,
            tags={"pothole", "hazard"},
            bot_probability=0.01,
        ),
    ],
    8: [
        MediaItem(
            media_type="image",
            source_type="Social Media",
            uri="https://images.unsplash.com/photo-1599939571322-792a326991f2",
            confidence=0.65,
            tags={"fire", "smoke"},
            is_suspected_fake=True,
            bot_probability=0.95,
        ),
    ],
}


def demo_issues(now_ms: int | None = None) -> list[Issue]:
    """Build the demo issues, timestamped relative to now."""
    now_ms = now_ms or int(time.time() * 1000)
    issues = []
    for raw in _DEMO_ISSUES:
        fields = dict(raw)
        age_hours = fields.pop("age_hours")
        lat, lng = fields.pop("coordinates")
        issues.append(
            Issue(
                **fields,
                coordinates=Coordinates(latitude=lat, longitude=lng),
                created_at_ms=now_ms - int(age_hours * _HOUR_MS),
                classification_confidence=0.9,
                evidence=[item.model_copy() for item in _DEMO_EVIDENCE.get(raw["id"], [])],
            )
        )
    return issues


async def seed_registry(registry: IssueRegistry) -> int:
    """Insert the demo issues. Returns how many were inserted."""
    issues = demo_issues()
    for issue in issues:
        await registry.insert(issue)
    logger.info(f"Seeded registry with {len(issues)} demo issues")
    return len(issues)
