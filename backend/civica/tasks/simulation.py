"""Background simulation of citizen engagement, incidents and social chatter."""

import logging
import random
from datetime import UTC, datetime, timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from civica.config import Settings
from civica.schemas.activity import SocialPost
from civica.schemas.issue import Category, Issue, IssueStatus, RawReport
from civica.services.gateway import ReportGateway
from civica.services.registry import IssueRegistry
from civica.services.social import SocialFeed
from civica.services.stats import compute_stats
from civica.websocket.hub import BroadcastHub

logger = logging.getLogger(__name__)

SIM_TITLES = [
    "Streetlight flickering",
    "Garbage pileup",
    "Water leakage",
    "Illegal parking",
    "Broken footpath",
    "Traffic signal dead",
    "Open drain danger",
]
SIM_LOCATIONS = [
    "HSR Layout",
    "BTM Layout",
    "Electronic City",
    "Marathahalli",
    "Bellandur",
    "Malleshwaram",
    "Rajajinagar",
]
SIM_CATEGORIES = [Category.ROAD, Category.WATER, Category.ELECTRICITY, Category.SANITATION]

SOCIAL_TOPICS: list[tuple[str, str]] = [
    ("Traffic is a nightmare in Whitefield today! #BangaloreTraffic", "neg"),
    ("Thank you BESCOM for fixing the light so fast! #GoodJob", "pos"),
    ("Garbage piling up in Koramangala again. @BBMP please help.", "neg"),
    ("Beautiful weather in the city today.", "neu"),
    ("Water supply cut for 2 days? Unacceptable. #BWSSB", "neg"),
    ("New metro line is super convenient. #NammaMetro", "pos"),
    ("Why is the road dug up again near Indiranagar?", "neg"),
]


class SimulationDriver:
    """
    Produces synthetic traffic through the same APIs real clients use.

    Engagement ticks go through IssueRegistry.record_engagement and incident
    ticks through ReportGateway.submit_report, so simulated input is held to
    the same invariants as real input.
    """

    def __init__(
        self,
        registry: IssueRegistry,
        gateway: ReportGateway,
        hub: BroadcastHub,
        settings: Settings,
        rng: random.Random | None = None,
        social: SocialFeed | None = None,
    ):
        self.registry = registry
        self.gateway = gateway
        self.hub = hub
        self.settings = settings
        self.rng = rng or random.Random()
        self.social = social
        self.scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None

    async def engagement_tick(self) -> Issue | None:
        """Maybe add a burst of votes and mentions to one open issue."""
        if self.rng.random() >= self.settings.engagement_probability:
            return None

        candidates = [
            issue
            for issue in await self.registry.list()
            if issue.status != IssueStatus.RESOLVED
        ]
        if not candidates:
            return None

        target = self.rng.choice(candidates)
        return await self.registry.record_engagement(
            target.id,
            votes=self.rng.randint(1, 4),
            social_mentions=self.rng.randint(0, 19),
            trend=1,
        )

    async def incident_tick(self) -> Issue | None:
        """Maybe synthesize a new incident report."""
        if self.rng.random() >= self.settings.incident_probability:
            return None

        title = self.rng.choice(SIM_TITLES)
        location = self.rng.choice(SIM_LOCATIONS)
        report = RawReport(
            title=f"{title} near {location}",
            category=self.rng.choice(SIM_CATEGORIES),
            location=location,
            ward=location,
            severity=5.0,
        )
        return await self.gateway.submit_report(
            report, notify_title="New Incident", source="SIMULATOR"
        )

    async def social_tick(self) -> SocialPost | None:
        """Maybe pick up a post from the social stream."""
        if self.social is None or self.rng.random() >= self.settings.social_probability:
            return None

        text, sentiment = self.rng.choice(SOCIAL_TOPICS)
        return self.social.record(
            user=f"@user_{self.rng.randint(0, 9998)}", text=text, sentiment=sentiment
        )

    async def stats_tick(self) -> None:
        """Broadcast a city statistics heartbeat."""
        if self.hub.connection_count == 0:
            return
        sentiment = self.social.sentiment() if self.social is not None else None
        self.hub.publish_stats(compute_stats(await self.registry.list(), sentiment))

    async def _engagement_job(self) -> None:
        try:
            await self.engagement_tick()
        except Exception as e:
            logger.error(f"Engagement tick failed: {e}", exc_info=True)

    async def _incident_job(self) -> None:
        try:
            issue = await self.incident_tick()
            if issue is not None:
                logger.info(f"Simulated incident #{issue.id}: {issue.title}")
        except Exception as e:
            logger.error(f"Incident tick failed: {e}", exc_info=True)

    async def _social_job(self) -> None:
        try:
            await self.social_tick()
        except Exception as e:
            logger.error(f"Social tick failed: {e}", exc_info=True)

    async def _stats_job(self) -> None:
        try:
            await self.stats_tick()
        except Exception as e:
            logger.error(f"Stats heartbeat failed: {e}", exc_info=True)

    def setup_scheduler(self) -> AsyncIOScheduler:
        """Set up and start the simulation jobs."""
        scheduler = AsyncIOScheduler()
        now = datetime.now(UTC)

        scheduler.add_job(
            self._engagement_job,
            trigger=IntervalTrigger(seconds=self.settings.engagement_interval_seconds),
            next_run_time=now,
            id="simulate_engagement",
            name="Simulate citizen engagement",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        scheduler.add_job(
            self._incident_job,
            trigger=IntervalTrigger(seconds=self.settings.incident_interval_seconds),
            next_run_time=now + timedelta(seconds=1),
            id="simulate_incidents",
            name="Simulate incoming incidents",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        scheduler.add_job(
            self._social_job,
            trigger=IntervalTrigger(seconds=self.settings.social_interval_seconds),
            id="simulate_social",
            name="Simulate social stream",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        scheduler.add_job(
            self._stats_job,
            trigger=IntervalTrigger(seconds=self.settings.stats_interval_seconds),
            id="stats_heartbeat",
            name="Broadcast city statistics",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

        scheduler.start()
        self.scheduler = scheduler
        logger.info("Simulation scheduler started")
        return scheduler

    def shutdown_scheduler(self) -> None:
        """Shut down the scheduler gracefully."""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            logger.info("Simulation scheduler shut down")
            self.scheduler = None
