"""Wiring of the registry, hub, worker and gateway for one server process."""

from dataclasses import dataclass

from fastapi.requests import HTTPConnection

from civica.config import Settings
from civica.services.activity import ActivityLog
from civica.services.classification import ClassificationWorker, build_worker
from civica.services.dedup import build_policy
from civica.services.gateway import ReportGateway
from civica.services.registry import IssueRegistry
from civica.services.social import SocialFeed
from civica.tasks.simulation import SimulationDriver
from civica.websocket.hub import BroadcastHub


@dataclass
class Runtime:
    """Process-wide components. Built once per application lifespan."""

    registry: IssueRegistry
    activity: ActivityLog
    social: SocialFeed
    hub: BroadcastHub
    worker: ClassificationWorker
    gateway: ReportGateway
    simulation: SimulationDriver


def build_runtime(settings: Settings, worker: ClassificationWorker | None = None) -> Runtime:
    registry = IssueRegistry()
    activity = ActivityLog(size=settings.activity_log_size)
    social = SocialFeed(size=settings.social_feed_size)
    hub = BroadcastHub(
        registry,
        activity=activity,
        social=social,
        queue_size=settings.subscriber_queue_size,
    )
    worker = worker or build_worker(settings)
    gateway = ReportGateway(
        registry, hub, worker, activity, duplicate_policy=build_policy(settings)
    )
    simulation = SimulationDriver(registry, gateway, hub, settings, social=social)
    return Runtime(
        registry=registry,
        activity=activity,
        social=social,
        hub=hub,
        worker=worker,
        gateway=gateway,
        simulation=simulation,
    )


def get_runtime(connection: HTTPConnection) -> Runtime:
    """FastAPI dependency returning the runtime stored on the application."""
    return connection.app.state.runtime
