"""Broadcast hub fanning registry changes out to WebSocket subscribers."""

import asyncio
import logging
import uuid
from collections.abc import Coroutine
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from fastapi import WebSocket
from pydantic import BaseModel

from civica.schemas.activity import ActivityEntry, CityStats, SocialPost
from civica.services.activity import ActivityLog
from civica.services.registry import IssueRegistry, RegistryEvent
from civica.services.social import SocialFeed
from civica.websocket.schemas import (
    ActivityMessage,
    IssueEventMessage,
    NotificationMessage,
    SnapshotMessage,
    SocialPostMessage,
    StatsMessage,
)

logger = logging.getLogger(__name__)

# Close code sent to a subscriber that could not keep up
BACKPRESSURE_CLOSE_CODE = 1013


@dataclass
class Subscriber:
    """A connected client and its outbound buffer."""

    websocket: WebSocket
    queue: asyncio.Queue
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    connected_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    sender: asyncio.Task | None = None
    tasks: set[asyncio.Task] = field(default_factory=set)

    def offer(self, payload: dict[str, Any]) -> bool:
        """Queue a message without waiting. False if the buffer is full."""
        try:
            self.queue.put_nowait(payload)
        except asyncio.QueueFull:
            return False
        return True

    def spawn(self, coro: Coroutine[Any, Any, None]) -> asyncio.Task:
        """Run a request in the background until it finishes or the subscriber leaves."""
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)
        return task


class BroadcastHub:
    """
    Manages WebSocket subscribers and pushes registry events to them.

    Every subscriber owns a bounded queue drained by its own sender task, so
    a slow client never stalls publishing to the others. A client whose
    queue fills up is disconnected rather than silently losing events.

    A new subscriber is registered from inside IssueRegistry.watch: its
    queue starts with the snapshot, and every later event is one the
    snapshot did not contain.
    """

    def __init__(
        self,
        registry: IssueRegistry,
        activity: ActivityLog | None = None,
        social: SocialFeed | None = None,
        queue_size: int = 256,
    ):
        self._registry = registry
        self._activity = activity
        self._queue_size = max(queue_size, 1)
        self._subscribers: dict[WebSocket, Subscriber] = {}
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

        registry.add_listener(self.publish)
        if activity is not None:
            activity.add_listener(self.publish_activity)
        if social is not None:
            social.add_listener(self.publish_social)

    @property
    def connection_count(self) -> int:
        """Number of active connections."""
        return len(self._subscribers)

    def subscriber(self, websocket: WebSocket) -> Subscriber | None:
        return self._subscribers.get(websocket)

    async def connect(self, websocket: WebSocket) -> Subscriber:
        """Accept a WebSocket, queue the snapshot, and start streaming."""
        await websocket.accept()
        subscriber = Subscriber(
            websocket=websocket,
            queue=asyncio.Queue(maxsize=self._queue_size),
        )
        async with self._lock:
            await self._registry.watch(lambda issues: self._attach(subscriber, issues))
        subscriber.sender = asyncio.create_task(self._pump(subscriber))
        logger.info(f"WebSocket connected. Total connections: {self.connection_count}")
        return subscriber

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a disconnected WebSocket. Registry state is untouched."""
        async with self._lock:
            subscriber = self._subscribers.pop(websocket, None)
        if subscriber is not None:
            self._stop(subscriber)
        logger.info(f"WebSocket disconnected. Total connections: {self.connection_count}")

    def publish(self, event: RegistryEvent) -> None:
        """Broadcast a registry event. Registered as a registry listener."""
        message = IssueEventMessage(type=event.kind, data=event.issue)
        self._fan_out(message.model_dump(mode="json"))

    def publish_activity(self, entry: ActivityEntry) -> None:
        self._fan_out(ActivityMessage(data=entry).model_dump(mode="json"))

    def publish_social(self, post: SocialPost) -> None:
        self._fan_out(SocialPostMessage(data=post).model_dump(mode="json"))

    def publish_stats(self, stats: CityStats) -> None:
        self._fan_out(StatsMessage(data=stats).model_dump(mode="json"))

    def notify(self, title: str, message: str, level: str = "info") -> None:
        """Broadcast an out-of-band notification."""
        notification = NotificationMessage(title=title, message=message, level=level)
        self._fan_out(notification.model_dump(mode="json"))

    def send(self, websocket: WebSocket, message: BaseModel) -> None:
        """Queue a direct reply for one subscriber."""
        subscriber = self._subscribers.get(websocket)
        if subscriber is None:
            return
        if not subscriber.offer(message.model_dump(mode="json")):
            self._drop(subscriber)

    async def flush(self) -> None:
        """Wait until every queued message has been handed to its socket."""
        await asyncio.gather(
            *(sub.queue.join() for sub in list(self._subscribers.values()))
        )

    async def close(self) -> None:
        """Disconnect every subscriber."""
        for websocket in list(self._subscribers):
            await self.disconnect(websocket)

    def _attach(self, subscriber: Subscriber, issues: list) -> None:
        subscriber.offer(SnapshotMessage(data=issues).model_dump(mode="json"))
        if self._activity is not None:
            # History oldest first, after the snapshot
            for entry in reversed(self._activity.entries()):
                if not subscriber.offer(ActivityMessage(data=entry).model_dump(mode="json")):
                    logger.warning(
                        f"Activity history truncated for subscriber {subscriber.session_id}: "
                        f"queue holds {self._queue_size} messages"
                    )
                    break
        self._subscribers[subscriber.websocket] = subscriber

    def _fan_out(self, payload: dict[str, Any]) -> None:
        for subscriber in list(self._subscribers.values()):
            if not subscriber.offer(payload):
                self._drop(subscriber)

    async def _pump(self, subscriber: Subscriber) -> None:
        try:
            while True:
                payload = await subscriber.queue.get()
                try:
                    await subscriber.websocket.send_json(payload)
                finally:
                    subscriber.queue.task_done()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Failed to send to websocket: {e}")
            # Disconnect from a separate task, the pump is cancelled there
            self._schedule(self.disconnect(subscriber.websocket))

    def _drop(self, subscriber: Subscriber) -> None:
        if self._subscribers.pop(subscriber.websocket, None) is None:
            return
        logger.warning(
            f"Subscriber {subscriber.session_id} fell behind "
            f"({self._queue_size} queued messages), disconnecting"
        )
        self._stop(subscriber)
        self._schedule(self._close_socket(subscriber.websocket))

    def _stop(self, subscriber: Subscriber) -> None:
        sender = subscriber.sender
        if sender is not None and sender is not asyncio.current_task():
            sender.cancel()
        for task in list(subscriber.tasks):
            if task is not asyncio.current_task():
                task.cancel()
        while True:
            try:
                subscriber.queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            subscriber.queue.task_done()

    async def _close_socket(self, websocket: WebSocket) -> None:
        try:
            await websocket.close(code=BACKPRESSURE_CLOSE_CODE)
        except Exception as e:
            logger.debug(f"Close after backpressure failed: {e}")

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
