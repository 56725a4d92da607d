"""Bounded feed of agent and gateway activity."""

import itertools
import logging
from collections import deque
from collections.abc import Callable

from civica.schemas.activity import ActivityEntry

logger = logging.getLogger(__name__)


class ActivityLog:
    """Keeps the most recent activity entries and fans new ones out to listeners."""

    def __init__(self, size: int = 50):
        self._entries: deque[ActivityEntry] = deque(maxlen=size)
        self._ids = itertools.count(1)
        self._listeners: list[Callable[[ActivityEntry], None]] = []

    def add_listener(self, listener: Callable[[ActivityEntry], None]) -> None:
        self._listeners.append(listener)

    def record(self, agent: str, action: str, details: str) -> ActivityEntry:
        entry = ActivityEntry(id=next(self._ids), agent=agent, action=action, details=details)
        self._entries.appendleft(entry)
        logger.info(f"[{agent}] {action}: {details}")
        for listener in list(self._listeners):
            listener(entry)
        return entry

    def entries(self) -> list[ActivityEntry]:
        """Entries newest first."""
        return list(self._entries)
