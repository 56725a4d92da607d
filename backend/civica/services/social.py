"""Bounded social stream with a running sentiment tally."""

import itertools
import logging
from collections import Counter, deque
from collections.abc import Callable

from civica.schemas.activity import SentimentCounts, SocialPost

logger = logging.getLogger(__name__)

# Tally the dashboard starts from before any post arrives
BASELINE_SENTIMENT = {"pos": 30, "neu": 50, "neg": 20}


class SocialFeed:
    """Keeps the most recent social posts and counts their sentiment."""

    def __init__(self, size: int = 20):
        self._posts: deque[SocialPost] = deque(maxlen=size)
        self._ids = itertools.count(1)
        self._sentiment: Counter[str] = Counter(BASELINE_SENTIMENT)
        self._listeners: list[Callable[[SocialPost], None]] = []

    def add_listener(self, listener: Callable[[SocialPost], None]) -> None:
        self._listeners.append(listener)

    def record(self, user: str, text: str, sentiment: str) -> SocialPost:
        post = SocialPost(id=next(self._ids), user=user, text=text, sentiment=sentiment)
        self._posts.appendleft(post)
        self._sentiment[post.sentiment] += 1
        logger.debug(f"Social post from {user} ({sentiment})")
        for listener in list(self._listeners):
            listener(post)
        return post

    def posts(self) -> list[SocialPost]:
        """Posts newest first."""
        return list(self._posts)

    def sentiment(self) -> SentimentCounts:
        return SentimentCounts(**self._sentiment)
