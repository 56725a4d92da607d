"""Duplicate-report detection policies."""

import math
import re
from collections import Counter
from typing import Protocol

import numpy as np

from civica.config import Settings
from civica.schemas.issue import Category, Issue

_TOKEN_RE = re.compile(r"[a-z0-9]+")

MIN_TITLE_LENGTH = 6


class DuplicatePolicy(Protocol):
    """Decides whether a candidate report duplicates an existing issue."""

    def is_duplicate(self, candidate: Issue, existing: Issue) -> bool: ...


class SubstringDuplicatePolicy:
    """
    Loose match used for the live "similar issues" hint.

    A candidate with a meaningful title matches an existing issue of the same
    category, or one whose location contains the first segment of the
    candidate's location.
    """

    def is_duplicate(self, candidate: Issue, existing: Issue) -> bool:
        if len(candidate.title.strip()) < MIN_TITLE_LENGTH:
            return False

        if (
            candidate.category == existing.category
            and candidate.category not in (Category.ANALYZING, Category.UNCATEGORIZED)
        ):
            return True

        area = candidate.location.split(",")[0].strip().lower()
        return bool(area) and area in existing.location.lower()


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in kilometres."""
    r = 6371.0
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * r * math.asin(math.sqrt(a))


def _tokens(text: str) -> Counter[str]:
    return Counter(_TOKEN_RE.findall(text.lower()))


def cosine_similarity(a: str, b: str) -> float:
    """Cosine similarity of two texts as bags of words."""
    counts_a, counts_b = _tokens(a), _tokens(b)
    vocabulary = sorted(counts_a.keys() | counts_b.keys())
    v1 = np.array([counts_a[token] for token in vocabulary], dtype=float)
    v2 = np.array([counts_b[token] for token in vocabulary], dtype=float)
    norm1, norm2 = np.linalg.norm(v1), np.linalg.norm(v2)
    if norm1 == 0 or norm2 == 0:
        return 0.0
    return float(np.dot(v1, v2) / (norm1 * norm2))


class GeoSimilarityPolicy:
    """
    Stricter match: same category, nearby, and similar wording.

    Issues without coordinates fall back to comparing location text.
    """

    def __init__(self, radius_km: float = 0.5, min_similarity: float = 0.5):
        self.radius_km = radius_km
        self.min_similarity = min_similarity

    def is_duplicate(self, candidate: Issue, existing: Issue) -> bool:
        if candidate.category != existing.category:
            return False

        if candidate.coordinates and existing.coordinates:
            distance = haversine_km(
                candidate.coordinates.latitude,
                candidate.coordinates.longitude,
                existing.coordinates.latitude,
                existing.coordinates.longitude,
            )
            if distance > self.radius_km:
                return False
        elif candidate.location.strip().lower() != existing.location.strip().lower():
            return False

        text_a = f"{candidate.title} {candidate.description or ''}"
        text_b = f"{existing.title} {existing.description or ''}"
        return cosine_similarity(text_a, text_b) >= self.min_similarity


def find_similar(
    candidate: Issue,
    issues: list[Issue],
    policy: DuplicatePolicy,
    limit: int = 2,
) -> list[Issue]:
    """Return up to limit existing issues the policy considers duplicates."""
    matches = [issue for issue in issues if policy.is_duplicate(candidate, issue)]
    return matches[:limit]


def build_policy(settings: Settings) -> DuplicatePolicy:
    """Create the duplicate policy selected by configuration."""
    if settings.duplicate_policy == "geo":
        return GeoSimilarityPolicy(
            radius_km=settings.duplicate_radius_km,
            min_similarity=settings.duplicate_min_similarity,
        )
    return SubstringDuplicatePolicy()
