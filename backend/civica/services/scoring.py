"""Priority score for civic issues.

CivicScore = severity x category weight x engagement x duplicates x sentiment
x recurrence, scaled to 0-100. Each boost is capped on its own so the product
can never exceed its ceiling, whatever the counters say.
"""

import math

from civica.schemas.issue import Category, Issue

CATEGORY_WEIGHTS: dict[Category, float] = {
    Category.WATER: 1.40,
    Category.ELECTRICITY: 1.35,
    Category.SANITATION: 1.30,
    Category.INFRASTRUCTURE: 1.25,
    Category.ROAD: 1.20,
}

SCALE = 2.8
MAX_SCORE = 100


def category_weight(category: Category) -> float:
    return CATEGORY_WEIGHTS.get(category, 1.0)


def engagement_boost(votes: int) -> float:
    return min(1 + (votes / 500) * 0.30, 1.80)


def duplicate_boost(duplicate_reports: int) -> float:
    return min(1 + (duplicate_reports / 100) * 0.20, 1.50)


def sentiment_risk(social_mentions: int) -> float:
    return min(1 + (social_mentions / 2000) * 0.25, 1.60)


def recurrence_boost(recurrence: int) -> float:
    return min(1 + recurrence * 0.05, 1.30)


def score(issue: Issue) -> int:
    """Compute the bounded priority score of an issue. Pure."""
    raw = (
        issue.severity
        * category_weight(issue.category)
        * engagement_boost(issue.votes)
        * duplicate_boost(issue.duplicate_reports)
        * sentiment_risk(issue.social_mentions)
        * recurrence_boost(issue.recurrence)
    )
    # Half-up rounding, not round()'s half-to-even
    scaled = math.floor(raw * SCALE + 0.5)
    return max(0, min(scaled, MAX_SCORE))
