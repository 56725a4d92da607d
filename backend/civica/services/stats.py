"""City-level statistics derived from a registry snapshot."""

from collections import Counter

from civica.schemas.activity import CityStats, SentimentCounts
from civica.schemas.issue import Issue, IssueStatus


def compute_stats(
    issues: list[Issue], sentiment: SentimentCounts | None = None
) -> CityStats:
    """Snapshot of the registry, optionally carrying the social sentiment tally."""
    resolved = [i for i in issues if i.status == IssueStatus.RESOLVED]
    active = [i for i in issues if i.status != IssueStatus.RESOLVED]
    critical = [
        i for i in active if i.status in (IssueStatus.CRITICAL, IssueStatus.ESCALATED)
    ]

    average_score = (
        round(sum(i.priority_score for i in issues) / len(issues), 1) if issues else 0.0
    )
    # Risk index: mean score of the open issues
    risk = round(sum(i.priority_score for i in active) / len(active)) if active else 0

    return CityStats(
        total=len(issues),
        active=len(active),
        resolved=len(resolved),
        critical=len(critical),
        average_score=average_score,
        risk=risk,
        by_category=dict(Counter(i.category.value for i in issues)),
        by_status=dict(Counter(i.status.value for i in issues)),
        sentiment=sentiment or SentimentCounts(),
    )
