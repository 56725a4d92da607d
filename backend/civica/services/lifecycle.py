"""Issue status state machine and derived progress."""

from civica.schemas.issue import IssueStatus

CRITICAL_SEVERITY = 9.5
ESCALATION_SEVERITY = 8.0

ALLOWED_TRANSITIONS: dict[IssueStatus, frozenset[IssueStatus]] = {
    IssueStatus.PENDING: frozenset(
        {
            IssueStatus.NEEDS_REVIEW,
            IssueStatus.ASSIGNED,
            IssueStatus.CRITICAL,
            IssueStatus.ESCALATED,
            IssueStatus.RESOLVED,
        }
    ),
    IssueStatus.NEEDS_REVIEW: frozenset(
        {
            IssueStatus.ASSIGNED,
            IssueStatus.CRITICAL,
            IssueStatus.ESCALATED,
            IssueStatus.RESOLVED,
        }
    ),
    IssueStatus.CRITICAL: frozenset(
        {
            IssueStatus.ASSIGNED,
            IssueStatus.IN_PROGRESS,
            IssueStatus.ESCALATED,
            IssueStatus.RESOLVED,
        }
    ),
    IssueStatus.ASSIGNED: frozenset(
        {IssueStatus.IN_PROGRESS, IssueStatus.ESCALATED, IssueStatus.RESOLVED}
    ),
    IssueStatus.IN_PROGRESS: frozenset({IssueStatus.ESCALATED, IssueStatus.RESOLVED}),
    IssueStatus.ESCALATED: frozenset({IssueStatus.RESOLVED}),
    IssueStatus.RESOLVED: frozenset(),
}

PROGRESS_BY_STATUS: dict[IssueStatus, int] = {
    IssueStatus.PENDING: 0,
    IssueStatus.NEEDS_REVIEW: 0,
    IssueStatus.CRITICAL: 10,
    IssueStatus.ASSIGNED: 25,
    IssueStatus.ESCALATED: 40,
    IssueStatus.IN_PROGRESS: 60,
    IssueStatus.RESOLVED: 100,
}


def can_transition(current: IssueStatus, target: IssueStatus) -> bool:
    """Check whether moving from current to target is a legal forward step."""
    return target in ALLOWED_TRANSITIONS[current]


def progress_for(status: IssueStatus) -> int:
    return PROGRESS_BY_STATUS[status]


def triage_status(severity: float) -> IssueStatus:
    """Status a freshly classified issue is routed to."""
    if severity >= CRITICAL_SEVERITY:
        return IssueStatus.CRITICAL
    if severity > ESCALATION_SEVERITY:
        return IssueStatus.ESCALATED
    return IssueStatus.ASSIGNED


def should_escalate(
    status: IssueStatus, previous_severity: float, severity: float
) -> bool:
    """
    Check whether a severity change must escalate the issue.

    Only an upward crossing of the escalation threshold counts, and only for
    statuses that can still move to Escalated.
    """
    if previous_severity > ESCALATION_SEVERITY or severity <= ESCALATION_SEVERITY:
        return False
    if status == IssueStatus.CRITICAL:
        return False
    return can_transition(status, IssueStatus.ESCALATED)
