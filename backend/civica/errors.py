"""Error taxonomy for the issue registry and its boundary."""


class CivicaError(Exception):
    """Base exception for civica errors."""

    pass


class NotFoundError(CivicaError):
    """Operation referenced an unknown issue id."""

    def __init__(self, issue_id: int):
        super().__init__(f"Issue {issue_id} not found")
        self.issue_id = issue_id


class ConflictError(CivicaError):
    """Insert collided with an existing issue id."""

    pass


class TransitionError(ConflictError):
    """Requested status change is not a legal forward transition."""

    pass


class ValidationError(CivicaError):
    """Submitted report is malformed and was rejected at the boundary."""

    pass


class ClassificationError(CivicaError):
    """Classification backend failed or returned a malformed response."""

    pass


class ClassificationTimeoutError(ClassificationError):
    """Classification did not finish within its time budget."""

    pass
