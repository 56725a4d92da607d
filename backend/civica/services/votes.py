"""Caller-side vote deduplication."""

from collections.abc import Hashable


class VoteLedger:
    """
    Remembers which voter has voted for which issue in this session.

    The registry increments unconditionally; callers consult the ledger first
    so a repeated vote from the same voter is not counted twice.
    """

    def __init__(self):
        self._seen: set[tuple[Hashable, int]] = set()

    def claim(self, voter: Hashable, issue_id: int) -> bool:
        """Record the vote. Returns False if this voter already voted for the issue."""
        key = (voter, issue_id)
        if key in self._seen:
            return False
        self._seen.add(key)
        return True

    def release(self, voter: Hashable, issue_id: int) -> None:
        """Forget a claim whose vote could not be applied."""
        self._seen.discard((voter, issue_id))

    def has_voted(self, voter: Hashable, issue_id: int) -> bool:
        return (voter, issue_id) in self._seen
