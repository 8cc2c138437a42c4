"""Vote options and tallying."""

from collections.abc import Iterable
from enum import StrEnum


class VoteType(StrEnum):
    APPROVE = "approve"
    REJECT = "reject"
    ABSTAIN = "abstain"
    NEEDS_MORE_INFO = "needs_more_info"


def tally(votes: Iterable[VoteType | str]) -> dict[VoteType, int]:
    """Count votes per option. Every option is present, unused ones at zero."""
    counts = {vote_type: 0 for vote_type in VoteType}
    for vote in votes:
        counts[VoteType(vote)] += 1
    return counts
