"""Decision queue ordering.

Pure sort/filter over decision snapshots. Works on anything exposing the
DecisionSnapshot attributes (ORM rows or plain dataclasses).
"""

from collections.abc import Iterable
from datetime import datetime
from typing import Protocol, TypeVar

from decisionops.domain.decisions import OPEN_STATUSES, PRIORITY_RANK, DecisionPriority, DecisionStatus


class DecisionSnapshot(Protocol):
    status: DecisionStatus
    priority: DecisionPriority
    created_at: datetime
    due_at: datetime | None
    escalation_level: int


D = TypeVar("D", bound=DecisionSnapshot)


def queue_sort_key(decision: DecisionSnapshot) -> tuple[int, datetime]:
    """Priority rank first, then oldest created first (FIFO within a tier)."""
    return (PRIORITY_RANK[DecisionPriority(decision.priority)], decision.created_at)


def order_queue(decisions: Iterable[D]) -> list[D]:
    """Open decisions in queue order."""
    open_decisions = [d for d in decisions if d.status in OPEN_STATUSES]
    return sorted(open_decisions, key=queue_sort_key)


def overdue(decisions: Iterable[D], now: datetime) -> list[D]:
    """Open decisions whose deadline is already behind us, in queue order."""
    return [d for d in order_queue(decisions) if d.due_at is not None and d.due_at < now]


def escalation_candidates(decisions: Iterable[D], now: datetime) -> list[D]:
    """Overdue decisions never escalated before.

    Automatic escalation happens at most once; later escalations are manual.
    """
    return [d for d in overdue(decisions, now) if d.escalation_level == 0]


def split_by_status(decisions: Iterable[D]) -> dict[DecisionStatus, list[D]]:
    """Group open decisions by status, each group keeping queue order."""
    groups: dict[DecisionStatus, list[D]] = {status: [] for status in OPEN_STATUSES}
    for decision in order_queue(decisions):
        groups[DecisionStatus(decision.status)].append(decision)
    return groups
