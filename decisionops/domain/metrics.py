"""Stakeholder performance arithmetic and leaderboard views.

The incremental mean here is the reference formula; the persisted update runs
the same arithmetic as one SQL expression (see StakeholderService).
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol, TypeVar


class StakeholderStats(Protocol):
    decisions_pending: int
    decisions_completed: int
    decisions_escalated: int
    avg_response_time_hours: float | None


T = TypeVar("T", bound=StakeholderStats)


def incremental_mean(current_avg: float | None, completed: int, value: float) -> float:
    """Fold one more observation into a running mean.

    Args:
        current_avg: Mean of the previous observations (None when there are none)
        completed: Observation count AFTER including `value`
        value: The new observation

    Returns:
        The updated mean
    """
    if current_avg is None or completed <= 1:
        return value
    return (current_avg * (completed - 1) + value) / completed


@dataclass
class Leaderboard:
    fastest_responders: list = field(default_factory=list)
    most_active: list = field(default_factory=list)
    needing_attention: list = field(default_factory=list)


def fastest_responders(stakeholders: Iterable[T], limit: int = 10) -> list[T]:
    timed = [s for s in stakeholders if s.avg_response_time_hours is not None]
    return sorted(timed, key=lambda s: s.avg_response_time_hours)[:limit]


def most_active(stakeholders: Iterable[T], limit: int = 10) -> list[T]:
    active = [s for s in stakeholders if (s.decisions_completed or 0) > 0]
    return sorted(active, key=lambda s: s.decisions_completed, reverse=True)[:limit]


def needing_attention(
    stakeholders: Iterable[T],
    pending_threshold: int = 2,
    response_hours_threshold: float = 24.0,
    limit: int = 10,
) -> list[T]:
    flagged = [
        s
        for s in stakeholders
        if (s.decisions_pending or 0) > pending_threshold
        or (s.avg_response_time_hours is not None and s.avg_response_time_hours > response_hours_threshold)
    ]
    return sorted(flagged, key=lambda s: s.decisions_pending or 0, reverse=True)[:limit]


def build_leaderboard(
    stakeholders: Iterable[T],
    limit: int = 10,
    pending_threshold: int = 2,
    response_hours_threshold: float = 24.0,
) -> Leaderboard:
    pool = list(stakeholders)
    return Leaderboard(
        fastest_responders=fastest_responders(pool, limit),
        most_active=most_active(pool, limit),
        needing_attention=needing_attention(pool, pending_threshold, response_hours_threshold, limit),
    )
