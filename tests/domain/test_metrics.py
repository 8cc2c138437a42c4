"""Tests for stakeholder metric arithmetic and leaderboard views."""

from dataclasses import dataclass

import pytest

from decisionops.domain.metrics import (
    build_leaderboard,
    fastest_responders,
    incremental_mean,
    most_active,
    needing_attention,
)

pytestmark = pytest.mark.unit


@dataclass
class Stats:
    name: str
    decisions_pending: int = 0
    decisions_completed: int = 0
    decisions_escalated: int = 0
    avg_response_time_hours: float | None = None


def test_incremental_mean_matches_arithmetic_mean():
    """Folding observations one at a time equals the plain mean."""
    samples = [2.0, 10.0, 3.5, 0.25, 48.0]
    avg = None
    for count, sample in enumerate(samples, start=1):
        avg = incremental_mean(avg, count, sample)
    assert avg == pytest.approx(sum(samples) / len(samples))


def test_incremental_mean_first_observation():
    assert incremental_mean(None, 1, 7.0) == 7.0


def test_fastest_responders_ignores_untimed():
    pool = [Stats("slow", avg_response_time_hours=30), Stats("none"), Stats("quick", avg_response_time_hours=1.5)]
    assert [s.name for s in fastest_responders(pool)] == ["quick", "slow"]


def test_most_active_requires_completions():
    pool = [Stats("idle"), Stats("busy", decisions_completed=9), Stats("some", decisions_completed=2)]
    assert [s.name for s in most_active(pool)] == ["busy", "some"]


def test_needing_attention_thresholds():
    pool = [
        Stats("backlog", decisions_pending=5),
        Stats("borderline", decisions_pending=2),
        Stats("slow", decisions_pending=1, avg_response_time_hours=30),
        Stats("fine", decisions_pending=0, avg_response_time_hours=3),
    ]
    assert [s.name for s in needing_attention(pool)] == ["backlog", "slow"]


def test_leaderboard_limit():
    pool = [Stats(f"s{i}", decisions_completed=i + 1, avg_response_time_hours=float(i)) for i in range(15)]
    board = build_leaderboard(pool, limit=3)
    assert [s.name for s in board.fastest_responders] == ["s0", "s1", "s2"]
    assert [s.name for s in board.most_active] == ["s14", "s13", "s12"]
    assert board.needing_attention == []
