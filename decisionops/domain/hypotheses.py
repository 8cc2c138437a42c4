"""Hypothesis status enum and transition rules.

Flow: DRAFT -> READY -> BUILDING -> DEPLOYED -> MEASURING -> VALIDATED/INVALIDATED.
BLOCKED is reachable from the in-flight states and only returns to READY.
ABANDONED is reachable from every non-terminal state.
"""

from enum import StrEnum

from decisionops.domain.state_machine import TransitionTable


class HypothesisStatus(StrEnum):
    DRAFT = "draft"
    READY = "ready"
    BLOCKED = "blocked"
    BUILDING = "building"
    DEPLOYED = "deployed"
    MEASURING = "measuring"
    VALIDATED = "validated"
    INVALIDATED = "invalidated"
    ABANDONED = "abandoned"


HYPOTHESIS_TRANSITIONS = TransitionTable(
    "Hypothesis",
    {
        HypothesisStatus.DRAFT: [HypothesisStatus.READY, HypothesisStatus.ABANDONED],
        HypothesisStatus.READY: [
            HypothesisStatus.BUILDING,
            HypothesisStatus.BLOCKED,
            HypothesisStatus.ABANDONED,
        ],
        HypothesisStatus.BLOCKED: [HypothesisStatus.READY, HypothesisStatus.ABANDONED],
        HypothesisStatus.BUILDING: [
            HypothesisStatus.DEPLOYED,
            HypothesisStatus.BLOCKED,
            HypothesisStatus.ABANDONED,
        ],
        HypothesisStatus.DEPLOYED: [
            HypothesisStatus.MEASURING,
            HypothesisStatus.BLOCKED,
            HypothesisStatus.ABANDONED,
        ],
        HypothesisStatus.MEASURING: [
            HypothesisStatus.VALIDATED,
            HypothesisStatus.INVALIDATED,
            HypothesisStatus.BLOCKED,
            HypothesisStatus.ABANDONED,
        ],
        HypothesisStatus.VALIDATED: [],
        HypothesisStatus.INVALIDATED: [],
        HypothesisStatus.ABANDONED: [],
    },
)

TERMINAL_STATUSES = HYPOTHESIS_TRANSITIONS.terminal_states()

CONCLUSION_STATUSES = frozenset({HypothesisStatus.VALIDATED, HypothesisStatus.INVALIDATED})

# Timestamp column stamped when a hypothesis enters the state
STATUS_TIMESTAMPS: dict[HypothesisStatus, str] = {
    HypothesisStatus.BUILDING: "started_at",
    HypothesisStatus.DEPLOYED: "deployed_at",
    HypothesisStatus.MEASURING: "measuring_started_at",
}
