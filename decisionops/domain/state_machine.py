"""Reusable guarded state machine.

A TransitionTable maps each state of a closed enum to the set of states it may
move to. Pure domain logic with no external dependencies.
"""

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import Generic, TypeVar

from decisionops.core.exceptions import IllegalStateTransition

S = TypeVar("S", bound=Enum)


class TransitionTable(Generic[S]):
    """Lookup table of legal status transitions for one entity type."""

    def __init__(self, entity: str, transitions: Mapping[S, Iterable[S]]):
        self.entity = entity
        self._transitions: dict[S, frozenset[S]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }

    def allowed(self, current: S) -> frozenset[S]:
        """Return the successor set for a state (empty for terminal states)."""
        return self._transitions.get(current, frozenset())

    def can_transition(self, current: S, target: S) -> bool:
        return target in self.allowed(current)

    def validate(self, current: S, target: S) -> None:
        """Raise IllegalStateTransition unless current -> target is listed."""
        if not self.can_transition(current, target):
            raise IllegalStateTransition(current, target, entity=self.entity)

    def terminal_states(self) -> frozenset[S]:
        return frozenset(state for state, targets in self._transitions.items() if not targets)
