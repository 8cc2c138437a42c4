"""Test doubles and constants shared across test groups."""

from datetime import UTC, datetime

from decisionops.schemas.events import DomainEvent
from decisionops.services.events import EventSink

# Monday morning, fixed so SLA arithmetic is deterministic
T0 = datetime(2025, 3, 3, 9, 0, tzinfo=UTC)


class RecordingEventSink(EventSink):
    """Collects published events in memory."""

    def __init__(self):
        self.events: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[DomainEvent]:
        return [e for e in self.events if e.event_type == event_type]


class ExplodingEventSink(EventSink):
    """Fails every publish, like an unreachable broker."""

    def __init__(self):
        self.attempts = 0

    async def publish(self, event: DomainEvent) -> None:
        self.attempts += 1
        raise ConnectionError("event channel down")
