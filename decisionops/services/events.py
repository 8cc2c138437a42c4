"""Event sinks: fire-and-forget publication of domain events.

Events are published after the owning transaction commits. Delivery is best
effort: failures are logged and dropped, never retried, and never surface to
the caller of the business operation.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from collections.abc import Callable

import redis.asyncio as redis
import structlog

from decisionops.core.config import get_settings
from decisionops.schemas.events import DomainEvent

logger = structlog.get_logger(__name__)


class EventSink(ABC):
    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Deliver one event. May raise; callers go through publish_best_effort."""


class NullEventSink(EventSink):
    """Discards every event (events disabled)."""

    async def publish(self, event: DomainEvent) -> None:
        return None


class RedisEventSink(EventSink):
    """Publishes events as JSON on Redis Pub/Sub, one channel per event type.

    Channel format: {prefix}.{event_type}, e.g. "decisionops.decision.resolved".

    After `failure_threshold` consecutive publish failures the circuit opens:
    events are dropped (and counted) without touching Redis until
    `reset_seconds` have elapsed, then the next publish is attempted again.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        prefix: str | None = None,
        failure_threshold: int | None = None,
        reset_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        settings = get_settings()
        self.redis = redis_client
        self.prefix = prefix or settings.event_channel_prefix
        self.failure_threshold = failure_threshold or settings.event_failure_threshold
        self.reset_seconds = reset_seconds if reset_seconds is not None else settings.event_circuit_reset_seconds
        self._clock = clock

        self.consecutive_failures = 0
        self.dropped_events = 0
        self._opened_at: float | None = None

    def channel_for(self, event_type: str) -> str:
        return f"{self.prefix}.{event_type}"

    @property
    def is_open(self) -> bool:
        if self._opened_at is None:
            return False
        return self._clock() - self._opened_at < self.reset_seconds

    async def publish(self, event: DomainEvent) -> None:
        if self.is_open:
            self.dropped_events += 1
            logger.warning(
                "event_dropped_circuit_open",
                event_type=event.event_type,
                event_id=str(event.event_id),
                dropped_events=self.dropped_events,
            )
            return

        channel = self.channel_for(event.event_type)
        try:
            await self.redis.publish(channel, event.model_dump_json())
        except (Exception, asyncio.CancelledError):
            # Cancelled covers publish_best_effort's timeout on a stalled broker
            self._record_failure()
            raise

        if self.consecutive_failures or self._opened_at is not None:
            logger.info("event_circuit_closed", channel=channel)
        self.consecutive_failures = 0
        self._opened_at = None
        logger.debug("event_published", channel=channel, event_id=str(event.event_id))

    def _record_failure(self) -> None:
        self.consecutive_failures += 1
        if self.consecutive_failures >= self.failure_threshold:
            self._opened_at = self._clock()
            logger.warning(
                "event_circuit_opened",
                consecutive_failures=self.consecutive_failures,
                reset_seconds=self.reset_seconds,
            )


async def publish_best_effort(sink: EventSink | None, event: DomainEvent, timeout: float | None = None) -> bool:
    """Publish one event, swallowing every failure.

    Args:
        sink: Destination sink (None means events are disabled)
        event: Event to publish
        timeout: Upper bound in seconds (defaults to settings.event_publish_timeout_seconds)

    Returns:
        True if the sink accepted the event, False if it failed or timed out
    """
    if sink is None:
        return False
    if timeout is None:
        timeout = get_settings().event_publish_timeout_seconds

    try:
        await asyncio.wait_for(sink.publish(event), timeout=timeout)
        return True
    except Exception as e:
        logger.warning(
            "event_publish_failed",
            event_type=event.event_type,
            event_id=str(event.event_id),
            tenant_id=str(event.tenant_id),
            error=str(e),
            error_type=type(e).__name__,
        )
        return False
