"""
Customer Core Service Event Publishers

Fire-and-forget audit publishing for customer creation.

publish() logs the intent marker and schedules the broker round-trip as an
asyncio task; the task's done callback logs the outcome marker. The caller
never awaits the broker and never sees a publish failure.
"""

import asyncio
import logging
from functools import partial
from typing import Any, Dict, Optional, Set

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from core.nats_client import RETRYABLE_BROKER_ERRORS, BrokerUnavailableError, Event

from ..protocols import EventBusProtocol

logger = logging.getLogger(__name__)


class AuditEventPublisher:
    """
    Publishes audit events to the broker without blocking the caller.

    One instance is shared by all requests. The event bus it wraps is the
    process-wide broker connection created at startup.
    """

    def __init__(
        self,
        event_bus: Optional[EventBusProtocol],
        max_attempts: int = 3,
        retry_wait: float = 0.5,
        publish_timeout: Optional[float] = None,
    ):
        """
        Args:
            event_bus: Broker connection (None when event publishing is disabled)
            max_attempts: Total send attempts per event, including the first
            retry_wait: Base delay for exponential backoff between attempts
            publish_timeout: Seconds to wait for the broker acknowledgement
        """
        self.event_bus = event_bus
        self.max_attempts = max(1, max_attempts)
        self.retry_wait = retry_wait
        self.publish_timeout = publish_timeout
        self._pending: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of publishes still in flight"""
        return len(self._pending)

    def publish(self, topic: str, event: Event) -> asyncio.Task:
        """
        Start publishing an audit event and return immediately.

        Must be called from a running event loop.

        Args:
            topic: Destination subject
            event: Event envelope to send

        Returns:
            Task that completes with the broker acknowledgement; the outcome is
            also logged by a completion callback
        """
        payload = event.to_json()
        logger.info(
            f"sending payload for audit topic {topic}: "
            f"event_id={event.id} type={event.type} customer_id={event.data.get('id')}"
        )

        task = asyncio.get_running_loop().create_task(
            self._send(topic, event, payload), name=f"audit-publish-{event.id}"
        )
        self._pending.add(task)
        task.add_done_callback(partial(self._on_publish_done, topic, event))
        return task

    async def _send(self, topic: str, event: Event, payload: bytes) -> Any:
        if self.event_bus is None:
            raise BrokerUnavailableError("event publishing is disabled")

        headers: Dict[str, str] = {
            "event_id": event.id,
            "event_type": event.type,
            # JetStream de-duplicates retried publishes by message id
            "Nats-Msg-Id": event.id,
        }

        ack = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_wait, min=self.retry_wait, max=10),
            retry=retry_if_exception_type(RETRYABLE_BROKER_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        ):
            with attempt:
                ack = await self.event_bus.publish(
                    topic, payload, headers=headers, timeout=self.publish_timeout
                )
        return ack

    def _on_publish_done(self, topic: str, event: Event, task: asyncio.Task) -> None:
        self._pending.discard(task)

        if task.cancelled():
            logger.warning(f"audit publish cancelled for topic {topic}: event_id={event.id}")
            return

        error = task.exception()
        if error is not None:
            logger.error(
                f"failed to send message to the audit topic {topic}: "
                f"event_id={event.id} error={error!r}"
            )
            return

        ack = task.result()
        logger.info(
            f"message sent to the audit topic {topic}: event_id={event.id} "
            f"stream={getattr(ack, 'stream', None)} seq={getattr(ack, 'seq', None)}"
        )

    async def drain(self, timeout: Optional[float] = None) -> int:
        """
        Wait for in-flight publishes to finish.

        Args:
            timeout: Maximum seconds to wait (None waits indefinitely)

        Returns:
            Number of publishes that finished while draining
        """
        pending = list(self._pending)
        if not pending:
            return 0

        logger.info(f"Draining {len(pending)} in-flight audit publishes")
        done, not_done = await asyncio.wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"{len(not_done)} audit publishes still in flight after {timeout}s")
        return len(done)
