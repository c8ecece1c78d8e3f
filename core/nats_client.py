"""
NATS JetStream Client for Python Microservices

Provides event-driven communication over NATS JetStream using nats-py.

A single NATSEventBus is created per process at startup, shared by every
request, and flushed/closed on shutdown. Publishing goes through JetStream so
a publish only completes once the server has stored the message and returned
a PubAck.
"""

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import nats.errors
from nats.aio.client import Client as NATS
from nats.js import JetStreamContext
from nats.js.api import PubAck
from nats.js.errors import NotFoundError

if TYPE_CHECKING:
    from core.config_manager import ConfigManager

logger = logging.getLogger(__name__)


class BrokerUnavailableError(Exception):
    """Raised when the broker connection cannot be established"""
    pass


# Errors worth retrying: broker-side failures and timeouts, not programming errors
RETRYABLE_BROKER_ERRORS = (
    BrokerUnavailableError,
    nats.errors.Error,
    asyncio.TimeoutError,
    ConnectionError,
)


class EventType(Enum):
    """Event types published by this service"""

    CUSTOMER_CREATED = "customer.created"


class ServiceSource(Enum):
    """Service sources"""

    CUSTOMER_CORE_SERVICE = "customer_core_service"


class Event:
    """Event model"""

    def __init__(
        self,
        event_type: EventType,
        source: ServiceSource,
        data: Dict[str, Any],
        subject: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ):
        self.id = str(uuid.uuid4())
        self.type = event_type.value
        self.source = source.value
        self.data = data
        self.subject = subject
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.metadata = metadata or {}
        self.version = "1.0.0"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "source": self.source,
            "subject": self.subject,
            "timestamp": self.timestamp,
            "data": self.data,
            "metadata": self.metadata,
            "version": self.version,
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), default=str).encode()


class NATSEventBus:
    """
    NATS JetStream event bus.

    Safe for concurrent use: nats-py multiplexes publishes over one connection
    and connection setup is serialized with a lock.
    """

    def __init__(
        self,
        service_name: str,
        config: Optional["ConfigManager"] = None,
        servers: Optional[str] = None,
        stream_name: Optional[str] = None,
        stream_subjects: Optional[List[str]] = None,
        max_msgs: Optional[int] = None,
        connect_timeout: Optional[float] = None,
    ):
        """
        Initialize NATS Event Bus.

        Args:
            service_name: Name of the service (used as the connection name)
            config: Optional ConfigManager instance
            servers: NATS server URL (defaults to NATS_URL / NATS_HOST:NATS_PORT)
            stream_name: JetStream stream that must exist before publishing
            stream_subjects: Subjects captured by that stream
            max_msgs: Stream retention limit
            connect_timeout: Seconds the initial connection may take in total
                (defaults to NATS_CONNECT_TIMEOUT)
        """
        from core.config_manager import ConfigManager

        self.service_name = service_name

        if config is None:
            config = ConfigManager(service_name)

        audit = config.get_audit_config()
        self.servers = servers or config.get_nats_url()
        self.stream_name = stream_name or audit.stream
        self.stream_subjects = stream_subjects or [audit.topic]
        self.max_msgs = max_msgs or audit.max_msgs
        self.connect_timeout = connect_timeout or config.get_infra_config().nats_connect_timeout

        self._nc: Optional[NATS] = None
        self._js: Optional[JetStreamContext] = None
        self._connect_lock = asyncio.Lock()
        self._closed = False

        logger.info(f"NATS EventBus initialized: {self.servers}")

    async def connect(self):
        """
        Connect to NATS and make sure the JetStream stream exists.

        The initial connection is bounded by connect_timeout. Once connected,
        nats-py reconnects without limit.

        Raises:
            BrokerUnavailableError: no connection within connect_timeout
        """
        async with self._connect_lock:
            if self.is_connected:
                return
            try:
                self._nc = NATS()
                # nats-py retries the first connect forever when reconnects are unlimited
                await asyncio.wait_for(
                    self._nc.connect(
                        servers=[self.servers],
                        name=self.service_name,
                        connect_timeout=self.connect_timeout,
                        allow_reconnect=True,
                        max_reconnect_attempts=-1,
                    ),
                    timeout=self.connect_timeout,
                )
                self._js = self._nc.jetstream()
                await self.ensure_stream(self.stream_name, self.stream_subjects)
                self._closed = False
                logger.info(f"Connected to NATS at {self.servers} as {self.service_name}")
            except Exception as e:
                reason = str(e) or type(e).__name__
                logger.error(f"Failed to connect to NATS at {self.servers}: {reason}")
                await self._discard_connection()
                raise BrokerUnavailableError(reason) from e

    async def _discard_connection(self):
        if self._nc is not None:
            try:
                await asyncio.wait_for(self._nc.close(), timeout=self.connect_timeout)
            except Exception as e:
                logger.debug(f"Ignoring error while discarding NATS connection: {e}")
        self._nc = None
        self._js = None

    async def ensure_stream(self, name: str, subjects: List[str]):
        """Create the JetStream stream if it does not exist (idempotent)"""
        try:
            await self._js.stream_info(name)
            logger.debug(f"Stream '{name}' ready")
        except NotFoundError:
            await self._js.add_stream(name=name, subjects=subjects, max_msgs=self.max_msgs)
            logger.info(f"Created stream '{name}' for subjects {subjects}")

    async def publish(
        self,
        subject: str,
        payload: bytes,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> PubAck:
        """
        Publish to JetStream and wait for the server acknowledgement.

        Connects lazily when the bus is not connected yet (for example when
        the broker was down at startup).

        Raises:
            BrokerUnavailableError: no connection could be made
            nats.errors.Error / asyncio.TimeoutError: broker rejected or did not ack
        """
        if self._closed:
            raise BrokerUnavailableError("event bus is closed")
        if not self.is_connected:
            await self.connect()

        kwargs: Dict[str, Any] = {"headers": headers}
        if timeout is not None:
            kwargs["timeout"] = timeout
        ack = await self._js.publish(subject, payload, **kwargs)
        logger.debug(f"JetStream ack for {subject}: stream={ack.stream}, seq={ack.seq}")
        return ack

    async def flush(self, timeout: float = 2.0):
        """Flush pending protocol messages to the server"""
        if self.is_connected:
            await self._nc.flush(timeout=timeout)

    async def close(self):
        """Drain and close the NATS connection"""
        self._closed = True
        if self._nc is not None:
            try:
                if self._nc.is_connected:
                    await self._nc.drain()
                else:
                    await self._nc.close()
            finally:
                self._nc = None
                self._js = None
        logger.info("Disconnected from NATS")

    @property
    def is_connected(self) -> bool:
        """Check if connected to NATS"""
        return self._nc is not None and self._js is not None and self._nc.is_connected

    @property
    def is_closed(self) -> bool:
        return self._closed

