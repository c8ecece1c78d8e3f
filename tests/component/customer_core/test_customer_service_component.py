"""
Customer Service Component Tests

Tests CustomerService with a mocked repository and a real AuditEventPublisher
over a mocked event bus.

Coverage:
1. Create and audit
2. Duplicate ids
3. Failure isolation
4. Lookups
5. Health

Usage:
    pytest tests/component/customer_core -v
"""
import asyncio
import logging
import socket
from unittest.mock import MagicMock

import pytest

from core.config import AppConfig, AuditConfig, InfraConfig
from core.config_manager import ConfigManager
from core.nats_client import BrokerUnavailableError, NATSEventBus
from microservices.customer_core_service.customer_service import (
    CustomerConflictError,
    CustomerService,
    CustomerServiceError,
    CustomerValidationError,
)
from microservices.customer_core_service.events.publishers import AuditEventPublisher
from microservices.customer_core_service.models import CustomerRecord
from tests.component.conftest import AUDIT_TOPIC

SENDING_MARKER = "sending payload for audit topic"
SENT_MARKER = "message sent to the audit topic"
FAILED_MARKER = "failed to send message to the audit topic"


def marker_index(messages, marker):
    for i, message in enumerate(messages):
        if marker in message:
            return i
    return -1


@pytest.fixture
def nats_config():
    settings = AppConfig(
        infrastructure=InfraConfig(nats_url="nats://127.0.0.1:4222"),
        audit=AuditConfig(topic=AUDIT_TOPIC, stream="test-customer-audit-stream"),
    )
    return ConfigManager("customer_core_service", settings=settings)


@pytest.fixture
def closed_port() -> int:
    """A local port with nothing listening on it"""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


# =============================================================================
# 1. Create and audit
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestCreate:
    """Create persists the record and starts an audit publish"""

    async def test_create_stores_and_returns_record(self, customer_service, mock_repository, rob):
        created = await customer_service.create(rob)

        assert created == rob
        assert await mock_repository.find_by_id(rob.id) == rob

    async def test_create_then_find_by_id_returns_equal_record(self, customer_service, tony):
        await customer_service.create(tony)

        found = await customer_service.find_by_id(tony.id)
        assert found == tony
        assert found.to_wire() == tony.to_wire()

    async def test_create_publishes_audit_event(
        self, customer_service, audit_publisher, mock_event_bus, rob
    ):
        await customer_service.create(rob)
        await audit_publisher.drain(timeout=2)

        events = mock_event_bus.get_published_by_subject(AUDIT_TOPIC)
        assert len(events) == 1
        envelope = events[0]["data"]
        assert envelope["type"] == "customer.created"
        assert envelope["source"] == "customer_core_service"
        assert envelope["data"]["id"] == rob.id
        assert envelope["data"]["accountNumber"] == rob.account_number
        assert envelope["data"]["firstName"] == "Rob"
        assert events[0]["headers"]["event_type"] == "customer.created"

    async def test_create_logs_markers_in_order(self, customer_service, audit_publisher, rob, caplog):
        caplog.set_level(logging.INFO)

        await customer_service.create(rob)
        await audit_publisher.drain(timeout=2)

        sending = marker_index(caplog.messages, SENDING_MARKER)
        sent = marker_index(caplog.messages, SENT_MARKER)
        assert sending >= 0
        assert sent > sending
        assert AUDIT_TOPIC in caplog.messages[sent]

    async def test_create_returns_before_broker_ack(
        self, customer_service, audit_publisher, mock_event_bus, rob, caplog
    ):
        caplog.set_level(logging.INFO)
        mock_event_bus.hold()

        created = await customer_service.create(rob)
        await asyncio.sleep(0)

        assert created == rob
        assert marker_index(caplog.messages, SENDING_MARKER) >= 0
        assert marker_index(caplog.messages, SENT_MARKER) == -1
        assert audit_publisher.pending == 1

        mock_event_bus.release()
        await audit_publisher.drain(timeout=2)

        assert marker_index(caplog.messages, SENT_MARKER) >= 0
        assert audit_publisher.pending == 0

    async def test_concurrent_creates_each_audited(
        self, customer_service, audit_publisher, mock_event_bus, caplog
    ):
        caplog.set_level(logging.INFO)
        records = [
            CustomerRecord(
                id=f"id-{i}",
                ssn=f"ssn-{i}",
                account_number=f"acct-{i}",
                first_name="Rob",
                last_name=f"Atkins{i}",
            )
            for i in range(20)
        ]

        await asyncio.gather(*(customer_service.create(r) for r in records))
        await audit_publisher.drain(timeout=2)

        published_ids = {e["data"]["data"]["id"] for e in mock_event_bus.published_events}
        assert published_ids == {r.id for r in records}
        assert len(await customer_service.find_all()) == 20
        assert sum(SENDING_MARKER in m for m in caplog.messages) == 20
        assert sum(SENT_MARKER in m for m in caplog.messages) == 20
        assert audit_publisher.pending == 0

    async def test_blank_id_rejected(self, customer_service, mock_repository):
        record = CustomerRecord.model_construct(
            id="   ", ssn="ssn-1", account_number="1", first_name="A", last_name="B"
        )

        with pytest.raises(CustomerValidationError):
            await customer_service.create(record)
        assert mock_repository.method_calls == []


# =============================================================================
# 2. Duplicate ids
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestDuplicateIds:
    """Re-creating an id never overwrites the stored record"""

    async def test_identical_record_replays_and_audits(
        self, customer_service, mock_repository, audit_publisher, mock_event_bus, seed_records, tony
    ):
        await mock_repository.save_all(seed_records)

        created = await customer_service.create(tony)
        await audit_publisher.drain(timeout=2)

        assert created == tony
        assert len(await mock_repository.find_all()) == 2
        assert len(mock_event_bus.published_events) == 1

    async def test_differing_record_conflicts_without_audit(
        self, customer_service, mock_repository, audit_publisher, mock_event_bus, rob, caplog
    ):
        caplog.set_level(logging.INFO)
        await mock_repository.save_all([rob])
        changed = rob.model_copy(update={"last_name": "Changed"})

        with pytest.raises(CustomerConflictError):
            await customer_service.create(changed)

        assert await mock_repository.find_by_id(rob.id) == rob
        assert audit_publisher.pending == 0
        assert mock_event_bus.published_events == []
        assert marker_index(caplog.messages, SENDING_MARKER) == -1


# =============================================================================
# 3. Failure isolation
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestFailureIsolation:
    """Store failures abort the create; broker failures never do"""

    async def test_store_failure_raises_without_audit(
        self, customer_service, mock_repository, audit_publisher, rob, caplog
    ):
        caplog.set_level(logging.INFO)
        mock_repository.set_error(RuntimeError("store down"))

        with pytest.raises(CustomerServiceError):
            await customer_service.create(rob)

        assert audit_publisher.pending == 0
        assert marker_index(caplog.messages, SENDING_MARKER) == -1

    async def test_broker_failure_does_not_fail_create(
        self, customer_service, audit_publisher, mock_event_bus, mock_repository, rob, caplog
    ):
        caplog.set_level(logging.INFO)
        mock_event_bus.set_error(BrokerUnavailableError("broker down"))

        created = await customer_service.create(rob)
        await audit_publisher.drain(timeout=2)

        assert created == rob
        assert await mock_repository.find_by_id(rob.id) == rob
        assert mock_event_bus.publish_attempts == 3
        assert marker_index(caplog.messages, FAILED_MARKER) >= 0
        assert marker_index(caplog.messages, SENT_MARKER) == -1

    async def test_transient_broker_failure_is_retried(
        self, customer_service, audit_publisher, mock_event_bus, rob, caplog
    ):
        caplog.set_level(logging.INFO)
        mock_event_bus.set_error(asyncio.TimeoutError(), times=1)

        await customer_service.create(rob)
        await audit_publisher.drain(timeout=2)

        assert mock_event_bus.publish_attempts == 2
        assert len(mock_event_bus.published_events) == 1
        assert marker_index(caplog.messages, SENT_MARKER) >= 0

    async def test_unreachable_broker_logs_failure_and_settles(
        self, mock_repository, nats_config, closed_port, rob, caplog
    ):
        caplog.set_level(logging.INFO)
        bus = NATSEventBus(
            "customer_core_service",
            config=nats_config,
            servers=f"nats://127.0.0.1:{closed_port}",
            connect_timeout=0.5,
        )
        publisher = AuditEventPublisher(bus, max_attempts=2, retry_wait=0.01)
        service = CustomerService(repository=mock_repository, publisher=publisher, audit_topic=AUDIT_TOPIC)

        created = await asyncio.wait_for(service.create(rob), timeout=1)
        await publisher.drain(timeout=5)

        assert created == rob
        assert publisher.pending == 0
        assert marker_index(caplog.messages, FAILED_MARKER) >= 0
        assert marker_index(caplog.messages, SENT_MARKER) == -1

    async def test_submit_failure_is_swallowed(self, mock_repository, rob):
        publisher = MagicMock()
        publisher.publish.side_effect = RuntimeError("no event loop")
        service = CustomerService(repository=mock_repository, publisher=publisher, audit_topic=AUDIT_TOPIC)

        created = await service.create(rob)

        assert created == rob
        publisher.publish.assert_called_once()

    async def test_create_without_publisher(self, mock_repository, rob):
        service = CustomerService(repository=mock_repository, publisher=None)

        assert await service.create(rob) == rob


# =============================================================================
# 4. Lookups
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestLookups:
    """Read paths query the store and never publish"""

    async def test_find_all_in_store_order(self, customer_service, mock_repository, seed_records, rob, tony):
        await mock_repository.save_all(seed_records)

        assert await customer_service.find_all() == [rob, tony]

    async def test_find_all_empty(self, customer_service):
        assert await customer_service.find_all() == []

    async def test_find_by_id_missing(self, customer_service):
        assert await customer_service.find_by_id("nope") is None

    async def test_find_by_ssn(self, customer_service, mock_repository, seed_records, tony):
        await mock_repository.save_all(seed_records)

        assert await customer_service.find_by_ssn("ssn-987654") == tony
        assert await customer_service.find_by_ssn("ssn-unknown") is None

    async def test_find_by_ssn_duplicates_returns_first_stored(self, customer_service, mock_repository, rob):
        twin = rob.model_copy(update={"id": "99999999", "first_name": "Bob"})
        await mock_repository.save_all([rob, twin])

        assert await customer_service.find_by_ssn(rob.ssn) == rob

    async def test_find_by_first_name(self, customer_service, mock_repository, seed_records, rob):
        other_rob = rob.model_copy(update={"id": "77777777", "ssn": "ssn-7777"})
        await mock_repository.save_all(seed_records + [other_rob])

        found = await customer_service.find_by_first_name("Rob")
        assert [r.id for r in found] == [rob.id, other_rob.id]

    async def test_find_by_first_name_is_exact(self, customer_service, mock_repository, seed_records):
        await mock_repository.save_all(seed_records)

        assert await customer_service.find_by_first_name("rob") == []
        assert await customer_service.find_by_first_name("Ro") == []

    async def test_reads_do_not_publish(
        self, customer_service, mock_repository, audit_publisher, mock_event_bus, seed_records
    ):
        await mock_repository.save_all(seed_records)

        await customer_service.find_all()
        await customer_service.find_by_id("12345679")
        await customer_service.find_by_ssn("ssn-0023")
        await customer_service.find_by_first_name("Tony")

        assert audit_publisher.pending == 0
        assert mock_event_bus.publish_attempts == 0


# =============================================================================
# 5. Health
# =============================================================================


@pytest.mark.component
@pytest.mark.asyncio
class TestHealth:

    async def test_healthy(self, customer_service, mock_event_bus):
        await mock_event_bus.connect()

        status = await customer_service.health_check()

        assert status["status"] == "healthy"
        assert status["database"] == "connected"
        assert status["broker"] == "connected"
        assert status["pending_audit_events"] == 0

    async def test_degraded_when_store_unhealthy(self, customer_service, mock_repository):
        mock_repository.healthy = False

        status = await customer_service.health_check()

        assert status["status"] == "degraded"
        assert status["broker"] == "disconnected"

    async def test_broker_disabled(self, mock_repository):
        service = CustomerService(repository=mock_repository, publisher=None)

        status = await service.health_check()
        assert status["broker"] == "disabled"
