"""
Component Test Layer Configuration

Structure:
    tests/component/
    ├── customer_core/   Service and audit publisher behaviour
    └── mocks/           Mock implementations

Usage:
    pytest tests/component -v
"""
import pytest

from microservices.customer_core_service.customer_service import CustomerService
from microservices.customer_core_service.events.publishers import AuditEventPublisher
from tests.component.mocks import MockCustomerRepository, MockEventBus

AUDIT_TOPIC = "test.customer-core.audit"


@pytest.fixture
def mock_repository() -> MockCustomerRepository:
    return MockCustomerRepository()


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    return MockEventBus()


@pytest.fixture
def audit_publisher(mock_event_bus) -> AuditEventPublisher:
    return AuditEventPublisher(mock_event_bus, max_attempts=3, retry_wait=0.01, publish_timeout=1.0)


@pytest.fixture
def customer_service(mock_repository, audit_publisher) -> CustomerService:
    return CustomerService(
        repository=mock_repository,
        publisher=audit_publisher,
        audit_topic=AUDIT_TOPIC,
    )
