"""
API Test Layer Configuration

Runs the FastAPI application in-process with the record store and broker
replaced by mocks. The TestClient is entered as a context manager so the
application lifespan runs and background audit publishes complete on the
client's event loop.
"""
import logging
import time

import pytest
from fastapi.testclient import TestClient

from microservices.customer_core_service.main import CustomerCoreMicroservice, create_app
from tests.component.mocks import MockCustomerRepository, MockEventBus

SENDING_MARKER = "sending payload for audit topic"
SENT_MARKER = "message sent to the audit topic"
FAILED_MARKER = "failed to send message to the audit topic"


@pytest.fixture
def mock_repository() -> MockCustomerRepository:
    return MockCustomerRepository()


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    return MockEventBus()


@pytest.fixture
def microservice(mock_repository, mock_event_bus) -> CustomerCoreMicroservice:
    return CustomerCoreMicroservice(repository=mock_repository, event_bus=mock_event_bus)


@pytest.fixture
def audit_topic(microservice) -> str:
    return microservice.config.get_audit_config().topic


@pytest.fixture
def client(microservice, caplog):
    caplog.set_level(logging.INFO)
    app = create_app(microservice)
    with TestClient(app) as test_client:
        yield test_client


def wait_for_log(caplog, marker: str, count: int = 1, timeout: float = 3.0) -> bool:
    """Poll captured logs until the marker has appeared count times"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if sum(marker in m for m in caplog.messages) >= count:
            return True
        time.sleep(0.01)
    return False
