"""
Root conftest.py - Global fixtures and configuration for all test layers.

Test Layers:
    - api/        : HTTP contract tests (FastAPI app with mocked store and broker)
    - component/  : Component tests (service + publisher, mocked dependencies)
    - unit/       : Unit tests (models, config, adapters over mocked clients)
"""
import os
import sys
from typing import Any, Dict, List

import pytest

# Set testing environment BEFORE any imports
os.environ["ENV"] = "testing"
os.environ["ENVIRONMENT"] = "testing"
os.environ["NATS_ENABLED"] = "false"

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from microservices.customer_core_service.models import CustomerRecord


# =============================================================================
# Test Data
# =============================================================================

ROB = {
    "id": "12345679",
    "ssn": "ssn-0023",
    "accountNumber": "9876534",
    "firstName": "Rob",
    "lastName": "Atkins",
}

TONY = {
    "id": "456789032",
    "ssn": "ssn-987654",
    "accountNumber": "67654387",
    "firstName": "Tony",
    "lastName": "Stark",
}


@pytest.fixture
def rob_payload() -> Dict[str, Any]:
    return dict(ROB)


@pytest.fixture
def tony_payload() -> Dict[str, Any]:
    return dict(TONY)


@pytest.fixture
def rob(rob_payload) -> CustomerRecord:
    return CustomerRecord(**rob_payload)


@pytest.fixture
def tony(tony_payload) -> CustomerRecord:
    return CustomerRecord(**tony_payload)


@pytest.fixture
def seed_records(rob, tony) -> List[CustomerRecord]:
    return [rob, tony]


# =============================================================================
# Markers
# =============================================================================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "api: API contract tests")
    config.addinivalue_line("markers", "component: Component tests")
    config.addinivalue_line("markers", "unit: Unit tests")
