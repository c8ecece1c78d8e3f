"""
Component Test Mocks

Shared mock implementations for component testing.
These mocks replace real I/O dependencies (database, NATS).
"""

from .customer_mocks import MockCustomerRepository
from .db_mock import MockAsyncPostgresClient
from .nats_mock import MockEventBus

__all__ = [
    'MockAsyncPostgresClient',
    'MockCustomerRepository',
    'MockEventBus',
]
