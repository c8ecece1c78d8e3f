"""
Customer Core Service Protocols (Interfaces)

These interfaces define contracts for dependency injection.
NO import-time I/O dependencies - safe to import anywhere.
"""
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

# Import only models (no I/O dependencies)
from .models import CustomerRecord


class DuplicateCustomerError(Exception):
    """A record with the same primary key already exists"""
    pass


class CustomerNotFoundError(Exception):
    """Customer not found"""
    pass


@runtime_checkable
class CustomerRepositoryProtocol(Protocol):
    """
    Interface for the customer record store.

    save_all/delete_all are administrative operations used by test setup;
    they are not part of the create/read path.
    """

    async def save(self, record: CustomerRecord) -> CustomerRecord:
        """Insert a record, raising DuplicateCustomerError if the id exists"""
        ...

    async def save_all(self, records: Sequence[CustomerRecord]) -> List[CustomerRecord]:
        """Bulk upsert"""
        ...

    async def delete_all(self) -> int:
        """Remove every record, returning how many were removed"""
        ...

    async def find_by_id(self, customer_id: str) -> Optional[CustomerRecord]:
        """Exact primary key lookup"""
        ...

    async def find_all(self) -> List[CustomerRecord]:
        """Every record in store order"""
        ...

    async def find_by_field(self, field_name: str, value: str) -> List[CustomerRecord]:
        """Exact match on a secondary lookup field, in store order"""
        ...

    async def initialize(self) -> None:
        """Prepare the store (create tables)"""
        ...

    async def health_check(self) -> bool:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class EventBusProtocol(Protocol):
    """Interface for the broker connection - no I/O imports"""

    async def publish(
        self,
        subject: str,
        payload: bytes,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        """Publish and return the broker acknowledgement"""
        ...

    async def flush(self, timeout: float = 2.0) -> None:
        ...

    async def close(self) -> None:
        ...


@runtime_checkable
class AuditPublisherProtocol(Protocol):
    """Interface for the audit event publisher"""

    def publish(self, topic: str, event: Any) -> Any:
        """Start publishing without waiting for the broker"""
        ...

    async def drain(self, timeout: Optional[float] = None) -> int:
        """Wait for in-flight publishes"""
        ...
