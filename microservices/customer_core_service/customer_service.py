"""
Customer Core Service - Business Logic

Customer record creation with audit publishing, and record lookups.

Uses dependency injection for testability.
- Repository is injected, not created at import time
- Audit publisher is injected; it owns the broker connection
"""

import logging
from typing import Any, Dict, List, Optional

# Import protocols (no I/O dependencies) - NOT the concrete repository!
from .protocols import (
    AuditPublisherProtocol,
    CustomerRepositoryProtocol,
    DuplicateCustomerError,
)
from .models import CustomerRecord
from .events.models import build_customer_created_event

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_TOPIC = "customer-core.audit"


class CustomerServiceError(Exception):
    """Base exception for service errors"""
    pass


class CustomerValidationError(CustomerServiceError):
    """Validation error"""
    pass


class CustomerConflictError(CustomerServiceError):
    """A different record is already stored under the same id"""
    pass


class CustomerService:
    """
    Customer service business logic

    Persists records through the repository and hands every successful
    create to the audit publisher. Read operations only touch the repository.
    """

    def __init__(
        self,
        repository: Optional[CustomerRepositoryProtocol] = None,
        publisher: Optional[AuditPublisherProtocol] = None,
        audit_topic: str = DEFAULT_AUDIT_TOPIC,
    ):
        """
        Initialize service with injected dependencies.

        Args:
            repository: Repository (inject mock for testing)
            publisher: Audit publisher (None disables auditing)
            audit_topic: Subject audit events are published to
        """
        self.repo = repository
        self.publisher = publisher
        self.audit_topic = audit_topic

    # ==================== Create ====================

    async def create(self, record: CustomerRecord) -> CustomerRecord:
        """
        Store a new customer record and start its audit publish.

        Re-creating a record that is already stored unchanged returns the
        stored record and audits it again.

        Raises:
            CustomerValidationError: record id is blank
            CustomerConflictError: a different record exists under the same id
            CustomerServiceError: the store failed
        """
        if not record.id or not record.id.strip():
            raise CustomerValidationError("Customer id is required")

        try:
            saved = await self.repo.save(record)
            logger.info(f"Created customer {saved.id}")
        except DuplicateCustomerError:
            saved = await self._resolve_duplicate(record)
        except CustomerServiceError:
            raise
        except Exception as e:
            logger.error(f"Failed to store customer {record.id}: {e}")
            raise CustomerServiceError(f"Failed to store customer: {e}") from e

        self._submit_audit(saved)
        return saved

    async def _resolve_duplicate(self, record: CustomerRecord) -> CustomerRecord:
        try:
            existing = await self.repo.find_by_id(record.id)
        except Exception as e:
            logger.error(f"Failed to load existing customer {record.id}: {e}")
            raise CustomerServiceError(f"Failed to store customer: {e}") from e

        if existing is None or existing != record:
            logger.warning(f"Rejected create for customer {record.id}: id already in use")
            raise CustomerConflictError(f"Customer {record.id} already exists with different data")

        logger.info(f"Customer {record.id} already stored unchanged, replaying create")
        return existing

    def _submit_audit(self, record: CustomerRecord) -> None:
        if self.publisher is None:
            logger.debug(f"Audit publishing disabled, skipping customer {record.id}")
            return
        try:
            event = build_customer_created_event(record, self.audit_topic)
            self.publisher.publish(self.audit_topic, event)
        except Exception as e:
            logger.error(f"Failed to submit audit event for customer {record.id}: {e}")

    # ==================== Queries ====================

    async def find_all(self) -> List[CustomerRecord]:
        return await self.repo.find_all()

    async def find_by_id(self, customer_id: str) -> Optional[CustomerRecord]:
        return await self.repo.find_by_id(customer_id)

    async def find_by_ssn(self, ssn: str) -> Optional[CustomerRecord]:
        """First record with this ssn in store order, or None"""
        matches = await self.repo.find_by_field("ssn", ssn)
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(f"{len(matches)} customers share one ssn, returning {matches[0].id}")
        return matches[0]

    async def find_by_first_name(self, first_name: str) -> List[CustomerRecord]:
        return await self.repo.find_by_field("first_name", first_name)

    # ==================== Health ====================

    async def health_check(self) -> Dict[str, Any]:
        try:
            database_ok = await self.repo.health_check()
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            database_ok = False

        event_bus = getattr(self.publisher, "event_bus", None)
        if self.publisher is None or event_bus is None:
            broker = "disabled"
        elif getattr(event_bus, "is_connected", False):
            broker = "connected"
        else:
            broker = "disconnected"

        return {
            "status": "healthy" if database_ok else "degraded",
            "database": "connected" if database_ok else "disconnected",
            "broker": broker,
            "pending_audit_events": getattr(self.publisher, "pending", 0),
        }
