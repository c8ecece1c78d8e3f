"""
Customer Core Service Factory

Factory functions for creating service instances with real dependencies.
This is the ONLY place that imports I/O-dependent modules.

Usage:
    from .factory import create_customer_service
    service = create_customer_service(config, event_bus)
"""
from typing import Optional

from core.config_manager import ConfigManager

from .customer_service import CustomerService
from .events.publishers import AuditEventPublisher


def create_event_bus(config: Optional[ConfigManager] = None):
    """
    Create the process-wide NATS event bus, or None when publishing is disabled.

    The bus connects lazily, so this does no network I/O.
    """
    from core.nats_client import NATSEventBus

    if config is None:
        config = ConfigManager("customer_core_service")

    if not config.get_audit_config().nats_enabled:
        return None
    return NATSEventBus(service_name="customer_core_service", config=config)


def create_customer_service(
    config: Optional[ConfigManager] = None,
    event_bus=None,
    repository=None,
) -> CustomerService:
    """
    Create CustomerService with real dependencies.

    This function imports the real repository (which has I/O dependencies).
    Use this in production, NOT in tests.

    Args:
        config: Configuration manager
        event_bus: Event bus the audit publisher sends through
        repository: Optional repository override

    Returns:
        CustomerService instance with real dependencies
    """
    if config is None:
        config = ConfigManager("customer_core_service")

    if repository is None:
        # Import real repository here (not at module level)
        from .customer_repository import CustomerRepository

        repository = CustomerRepository(config=config)

    audit = config.get_audit_config()
    publisher = AuditEventPublisher(
        event_bus,
        max_attempts=audit.max_attempts,
        retry_wait=audit.retry_wait,
        publish_timeout=audit.publish_timeout,
    )

    return CustomerService(
        repository=repository,
        publisher=publisher,
        audit_topic=audit.topic,
    )
