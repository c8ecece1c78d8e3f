"""
Customer Core Service Events

Audit events published when a customer record is created
"""

from .models import (
    CustomerAuditEventData,
    build_customer_created_event,
    create_customer_audit_event_data,
)
from .publishers import AuditEventPublisher

__all__ = [
    "AuditEventPublisher",
    "CustomerAuditEventData",
    "build_customer_created_event",
    "create_customer_audit_event_data",
]
