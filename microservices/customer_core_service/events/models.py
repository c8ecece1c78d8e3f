"""
Customer Core Service Event Models

Audit event data published after a customer record is created.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from core.nats_client import Event, EventType, ServiceSource

from ..models import CustomerRecord

# ============================================================================
# Customer Audit Event Models
# ============================================================================


class CustomerAuditEventData(BaseModel):
    """
    Event: customer.created
    Snapshot of a customer record at creation time
    """

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "456789032",
                "ssn": "ssn-987654",
                "accountNumber": "67654387",
                "firstName": "Tony",
                "lastName": "Stark",
                "auditedAt": "2025-11-14T10:00:00Z",
            }
        },
    )

    id: str = Field(..., description="Customer ID")
    ssn: str = Field(..., description="Social security number")
    account_number: str = Field(..., alias="accountNumber")
    first_name: str = Field(..., alias="firstName")
    last_name: str = Field(..., alias="lastName")
    audited_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="auditedAt")


# ============================================================================
# Helper Functions
# ============================================================================


def create_customer_audit_event_data(record: CustomerRecord) -> CustomerAuditEventData:
    """Create customer audit event data from a stored record"""
    return CustomerAuditEventData(
        id=record.id,
        ssn=record.ssn,
        account_number=record.account_number,
        first_name=record.first_name,
        last_name=record.last_name,
    )


def build_customer_created_event(record: CustomerRecord, topic: str) -> Event:
    """Wrap the audit snapshot in the standard event envelope"""
    event_data = create_customer_audit_event_data(record)
    return Event(
        event_type=EventType.CUSTOMER_CREATED,
        source=ServiceSource.CUSTOMER_CORE_SERVICE,
        data=event_data.model_dump(by_alias=True, mode="json"),
        subject=topic,
        metadata={"customer_id": record.id},
    )
