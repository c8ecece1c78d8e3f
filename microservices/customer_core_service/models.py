"""
Customer Core Service Models

Independent models for the customer record microservice.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Wire (camelCase) name for each secondary lookup field the store supports
LOOKUP_FIELDS = {
    "ssn": "ssn",
    "first_name": "firstName",
}


class CustomerRecord(BaseModel):
    """
    Customer record.

    Serialized with camelCase names (accountNumber, firstName, lastName);
    snake_case attribute names are accepted on input as well. Records are
    immutable once created.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "12345679",
                "ssn": "ssn-0023",
                "accountNumber": "9876534",
                "firstName": "Rob",
                "lastName": "Atkins",
            }
        },
    )

    id: str = Field(..., description="Customer ID (primary key, caller supplied)")
    ssn: str = Field(..., description="Social security number (secondary lookup key)")
    account_number: str = Field(..., alias="accountNumber", description="Account number")
    first_name: str = Field(..., alias="firstName", description="First name (secondary lookup key)")
    last_name: str = Field(..., alias="lastName", description="Last name")

    @field_validator("id")
    @classmethod
    def validate_id(cls, v: str) -> str:
        """Customer ID must not be blank"""
        if not v or not v.strip():
            raise ValueError("id cannot be empty")
        return v

    def to_wire(self) -> Dict[str, Any]:
        """Serialize using the camelCase wire names"""
        return self.model_dump(by_alias=True)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CustomerRecord":
        """Build a record from a store row (snake_case column names)"""
        return cls(
            id=row["id"],
            ssn=row["ssn"],
            account_number=row["account_number"],
            first_name=row["first_name"],
            last_name=row["last_name"],
        )


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str
    database: str
    broker: str
    pending_audit_events: int = 0
    timestamp: Optional[str] = None


def normalize_lookup_field(field_name: str) -> str:
    """
    Map a lookup field name (snake_case or wire name) to its store column.

    Raises:
        ValueError: field is not a supported secondary lookup field
    """
    for column, wire_name in LOOKUP_FIELDS.items():
        if field_name in (column, wire_name):
            return column
    raise ValueError(f"Unsupported lookup field: {field_name}")
