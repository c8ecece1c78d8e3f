"""
Customer Core Service Microservice

Customer record storage and lookup with audit events for every create
"""

from .client import CustomerCoreClient
from .customer_service import (
    CustomerConflictError,
    CustomerService,
    CustomerServiceError,
    CustomerValidationError,
)
from .models import CustomerRecord

__version__ = "1.0.0"
__all__ = [
    "CustomerCoreClient",
    "CustomerService",
    "CustomerServiceError",
    "CustomerValidationError",
    "CustomerConflictError",
    "CustomerRecord",
]
