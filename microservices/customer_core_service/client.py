"""
Customer Core Service Client

Client library for other microservices to call the customer core service
"""

import logging
import os
from typing import Any, Dict, List, Optional

import httpx

from .customer_service import CustomerConflictError, CustomerServiceError

logger = logging.getLogger(__name__)


class CustomerCoreClient:
    """Customer Core Service HTTP client"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the customer core client

        Args:
            base_url: Base URL of the service (defaults to CUSTOMER_CORE_URL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        base_url = base_url or os.getenv("CUSTOMER_CORE_URL", "http://localhost:8240")
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    # =============================================================================
    # Customer Management
    # =============================================================================

    async def create_customer(
        self,
        customer_id: str,
        ssn: str,
        account_number: str,
        first_name: str,
        last_name: str,
    ) -> Dict[str, Any]:
        """
        Create a customer record

        Returns:
            The stored record under its wire names

        Raises:
            CustomerConflictError: a different record already uses this id
            CustomerServiceError: any other failure

        Example:
            >>> async with CustomerCoreClient() as client:
            ...     record = await client.create_customer(
            ...         customer_id="12345679",
            ...         ssn="ssn-0023",
            ...         account_number="9876534",
            ...         first_name="Rob",
            ...         last_name="Atkins",
            ...     )
        """
        data = {
            "id": customer_id,
            "ssn": ssn,
            "accountNumber": account_number,
            "firstName": first_name,
            "lastName": last_name,
        }
        try:
            response = await self.client.post("/api/customer-core", json=data)
            response.raise_for_status()
            return response.json()

        except httpx.HTTPStatusError as e:
            if e.response.status_code == 409:
                raise CustomerConflictError(f"Customer {customer_id} already exists") from e
            logger.error(f"Failed to create customer: {e.response.status_code} - {e.response.text}")
            raise CustomerServiceError(f"Create failed with status {e.response.status_code}") from e

    async def list_customers(self) -> List[Dict[str, Any]]:
        """List every customer record"""
        response = await self.client.get("/api/customer-core")
        response.raise_for_status()
        return response.json()

    async def get_customer(self, customer_id: str) -> Optional[Dict[str, Any]]:
        """Get a customer by id, or None when it does not exist"""
        return await self._get_optional(f"/api/customer-core/{customer_id}")

    async def get_customer_by_ssn(self, ssn: str) -> Optional[Dict[str, Any]]:
        """Get the customer with this ssn, or None"""
        return await self._get_optional("/api/customer-core/ssn", params={"ssn": ssn})

    async def get_customers_by_first_name(self, first_name: str) -> List[Dict[str, Any]]:
        """Get every customer with this first name"""
        response = await self.client.get(
            "/api/customer-core/first-name", params={"firstName": first_name}
        )
        if response.status_code == 404:
            return []
        response.raise_for_status()
        return response.json()

    async def _get_optional(
        self, path: str, params: Optional[Dict[str, str]] = None
    ) -> Optional[Dict[str, Any]]:
        response = await self.client.get(path, params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()
        return response.json()

    # =============================================================================
    # Health Check
    # =============================================================================

    async def health_check(self) -> bool:
        """Check service health"""
        try:
            response = await self.client.get("/health")
            return response.status_code == 200
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return False
