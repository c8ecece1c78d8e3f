"""
Customer Core Service - Main Application

Customer record microservice: create and look up customer records, with an
audit event published to NATS JetStream for every create.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Path, Query, Request

from core.config_manager import ConfigManager
from core.logger import setup_service_logger

from .customer_service import (
    CustomerConflictError,
    CustomerService,
    CustomerValidationError,
)
from .factory import create_customer_service, create_event_bus
from .models import CustomerRecord, HealthResponse
from .protocols import CustomerNotFoundError

SERVICE_NAME = "customer_core_service"

# Initialize config
config_manager = ConfigManager(SERVICE_NAME)
config = config_manager.get_service_config()

# Setup logger
app_logger = setup_service_logger(SERVICE_NAME, config_manager.get_logging_config())
logger = app_logger


# Service instance
class CustomerCoreMicroservice:
    """
    Owns the process-wide resources: record store, broker connection and the
    customer service built on them.

    Dependencies passed in are used as-is; missing ones are created from
    configuration during initialize().
    """

    def __init__(
        self,
        config: Optional[ConfigManager] = None,
        repository=None,
        event_bus=None,
    ):
        self.config = config or config_manager
        self.repository = repository
        self.event_bus = event_bus
        self.service: Optional[CustomerService] = None

    async def initialize(self):
        if self.repository is None:
            from .customer_repository import CustomerRepository

            self.repository = CustomerRepository(config=self.config)

        await self.repository.initialize()
        logger.info("Customer store initialized")

        if self.event_bus is None:
            self.event_bus = create_event_bus(self.config)

        if self.event_bus is None:
            logger.warning("NATS disabled, audit events will not be delivered")
        elif hasattr(self.event_bus, "connect"):
            try:
                await self.event_bus.connect()
                logger.info("Event bus initialized successfully")
            except Exception as e:
                # Publishing reconnects on demand; startup does not depend on the broker
                logger.warning(f"Failed to connect event bus: {e}. Will retry on publish.")

        self.service = create_customer_service(
            config=self.config,
            event_bus=self.event_bus,
            repository=self.repository,
        )
        logger.info("Customer core service initialized")

    async def shutdown(self):
        if self.service and self.service.publisher:
            drain_timeout = self.config.get_audit_config().drain_timeout
            await self.service.publisher.drain(timeout=drain_timeout)

        if self.event_bus:
            try:
                await self.event_bus.flush()
            except Exception as e:
                logger.warning(f"Error flushing event bus: {e}")
            try:
                await self.event_bus.close()
                logger.info("Customer event bus closed")
            except Exception as e:
                logger.error(f"Error closing event bus: {e}")

        if self.repository:
            try:
                await self.repository.close()
            except Exception as e:
                logger.error(f"Error closing customer store: {e}")

        logger.info("Customer core service shutting down")


# =============================================================================
# Dependencies
# =============================================================================


async def get_customer_service(request: Request) -> CustomerService:
    """Get the customer service instance"""
    microservice: CustomerCoreMicroservice = request.app.state.microservice
    if microservice.service is None:
        raise HTTPException(status_code=503, detail="Customer service not initialized")
    return microservice.service


router = APIRouter()


# =============================================================================
# Health Check
# =============================================================================


@router.get("/health", response_model=HealthResponse)
async def health_check(service: CustomerService = Depends(get_customer_service)):
    """Service health including record store and broker status"""
    status = await service.health_check()
    return HealthResponse(
        service=SERVICE_NAME,
        version=config.version,
        timestamp=datetime.now(timezone.utc).isoformat(),
        **status,
    )


# =============================================================================
# Customer Endpoints
# =============================================================================


@router.post("/api/customer-core", status_code=201)
async def create_customer(
    record: CustomerRecord = Body(...),
    service: CustomerService = Depends(get_customer_service),
):
    """
    Create a customer record

    The audit event is published in the background; the response does not
    wait for the broker.
    """
    try:
        created = await service.create(record)
        return created.to_wire()

    except CustomerValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except CustomerConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error creating customer: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/api/customer-core")
async def list_customers(service: CustomerService = Depends(get_customer_service)) -> List[dict]:
    """List every customer record"""
    try:
        records = await service.find_all()
        return [r.to_wire() for r in records]
    except Exception as e:
        logger.error(f"Error listing customers: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


# Declared before /{customer_id} so these paths are not read as ids


@router.get("/api/customer-core/ssn")
async def get_customer_by_ssn(
    ssn: str = Query(..., description="Social security number"),
    service: CustomerService = Depends(get_customer_service),
):
    """Get the customer with this ssn"""
    try:
        record = await service.find_by_ssn(ssn)
        if record is None:
            raise CustomerNotFoundError("Customer not found")
        return record.to_wire()

    except CustomerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting customer by ssn: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/api/customer-core/first-name")
async def get_customers_by_first_name(
    first_name: str = Query(..., alias="firstName", description="First name (exact match)"),
    service: CustomerService = Depends(get_customer_service),
) -> List[dict]:
    """Get every customer with this first name"""
    try:
        records = await service.find_by_first_name(first_name)
        return [r.to_wire() for r in records]
    except Exception as e:
        logger.error(f"Error getting customers by first name: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


@router.get("/api/customer-core/{customer_id}")
async def get_customer(
    customer_id: str = Path(..., description="Customer ID"),
    service: CustomerService = Depends(get_customer_service),
):
    """Get a customer by id"""
    try:
        record = await service.find_by_id(customer_id)
        if record is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found")
        return record.to_wire()

    except CustomerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error getting customer: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


# =============================================================================
# Application
# =============================================================================


def create_app(microservice: Optional[CustomerCoreMicroservice] = None) -> FastAPI:
    """Build the FastAPI application around a microservice instance"""
    microservice = microservice or CustomerCoreMicroservice()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        await microservice.initialize()
        yield
        # Shutdown
        await microservice.shutdown()

    app = FastAPI(
        title="Customer Core Service",
        description="Customer record management with audit events",
        version=config.version,
        lifespan=lifespan,
    )
    app.state.microservice = microservice
    app.include_router(router)
    return app


# Global instance
customer_core_microservice = CustomerCoreMicroservice()
app = create_app(customer_core_microservice)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=config.service_host,
        port=config.service_port,
        log_level=config_manager.get_logging_config().log_level.lower(),
    )
