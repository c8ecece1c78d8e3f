#!/usr/bin/env python3
"""Service configuration for the customer core microservice

HTTP binding for the service itself plus the audit side channel settings
(topic, stream, publish timeout and retry policy).
"""
import os
from dataclasses import dataclass

def _bool(val: str) -> bool:
    return val.lower() == "true"

def _int(val: str, default: int) -> int:
    try:
        return int(val) if val else default
    except ValueError:
        return default

def _float(val: str, default: float) -> float:
    try:
        return float(val) if val else default
    except ValueError:
        return default


@dataclass
class ServiceConfig:
    """HTTP binding for the microservice"""
    service_name: str = "customer_core_service"
    service_host: str = "0.0.0.0"
    service_port: int = 8240
    version: str = "1.0.0"

    @classmethod
    def from_env(cls) -> 'ServiceConfig':
        """Load service configuration from environment variables"""
        return cls(
            service_name=os.getenv("SERVICE_NAME", "customer_core_service"),
            service_host=os.getenv("SERVICE_HOST", "0.0.0.0"),
            service_port=_int(os.getenv("SERVICE_PORT", "8240"), 8240),
            version=os.getenv("SERVICE_VERSION", "1.0.0"),
        )


@dataclass
class AuditConfig:
    """Audit event side channel"""

    # ===========================================
    # Destination
    # ===========================================
    nats_enabled: bool = True
    topic: str = "customer-core.audit"
    stream: str = "customer-audit-stream"
    max_msgs: int = 100000

    # ===========================================
    # Delivery policy
    # ===========================================
    publish_timeout: float = 5.0
    max_attempts: int = 3
    retry_wait: float = 0.5
    drain_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> 'AuditConfig':
        """Load audit configuration from environment variables"""
        return cls(
            nats_enabled=_bool(os.getenv("NATS_ENABLED", "true")),
            topic=os.getenv("AUDIT_TOPIC", "customer-core.audit"),
            stream=os.getenv("AUDIT_STREAM", "customer-audit-stream"),
            max_msgs=_int(os.getenv("AUDIT_STREAM_MAX_MSGS", "100000"), 100000),
            publish_timeout=_float(os.getenv("AUDIT_PUBLISH_TIMEOUT", "5.0"), 5.0),
            max_attempts=max(1, _int(os.getenv("AUDIT_MAX_ATTEMPTS", "3"), 3)),
            retry_wait=_float(os.getenv("AUDIT_RETRY_WAIT", "0.5"), 0.5),
            drain_timeout=_float(os.getenv("AUDIT_DRAIN_TIMEOUT", "10.0"), 10.0),
        )
