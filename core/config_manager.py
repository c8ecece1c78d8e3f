"""
Configuration Manager

Per-service view over the environment-driven configuration in core.config.

Usage:
    from core.config_manager import ConfigManager

    config_manager = ConfigManager("customer_core_service")
    service_config = config_manager.get_service_config()
    audit_config = config_manager.get_audit_config()
"""

import logging
from typing import Optional

from core.config import (
    AppConfig,
    AuditConfig,
    InfraConfig,
    LoggingConfig,
    ServiceConfig,
    reload_settings,
)

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Configuration access for a single microservice.

    Settings are read from the environment when the manager is created, so a
    test can set variables and build a fresh manager.
    """

    def __init__(self, service_name: str, settings: Optional[AppConfig] = None):
        self.service_name = service_name
        self.settings = settings or reload_settings()

    @property
    def environment(self) -> str:
        return self.settings.environment

    def get_service_config(self) -> ServiceConfig:
        """HTTP binding for the service"""
        return self.settings.service

    def get_infra_config(self) -> InfraConfig:
        """Record store and broker endpoints"""
        return self.settings.infrastructure

    def get_audit_config(self) -> AuditConfig:
        """Audit side channel settings"""
        return self.settings.audit

    def get_logging_config(self) -> LoggingConfig:
        return self.settings.logging

    def get_postgres_dsn(self) -> str:
        """Build an asyncpg DSN from infrastructure settings"""
        infra = self.settings.infrastructure
        return (
            f"postgresql://{infra.postgres_user}:{infra.postgres_password}"
            f"@{infra.postgres_host}:{infra.postgres_port}/{infra.postgres_db}"
        )

    def get_nats_url(self) -> str:
        return self.settings.infrastructure.nats_servers

    def __repr__(self) -> str:
        return f"ConfigManager(service_name={self.service_name!r}, environment={self.environment!r})"
