#!/usr/bin/env python3
"""
Core Module for Microservices Architecture

Shared infrastructure for the customer core microservice.

COMPONENTS:
    - config/: Environment-driven configuration (python-dotenv)
    - config_manager.py: Per-service configuration access
    - logger.py: Service logging setup
    - postgres_client.py: asyncpg pool wrapper for repositories
    - nats_client.py: NATS JetStream event bus

USAGE:
    from core.config_manager import ConfigManager

    # Initialize configuration for a service
    config = ConfigManager("customer_core_service")
"""

from .config_manager import ConfigManager

__all__ = [
    "ConfigManager",
]

__version__ = "1.0.0"
