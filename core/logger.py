"""
Service Logger Setup

Configures stdlib logging for a microservice from LoggingConfig.

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("customer_core_service")
"""

import logging
import sys
from typing import Optional

from core.config import LoggingConfig

_HANDLER_MARK = "_customer_core_handler"


def _has_service_handler(target: logging.Logger, kind: str) -> bool:
    return any(getattr(h, _HANDLER_MARK, None) == kind for h in target.handlers)


def setup_service_logger(
    service_name: str,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure logging for a service and return its logger.

    Handlers are attached to the root logger once so module loggers
    (logging.getLogger(__name__)) share the same output. Calling this more
    than once does not duplicate handlers.

    Args:
        service_name: Logger name for the service
        config: Logging configuration (defaults to environment)

    Returns:
        Logger named after the service
    """
    config = config or LoggingConfig.from_env()
    level = getattr(logging, config.log_level.upper(), logging.INFO)
    formatter = logging.Formatter(config.log_format)

    root = logging.getLogger()
    root.setLevel(level)

    if config.enable_console and not _has_service_handler(root, "console"):
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        setattr(console_handler, _HANDLER_MARK, "console")
        root.addHandler(console_handler)

    if config.log_file and not _has_service_handler(root, "file"):
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(formatter)
        setattr(file_handler, _HANDLER_MARK, "file")
        root.addHandler(file_handler)

    # Quiet down chatty client libraries
    logging.getLogger("nats").setLevel(max(level, logging.WARNING))
    logging.getLogger("asyncpg").setLevel(max(level, logging.WARNING))

    logger = logging.getLogger(service_name)
    logger.setLevel(level)
    return logger
