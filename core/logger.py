"""
Service Logger Setup

Configures the root logger of a microservice process from LoggingConfig.
Modules keep using ``logging.getLogger(__name__)``; this only installs
handlers and levels once at startup.
"""

import logging
import sys
from typing import Optional

from core.config.logging_config import LoggingConfig

_configured_services = set()


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure logging for a service and return its logger

    Args:
        service_name: Logger name, usually the service package name
        level: Overrides config.log_level when given
        config: Logging configuration (loaded from env if not provided)

    Returns:
        The service logger
    """
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)

    if service_name not in _configured_services:
        formatter = logging.Formatter(config.log_format)

        if config.enable_console:
            console = logging.StreamHandler(sys.stdout)
            console.setFormatter(formatter)
            root.addHandler(console)

        if config.log_file:
            file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)

        # httpx logs every request at INFO
        logging.getLogger("httpx").setLevel(max(log_level, logging.WARNING))
        _configured_services.add(service_name)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)
    return logger


__all__ = ["setup_service_logger"]
