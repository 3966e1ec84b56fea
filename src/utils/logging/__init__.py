"""
Structured logging configuration for the index advisor.

Usage:
    from utils.logging import setup_logging, get_logger

    # Once at startup
    setup_logging(level="INFO", json_format=True)

    logger = get_logger(__name__)
    logger.info("Plan estimated", extra={"query": "ticket_listing", "scan_kind": "index-scan"})
"""

from .config import configure_from_env, get_logger, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "get_logger",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
