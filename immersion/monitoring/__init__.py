"""
Immersion - Monitoring Module

Structured transition logging.

Usage:
    from immersion.monitoring import configure_logging

    log = configure_logging(level="info", json_format=False)
"""

from immersion.monitoring.logging import (
    LogLevel,
    LogRecord,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "LogLevel",
    "LogRecord",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
