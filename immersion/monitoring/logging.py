"""
Structured logging for mode transitions.
"""

from __future__ import annotations

import json
import logging
import sys
import threading
import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, TextIO


class LogLevel(Enum):
    """Log levels."""

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def numeric(self) -> int:
        """Get numeric log level."""
        return {
            "debug": logging.DEBUG,
            "info": logging.INFO,
            "warning": logging.WARNING,
            "error": logging.ERROR,
        }[self.value]


@dataclass
class LogRecord:
    """A structured log record.

    Attributes:
        level: Log level.
        event: Event name/type.
        message: Human-readable message.
        timestamp: Unix timestamp.
        data: Additional structured data.
    """

    level: str
    event: str
    message: str = ""
    timestamp: float = field(default_factory=time.time)
    data: dict[str, Any] = field(default_factory=dict)
    logger_name: str = ""

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d.update(d.pop("data", {}))
        return d

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class StructuredLogger:
    """Event-based transition log.

    One line per lifecycle event, JSON by default:

        logger = StructuredLogger("immersion")
        logger.transition_start("enter_media", source="proximity")
        # {"level": "info", "event": "transition_start",
        #  "pipeline": "enter_media", "source": "proximity", ...}

        session_log = logger.bind(session_id="abc123")
        # every record now carries session_id
    """

    def __init__(
        self,
        name: str = "immersion",
        level: LogLevel = LogLevel.INFO,
        output: TextIO | None = None,
        json_format: bool = True,
    ):
        self.name = name
        self._level = level
        self._output = output
        self._json_format = json_format
        self._context: dict[str, Any] = {}
        self._lock = threading.Lock()
        self._records: list[LogRecord] = []
        self._keep = 256

    def bind(self, **context: Any) -> StructuredLogger:
        """Create a new logger with bound context."""
        new_logger = StructuredLogger(
            name=self.name,
            level=self._level,
            output=self._output,
            json_format=self._json_format,
        )
        new_logger._context = {**self._context, **context}
        return new_logger

    @property
    def records(self) -> list[LogRecord]:
        """Most recent records emitted by this logger."""
        return list(self._records)

    def _log(self, level: LogLevel, event: str, message: str = "", **data: Any) -> None:
        if level.numeric < self._level.numeric:
            return

        record = LogRecord(
            level=level.value,
            event=event,
            message=message,
            data={**self._context, **data},
            logger_name=self.name,
        )
        self._emit(record)

    def _emit(self, record: LogRecord) -> None:
        with self._lock:
            self._records.append(record)
            if len(self._records) > self._keep:
                del self._records[0]

            output = self._output or sys.stderr
            if self._json_format:
                line = record.to_json()
            else:
                line = self._format_human(record)
            print(line, file=output)

    def _format_human(self, record: LogRecord) -> str:
        timestamp = time.strftime("%H:%M:%S", time.localtime(record.timestamp))
        parts = [f"[{timestamp}]", f"[{record.level.upper()}]", f"[{record.event}]"]
        if record.message:
            parts.append(record.message)
        if record.data:
            parts.append("(" + " ".join(f"{k}={v}" for k, v in record.data.items()) + ")")
        return " ".join(parts)

    def debug(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.DEBUG, event, message, **data)

    def info(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.INFO, event, message, **data)

    def warning(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.WARNING, event, message, **data)

    def error(self, event: str, message: str = "", **data: Any) -> None:
        self._log(LogLevel.ERROR, event, message, **data)

    # Convenience methods for transition events

    def transition_start(self, pipeline: str, **extra: Any) -> None:
        self.info("transition_start", f"Starting {pipeline}", pipeline=pipeline, **extra)

    def transition_complete(self, pipeline: str, duration_ms: float, **extra: Any) -> None:
        self.info(
            "transition_complete",
            f"{pipeline} completed in {duration_ms:.0f}ms",
            pipeline=pipeline,
            duration_ms=round(duration_ms, 1),
            **extra,
        )

    def step_failed(self, pipeline: str, step: str, error: BaseException, **extra: Any) -> None:
        self.error(
            "step_failed",
            str(error),
            pipeline=pipeline,
            step=step,
            error_type=type(error).__name__,
            **extra,
        )

    def rollback(self, pipeline: str, compensated: list[str], **extra: Any) -> None:
        self.warning(
            "rollback",
            f"Rolled back {len(compensated)} step(s) of {pipeline}",
            pipeline=pipeline,
            compensated=compensated,
            **extra,
        )


# Global logger instance
_global_logger: StructuredLogger | None = None


def configure_logging(
    level: LogLevel | str = LogLevel.INFO,
    output: TextIO | None = None,
    json_format: bool = True,
) -> StructuredLogger:
    """Configure the global transition logger."""
    global _global_logger

    if isinstance(level, str):
        level = LogLevel(level)

    _global_logger = StructuredLogger(
        name="immersion",
        level=level,
        output=output,
        json_format=json_format,
    )
    return _global_logger


def get_logger() -> StructuredLogger:
    """Get the global transition logger, creating a default one on first use."""
    global _global_logger

    if _global_logger is None:
        _global_logger = StructuredLogger()

    return _global_logger
