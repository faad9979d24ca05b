"""Structured logging configuration with automatic context injection.

The MCP stdio transport owns stdout, so every handler installed here writes
to stderr. Records are enriched with the active correlation ID so a single
tool call can be followed through the lifecycle manager and engine client.

Usage:
    from deep_research_mcp.core.logging_config import configure_logging

    configure_logging(level="DEBUG", format="human")
"""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO, Union

from deep_research_mcp.core.context import get_correlation_id, get_start_time

__all__ = [
    "ROOT_LOGGER_NAME",
    "ContextFilter",
    "StructuredFormatter",
    "HumanReadableFormatter",
    "configure_logging",
]

ROOT_LOGGER_NAME = "deep_research_mcp"


class ContextFilter(logging.Filter):
    """Logging filter that injects ``correlation_id`` and ``elapsed_ms``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or "-"

        start_time = get_start_time()
        if start_time > 0:
            record.elapsed_ms = round((time.time() - start_time) * 1000, 2)
        else:
            record.elapsed_ms = 0.0

        return True


class StructuredFormatter(logging.Formatter):
    """JSON-structured log formatter for machine-readable output.

    Example output:
        {"timestamp":"2025-07-01T10:30:45.123+00:00","level":"INFO",
         "logger":"deep_research_mcp.core.research.lifecycle",
         "message":"Research request created","correlation_id":"corr_a1b2c3d4e5f6",
         "elapsed_ms":42.5}
    """

    _STANDARD_ATTRS = frozenset(
        {
            "name",
            "msg",
            "args",
            "levelname",
            "levelno",
            "pathname",
            "filename",
            "module",
            "lineno",
            "funcName",
            "created",
            "msecs",
            "relativeCreated",
            "thread",
            "threadName",
            "processName",
            "process",
            "taskName",
            "message",
            "exc_info",
            "exc_text",
            "stack_info",
            "correlation_id",
            "elapsed_ms",
        }
    )

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": getattr(record, "correlation_id", "-"),
            "elapsed_ms": getattr(record, "elapsed_ms", 0.0),
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra = {}
        for key, value in record.__dict__.items():
            if key in self._STANDARD_ATTRS:
                continue
            try:
                json.dumps(value)
                extra[key] = value
            except (TypeError, ValueError):
                extra[key] = str(value)
        if extra:
            log_entry["extra"] = extra

        return json.dumps(log_entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Human-readable formatter with context prefix.

    Produces logs in format:
        2025-07-01 10:30:45 [INFO] [corr_a1b2c3] core.research.lifecycle: message
    """

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S"),
            f"[{record.levelname}]",
        ]

        corr_id = getattr(record, "correlation_id", "-")
        if corr_id and corr_id != "-":
            parts.append(f"[{corr_id}]")

        logger_name = record.name
        prefix = f"{ROOT_LOGGER_NAME}."
        if logger_name.startswith(prefix):
            logger_name = logger_name[len(prefix):]
        parts.append(f"{logger_name}:")
        parts.append(record.getMessage())

        result = " ".join(parts)
        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)
        return result


def configure_logging(
    *,
    level: Union[int, str] = logging.INFO,
    format: str = "structured",  # "structured" or "human"
    stream: Optional[TextIO] = None,
) -> logging.Logger:
    """Configure the root deep_research_mcp logger.

    Existing handlers on the package logger are replaced, so calling this
    twice does not duplicate output.

    Args:
        level: Log level name or number (default: INFO)
        format: "structured" for JSON lines, "human" for readable output
        stream: Output stream (default: stderr)

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(level)
    if format == "structured":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter())
    handler.addFilter(ContextFilter())

    logger.addHandler(handler)
    return logger
