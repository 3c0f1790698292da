"""
Structured logging for wif.

Provides a pre-configured logger that emits JSON-structured log records
with operation context (component, operation, resource) for easy filtering
in log aggregation tools.
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any


class StructuredFormatter(logging.Formatter):
    """Emit log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Attach any extras injected via WIFLogger.log_operation
        for key in ("request_id", "component", "operation", "resource"):
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = str(record.exc_info[1])
        return json.dumps(log_entry)


class WIFLogger:
    """Convenience wrapper around :mod:`logging` for wif operations."""

    def __init__(self, name: str = "wif", component: str | None = None) -> None:
        self.component = component
        self.logger = logging.getLogger(name)
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.INFO)

    def log_operation(
        self,
        level: int,
        message: str,
        *,
        component: str | None = None,
        operation: str | None = None,
        resource: str | None = None,
        request_id: str | None = None,
        exc_info: bool = False,
    ) -> None:
        """Emit a structured log record with operation context.

        Args:
            level: Logging level (e.g. logging.INFO).
            message: Human-readable message.
            component: Subsystem name (e.g. 'detector', 'bindings'); defaults to
                the component the logger was created for.
            operation: Operation name (e.g. 'detect', 'create_binding').
            resource: Resource the operation acts on.
            request_id: Optional correlation ID; auto-generated if omitted.
            exc_info: Whether to include exception info.
        """
        extra = {
            "component": component or self.component,
            "operation": operation,
            "resource": resource,
            "request_id": request_id or uuid.uuid4().hex[:12],
        }
        self.logger.log(level, message, extra=extra, exc_info=exc_info)

    def info(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.ERROR, message, **kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        self.log_operation(logging.DEBUG, message, **kwargs)


# Module-level singleton
wif_logger = WIFLogger()


def get_logger(component: str) -> WIFLogger:
    """Return a logger on the shared ``wif`` logger that tags records with *component*."""
    return WIFLogger(wif_logger.logger.name, component=component)
