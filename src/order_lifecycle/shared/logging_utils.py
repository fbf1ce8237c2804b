"""Structured logging utilities for order lifecycle events."""
import json
import logging
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Optional

# Scoped per asyncio task so concurrent lifecycle operations keep their own id
_correlation_id: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def _json_default(value: Any) -> str:
    """Serialize values json cannot handle natively (Decimal, datetime, enums)."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


class StructuredLogger:
    """Structured logger with correlation ID support."""

    def __init__(self, logger_name: str):
        self.logger = logging.getLogger(logger_name)

    @property
    def correlation_id(self) -> Optional[str]:
        return _correlation_id.get()

    def set_correlation_id(self, correlation_id: str):
        """Set correlation ID for current context."""
        _correlation_id.set(correlation_id)

    def clear_correlation_id(self):
        """Clear correlation ID."""
        _correlation_id.set(None)

    def generate_correlation_id(self) -> str:
        """Generate new correlation ID."""
        return f"CORR_{uuid.uuid4().hex[:12]}"

    def _format_message(self, level: str, message: str, **kwargs) -> dict:
        """Format log message with structured data."""
        log_entry = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": level,
            "message": message,
            "correlation_id": self.correlation_id or "none",
        }

        # Add additional context
        if kwargs:
            log_entry["context"] = kwargs

        return log_entry

    def _emit(self, level: int, name: str, message: str, **kwargs):
        if not self.logger.isEnabledFor(level):
            return
        entry = self._format_message(name, message, **kwargs)
        self.logger.log(level, json.dumps(entry, default=_json_default))

    def info(self, message: str, **kwargs):
        """Log info with structured data."""
        self._emit(logging.INFO, "INFO", message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning with structured data."""
        self._emit(logging.WARNING, "WARNING", message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error with structured data."""
        self._emit(logging.ERROR, "ERROR", message, **kwargs)

    def debug(self, message: str, **kwargs):
        """Log debug with structured data."""
        self._emit(logging.DEBUG, "DEBUG", message, **kwargs)


def get_structured_logger(name: str) -> StructuredLogger:
    """Get or create structured logger."""
    return StructuredLogger(name)
