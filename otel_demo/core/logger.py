"""
Centralized logging for the OpenTelemetry queue demo.

Provides a unified logging interface with:
- Structured logging with correlation IDs
- Console (development) and JSON (production, files) output
- OpenTelemetry trace/span IDs on every entry so logs join traces
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Union

from opentelemetry import trace

from otel_demo.core.config import config
from otel_demo.utils.correlation_id import get_correlation_id


# Attributes every LogRecord carries; anything else came in through `extra`
_RESERVED_RECORD_KEYS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


def current_trace_ids() -> Dict[str, Optional[str]]:
    """Return the active trace and span IDs as hex strings (None outside a span)"""
    span_context = trace.get_current_span().get_span_context()
    if not span_context.is_valid:
        return {"traceId": None, "spanId": None}
    return {
        "traceId": format(span_context.trace_id, "032x"),
        "spanId": format(span_context.span_id, "016x"),
    }


class StructuredLogger:
    """
    Logger with structured entries, correlation IDs and tracing support.
    """

    def __init__(self, service_name: Optional[str] = None):
        self.service_name = service_name or config.service_name
        self.environment = config.environment
        self.log_format = config.log_format.lower()
        self._logger = logging.getLogger("otel_demo")
        self._setup_logging()

    def _setup_logging(self):
        """Configure Python logging with handlers"""
        level = getattr(logging, config.log_level.upper(), logging.INFO)

        self._logger.handlers.clear()
        self._logger.setLevel(level)
        self._logger.propagate = False

        if config.log_to_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level)
            if self.log_format == "json":
                console_handler.setFormatter(JSONFormatter())
            else:
                console_handler.setFormatter(ConsoleFormatter())
            self._logger.addHandler(console_handler)

        if config.log_to_file:
            log_dir = os.path.dirname(config.log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            file_handler = logging.FileHandler(config.log_file_path)
            file_handler.setLevel(level)
            file_handler.setFormatter(JSONFormatter())  # Always JSON for files
            self._logger.addHandler(file_handler)

    def configure(self, service_name: str) -> None:
        """Rebind the logger to the service owning the current process"""
        self.service_name = service_name

    def _build_log_entry(
        self,
        level: str,
        message: str,
        correlation_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> Dict[str, Any]:
        """Build structured log entry"""
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level.upper(),
            "service": self.service_name,
            "environment": self.environment,
            "message": message,
            "correlationId": correlation_id or get_correlation_id(),
            **current_trace_ids(),
        }

        if metadata:
            entry["metadata"] = metadata

        entry.update(kwargs)
        return entry

    def _log(
        self,
        level: str,
        message: str,
        correlation_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: bool = False,
        **kwargs
    ):
        """Internal logging method"""
        log_entry = self._build_log_entry(level, message, correlation_id, metadata, **kwargs)
        # 'message' would clash with the LogRecord attribute of the same name
        extra_data = {k: v for k, v in log_entry.items() if k not in _RESERVED_RECORD_KEYS}
        self._logger.log(getattr(logging, level), message, extra=extra_data, exc_info=exc_info)

    @staticmethod
    def _with_error(metadata: Optional[Dict[str, Any]], error: Optional[Union[str, Exception]]) -> Optional[Dict[str, Any]]:
        if not error:
            return metadata

        metadata = dict(metadata or {})
        if isinstance(error, Exception):
            metadata["error"] = {
                "type": type(error).__name__,
                "message": str(error),
            }
        else:
            metadata["error"] = {"message": str(error)}
        return metadata

    def debug(self, message: str, correlation_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None, **kwargs):
        """Debug level logging"""
        self._log("DEBUG", message, correlation_id, metadata, **kwargs)

    def info(self, message: str, correlation_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None, **kwargs):
        """Info level logging"""
        self._log("INFO", message, correlation_id, metadata, **kwargs)

    def warning(self, message: str, correlation_id: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None, **kwargs):
        """Warning level logging"""
        self._log("WARNING", message, correlation_id, metadata, **kwargs)

    def error(
        self,
        message: str,
        correlation_id: Optional[str] = None,
        error: Optional[Union[str, Exception]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        """Error level logging"""
        self._log("ERROR", message, correlation_id, self._with_error(metadata, error), **kwargs)

    def critical(
        self,
        message: str,
        correlation_id: Optional[str] = None,
        error: Optional[Union[str, Exception]] = None,
        metadata: Optional[Dict[str, Any]] = None,
        **kwargs
    ):
        """Critical level logging"""
        self._log("CRITICAL", message, correlation_id, self._with_error(metadata, error), **kwargs)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record):
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Colored console formatter for development"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        reset = self.COLORS['RESET']
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S')

        service = getattr(record, "service", record.name)
        trace_info = ""
        trace_id = getattr(record, "traceId", None)
        span_id = getattr(record, "spanId", None)
        if trace_id and span_id:
            trace_info = f" [{trace_id[:8]}:{span_id[:8]}]"

        line = f"{color}[{timestamp}] {record.levelname}{reset} {service}{trace_info} - {record.getMessage()}"

        metadata = getattr(record, "metadata", None)
        if metadata:
            line += f" | {json.dumps(metadata, default=str)}"

        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)

        return line


# Create and export the logger instance
logger = StructuredLogger()
