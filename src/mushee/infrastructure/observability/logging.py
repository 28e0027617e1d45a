"""Structured logging configuration with JSON formatting and correlation IDs."""

import contextvars
import logging
import sys
import traceback
import uuid
from pathlib import Path
from typing import Any

from pythonjsonlogger import jsonlogger

# Hey future me - every request gets a correlation ID that follows it through all
# logs of that request (the upload pipeline logs 3-6 lines per call). contextvars
# are asyncio-safe: each task sees its own value. Default "" covers startup logs
# and the seeding CLI.
correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default=""
)

# Package whose frames we keep in compact tracebacks
_OWN_PACKAGE = "mushee"

# Libraries that log far more than we do at INFO
_NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "aiosqlite", "multipart", "uvicorn.access")


def get_correlation_id() -> str:
    """Get the current correlation ID from context.

    Returns:
        Current correlation ID or empty string if not set
    """
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Set correlation ID in context, generating a UUID if none is given.

    Args:
        correlation_id: Correlation ID to set. If None, generates a new UUID

    Returns:
        The correlation ID that was set
    """
    if correlation_id is None:
        correlation_id = str(uuid.uuid4())
    correlation_id_var.set(correlation_id)
    return correlation_id


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Attach correlation_id to the record. Never drops a record."""
        record.correlation_id = get_correlation_id()
        return True


class CompactExceptionFormatter(logging.Formatter):
    """Human-readable formatter with a compact exception chain.

    Root cause first, one "->" line per exception in the chain, and only
    frames from our own package. Keeps Docker logs readable when a
    persistence error bubbles up through the upload pipeline.

    Example output:
        ERROR   | mushee.application.use_cases.upload_song:231 | Catalog insert failed ...
        -> IntegrityError: NOT NULL constraint failed: songs.title
            File "repositories.py", line 88, in add
              await self._session.flush()
    """

    def formatException(self, ei: Any) -> str:
        _, exc_value, _ = ei
        if exc_value is None:
            return ""

        chain: list[BaseException] = []
        current: BaseException | None = exc_value
        while current is not None and current not in chain:
            chain.append(current)
            current = current.__cause__ or current.__context__
        chain.reverse()

        lines: list[str] = []
        for exc in chain:
            lines.append(f"-> {exc.__class__.__name__}: {exc}")
            if exc.__traceback__ is None:
                continue
            for frame in traceback.extract_tb(exc.__traceback__):
                if "/site-packages/" in frame.filename or _OWN_PACKAGE not in frame.filename:
                    continue
                lines.append(
                    f'    File "{Path(frame.filename).name}", line {frame.lineno}, in {frame.name}'
                )
                if frame.line:
                    lines.append(f"      {frame.line.strip()}")
        return "\n".join(lines)


class CustomJsonFormatter(jsonlogger.JsonFormatter):  # type: ignore[name-defined,misc]
    """JSON formatter with standard fields and correlation ID."""

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        """Add custom fields to log record.

        Args:
            log_record: Dictionary to be logged as JSON
            record: Python logging record
            message_dict: Message dictionary from format string
        """
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record, self.datefmt)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno

        correlation_id = getattr(record, "correlation_id", "")
        if correlation_id:
            log_record["correlation_id"] = correlation_id

        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_record["stack_info"] = self.formatStack(record.stack_info)


# Listen up - call this ONCE at startup (app factory or CLI). It replaces all root
# handlers, which also keeps pytest reruns and uvicorn reloads from stacking handlers.
def configure_logging(
    log_level: str = "INFO",
    json_format: bool = False,
    app_name: str = "mushee",
) -> None:
    """Configure structured logging on the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON format for logs (recommended for production)
        app_name: Application name to include in logs
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())

    if json_format:
        formatter: logging.Formatter = CustomJsonFormatter(
            "%(timestamp)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = CompactExceptionFormatter(
            fmt="%(asctime)s | %(levelname)-7s | %(name)s:%(lineno)d | %(message)s",
            datefmt="%H:%M:%S",
        )

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    for noisy in _NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "app_name": app_name,
            "log_level": log_level,
            "json_format": json_format,
        },
    )
