"""Structured logging with Loguru.

Every module logs through the Loguru ``logger``; values passed as keyword
arguments or bound with ``logger.contextualize`` travel with the record as
``extra`` fields (correlation id, municipality, date, record id...).

Formatter types:
- **console**: Human-readable line with the extra fields inline (development)
- **json**: One JSON object per line (self-hosted)
- **gcp**: Google Cloud Logging structured format

Standard library logging (uvicorn, SQLAlchemy, alembic) is routed into Loguru
through ``InterceptHandler`` so that all output shares one format.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Callable
from typing import Any, Final, Protocol, cast

from loguru import logger

from src.core.config import get_settings


class _LoggingState:
    """Tracks whether logging has been configured."""

    def __init__(self) -> None:
        self.configured = False


_state = _LoggingState()


class LogConfigProtocol(Protocol):
    """Protocol for log configuration objects."""

    @property
    def log_level(self) -> str:
        """Logging level."""
        ...

    @property
    def log_formatter_type(self) -> str | None:
        """Log formatter type."""
        ...


class SettingsProtocol(Protocol):
    """Protocol for settings objects that setup_logging can accept."""

    @property
    def debug(self) -> bool:
        """Debug mode flag."""
        ...

    @property
    def log_config(self) -> LogConfigProtocol:
        """Log configuration."""
        ...


DEFAULT_LOG_FORMAT: Final[str] = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "{message}"
)
CORRELATION_ID_DISPLAY_LENGTH: Final[int] = 8
MAX_FIELD_VALUE_LENGTH: Final[int] = 100

# Shown first, in this order
PRIORITY_FIELDS: Final[tuple[str, ...]] = (
    "correlation_id",
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "municipality",
)


def _escape(value: object) -> str:
    """Escape braces so Loguru does not treat values as format fields."""
    return str(value).replace("{", "{{").replace("}", "}}")


def _format_field(key: str, value: object) -> str:
    """Render one extra field for the console formatter."""
    if key == "correlation_id" and len(str(value)) > CORRELATION_ID_DISPLAY_LENGTH:
        return _escape(str(value)[:CORRELATION_ID_DISPLAY_LENGTH])
    if key == "duration_ms":
        return f"{_escape(value)}ms"
    if key in PRIORITY_FIELDS:
        return _escape(value)

    str_value = str(value)
    if key in get_settings().log_config.sensitive_fields:
        str_value = "[REDACTED]"
    elif len(str_value) > MAX_FIELD_VALUE_LENGTH:
        str_value = str_value[: MAX_FIELD_VALUE_LENGTH - 3] + "..."
    return f"{_escape(key)}={_escape(str_value)}"


def format_console_with_context(record: dict[str, Any]) -> str:
    """Format a record for the console with every context field visible.

    Args:
        record: Loguru record to format.

    Returns:
        str: Format string for Loguru, ending with a newline.
    """
    try:
        time_str = record["time"].strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        location = f"{record['name']}:{record['function']}:{record['line']}"
        parts = [
            f"<green>{time_str}</green>",
            f"<level>{record['level'].name: <8}</level>",
            f"<cyan>{_escape(location)}</cyan>",
        ]

        extra = record.get("extra", {})
        context_parts = [
            f"[<yellow>{_format_field(key, extra[key])}</yellow>]"
            for key in PRIORITY_FIELDS
            if extra.get(key) is not None
        ]
        context_parts.extend(
            f"[<dim>{_format_field(key, value)}</dim>]"
            for key, value in extra.items()
            if key not in PRIORITY_FIELDS
            and not key.startswith("_")
            and value is not None
        )
        if context_parts:
            parts.append(" ".join(context_parts))

        parts.append(_escape(record["message"]))
        line = " | ".join(parts)
        if record.get("exception"):
            line += "\n{exception}"
        return line + "\n"
    except (AttributeError, TypeError, ValueError, KeyError):
        return DEFAULT_LOG_FORMAT + "\n"


class InterceptHandler(logging.Handler):
    """Redirect standard library log records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        """Forward log record to Loguru.

        Args:
            record: Standard library LogRecord to forward.
        """
        try:
            level: str | int = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller outside of the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        extra: dict[str, Any] = {}
        if record.name == "uvicorn.access" and hasattr(record, "scope"):
            scope = record.scope
            extra["method"] = scope.get("method", "")
            extra["path"] = scope.get("path", "")

        logger.opt(depth=depth, exception=record.exc_info).bind(**extra).log(
            level, record.getMessage()
        )


def _base_entry(record: dict[str, Any]) -> dict[str, Any]:
    return {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
    }


def serialize_for_json(record: dict[str, Any]) -> str:
    """Format a record as a single generic JSON line.

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry with newline.
    """
    log_entry = _base_entry(record)
    log_entry.update(
        {k: v for k, v in record.get("extra", {}).items() if not k.startswith("_")}
    )

    if exc := record.get("exception"):
        log_entry["exception"] = {
            "type": exc.type.__name__ if exc.type else None,
            "value": str(exc.value) if exc.value else None,
        }

    return json.dumps(log_entry, default=str) + "\n"


def serialize_for_gcp(record: dict[str, Any]) -> str:
    """Format a record for GCP Cloud Logging.

    Follows https://cloud.google.com/logging/docs/structured-logging

    Args:
        record: Loguru record to format.

    Returns:
        str: JSON-formatted log entry for GCP with newline.
    """
    severity_mapping = {"TRACE": "DEBUG", "SUCCESS": "INFO"}
    level_name = record["level"].name
    settings = get_settings()

    log_entry: dict[str, Any] = {
        "severity": severity_mapping.get(level_name, level_name),
        "message": record["message"],
        "timestamp": record["time"].isoformat(),
        "serviceContext": {
            "service": settings.app_name,
            "version": settings.app_version,
        },
        "logging.googleapis.com/labels": {
            "function": record["function"],
            "module": record["module"],
            "line": str(record["line"]),
        },
    }

    extra = record.get("extra", {})
    if correlation_id := extra.get("correlation_id"):
        log_entry["logging.googleapis.com/trace"] = correlation_id
    json_payload = {
        k: v
        for k, v in extra.items()
        if k != "correlation_id" and not k.startswith("_")
    }
    if json_payload:
        log_entry["jsonPayload"] = json_payload

    if record.get("exception") or level_name in ("ERROR", "CRITICAL"):
        log_entry["logging.googleapis.com/sourceLocation"] = {
            "file": record["file"].path,
            "line": str(record["line"]),
            "function": record["function"],
        }

    return json.dumps(log_entry, default=str) + "\n"


LOG_FORMATTERS: dict[str, Callable[[dict[str, Any]], str]] = {
    "json": serialize_for_json,
    "gcp": serialize_for_gcp,
}


def setup_logging(settings: SettingsProtocol) -> None:
    """Configure Loguru sinks and route standard logging into them.

    Calling it more than once is a no-op.

    Args:
        settings: Application settings containing log configuration.
    """
    if _state.configured:
        return

    logger.remove()

    formatter_type = settings.log_config.log_formatter_type or "console"
    formatter = LOG_FORMATTERS.get(formatter_type)

    if formatter is None:
        formatter_type = "console"
        logger.add(
            sys.stdout,
            format=cast("Any", format_console_with_context),
            level=settings.log_config.log_level,
            enqueue=True,
            colorize=True,
            diagnose=settings.debug,
            backtrace=settings.debug,
        )
    else:

        def structured_sink(message: object) -> None:
            """Write the structured rendering of a message to stdout."""
            sys.stdout.write(formatter(cast("Any", message).record))
            sys.stdout.flush()

        logger.add(
            structured_sink,
            level=settings.log_config.log_level,
            enqueue=True,
            diagnose=False,
            backtrace=False,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        std_logger = logging.getLogger(logger_name)
        std_logger.handlers = [InterceptHandler()]
        std_logger.propagate = False

    logger.info(
        "Logging configured with {} formatter",
        formatter_type,
        log_level=settings.log_config.log_level,
    )
    _state.configured = True
