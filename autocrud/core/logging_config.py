"""
Structured JSON logging configuration.

Every log line is a single JSON object so request logs from the
middleware and persistence failures from the generated CRUD handlers
can be correlated by request_id in any log aggregator.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional


# Attributes every LogRecord carries; anything else came in through extra=
_RESERVED_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName",
})

# Context fields emitted first, in this order, when present
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "latency_ms",
    "model",
    "resource",
)


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs log records as single-line JSON objects:
    - timestamp: ISO 8601 UTC timestamp
    - level, message, logger
    - context fields (request_id, method, path, status_code, latency_ms,
      model, resource) when passed via extra=
    - exception: formatted traceback when exc_info is set
    - any other extra fields

    Example output:
        {"timestamp": "2026-10-19T10:30:00.123456+00:00", "level": "INFO",
         "message": "Request completed", "request_id": "abc-123",
         "method": "GET", "path": "/dummies", "status_code": 200,
         "latency_ms": 3.1}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
        }

        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            log_data["stack_info"] = self.formatStack(record.stack_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS and key not in log_data:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(
    level: str = "INFO",
    json_format: bool = True
) -> None:
    """
    Configure application logging.

    Replaces the root logger handlers with a single stdout handler using
    JSONFormatter (or a plain text formatter when json_format is False).

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: Use JSON formatter (True) or simple formatter (False)

    Note:
        Call once at application startup; create_app() does it from the
        lifespan handler.
    """
    root_logger = logging.getLogger()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root_logger.setLevel(log_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)

    if json_format:
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Suppress noisy third-party loggers
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get logger instance with given name.

    Example:
        logger = get_logger(__name__)
        logger.info("Processing request", extra={"request_id": "abc-123"})
    """
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    request_id: Optional[str] = None,
    path: Optional[str] = None,
    method: Optional[str] = None,
    status_code: Optional[int] = None,
    model: Optional[str] = None,
    **extra_fields: Any
) -> None:
    """
    Log message with structured context fields.

    None values are dropped so they never shadow a field set elsewhere.

    Example:
        log_with_context(
            logger,
            "error",
            "Persistence failure",
            request_id="abc-123",
            path="/dummies",
            method="POST",
            status_code=500,
            model="Dummy",
        )
    """
    fields: Dict[str, Any] = {
        "request_id": request_id,
        "path": path,
        "method": method,
        "status_code": status_code,
        "model": model,
        **extra_fields,
    }
    extra = {key: value for key, value in fields.items() if value is not None}

    log_method = getattr(logger, level.lower())
    log_method(message, extra=extra)
