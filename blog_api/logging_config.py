"""
Structured JSON logging for request and storage observability.

Provides single-line JSON logs with a per-request ID for correlating the
lines a handler emits, plus context managers that time API handlers and
object-storage operations.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone

# Context variable for request correlation
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Extra attributes copied from a LogRecord into the JSON payload
_EXTRA_FIELDS = (
    "event",
    "duration_ms",
    "operation",
    "key",
    "size_bytes",
    "provider",
    "attempt",
    "method",
    "path",
    "status_code",
    "url",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "request_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_var.get()
        if request_id:
            log_data["request_id"] = request_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("oss2").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_api_call(method: str, path: str):
    """
    Context manager for API handler instrumentation.

    Logs handler start and end with duration. The yielded dict may be given a
    "status_code" by the caller before the block exits.

    Usage:
        with log_api_call("GET", "/api/proxy-content") as metrics:
            response = handler(...)
            metrics["status_code"] = response.status_code
    """
    start_time = time.time()
    logger = logging.getLogger("blog_api.api")
    metrics: dict = {"status_code": 200}

    logger.info(
        f"[API] {method} {path} started",
        extra={"event": "api_call_start", "method": method, "path": path},
    )

    try:
        yield metrics
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"[API] {method} {path} completed ({duration_ms}ms)",
            extra={
                "event": "api_call_complete",
                "method": method,
                "path": path,
                "status_code": metrics["status_code"],
                "duration_ms": duration_ms,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"[API] {method} {path} failed ({duration_ms}ms): {e}",
            extra={
                "event": "api_call_failed",
                "method": method,
                "path": path,
                "duration_ms": duration_ms,
            },
        )
        raise


@contextmanager
def log_storage_operation(operation: str, key: str, provider: str):
    """
    Context manager for object-storage instrumentation.

    Logs operation end with timing and size.

    Usage:
        with log_storage_operation("upload", "images/avatars/abc.png", "oss") as metrics:
            bucket.put_object(key, content)
            metrics["size_bytes"] = len(content)
    """
    start_time = time.time()
    logger = logging.getLogger("blog_api.storage")
    metrics: dict = {"size_bytes": 0}

    try:
        yield metrics

        duration_ms = int((time.time() - start_time) * 1000)
        logger.debug(
            f"{provider} {operation} completed: {key} ({metrics['size_bytes']} bytes, {duration_ms}ms)",
            extra={
                "event": f"storage_{operation}_complete",
                "operation": operation,
                "provider": provider,
                "key": key,
                "duration_ms": duration_ms,
                "size_bytes": metrics["size_bytes"],
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"{provider} {operation} failed: {key} - {e}",
            extra={
                "event": f"storage_{operation}_failed",
                "operation": operation,
                "provider": provider,
                "key": key,
                "duration_ms": duration_ms,
            },
        )
        raise
