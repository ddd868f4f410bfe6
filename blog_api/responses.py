# blog_api/responses.py
"""
Uniform API envelopes and error normalization.

Every JSON endpoint that is not a plain CRUD list answers with the same
envelope:

    {"code": 200, "success": true, "message": "...", "data": ..., "timestamp": 1700000000000}

Failures use the same shape with success=false and an "error" string.
`with_error_handler` wraps route functions so that raw MongoDB documents in a
result are made JSON-safe and uncaught exceptions become error envelopes.
"""

import asyncio
import logging
import re
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

from bson import ObjectId
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse, Response

from blog_api.logging_config import log_api_call

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


class ApiError(Exception):
    """An error carrying a business code and the HTTP status to answer with."""

    def __init__(self, message: str, code: int = 500, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code


def _factory(default_message: str, status: int) -> Callable[..., ApiError]:
    def make(message: str = default_message) -> ApiError:
        return ApiError(message, code=status, status_code=status)

    return make


class ApiErrors:
    """Predefined error constructors, grouped by HTTP status."""

    # 400
    bad_request = staticmethod(_factory("Bad request parameters", 400))
    validation_error = staticmethod(_factory("Data validation failed", 400))
    missing_params = staticmethod(_factory("Missing required parameters", 400))

    # 401
    unauthorized = staticmethod(_factory("Unauthorized", 401))
    token_expired = staticmethod(_factory("Token expired", 401))
    invalid_token = staticmethod(_factory("Invalid token", 401))

    # 403
    forbidden = staticmethod(_factory("Forbidden", 403))
    insufficient_permissions = staticmethod(_factory("Insufficient permissions", 403))

    # 404
    not_found = staticmethod(_factory("Resource not found", 404))
    user_not_found = staticmethod(_factory("User not found", 404))
    article_not_found = staticmethod(_factory("Article not found", 404))

    # 409
    conflict = staticmethod(_factory("Resource conflict", 409))
    duplicate_entry = staticmethod(_factory("Entry already exists", 409))

    # 429
    rate_limit = staticmethod(_factory("Too many requests", 429))

    # 500
    internal_error = staticmethod(_factory("Internal server error", 500))
    database_error = staticmethod(_factory("Database connection error", 500))
    external_api_error = staticmethod(_factory("External API call failed", 500))


# -----------------------------------------------------------------------------
# Document conversion
# -----------------------------------------------------------------------------


def to_frontend(doc: dict | None) -> dict | None:
    """Return a copy of a MongoDB document with `_id` as a string ("" if absent)."""
    if not doc:
        return doc
    rest = {k: v for k, v in doc.items() if k != "_id"}
    _id = doc.get("_id")
    rest["_id"] = str(_id) if _id is not None else ""
    return rest


def to_frontend_list(docs: list | None) -> list:
    """Convert the documents in a list; non-dict elements are kept as they are."""
    if not docs:
        return []
    return [to_frontend(doc) if isinstance(doc, dict) else doc for doc in docs]


def to_mongo(data: dict | None) -> dict | None:
    """Strip the client-side `_id` so the payload can be written to MongoDB."""
    if not data:
        return data
    return {k: v for k, v in data.items() if k != "_id"}


def _normalize_data(data: Any) -> Any:
    if isinstance(data, list):
        return [to_frontend(d) if isinstance(d, dict) and "_id" in d else d for d in data]
    if isinstance(data, dict):
        if isinstance(data.get("_id"), ObjectId):
            return to_frontend(data)
        items = data.get("items")
        if isinstance(items, list) and items and isinstance(items[0], dict):
            if isinstance(items[0].get("_id"), ObjectId):
                return {**data, "items": to_frontend_list(items)}
    return data


# -----------------------------------------------------------------------------
# Envelopes
# -----------------------------------------------------------------------------


def _now_ms() -> int:
    return int(time.time() * 1000)


def success_response(data: Any = None, message: str = "OK", code: int = 200) -> dict:
    """Build a success envelope. Route functions return it as-is."""
    return {
        "code": code,
        "success": True,
        "message": message,
        "data": data,
        "timestamp": _now_ms(),
    }


def error_response(
    error: str | Exception,
    status_code: int = 500,
    code: int | None = None,
) -> JSONResponse:
    """
    Build an error envelope response.

    An ApiError supplies its own code and status; anything else uses the
    given status_code, and code defaults to it.
    """
    if isinstance(error, ApiError):
        message = error.message
        final_code = error.code
        final_status = error.status_code
    else:
        message = str(error)
        final_code = code or status_code
        final_status = status_code

    body = {
        "code": final_code,
        "success": False,
        "message": "Operation failed",
        "error": message,
        "timestamp": _now_ms(),
    }
    return JSONResponse(content=body, status_code=final_status)


def _friends_error_body(error: ApiError) -> dict:
    return {"success": False, "error": error.message}


def _upload_error_body(error: ApiError) -> dict:
    return {"error": error.message}


# Endpoints whose clients read a flatter error body than the envelope.
ROUTE_ERROR_BODIES = (
    ("/api/friends", _friends_error_body),
    ("/api/upload", _upload_error_body),
)


def error_response_for_path(path: str, error: ApiError) -> JSONResponse:
    """Error response in the shape the endpoint at `path` answers with."""
    for prefix, body in ROUTE_ERROR_BODIES:
        if path == prefix or path.startswith(prefix + "/"):
            return JSONResponse(status_code=error.status_code, content=body(error))
    return error_response(error)


def validation_message(errors: list[dict]) -> str:
    """Flatten pydantic/FastAPI validation errors into one readable line."""
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "form"))
        msg = err.get("msg", "invalid")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "Data validation failed: " + "; ".join(parts)


def create_pagination(page: int, limit: int, total: int) -> dict:
    total_pages = -(-total // limit) if limit > 0 else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasMore": page < total_pages,
    }


def paginated_response(items: list, pagination: dict, message: str = "Fetched successfully") -> dict:
    return success_response({"items": items, "pagination": pagination}, message)


# -----------------------------------------------------------------------------
# Handler wrapper
# -----------------------------------------------------------------------------

# Lower-cased message fragments mapped to HTTP status, checked in order.
ERROR_MESSAGE_STATUS = (
    ("not found", 404),
    ("unauthorized", 401),
    ("forbidden", 403),
    ("validation", 400),
)


def status_for_exception(exc: Exception) -> int:
    """Pick an HTTP status for an exception. Non-ApiErrors go by message text."""
    if isinstance(exc, ApiError):
        return exc.status_code
    message = str(exc).lower()
    for fragment, status in ERROR_MESSAGE_STATUS:
        if fragment in message:
            return status
    return 500


def _finalize(result: Any, metrics: dict) -> Response:
    if isinstance(result, Response):
        metrics["status_code"] = result.status_code
        return result
    if isinstance(result, dict) and "data" in result and result.get("data") is not None:
        result = {**result, "data": _normalize_data(result["data"])}
    return JSONResponse(content=jsonable_encoder(result, custom_encoder={ObjectId: str}))


def _describe(func: Callable, kwargs: dict) -> tuple[str, str]:
    for value in kwargs.values():
        if isinstance(value, Request):
            return value.method, value.url.path
    return "CALL", func.__name__


def _to_error_response(exc: Exception) -> JSONResponse:
    if isinstance(exc, ApiError):
        return error_response(exc)
    return error_response(exc, status_for_exception(exc))


def with_error_handler(func: Callable) -> Callable:
    """
    Wrap a route function (sync or async) with timing, document conversion
    and error-to-envelope mapping.

    Usage:
        @router.get("/proxy-content")
        @with_error_handler
        async def proxy_content(request: Request, url: str | None = None):
            ...
            return success_response({...})
    """
    if asyncio.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Response:
            method, path = _describe(func, kwargs)
            try:
                with log_api_call(method, path) as metrics:
                    result = await func(*args, **kwargs)
                    return _finalize(result, metrics)
            except Exception as exc:
                return _to_error_response(exc)

        return async_wrapper

    @wraps(func)
    def sync_wrapper(*args: Any, **kwargs: Any) -> Response:
        method, path = _describe(func, kwargs)
        try:
            with log_api_call(method, path) as metrics:
                result = func(*args, **kwargs)
                return _finalize(result, metrics)
        except Exception as exc:
            return _to_error_response(exc)

    return sync_wrapper


# -----------------------------------------------------------------------------
# Validation helpers
# -----------------------------------------------------------------------------

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^1[3-9]\d{9}$")


def validate_required_params(params: dict, required_fields: list[str]) -> None:
    """Raise missing_params naming every field that is absent, None or ""."""
    missing = [f for f in required_fields if params.get(f) is None or params.get(f) == ""]
    if missing:
        raise ApiErrors.missing_params(f"Missing required parameters: {', '.join(missing)}")


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def validate_phone(phone: str) -> bool:
    """Mainland China mobile numbers."""
    return bool(PHONE_RE.match(phone))
