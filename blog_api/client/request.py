# blog_api/client/request.py
"""
Async HTTP client for the blog API.

Wraps httpx.AsyncClient to:
- prefix relative paths with /api/
- attach a bearer token from the token store when one is present
- return every 2xx answer as a {code, data, message, success} envelope
- turn network errors and non-2xx answers into RequestError with a readable message
- retry a failed call a caller-chosen number of times with a fixed delay
- track in-flight calls by method + URL + params + body so one or all can be cancelled

Usage:
    async with RequestClient(base_url="https://blog.example.com") as client:
        client.token_store.set(token)
        envelope = await client.get("friends", config=RequestConfig(retry=2))
        friends = envelope["data"]["friends"]
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, TypedDict

import httpx

from blog_api.config import get_settings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRY_DELAY = 1.0
CANCEL_MESSAGE = "Request cancelled by user"
NETWORK_ERROR_MESSAGE = "Network error, please check your connection!"

STATUS_MESSAGES = {
    400: "Bad request (400)",
    401: "Unauthorized, please sign in again (401)",
    403: "Access denied (403)",
    404: "Requested resource not found (404)",
    500: "Server error (500)",
}


class ResponseData(TypedDict):
    """Uniform envelope returned by every successful call."""

    code: int
    data: Any
    message: str
    success: bool


@dataclass
class RequestConfig:
    """Per-call options."""

    retry: int = 0  # extra attempts after the first failure
    retry_delay: float = DEFAULT_RETRY_DELAY  # seconds between attempts
    headers: dict[str, str] | None = None
    timeout: float | None = None  # overrides the client default


class RequestError(Exception):
    """A call that failed on the network or with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class RequestCancelledError(RequestError):
    """The call was cancelled through cancel_request/cancel_all_requests."""

    def __init__(self, message: str = CANCEL_MESSAGE):
        super().__init__(message)


class TokenStore:
    """In-memory holder for the bearer token."""

    def __init__(self, token: str | None = None):
        self._token = token

    def get(self) -> str | None:
        return self._token

    def set(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


@dataclass
class PendingRequest:
    """Tracking entry shared by identical in-flight calls."""

    key: str
    tasks: set[asyncio.Task] = field(default_factory=set)
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True
        for task in self.tasks:
            task.cancel()


def process_url(url: str) -> str:
    """Prefix with /api/ unless already under /api/ or absolute."""
    if url.startswith(("/api/", "http://", "https://")):
        return url
    return f"/api/{url[1:] if url.startswith('/') else url}"


def _dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, default=str)


def request_key(method: str, url: str, params: Any = None, data: Any = None) -> str:
    return "&".join([process_url(url), method.upper(), _dumps(params), _dumps(data)])


def unwrap_response(response: httpx.Response) -> ResponseData:
    """Return the server envelope as-is, or wrap a bare body into one."""
    body = _parse_body(response)
    if isinstance(body, dict) and "data" in body:
        return body
    return {"code": 200, "data": body, "message": "success", "success": True}


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


class RequestClient:
    """
    Request wrapper around httpx.AsyncClient.

    Args:
        base_url: API origin (default: API_BASE_URL setting)
        token_provider: Callable returning the current bearer token or None
            (default: this client's TokenStore)
        timeout: Default request timeout in seconds
        transport: Custom httpx transport (tests use httpx.MockTransport)
        sleep: Awaitable sleep used between retries
    """

    def __init__(
        self,
        base_url: str | None = None,
        token_provider: Callable[[], str | None] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.token_store = TokenStore()
        self._token_provider = token_provider or self.token_store.get
        self._sleep = sleep
        self._pending: dict[str, PendingRequest] = {}
        self._client = httpx.AsyncClient(
            base_url=base_url or get_settings().API_BASE_URL,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "RequestClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.cancel_all_requests()
        await self._client.aclose()

    # -------------------------------------------------------------------------
    # In-flight tracking
    # -------------------------------------------------------------------------

    @property
    def pending_keys(self) -> list[str]:
        return list(self._pending)

    def _track(self, key: str, task: asyncio.Task) -> PendingRequest:
        entry = self._pending.get(key)
        if entry is None:
            entry = PendingRequest(key=key)
            self._pending[key] = entry
        entry.tasks.add(task)
        return entry

    def _untrack(self, entry: PendingRequest, task: asyncio.Task) -> None:
        entry.tasks.discard(task)
        if not entry.tasks and self._pending.get(entry.key) is entry:
            del self._pending[entry.key]

    def cancel_request(self, method: str, url: str, params: Any = None, data: Any = None) -> bool:
        """Cancel every in-flight call with this method/URL/params/body. False if none."""
        entry = self._pending.pop(request_key(method, url, params, data), None)
        if entry is None:
            return False
        entry.cancel()
        return True

    def cancel_all_requests(self) -> None:
        entries = list(self._pending.values())
        self._pending.clear()
        for entry in entries:
            entry.cancel()

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    async def request(
        self,
        method: str,
        url: str,
        params: Any = None,
        data: Any = None,
        config: RequestConfig | None = None,
    ) -> ResponseData:
        """
        Send a request and return its envelope.

        Raises:
            RequestCancelledError: the call was cancelled via cancel_request/cancel_all_requests
            RequestError: network failure or non-2xx status, after retries
        """
        config = config or RequestConfig()
        method = method.upper()
        task = asyncio.ensure_future(self._send_with_retry(method, process_url(url), params, data, config))
        entry = self._track(request_key(method, url, params, data), task)
        try:
            return await task
        except asyncio.CancelledError:
            if entry.cancelled:
                logger.info(f"Request cancelled: {method} {url}")
                raise RequestCancelledError()
            task.cancel()
            raise
        finally:
            self._untrack(entry, task)

    async def _send_with_retry(
        self,
        method: str,
        url: str,
        params: Any,
        data: Any,
        config: RequestConfig,
    ) -> ResponseData:
        retries_left = config.retry
        while True:
            try:
                return await self._send(method, url, params, data, config)
            except RequestError as e:
                if retries_left <= 0:
                    logger.error(f"{method} {url} failed: {e.message}", extra={"status_code": e.status_code})
                    raise
                retries_left -= 1
                logger.info(
                    f"{method} {url} failed ({e.message}); retrying in {config.retry_delay}s, "
                    f"{retries_left} retries left"
                )
                await self._sleep(config.retry_delay)

    async def _send(
        self,
        method: str,
        url: str,
        params: Any,
        data: Any,
        config: RequestConfig,
    ) -> ResponseData:
        headers = dict(config.headers or {})
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"

        kwargs: dict[str, Any] = {"params": params, "headers": headers}
        if data is not None:
            kwargs["json"] = data
        if config.timeout is not None:
            kwargs["timeout"] = config.timeout

        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise RequestError(NETWORK_ERROR_MESSAGE) from e

        if not response.is_success:
            status = response.status_code
            if status == 401:
                logger.warning("Unauthorized, please sign in again")
            raise RequestError(
                STATUS_MESSAGES.get(status, f"Connection error ({status})!"),
                status_code=status,
                body=_parse_body(response),
            )

        return unwrap_response(response)

    # -------------------------------------------------------------------------
    # Verbs
    # -------------------------------------------------------------------------

    async def get(self, url: str, params: Any = None, config: RequestConfig | None = None) -> ResponseData:
        return await self.request("GET", url, params=params, config=config)

    async def post(self, url: str, data: Any = None, config: RequestConfig | None = None) -> ResponseData:
        return await self.request("POST", url, data=data, config=config)

    async def put(self, url: str, data: Any = None, config: RequestConfig | None = None) -> ResponseData:
        return await self.request("PUT", url, data=data, config=config)

    async def patch(self, url: str, data: Any = None, config: RequestConfig | None = None) -> ResponseData:
        return await self.request("PATCH", url, data=data, config=config)

    async def delete(self, url: str, params: Any = None, config: RequestConfig | None = None) -> ResponseData:
        return await self.request("DELETE", url, params=params, config=config)
