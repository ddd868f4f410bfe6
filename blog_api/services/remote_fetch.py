# blog_api/services/remote_fetch.py
"""
Server-side fetching of remote content for the proxy endpoints and for
avatar migration.

Requests to private/internal addresses are refused, transient network errors
are retried with exponential backoff, and non-2xx answers surface as
external-API errors.
"""

import ipaddress
import logging
import socket
import threading
from dataclasses import dataclass
from urllib.parse import urlparse

import httpx
from tenacity import Retrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from blog_api.responses import ApiErrors

logger = logging.getLogger(__name__)

USER_AGENT = "BlogApi-Proxy/1.0"
DEFAULT_TIMEOUT = 30.0
MAX_REDIRECTS = 3


@dataclass
class RemoteContent:
    """Body and metadata of a fetched URL."""

    url: str
    content: bytes
    content_type: str
    status_code: int

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def _is_private_ip(ip_str: str) -> bool:
    """Check if an IP address is in a private/reserved range."""
    try:
        addr = ipaddress.ip_address(ip_str)
        return addr.is_private or addr.is_loopback or addr.is_link_local or addr.is_reserved
    except ValueError:
        return False


def check_public_host(url: str) -> None:
    """Raise forbidden if the URL's host resolves to a private/internal address."""
    hostname = urlparse(url).hostname
    if not hostname:
        return
    try:
        infos = socket.getaddrinfo(hostname, None)
    except socket.gaierror:
        return  # DNS failure is reported by httpx
    for info in infos:
        ip = info[4][0]
        if _is_private_ip(ip):
            raise ApiErrors.forbidden(f"Host {hostname} resolves to a private address")


def host_matches(hostname: str, domains: list[str]) -> bool:
    """True when hostname equals one of the domains or is a subdomain of one."""
    host = hostname.lower()
    for domain in domains:
        domain = domain.lower()
        if host == domain or host.endswith("." + domain):
            return True
    return False


def parse_http_url(url: str) -> str:
    """Return the hostname of an http(s) URL, raising bad_request otherwise."""
    try:
        parsed = urlparse(url)
    except ValueError:
        raise ApiErrors.bad_request("Invalid URL format")
    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        raise ApiErrors.bad_request("Invalid URL format")
    return parsed.hostname


class RemoteFetcher:
    """
    Fetch remote URLs with retry on transport errors.

    Args:
        client: httpx.Client to use (tests pass one with a MockTransport)
        timeout: Request timeout in seconds
        max_attempts: Total attempts for transient network failures
        min_wait: Base of the exponential backoff (seconds)
        max_wait: Backoff cap (seconds)
        block_private_hosts: Refuse URLs resolving to private addresses
    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = 3,
        min_wait: float = 1.0,
        max_wait: float = 8.0,
        block_private_hosts: bool = True,
    ):
        # Redirects are followed by fetch() so every hop is host-checked.
        self._client = client or httpx.Client(
            timeout=timeout,
            follow_redirects=False,
            headers={"User-Agent": USER_AGENT},
        )
        self._block_private_hosts = block_private_hosts
        self._retrying = Retrying(
            stop=stop_after_attempt(max_attempts),
            wait=wait_exponential(multiplier=min_wait, max=max_wait),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )

    def _get(self, url: str) -> httpx.Response:
        return self._client.get(url, follow_redirects=False)

    def _check_target(self, url: str) -> None:
        parse_http_url(url)
        if self._block_private_hosts:
            check_public_host(url)

    def fetch(self, url: str) -> RemoteContent:
        """
        GET a URL, following up to MAX_REDIRECTS redirects.

        Each hop is validated like the original URL, so a public host cannot
        bounce the request to a private address.

        Raises:
            ApiError: bad_request for malformed URLs, forbidden for private
                hosts, external_api_error for network failures, redirect
                loops and non-2xx answers
        """
        target = url
        for _ in range(MAX_REDIRECTS + 1):
            self._check_target(target)
            try:
                response = self._retrying(self._get, target)
            except httpx.TransportError as e:
                logger.warning(f"[REMOTE_FETCH] Network error for {target}: {e}", extra={"url": target})
                raise ApiErrors.external_api_error(f"Failed to fetch file: {e}")

            location = response.headers.get("location")
            if not (response.is_redirect and location):
                break
            target = str(response.url.join(location))
            logger.debug(f"[REMOTE_FETCH] {url} redirected to {target}", extra={"url": url})
        else:
            raise ApiErrors.external_api_error(f"Failed to fetch file: too many redirects ({MAX_REDIRECTS})")

        if not response.is_success:
            raise ApiErrors.external_api_error(
                f"Failed to fetch file: {response.status_code} {response.reason_phrase}"
            )

        content_type = response.headers.get("content-type", "text/plain")
        return RemoteContent(
            url=str(response.url),
            content=response.content,
            content_type=content_type,
            status_code=response.status_code,
        )

    def close(self) -> None:
        self._client.close()


_fetcher: RemoteFetcher | None = None
_fetcher_lock = threading.Lock()


def get_remote_fetcher() -> RemoteFetcher:
    """FastAPI dependency returning the shared fetcher."""
    global _fetcher
    if _fetcher is None:
        with _fetcher_lock:
            if _fetcher is None:
                _fetcher = RemoteFetcher()
    return _fetcher


def close_remote_fetcher() -> None:
    global _fetcher
    with _fetcher_lock:
        if _fetcher is not None:
            _fetcher.close()
            _fetcher = None
