# blog_api/routers/proxy.py
"""
Server-side proxies for content the browser cannot fetch directly.

GET /api/proxy-content?url=  - Text content from our storage domains (markdown articles)
GET /api/proxy-image?url=    - Raw image bytes from any public host (avatar import)
"""

from cachetools import TTLCache
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response

from blog_api.config import get_settings
from blog_api.responses import (
    ApiError,
    ApiErrors,
    error_response,
    success_response,
    validate_required_params,
    with_error_handler,
)
from blog_api.services.remote_fetch import RemoteFetcher, get_remote_fetcher, host_matches, parse_http_url

router = APIRouter(prefix="/api", tags=["proxy"])

# In-memory cache for proxied content (5 min TTL)
_content_cache: TTLCache = TTLCache(maxsize=100, ttl=300)


def invalidate_content_cache() -> None:
    _content_cache.clear()


@router.get("/proxy-content")
@with_error_handler
def proxy_content(
    request: Request,
    url: str | None = Query(None, description="URL of the file to fetch"),
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
):
    """Fetch a text file from an allowed storage domain and return it in the envelope."""
    validate_required_params({"url": url}, ["url"])
    hostname = parse_http_url(url)

    if not host_matches(hostname, get_settings().proxy_allowed_domains):
        raise ApiErrors.forbidden("Domain not allowed")

    cached = _content_cache.get(url)
    if cached is None:
        remote = fetcher.fetch(url)
        cached = {"content": remote.text, "contentType": remote.content_type}
        _content_cache[url] = cached

    return success_response(cached)


@router.get("/proxy-image")
def proxy_image(
    url: str = Query(..., description="URL of the image to fetch"),
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
):
    """Fetch an image and stream its bytes back with the upstream content type."""
    try:
        remote = fetcher.fetch(url)
    except ApiError as e:
        return error_response(e)

    content_type = remote.content_type.split(";")[0].strip().lower()
    if not content_type.startswith("image/"):
        return error_response(ApiErrors.bad_request(f"URL does not point to an image: {content_type}"))

    return Response(
        content=remote.content,
        media_type=content_type,
        headers={"Cache-Control": "public, max-age=86400"},
    )
