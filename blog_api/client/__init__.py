# blog_api/client/__init__.py
"""
Python client for the blog API.
"""

from blog_api.client.request import (
    RequestCancelledError,
    RequestClient,
    RequestConfig,
    RequestError,
    ResponseData,
    TokenStore,
    process_url,
)

__all__ = [
    "RequestClient",
    "RequestConfig",
    "RequestError",
    "RequestCancelledError",
    "ResponseData",
    "TokenStore",
    "process_url",
]
