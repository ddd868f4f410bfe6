# blog_api/routers/__init__.py
"""
API routers mounted under /api.
"""

from blog_api.routers.friends import router as friends_router
from blog_api.routers.proxy import router as proxy_router
from blog_api.routers.upload import router as upload_router

__all__ = [
    "friends_router",
    "proxy_router",
    "upload_router",
]
