# blog_api/services/__init__.py
"""
Business logic services.
"""

from blog_api.services.remote_fetch import RemoteContent, RemoteFetcher
from blog_api.services.upload_service import UploadService

__all__ = [
    "RemoteContent",
    "RemoteFetcher",
    "UploadService",
]
