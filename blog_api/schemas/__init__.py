# blog_api/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from blog_api.schemas.friends import FriendCreate, FriendUpdate

__all__ = [
    "FriendCreate",
    "FriendUpdate",
]
