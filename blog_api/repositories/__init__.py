# blog_api/repositories/__init__.py
"""
Repositories over MongoDB collections.
"""

from blog_api.repositories.friends import FriendRepository, get_friend_repository

__all__ = [
    "FriendRepository",
    "get_friend_repository",
]
