#!/usr/bin/env python3
"""
Seed script to initialize the friend-link registry.

Usage:
    python scripts/seed_friends.py
"""

import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv()

from blog_api.database import close_client, get_database
from blog_api.repositories.friends import COLLECTION_NAME, FriendRepository
from blog_api.schemas.friends import FriendCreate


# Initial friend links, approved
FRIENDS = [
    {
        "name": "FastAPI",
        "title": "FastAPI framework",
        "description": "High performance, easy to learn, fast to code, ready for production",
        "link": "https://fastapi.tiangolo.com",
        "avatar": "https://avatars.githubusercontent.com/u/156354296",
        "position": "Framework",
        "location": "Internet",
    },
    {
        "name": "MongoDB",
        "title": "MongoDB Developer Center",
        "description": "Guides and references for the document database",
        "link": "https://www.mongodb.com/developer",
        "avatar": "https://avatars.githubusercontent.com/u/45120",
        "position": "Database",
        "location": "New York",
    },
]


def seed_friends(repo: FriendRepository) -> None:
    """Insert friends whose link is not registered yet."""
    print("Seeding friends...")

    existing_links = {doc.get("link") for doc in repo.list()}

    for friend_data in FRIENDS:
        if friend_data["link"] in existing_links:
            print(f"  Friend '{friend_data['name']}' already exists, skipping.")
            continue

        friend = FriendCreate(**friend_data, is_approved=True)
        repo.create(friend.model_dump(by_alias=True))
        print(f"  Added friend: {friend_data['name']} ({friend_data['link']})")

    print(f"Done! {len(FRIENDS)} friends configured.")


if __name__ == "__main__":
    try:
        seed_friends(FriendRepository(get_database()[COLLECTION_NAME]))
    finally:
        close_client()
