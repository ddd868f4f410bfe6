# blog_api/routers/friends.py
"""
Friend-link management endpoints.

GET    /api/friends          - List friends
POST   /api/friends          - Add a friend
PUT    /api/friends?id=      - Update a friend
DELETE /api/friends?id=      - Remove a friend

Responses use the {success, friends|friend|error} envelope the admin UI reads.
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from blog_api.auth import require_admin_token
from blog_api.repositories.friends import FriendRepository, get_friend_repository
from blog_api.responses import ApiError, ApiErrors, to_frontend
from blog_api.schemas.friends import FriendCreate, FriendUpdate
from blog_api.services.remote_fetch import RemoteFetcher, get_remote_fetcher
from blog_api.services.upload_service import UploadService, get_upload_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/friends", tags=["friends"])

AVATAR_DIRECTORY = "friendsAvatar"


def _error(exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.message})


def _friend_payload(doc: dict) -> dict:
    friend = to_frontend(doc)
    for field in ("createdAt", "updatedAt"):
        if hasattr(friend.get(field), "isoformat"):
            friend[field] = friend[field].isoformat()
    return friend


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.get("")
def list_friends(
    approved_only: bool = Query(False, description="Only return approved friends"),
    repo: FriendRepository = Depends(get_friend_repository),
):
    """List all friends, oldest first."""
    try:
        docs = repo.list(approved_only=approved_only)
    except ApiError as e:
        return _error(e)
    friends = [_friend_payload(d) for d in docs]
    return {"success": True, "friends": friends}


@router.post("", status_code=201, dependencies=[Depends(require_admin_token)])
def create_friend(
    request: FriendCreate,
    repo: FriendRepository = Depends(get_friend_repository),
    uploads: UploadService = Depends(get_upload_service),
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
):
    """
    Add a friend.

    An avatar hosted outside our storage is copied into it first.
    """
    data = request.model_dump(by_alias=True)
    try:
        if data["avatar"]:
            data["avatar"] = uploads.migrate_remote_image(data["avatar"], fetcher, AVATAR_DIRECTORY)
        doc = repo.create(data)
    except ApiError as e:
        logger.warning(f"Failed to add friend {request.name}: {e.message}")
        return _error(e)

    return {"success": True, "friend": _friend_payload(doc)}


@router.put("", dependencies=[Depends(require_admin_token)])
def update_friend(
    request: FriendUpdate,
    id: str = Query(..., description="Friend id"),
    repo: FriendRepository = Depends(get_friend_repository),
    uploads: UploadService = Depends(get_upload_service),
    fetcher: RemoteFetcher = Depends(get_remote_fetcher),
):
    """
    Update a friend.

    When the friend is (or becomes) approved and its avatar is hosted
    elsewhere, the avatar is copied into our storage.
    """
    changes = request.changes()
    try:
        existing = repo.get(id)
        if existing is None:
            raise ApiErrors.not_found(f"Friend {id} not found")

        avatar = changes.get("avatar", existing.get("avatar", ""))
        approved = changes.get("isApproved", existing.get("isApproved", False))
        if avatar and approved:
            migrated = uploads.migrate_remote_image(avatar, fetcher, AVATAR_DIRECTORY)
            if migrated != avatar:
                changes["avatar"] = migrated

        doc = repo.update(id, changes)
        if doc is None:
            raise ApiErrors.not_found(f"Friend {id} not found")
    except ApiError as e:
        logger.warning(f"Failed to update friend {id}: {e.message}")
        return _error(e)

    return {"success": True, "friend": _friend_payload(doc)}


@router.delete("", dependencies=[Depends(require_admin_token)])
def delete_friend(
    id: str = Query(..., description="Friend id"),
    repo: FriendRepository = Depends(get_friend_repository),
):
    """Remove a friend."""
    try:
        if not repo.delete(id):
            raise ApiErrors.not_found(f"Friend {id} not found")
    except ApiError as e:
        return _error(e)

    return {"success": True}
