# blog_api/schemas/friends.py
"""
Schemas for the friend-link registry.

Wire and document field names are camelCase (isApproved); attributes are
snake_case. Dump with by_alias=True before writing to MongoDB or JSON.
"""

from pydantic import BaseModel, ConfigDict, Field


class FriendBase(BaseModel):
    """Fields shared by all friend payloads."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    avatar: str = Field("", description="Avatar image URL")
    name: str = Field("", max_length=100)
    title: str = Field("", max_length=200, description="Site title")
    description: str = Field("", max_length=1000)
    link: str = Field("", max_length=500, description="Site URL")
    position: str = Field("", max_length=100, description="Job title or role")
    location: str = Field("", max_length=100)
    is_approved: bool = Field(False, alias="isApproved")


class FriendCreate(FriendBase):
    """Request to add a friend link. Name and link are required."""

    name: str = Field(..., min_length=1, max_length=100)
    link: str = Field(..., min_length=1, max_length=500)


class FriendUpdate(BaseModel):
    """Partial update; only fields present in the request are written."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True, extra="ignore")

    avatar: str | None = None
    name: str | None = Field(None, min_length=1, max_length=100)
    title: str | None = Field(None, max_length=200)
    description: str | None = Field(None, max_length=1000)
    link: str | None = Field(None, min_length=1, max_length=500)
    position: str | None = Field(None, max_length=100)
    location: str | None = Field(None, max_length=100)
    is_approved: bool | None = Field(None, alias="isApproved")

    def changes(self) -> dict:
        """Fields explicitly sent by the client, keyed by wire name."""
        return self.model_dump(by_alias=True, exclude_unset=True, exclude_none=True)
