"""Pydantic schemas for folder endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import ApiModel
from schemas.bookmark import BookmarkResponse
from schemas.validators import validate_folder_name


class FolderCreate(ApiModel):
    """Schema for creating a folder."""

    name: str
    color: str | None = Field(default=None, max_length=50)
    icon: str | None = Field(default=None, max_length=100)
    parent_folder_id: UUID | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Trim and validate the folder name."""
        return validate_folder_name(v)


class FolderUpdate(ApiModel):
    """
    Schema for updating a folder.

    Only fields present in the request are applied. Sending parentFolderId
    as null moves the folder to the root.
    """

    name: str | None = None
    color: str | None = Field(default=None, max_length=50)
    icon: str | None = Field(default=None, max_length=100)
    parent_folder_id: UUID | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str | None) -> str | None:
        """Trim and validate the folder name; it cannot be cleared."""
        if v is None:
            raise ValueError("Folder name cannot be null")
        return validate_folder_name(v)


class FolderResponse(ApiModel):
    """Folder with the number of bookmarks directly inside it."""

    id: UUID
    name: str
    color: str | None
    icon: str | None
    sort_order: int
    parent_folder_id: UUID | None
    bookmark_count: int = 0
    created_at: datetime
    updated_at: datetime


class FolderContentsResponse(FolderResponse):
    """Folder with its bookmarks and immediate subfolders."""

    bookmarks: list[BookmarkResponse]
    subfolders: list[FolderResponse]


class FolderReorderRequest(ApiModel):
    """Folder ids in their new order; all must share the same parent."""

    ids: list[UUID] = Field(..., min_length=1)
