"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import ApiModel
from schemas.validators import (
    normalize_url,
    validate_and_normalize_tags,
    validate_description_length,
    validate_folder_name,
    validate_title,
)


class BookmarkCreate(ApiModel):
    """Schema for creating a new bookmark."""

    url: str
    title: str
    description: str | None = None
    favicon: str | None = Field(default=None, max_length=2048)
    is_favorite: bool = False
    folder_id: UUID | None = None
    tags: list[str] = []

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Normalize the URL (lowercase scheme/host, trailing slash on bare hosts)."""
        return normalize_url(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Trim and validate the title."""
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class BookmarkUpdate(ApiModel):
    """
    Schema for partially updating a bookmark.

    Only fields present in the request are applied. Sending null clears
    description, favicon or folderId; tags, when present, replace the whole set.
    """

    url: str | None = None
    title: str | None = None
    description: str | None = None
    favicon: str | None = Field(default=None, max_length=2048)
    is_favorite: bool | None = None
    folder_id: UUID | None = None
    tags: list[str] | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str:
        """Normalize the URL; it cannot be cleared."""
        if v is None:
            raise ValueError("URL cannot be null")
        return normalize_url(v)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str | None) -> str:
        """Trim and validate the title; it cannot be cleared."""
        if v is None:
            raise ValueError("Title cannot be null")
        return validate_title(v)

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)

    @field_validator("is_favorite")
    @classmethod
    def check_is_favorite(cls, v: bool | None) -> bool:
        """isFavorite cannot be null."""
        if v is None:
            raise ValueError("isFavorite cannot be null")
        return v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags; null means an empty tag set."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)


class BookmarkResponse(ApiModel):
    """Bookmark as returned by the API, with tag names."""

    id: UUID
    url: str
    title: str
    description: str | None
    favicon: str | None
    is_favorite: bool
    click_count: int
    sort_order: int
    folder_id: UUID | None
    tags: list[str] = Field(validation_alias="tag_names", default_factory=list)
    created_at: datetime
    updated_at: datetime


class DuplicateCheckResponse(ApiModel):
    """Whether the caller already has a bookmark for the URL."""

    is_duplicate: bool


class ClickResponse(ApiModel):
    """New click count after tracking a click."""

    id: UUID
    click_count: int


class BookmarkReorderRequest(ApiModel):
    """Bookmark ids in their new order; sort order becomes the list position."""

    ids: list[UUID] = Field(..., min_length=1)


class ImportFolder(ApiModel):
    """A folder from an export file. id is the folder's id in the source data."""

    id: UUID | None = None
    name: str
    color: str | None = Field(default=None, max_length=50)
    icon: str | None = Field(default=None, max_length=100)
    sort_order: int | None = None
    parent_folder_id: UUID | None = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        """Trim and validate the folder name."""
        return validate_folder_name(v)


class ImportTag(ApiModel):
    """A tag from an export file."""

    name: str
    color: str | None = Field(default=None, max_length=50)


class ImportBookmark(ApiModel):
    """
    A bookmark from an export file or another browser.

    The url is validated per item during import so one bad record is skipped
    rather than rejecting the whole request.
    """

    url: str
    title: str | None = None
    description: str | None = None
    favicon: str | None = None
    is_favorite: bool = False
    click_count: int = Field(default=0, ge=0)
    sort_order: int | None = None
    folder_id: UUID | None = None
    tags: list[str] = []


class BookmarkImportRequest(ApiModel):
    """Bookmarks to import, plus the folders and tags they reference."""

    bookmarks: list[ImportBookmark]
    folders: list[ImportFolder] = []
    tags: list[ImportTag] = []


class SkippedImport(ApiModel):
    """A bookmark that was not imported, and why."""

    url: str
    reason: str


class BookmarkImportResponse(ApiModel):
    """Outcome of an import: created bookmarks and skipped items."""

    imported: list[BookmarkResponse]
    skipped: list[SkippedImport]
