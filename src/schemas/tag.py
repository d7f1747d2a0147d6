"""Pydantic schemas for tag endpoints."""
from datetime import datetime
from uuid import UUID

from pydantic import Field, field_validator

from schemas.base import ApiModel
from schemas.validators import validate_and_normalize_tag


class TagCreate(ApiModel):
    """Schema for creating a tag."""

    name: str
    color: str | None = Field(default=None, max_length=50)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str) -> str:
        """Normalize and validate the tag name."""
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)


class TagUpdate(ApiModel):
    """Schema for renaming a tag or changing its color. Omitted fields are unchanged."""

    name: str | None = None
    color: str | None = Field(default=None, max_length=50)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_and_validate(cls, v: str | None) -> str | None:
        """Normalize and validate the new tag name."""
        if v is None:
            raise ValueError("Tag name cannot be null")
        if not isinstance(v, str):
            raise ValueError("Tag name must be a string")
        return validate_and_normalize_tag(v)


class TagResponse(ApiModel):
    """Tag with the number of bookmarks carrying it."""

    id: UUID
    name: str
    color: str | None
    bookmark_count: int = 0
    created_at: datetime
    updated_at: datetime
