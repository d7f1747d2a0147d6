"""Pydantic schema for the full data export."""
from datetime import datetime

from schemas.base import ApiModel
from schemas.bookmark import BookmarkResponse
from schemas.folder import FolderResponse
from schemas.tag import TagResponse


class ExportResponse(ApiModel):
    """Snapshot of everything the user owns."""

    bookmarks: list[BookmarkResponse]
    folders: list[FolderResponse]
    tags: list[TagResponse]
    exported_at: datetime
