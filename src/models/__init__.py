"""SQLAlchemy models."""
from models.base import Base, TimestampMixin, UUIDv7Mixin
from models.bookmark import Bookmark
from models.folder import Folder
from models.tag import BookmarkTag, Tag

__all__ = ["Base", "Bookmark", "BookmarkTag", "Folder", "Tag", "TimestampMixin", "UUIDv7Mixin"]
