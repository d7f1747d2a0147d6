"""Bookmark model for storing user bookmarks."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.folder import Folder
    from models.tag import BookmarkTag


class Bookmark(Base, UUIDv7Mixin, TimestampMixin):
    """Bookmark model - stores URLs with metadata, folder placement and tags."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        UniqueConstraint("user_id", "url", name="uq_bookmarks_user_id_url"),
    )

    # id provided by UUIDv7Mixin
    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    favicon: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    is_favorite: Mapped[bool] = mapped_column(default=False, nullable=False)
    click_count: Mapped[int] = mapped_column(default=0, nullable=False)
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)

    # Deleting a folder leaves its bookmarks unfiled
    folder_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("folders.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    folder: Mapped["Folder | None"] = relationship(back_populates="bookmarks")
    bookmark_tags: Mapped[list["BookmarkTag"]] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def tag_names(self) -> list[str]:
        """Names of the linked tags, sorted. Requires bookmark_tags.tag to be loaded."""
        return sorted(link.tag.name for link in self.bookmark_tags)

    def __repr__(self) -> str:
        return f"<Bookmark(id={self.id}, url={self.url!r})>"
