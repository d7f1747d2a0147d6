"""Tag model and the bookmark/tag join entity."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark


class Tag(Base, UUIDv7Mixin, TimestampMixin):
    """Tag model - stores unique tags per user."""

    __tablename__ = "tags"
    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tags_user_id_name"),
    )

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)

    bookmark_tags: Mapped[list["BookmarkTag"]] = relationship(
        back_populates="tag",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name={self.name!r})>"


class BookmarkTag(Base):
    """Link between one bookmark and one tag; removed when either side is deleted."""

    __tablename__ = "bookmark_tags"
    __table_args__ = (
        # Composite PK already indexes bookmark_id first
        Index("ix_bookmark_tags_tag_id", "tag_id"),
    )

    bookmark_id: Mapped[UUID] = mapped_column(
        ForeignKey("bookmarks.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag_id: Mapped[UUID] = mapped_column(
        ForeignKey("tags.id", ondelete="CASCADE"),
        primary_key=True,
    )

    bookmark: Mapped["Bookmark"] = relationship(back_populates="bookmark_tags")
    tag: Mapped[Tag] = relationship(back_populates="bookmark_tags")
