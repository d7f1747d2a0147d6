"""Folder model - a per-user tree of folders holding bookmarks."""
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDv7Mixin

if TYPE_CHECKING:
    from models.bookmark import Bookmark


class Folder(Base, UUIDv7Mixin, TimestampMixin):
    """
    Folder model with a self-referencing parent.

    Deleting a folder removes all descendant folders through the database-level
    ON DELETE CASCADE on parent_folder_id. Bookmarks inside any deleted folder
    are kept with folder_id set to NULL.
    """

    __tablename__ = "folders"

    user_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str | None] = mapped_column(String(50), nullable=True)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)
    parent_folder_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("folders.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )

    parent: Mapped["Folder | None"] = relationship(
        back_populates="subfolders",
        remote_side="Folder.id",
    )
    subfolders: Mapped[list["Folder"]] = relationship(
        back_populates="parent",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    bookmarks: Mapped[list["Bookmark"]] = relationship(
        back_populates="folder",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Folder(id={self.id}, name={self.name!r})>"
