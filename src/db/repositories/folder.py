"""Data access for folders."""
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select

from db.repositories.base import BaseRepository
from models.bookmark import Bookmark
from models.folder import Folder


class FolderRepository(BaseRepository[Folder]):
    """User-scoped folder queries."""

    model = Folder
    entity_name = "Folder"

    async def list_root(self, user_id: str) -> list[Folder]:
        """Get folders without a parent."""
        result = await self.session.execute(
            self._select()
            .where(Folder.user_id == user_id, Folder.parent_folder_id.is_(None))
            .order_by(*self._ordering()),
        )
        return list(result.scalars().all())

    async def list_subfolders(self, user_id: str, parent_id: UUID) -> list[Folder]:
        """Get the immediate children of a folder."""
        result = await self.session.execute(
            self._select()
            .where(Folder.user_id == user_id, Folder.parent_folder_id == parent_id)
            .order_by(*self._ordering()),
        )
        return list(result.scalars().all())

    async def get_ancestor_ids(self, user_id: str, folder_id: UUID) -> list[UUID]:
        """
        Walk parent links upward from folder_id.

        Returns the chain starting with folder_id itself and ending at a root
        folder. Stops if a cycle is already present in stored data.
        """
        chain: list[UUID] = []
        current: UUID | None = folder_id
        while current is not None and current not in chain:
            chain.append(current)
            result = await self.session.execute(
                select(Folder.parent_folder_id).where(
                    Folder.id == current, Folder.user_id == user_id,
                ),
            )
            current = result.scalar_one_or_none()
        return chain

    async def bookmark_counts(self, user_id: str, folder_ids: Sequence[UUID]) -> dict[UUID, int]:
        """Number of bookmarks directly inside each folder (folders with none are omitted)."""
        if not folder_ids:
            return {}
        result = await self.session.execute(
            select(Bookmark.folder_id, func.count(Bookmark.id))
            .where(Bookmark.user_id == user_id, Bookmark.folder_id.in_(folder_ids))
            .group_by(Bookmark.folder_id),
        )
        return {folder_id: count for folder_id, count in result.all()}

    async def next_sort_order(self, user_id: str, parent_id: UUID | None) -> int:
        """Sort order that places a folder after all of its siblings."""
        parent_filter = (
            Folder.parent_folder_id.is_(None) if parent_id is None
            else Folder.parent_folder_id == parent_id
        )
        current_max = await self._max_sort_order(Folder.user_id == user_id, parent_filter)
        return 0 if current_max is None else current_max + 1
