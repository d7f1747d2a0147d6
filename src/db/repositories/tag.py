"""Data access for tags."""
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select

from db.repositories.base import BaseRepository
from models.tag import BookmarkTag, Tag


class TagRepository(BaseRepository[Tag]):
    """User-scoped tag queries. Tag names are stored normalized (lowercase)."""

    model = Tag
    entity_name = "Tag"

    def _ordering(self) -> tuple:
        return (Tag.name,)

    async def get_by_name(self, user_id: str, name: str) -> Tag | None:
        """Get the user's tag with this name (case-insensitive)."""
        result = await self.session.execute(
            self._select().where(Tag.user_id == user_id, Tag.name == name.strip().lower()),
        )
        return result.scalar_one_or_none()

    async def get_by_names(self, user_id: str, names: Sequence[str]) -> list[Tag]:
        """Get the user's tags whose names are in `names` (already normalized)."""
        if not names:
            return []
        result = await self.session.execute(
            self._select().where(Tag.user_id == user_id, Tag.name.in_(names)),
        )
        return list(result.scalars().all())

    async def bookmark_counts(self, user_id: str) -> dict[UUID, int]:
        """Number of bookmarks linked to each of the user's tags, including zero."""
        result = await self.session.execute(
            select(Tag.id, func.count(BookmarkTag.bookmark_id))
            .outerjoin(BookmarkTag, BookmarkTag.tag_id == Tag.id)
            .where(Tag.user_id == user_id)
            .group_by(Tag.id),
        )
        return {tag_id: count for tag_id, count in result.all()}

    async def bookmark_count(self, tag_id: UUID) -> int:
        """Number of bookmarks linked to one tag. Callers check ownership first."""
        result = await self.session.execute(
            select(func.count()).select_from(BookmarkTag).where(BookmarkTag.tag_id == tag_id),
        )
        return result.scalar_one()
