"""Data access for bookmarks."""
from uuid import UUID

from sqlalchemy import Select, exists, or_, select, update
from sqlalchemy.orm import selectinload

from db.repositories.base import BaseRepository
from models.bookmark import Bookmark
from models.tag import BookmarkTag, Tag
from services.utils import escape_ilike


class BookmarkRepository(BaseRepository[Bookmark]):
    """User-scoped bookmark queries. Results always carry their tags."""

    model = Bookmark
    entity_name = "Bookmark"

    def _select(self) -> Select:
        return super()._select().options(
            selectinload(Bookmark.bookmark_tags).selectinload(BookmarkTag.tag),
        )

    async def list_by_folder(self, user_id: str, folder_id: UUID | None) -> list[Bookmark]:
        """Get bookmarks in a folder, or unfiled bookmarks when folder_id is None."""
        folder_filter = (
            Bookmark.folder_id.is_(None) if folder_id is None
            else Bookmark.folder_id == folder_id
        )
        result = await self.session.execute(
            self._select()
            .where(Bookmark.user_id == user_id, folder_filter)
            .order_by(*self._ordering()),
        )
        return list(result.scalars().all())

    async def list_favorites(self, user_id: str) -> list[Bookmark]:
        """Get bookmarks flagged as favorite."""
        result = await self.session.execute(
            self._select()
            .where(Bookmark.user_id == user_id, Bookmark.is_favorite.is_(True))
            .order_by(*self._ordering()),
        )
        return list(result.scalars().all())

    async def search(self, user_id: str, term: str) -> list[Bookmark]:
        """
        Case-insensitive substring search over title, description, url and tag names.

        Most clicked bookmarks come first, then the most recently created.
        """
        pattern = f"%{escape_ilike(term)}%"
        tag_match = exists(
            select(BookmarkTag.bookmark_id)
            .join(Tag, Tag.id == BookmarkTag.tag_id)
            .where(
                BookmarkTag.bookmark_id == Bookmark.id,
                Tag.name.ilike(pattern, escape="\\"),
            ),
        )
        result = await self.session.execute(
            self._select()
            .where(
                Bookmark.user_id == user_id,
                or_(
                    Bookmark.title.ilike(pattern, escape="\\"),
                    Bookmark.description.ilike(pattern, escape="\\"),
                    Bookmark.url.ilike(pattern, escape="\\"),
                    tag_match,
                ),
            )
            .order_by(Bookmark.click_count.desc(), Bookmark.created_at.desc()),
        )
        return list(result.scalars().all())

    async def list_most_used(self, user_id: str, count: int) -> list[Bookmark]:
        """Get the top `count` bookmarks by click count."""
        result = await self.session.execute(
            self._select()
            .where(Bookmark.user_id == user_id)
            .order_by(Bookmark.click_count.desc(), Bookmark.created_at.desc())
            .limit(count),
        )
        return list(result.scalars().all())

    async def get_by_url(self, user_id: str, url: str) -> Bookmark | None:
        """Get the user's bookmark with this (already normalized) url."""
        result = await self.session.execute(
            self._select().where(Bookmark.user_id == user_id, Bookmark.url == url),
        )
        return result.scalar_one_or_none()

    async def next_sort_order(self, user_id: str, folder_id: UUID | None) -> int:
        """Sort order that places a bookmark after every other bookmark in the same folder."""
        folder_filter = (
            Bookmark.folder_id.is_(None) if folder_id is None
            else Bookmark.folder_id == folder_id
        )
        current_max = await self._max_sort_order(Bookmark.user_id == user_id, folder_filter)
        return 0 if current_max is None else current_max + 1

    async def increment_click_count(self, user_id: str, bookmark_id: UUID) -> int | None:
        """
        Atomically add one to the click counter and return the new value.

        Runs as a single UPDATE ... SET click_count = click_count + 1 so
        concurrent clicks never lose an increment. Returns None if no row
        matched. updated_at is not touched.
        """
        result = await self.session.execute(
            update(Bookmark)
            .where(Bookmark.id == bookmark_id, Bookmark.user_id == user_id)
            .values(click_count=Bookmark.click_count + 1)
            .returning(Bookmark.click_count)
            .execution_options(synchronize_session=False),
        )
        return result.scalar_one_or_none()
