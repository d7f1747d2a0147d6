"""
Base repository for user-owned entities.

Every query takes the caller's user id explicitly. Lookups by id distinguish
a missing row (EntityNotFoundError) from a row owned by someone else
(AccessDeniedError).
"""
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Generic, Protocol, TypeVar
from uuid import UUID

from sqlalchemy import Select, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.base import utcnow
from services.exceptions import AccessDeniedError, EntityNotFoundError


class OwnedEntity(Protocol):
    """Protocol for rows that belong to exactly one user."""

    id: UUID
    user_id: str
    sort_order: int
    created_at: datetime
    updated_at: datetime


T = TypeVar("T", bound=OwnedEntity)


class BaseRepository(Generic[T]):
    """
    Shared data access for Bookmark, Folder and Tag.

    Subclasses must define:
    - model: The SQLAlchemy model class
    - entity_name: Human-readable name for error messages (e.g., "Bookmark")
    """

    model: type[T]
    entity_name: str

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _select(self) -> Select:
        """
        Base select for the model.

        populate_existing refreshes rows already in the identity map, which can
        be stale after database-level cascades or bulk UPDATE statements.
        """
        return select(self.model).execution_options(populate_existing=True)

    def _ordering(self) -> tuple:
        return (self.model.sort_order, self.model.created_at.desc())

    async def get_owned(self, user_id: str, entity_id: UUID) -> T:
        """
        Get an entity by id, verifying that the caller owns it.

        Raises:
            EntityNotFoundError: If no row has this id.
            AccessDeniedError: If the row belongs to another user.
        """
        result = await self.session.execute(
            self._select().where(self.model.id == entity_id),
        )
        entity = result.scalar_one_or_none()
        if entity is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        if entity.user_id != user_id:
            raise AccessDeniedError(self.entity_name, entity_id)
        return entity

    async def get_owned_many(self, user_id: str, entity_ids: Sequence[UUID]) -> list[T]:
        """
        Get several entities by id, all of which must be owned by the caller.

        Returns the entities in the order of entity_ids. Nothing is returned
        unless every id resolves; the first missing id raises EntityNotFoundError
        and any foreign row raises AccessDeniedError.
        """
        if not entity_ids:
            return []
        result = await self.session.execute(
            self._select().where(self.model.id.in_(entity_ids)),
        )
        by_id = {entity.id: entity for entity in result.scalars().all()}
        for entity_id in entity_ids:
            if entity_id not in by_id:
                raise EntityNotFoundError(self.entity_name, entity_id)
        for entity_id in entity_ids:
            if by_id[entity_id].user_id != user_id:
                raise AccessDeniedError(self.entity_name, entity_id)
        return [by_id[entity_id] for entity_id in entity_ids]

    async def list_for_user(self, user_id: str) -> list[T]:
        """Get all of the user's entities in display order."""
        result = await self.session.execute(
            self._select()
            .where(self.model.user_id == user_id)
            .order_by(*self._ordering()),
        )
        return list(result.scalars().all())

    def add(self, entity: T) -> T:
        """Stage a new entity; it is inserted on the next flush."""
        self.session.add(entity)
        return entity

    async def delete(self, entity: T) -> None:
        """Delete an entity; dependent rows follow the database cascade rules."""
        await self.session.delete(entity)
        await self.session.flush()

    async def update_sort_order(
        self, user_id: str, orders: Iterable[tuple[UUID, int]],
    ) -> None:
        """
        Apply (id, sort_order) pairs, one UPDATE per pair, scoped to the user.

        Callers wrap this in a transaction so that a failure leaves every
        sort order unchanged.
        """
        for entity_id, sort_order in orders:
            await self.session.execute(
                update(self.model)
                .where(self.model.id == entity_id, self.model.user_id == user_id)
                .values(sort_order=sort_order, updated_at=utcnow())
                .execution_options(synchronize_session=False),
            )

    async def _max_sort_order(self, *criteria: object) -> int | None:
        result = await self.session.execute(
            select(func.max(self.model.sort_order)).where(*criteria),
        )
        return result.scalar_one_or_none()

    async def owned_ids(self, user_id: str, entity_ids: Iterable[UUID]) -> set[UUID]:
        """Return the subset of entity_ids that exist and belong to the user."""
        entity_ids = list(entity_ids)
        if not entity_ids:
            return set()
        result = await self.session.execute(
            select(self.model.id).where(
                self.model.user_id == user_id, self.model.id.in_(entity_ids),
            ),
        )
        return set(result.scalars().all())
