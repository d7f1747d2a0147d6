"""
Unit of work over a single AsyncSession.

Groups the repositories that share one session and exposes explicit
transaction boundaries. The outer database transaction belongs to the
session (committed once per request by db.session.get_async_session);
begin/commit/rollback here operate on SAVEPOINTs, so a failed operation can
be undone without discarding the rest of the request's work.
"""
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

from db.repositories.bookmark import BookmarkRepository
from db.repositories.folder import FolderRepository
from db.repositories.tag import TagRepository


class UnitOfWork:
    """Repositories plus transaction control for one request."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.bookmarks = BookmarkRepository(session)
        self.folders = FolderRepository(session)
        self.tags = TagRepository(session)
        self._transactions: list[AsyncSessionTransaction] = []

    @property
    def in_transaction(self) -> bool:
        """True while at least one begin() has not been committed or rolled back."""
        return bool(self._transactions)

    async def begin(self) -> None:
        """Open a (nestable) transaction."""
        self._transactions.append(await self.session.begin_nested())

    async def commit(self) -> None:
        """Flush pending changes and release the innermost transaction."""
        if not self._transactions:
            raise RuntimeError("commit() called without a matching begin()")
        transaction = self._transactions.pop()
        await transaction.commit()

    async def rollback(self) -> None:
        """Discard everything done since the innermost begin()."""
        if not self._transactions:
            raise RuntimeError("rollback() called without a matching begin()")
        transaction = self._transactions.pop()
        await transaction.rollback()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator["UnitOfWork"]:
        """
        Run a block in its own transaction.

        Commits when the block exits normally and rolls back if it raises;
        the exception is re-raised.
        """
        await self.begin()
        try:
            yield self
        except Exception:
            await self.rollback()
            raise
        await self.commit()

    async def save_changes(self) -> None:
        """
        Flush all pending changes to the database.

        The before_flush hook stamps updated_at on every modified row.
        Constraint violations surface here as IntegrityError for the calling
        service to translate.
        """
        await self.session.flush()
