"""FastAPI dependencies for injection."""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import get_current_user_id
from core.config import get_settings
from db.session import get_async_session
from db.unit_of_work import UnitOfWork


async def get_unit_of_work(
    db: AsyncSession = Depends(get_async_session),
) -> UnitOfWork:
    """Unit of work over the request's session (committed at request end)."""
    return UnitOfWork(db)


__all__ = [
    "get_async_session",
    "get_current_user_id",
    "get_settings",
    "get_unit_of_work",
]
