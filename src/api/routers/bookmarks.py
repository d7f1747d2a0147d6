"""Bookmark endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from api.dependencies import get_current_user_id, get_unit_of_work
from db.unit_of_work import UnitOfWork
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkImportRequest,
    BookmarkImportResponse,
    BookmarkReorderRequest,
    BookmarkResponse,
    BookmarkUpdate,
    ClickResponse,
    DuplicateCheckResponse,
)
from schemas.export import ExportResponse
from services import bookmark_service

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("/", response_model=list[BookmarkResponse])
async def list_bookmarks(
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[BookmarkResponse]:
    """List all bookmarks, by sort order then newest first."""
    return await bookmark_service.list_bookmarks(uow, user_id)


@router.get("/favorites", response_model=list[BookmarkResponse])
async def list_favorites(
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[BookmarkResponse]:
    """List favorite bookmarks."""
    return await bookmark_service.list_favorites(uow, user_id)


@router.get("/search", response_model=list[BookmarkResponse])
async def search_bookmarks(
    q: str = Query(default="", description="Matches title, description, url and tag names"),
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[BookmarkResponse]:
    """
    Case-insensitive substring search.

    Results are ordered by click count, then newest first. Returns 400 for a blank query.
    """
    return await bookmark_service.search_bookmarks(uow, user_id, q)


@router.get("/most-used", response_model=list[BookmarkResponse])
async def list_most_used(
    count: int = Query(default=bookmark_service.MOST_USED_DEFAULT, ge=1, le=100),
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[BookmarkResponse]:
    """The most clicked bookmarks (default 10)."""
    return await bookmark_service.list_most_used(uow, user_id, count)


@router.get("/check-duplicate", response_model=DuplicateCheckResponse)
async def check_duplicate(
    url: str = Query(..., description="URL to check (normalized before comparing)"),
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> DuplicateCheckResponse:
    """Whether the URL is already bookmarked."""
    is_duplicate = await bookmark_service.check_duplicate(uow, user_id, url)
    return DuplicateCheckResponse(is_duplicate=is_duplicate)


@router.get("/export", response_model=ExportResponse)
async def export_bookmarks(
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> ExportResponse:
    """Export all bookmarks, folders and tags. The result can be posted to /bookmarks/import."""
    return await bookmark_service.export_bookmarks(uow, user_id)


@router.get("/folder", response_model=list[BookmarkResponse])
@router.get("/folder/{folder_id}", response_model=list[BookmarkResponse])
async def list_bookmarks_by_folder(
    folder_id: UUID | None = None,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[BookmarkResponse]:
    """Bookmarks in a folder; without a folder id, the bookmarks not in any folder."""
    return await bookmark_service.list_bookmarks_by_folder(uow, user_id, folder_id)


@router.post("/", response_model=BookmarkResponse, status_code=status.HTTP_201_CREATED)
async def create_bookmark(
    data: BookmarkCreate,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> BookmarkResponse:
    """
    Create a bookmark.

    Returns 409 if the URL is already bookmarked.
    """
    return await bookmark_service.create_bookmark(uow, user_id, data)


@router.post("/import", response_model=BookmarkImportResponse)
async def import_bookmarks(
    data: BookmarkImportRequest,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> BookmarkImportResponse:
    """
    Import bookmarks with their folders and tags.

    Invalid and duplicate URLs are skipped and listed in `skipped`.
    """
    return await bookmark_service.import_bookmarks(uow, user_id, data)


@router.post("/reorder", status_code=status.HTTP_204_NO_CONTENT)
async def reorder_bookmarks(
    data: BookmarkReorderRequest,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> None:
    """Set each bookmark's sort order to its position in `ids`. All or nothing."""
    await bookmark_service.reorder_bookmarks(uow, user_id, data.ids)


@router.get("/{bookmark_id}", response_model=BookmarkResponse)
async def get_bookmark(
    bookmark_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> BookmarkResponse:
    """Get a single bookmark."""
    return await bookmark_service.get_bookmark(uow, user_id, bookmark_id)


@router.patch("/{bookmark_id}", response_model=BookmarkResponse)
async def update_bookmark(
    bookmark_id: UUID,
    data: BookmarkUpdate,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> BookmarkResponse:
    """Partially update a bookmark; omitted fields are unchanged."""
    return await bookmark_service.update_bookmark(uow, user_id, bookmark_id, data)


@router.delete("/{bookmark_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bookmark(
    bookmark_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> None:
    """Delete a bookmark. Its tags are kept."""
    await bookmark_service.delete_bookmark(uow, user_id, bookmark_id)


@router.post("/{bookmark_id}/click", response_model=ClickResponse)
async def track_click(
    bookmark_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> ClickResponse:
    """Record a click and return the new click count."""
    return await bookmark_service.track_click(uow, user_id, bookmark_id)
