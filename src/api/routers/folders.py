"""Folder endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user_id, get_unit_of_work
from db.unit_of_work import UnitOfWork
from schemas.folder import (
    FolderContentsResponse,
    FolderCreate,
    FolderReorderRequest,
    FolderResponse,
    FolderUpdate,
)
from services import folder_service

router = APIRouter(prefix="/folders", tags=["folders"])


@router.get("/", response_model=list[FolderResponse])
async def list_folders(
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[FolderResponse]:
    """List all folders (flat)."""
    return await folder_service.list_folders(uow, user_id)


@router.get("/root", response_model=list[FolderResponse])
async def list_root_folders(
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[FolderResponse]:
    """List top-level folders."""
    return await folder_service.list_root_folders(uow, user_id)


@router.post("/", response_model=FolderResponse, status_code=status.HTTP_201_CREATED)
async def create_folder(
    data: FolderCreate,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> FolderResponse:
    """Create a folder, optionally inside a parent folder."""
    return await folder_service.create_folder(uow, user_id, data)


@router.post("/reorder", status_code=status.HTTP_204_NO_CONTENT)
async def reorder_folders(
    data: FolderReorderRequest,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> None:
    """Set each sibling folder's sort order to its position in `ids`."""
    await folder_service.reorder_folders(uow, user_id, data.ids)


@router.get("/{folder_id}", response_model=FolderResponse)
async def get_folder(
    folder_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> FolderResponse:
    """Get a single folder."""
    return await folder_service.get_folder(uow, user_id, folder_id)


@router.get("/{folder_id}/contents", response_model=FolderContentsResponse)
async def get_folder_with_contents(
    folder_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> FolderContentsResponse:
    """Get a folder with its bookmarks and immediate subfolders."""
    return await folder_service.get_folder_with_contents(uow, user_id, folder_id)


@router.get("/{folder_id}/subfolders", response_model=list[FolderResponse])
async def list_subfolders(
    folder_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[FolderResponse]:
    """List the immediate children of a folder."""
    return await folder_service.list_subfolders(uow, user_id, folder_id)


@router.patch("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: UUID,
    data: FolderUpdate,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> FolderResponse:
    """
    Update a folder; omitted fields are unchanged.

    Returns 400 if the new parent is the folder itself or one of its subfolders.
    """
    return await folder_service.update_folder(uow, user_id, folder_id, data)


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_folder(
    folder_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> None:
    """Delete a folder and all of its subfolders. Their bookmarks become unfiled."""
    await folder_service.delete_folder(uow, user_id, folder_id)
