"""Tag management endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, status

from api.dependencies import get_current_user_id, get_unit_of_work
from db.unit_of_work import UnitOfWork
from schemas.tag import TagCreate, TagResponse, TagUpdate
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=list[TagResponse])
async def list_tags(
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> list[TagResponse]:
    """Get all tags ordered by name, with the number of bookmarks using each."""
    return await tag_service.list_tags(uow, user_id)


@router.post("/", response_model=TagResponse, status_code=status.HTTP_201_CREATED)
async def create_tag(
    data: TagCreate,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> TagResponse:
    """
    Create a tag. Names are stored lowercase.

    Returns 409 if a tag with the same name exists.
    """
    return await tag_service.create_tag(uow, user_id, data)


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(
    tag_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> TagResponse:
    """Get a single tag."""
    return await tag_service.get_tag(uow, user_id, tag_id)


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> TagResponse:
    """
    Rename a tag or change its color.

    All bookmarks using this tag automatically reflect the new name.
    Returns 409 if a tag with the new name already exists.
    """
    return await tag_service.update_tag(uow, user_id, tag_id, data)


@router.delete("/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(
    tag_id: UUID,
    user_id: str = Depends(get_current_user_id),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> None:
    """Delete a tag. It is removed from all bookmarks; the bookmarks are kept."""
    await tag_service.delete_tag(uow, user_id, tag_id)
