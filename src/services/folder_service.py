"""Service layer for folder operations."""
import logging
from uuid import UUID

from db.unit_of_work import UnitOfWork
from models.folder import Folder
from schemas.bookmark import BookmarkResponse
from schemas.folder import (
    FolderContentsResponse,
    FolderCreate,
    FolderResponse,
    FolderUpdate,
)
from services.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


async def _to_responses(
    uow: UnitOfWork, user_id: str, folders: list[Folder],
) -> list[FolderResponse]:
    counts = await uow.folders.bookmark_counts(user_id, [folder.id for folder in folders])
    return [
        FolderResponse.model_validate(folder).model_copy(
            update={"bookmark_count": counts.get(folder.id, 0)},
        )
        for folder in folders
    ]


async def _to_response(uow: UnitOfWork, user_id: str, folder: Folder) -> FolderResponse:
    return (await _to_responses(uow, user_id, [folder]))[0]


async def list_folders(uow: UnitOfWork, user_id: str) -> list[FolderResponse]:
    """Get all of the user's folders (flat), in sort order."""
    return await _to_responses(uow, user_id, await uow.folders.list_for_user(user_id))


async def list_root_folders(uow: UnitOfWork, user_id: str) -> list[FolderResponse]:
    """Get the user's top-level folders."""
    return await _to_responses(uow, user_id, await uow.folders.list_root(user_id))


async def list_subfolders(
    uow: UnitOfWork, user_id: str, parent_id: UUID,
) -> list[FolderResponse]:
    """
    Get the immediate children of a folder.

    Raises:
        EntityNotFoundError: If the parent doesn't exist.
        AccessDeniedError: If the parent belongs to another user.
    """
    await uow.folders.get_owned(user_id, parent_id)
    return await _to_responses(uow, user_id, await uow.folders.list_subfolders(user_id, parent_id))


async def get_folder(uow: UnitOfWork, user_id: str, folder_id: UUID) -> FolderResponse:
    """Get a single folder."""
    folder = await uow.folders.get_owned(user_id, folder_id)
    return await _to_response(uow, user_id, folder)


async def get_folder_with_contents(
    uow: UnitOfWork, user_id: str, folder_id: UUID,
) -> FolderContentsResponse:
    """Get a folder with its bookmarks and immediate subfolders."""
    folder = await uow.folders.get_owned(user_id, folder_id)
    bookmarks = await uow.bookmarks.list_by_folder(user_id, folder_id)
    subfolders = await _to_responses(
        uow, user_id, await uow.folders.list_subfolders(user_id, folder_id),
    )
    summary = await _to_response(uow, user_id, folder)
    return FolderContentsResponse(
        **summary.model_dump(),
        bookmarks=[BookmarkResponse.model_validate(b) for b in bookmarks],
        subfolders=subfolders,
    )


async def _check_parent(
    uow: UnitOfWork, user_id: str, parent_id: UUID, folder_id: UUID | None = None,
) -> None:
    """
    Verify a proposed parent is owned by the caller and would not create a cycle.

    A folder cannot be its own parent or be placed under one of its descendants,
    which is detected by walking up from the proposed parent.
    """
    await uow.folders.get_owned(user_id, parent_id)
    if folder_id is None:
        return
    if folder_id in await uow.folders.get_ancestor_ids(user_id, parent_id):
        raise InvalidArgumentError(
            "A folder cannot be moved into itself or one of its subfolders",
        )


async def create_folder(uow: UnitOfWork, user_id: str, data: FolderCreate) -> FolderResponse:
    """
    Create a folder at the end of its sibling list.

    Raises:
        EntityNotFoundError: If parentFolderId doesn't exist.
        AccessDeniedError: If the parent belongs to another user.
    """
    if data.parent_folder_id is not None:
        await _check_parent(uow, user_id, data.parent_folder_id)

    async with uow.transaction():
        folder = uow.folders.add(
            Folder(
                user_id=user_id,
                name=data.name,
                color=data.color,
                icon=data.icon,
                parent_folder_id=data.parent_folder_id,
                sort_order=await uow.folders.next_sort_order(user_id, data.parent_folder_id),
            ),
        )
        await uow.save_changes()

    logger.info("Created folder %s for user %s", folder.id, user_id)
    return await _to_response(uow, user_id, folder)


async def update_folder(
    uow: UnitOfWork, user_id: str, folder_id: UUID, data: FolderUpdate,
) -> FolderResponse:
    """
    Update a folder. Only fields present in the request are applied.

    Moving a folder to a new parent puts it at the end of the new sibling list.

    Raises:
        EntityNotFoundError: If the folder or new parent doesn't exist.
        AccessDeniedError: If either belongs to another user.
        InvalidArgumentError: If the move would create a cycle.
    """
    folder = await uow.folders.get_owned(user_id, folder_id)
    update_data = data.model_dump(exclude_unset=True)

    if "parent_folder_id" in update_data:
        new_parent_id = update_data["parent_folder_id"]
        if new_parent_id is not None:
            await _check_parent(uow, user_id, new_parent_id, folder_id)
        if new_parent_id != folder.parent_folder_id:
            update_data["sort_order"] = await uow.folders.next_sort_order(user_id, new_parent_id)

    async with uow.transaction():
        for field, value in update_data.items():
            setattr(folder, field, value)
        await uow.save_changes()

    return await _to_response(uow, user_id, folder)


async def delete_folder(uow: UnitOfWork, user_id: str, folder_id: UUID) -> None:
    """
    Delete a folder and, through the database cascade, all of its descendants.

    Bookmarks in any deleted folder are kept with no folder.
    """
    folder = await uow.folders.get_owned(user_id, folder_id)
    async with uow.transaction():
        await uow.folders.delete(folder)
    logger.info("Deleted folder %s for user %s", folder_id, user_id)


async def reorder_folders(uow: UnitOfWork, user_id: str, folder_ids: list[UUID]) -> None:
    """
    Set sort order = list position for sibling folders, all or nothing.

    Raises:
        InvalidArgumentError: If ids repeat or the folders do not share a parent.
        EntityNotFoundError: If an id doesn't exist.
        AccessDeniedError: If a folder belongs to another user.
    """
    if len(set(folder_ids)) != len(folder_ids):
        raise InvalidArgumentError("Folder ids must not repeat")

    folders = await uow.folders.get_owned_many(user_id, folder_ids)
    if len({folder.parent_folder_id for folder in folders}) > 1:
        raise InvalidArgumentError("Only folders with the same parent can be reordered together")

    async with uow.transaction():
        await uow.folders.update_sort_order(
            user_id, [(folder_id, position) for position, folder_id in enumerate(folder_ids)],
        )
