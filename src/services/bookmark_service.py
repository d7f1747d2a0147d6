"""Service layer for bookmark CRUD, click tracking, reordering and import/export."""
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from core.config import get_settings
from db.unit_of_work import UnitOfWork
from models.base import utcnow
from models.bookmark import Bookmark
from models.folder import Folder
from models.tag import BookmarkTag
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkImportRequest,
    BookmarkImportResponse,
    BookmarkResponse,
    BookmarkUpdate,
    ClickResponse,
    ImportBookmark,
    ImportFolder,
    SkippedImport,
)
from schemas.export import ExportResponse
from schemas.validators import (
    normalize_tag_name,
    normalize_url,
    validate_and_normalize_tags,
    validate_description_length,
    validate_title,
)
from services import folder_service, tag_service
from services.exceptions import DuplicateEntityError, InvalidArgumentError
from services.utils import is_unique_violation

logger = logging.getLogger(__name__)

BOOKMARK_URL_CONSTRAINT = "uq_bookmarks_user_id_url"
BOOKMARK_URL_COLUMNS = ("bookmarks.user_id", "bookmarks.url")

MOST_USED_DEFAULT = 10
MOST_USED_MAX = 100

# Reasons reported for bookmarks skipped during import
SKIP_INVALID = "invalid"
SKIP_DUPLICATE = "duplicate"


def _to_responses(bookmarks: list[Bookmark]) -> list[BookmarkResponse]:
    return [BookmarkResponse.model_validate(bookmark) for bookmark in bookmarks]


async def _reload(uow: UnitOfWork, user_id: str, bookmark_id: UUID) -> BookmarkResponse:
    """Re-read a bookmark with its tags after a write."""
    return BookmarkResponse.model_validate(await uow.bookmarks.get_owned(user_id, bookmark_id))


async def _add_bookmark(
    uow: UnitOfWork,
    user_id: str,
    *,
    url: str,
    title: str,
    description: str | None,
    favicon: str | None,
    is_favorite: bool,
    folder_id: UUID | None,
    tags: list[str],
    click_count: int = 0,
    sort_order: int | None = None,
) -> Bookmark:
    """Insert a bookmark and its tag links. When sort_order is None it goes last in its folder."""
    if sort_order is None:
        sort_order = await uow.bookmarks.next_sort_order(user_id, folder_id)
    # Tags first, so the new row is built with its links and never lazy-loads them
    tag_objects = await tag_service.get_or_create_tags(uow, user_id, tags)
    bookmark = uow.bookmarks.add(
        Bookmark(
            user_id=user_id,
            url=url,
            title=title,
            description=description,
            favicon=favicon,
            is_favorite=is_favorite,
            folder_id=folder_id,
            click_count=click_count,
            sort_order=sort_order,
            bookmark_tags=[BookmarkTag(tag=tag) for tag in tag_objects],
        ),
    )
    await uow.save_changes()
    return bookmark


# =============================================================================
# Queries
# =============================================================================


async def list_bookmarks(uow: UnitOfWork, user_id: str) -> list[BookmarkResponse]:
    """Get all of the user's bookmarks, by sort order then newest first."""
    return _to_responses(await uow.bookmarks.list_for_user(user_id))


async def get_bookmark(uow: UnitOfWork, user_id: str, bookmark_id: UUID) -> BookmarkResponse:
    """
    Get a single bookmark.

    Raises:
        EntityNotFoundError: If the bookmark doesn't exist.
        AccessDeniedError: If the bookmark belongs to another user.
    """
    return BookmarkResponse.model_validate(await uow.bookmarks.get_owned(user_id, bookmark_id))


async def list_bookmarks_by_folder(
    uow: UnitOfWork, user_id: str, folder_id: UUID | None,
) -> list[BookmarkResponse]:
    """Get bookmarks in a folder, or the unfiled bookmarks when folder_id is None."""
    if folder_id is not None:
        await uow.folders.get_owned(user_id, folder_id)
    return _to_responses(await uow.bookmarks.list_by_folder(user_id, folder_id))


async def list_favorites(uow: UnitOfWork, user_id: str) -> list[BookmarkResponse]:
    """Get the user's favorite bookmarks."""
    return _to_responses(await uow.bookmarks.list_favorites(user_id))


async def search_bookmarks(uow: UnitOfWork, user_id: str, query: str) -> list[BookmarkResponse]:
    """
    Search title, description, url and tag names (case-insensitive substring).

    Raises:
        InvalidArgumentError: If the query is blank.
    """
    term = (query or "").strip()
    if not term:
        raise InvalidArgumentError("Search query cannot be empty")
    return _to_responses(await uow.bookmarks.search(user_id, term))


async def list_most_used(
    uow: UnitOfWork, user_id: str, count: int = MOST_USED_DEFAULT,
) -> list[BookmarkResponse]:
    """
    Get the user's most clicked bookmarks.

    Raises:
        InvalidArgumentError: If count is not between 1 and 100.
    """
    if not 1 <= count <= MOST_USED_MAX:
        raise InvalidArgumentError(f"count must be between 1 and {MOST_USED_MAX}")
    return _to_responses(await uow.bookmarks.list_most_used(user_id, count))


async def check_duplicate(uow: UnitOfWork, user_id: str, url: str) -> bool:
    """
    Check whether the user already stored this URL (after normalization).

    Raises:
        InvalidArgumentError: If the URL is blank or malformed.
    """
    try:
        normalized = normalize_url(url)
    except ValueError as e:
        raise InvalidArgumentError(str(e)) from e
    return await uow.bookmarks.get_by_url(user_id, normalized) is not None


# =============================================================================
# Writes
# =============================================================================


async def create_bookmark(
    uow: UnitOfWork, user_id: str, data: BookmarkCreate,
) -> BookmarkResponse:
    """
    Create a bookmark at the end of its folder.

    Tag names are resolved to the user's existing tags; missing tags are created.

    Raises:
        DuplicateEntityError: If the user already has a bookmark with this URL.
        EntityNotFoundError: If folderId doesn't exist.
        AccessDeniedError: If the folder belongs to another user.
    """
    if await uow.bookmarks.get_by_url(user_id, data.url) is not None:
        raise DuplicateEntityError("Bookmark", "url", data.url)
    if data.folder_id is not None:
        await uow.folders.get_owned(user_id, data.folder_id)

    try:
        async with uow.transaction():
            bookmark = await _add_bookmark(
                uow,
                user_id,
                url=data.url,
                title=data.title,
                description=data.description,
                favicon=data.favicon,
                is_favorite=data.is_favorite,
                folder_id=data.folder_id,
                tags=data.tags,
            )
    except IntegrityError as e:
        # Another request stored the URL between the check and the flush
        if is_unique_violation(e, BOOKMARK_URL_CONSTRAINT, BOOKMARK_URL_COLUMNS):
            raise DuplicateEntityError("Bookmark", "url", data.url) from e
        raise

    logger.info("Created bookmark %s for user %s", bookmark.id, user_id)
    return await _reload(uow, user_id, bookmark.id)


async def update_bookmark(
    uow: UnitOfWork, user_id: str, bookmark_id: UUID, data: BookmarkUpdate,
) -> BookmarkResponse:
    """
    Partially update a bookmark. Only fields present in the request change.

    Moving to another folder puts the bookmark last in that folder. tags, when
    present, replaces the whole tag set.

    Raises:
        EntityNotFoundError: If the bookmark or target folder doesn't exist.
        AccessDeniedError: If either belongs to another user.
        DuplicateEntityError: If the new URL is already stored.
    """
    bookmark = await uow.bookmarks.get_owned(user_id, bookmark_id)
    update_data = data.model_dump(exclude_unset=True)
    tag_names = update_data.pop("tags", None)

    new_url = update_data.get("url")
    if new_url is not None and new_url != bookmark.url:
        existing = await uow.bookmarks.get_by_url(user_id, new_url)
        if existing is not None and existing.id != bookmark.id:
            raise DuplicateEntityError("Bookmark", "url", new_url)

    if "folder_id" in update_data and update_data["folder_id"] != bookmark.folder_id:
        new_folder_id = update_data["folder_id"]
        if new_folder_id is not None:
            await uow.folders.get_owned(user_id, new_folder_id)
        update_data["sort_order"] = await uow.bookmarks.next_sort_order(user_id, new_folder_id)

    try:
        async with uow.transaction():
            for field, value in update_data.items():
                setattr(bookmark, field, value)
            if tag_names is not None and await tag_service.sync_bookmark_tags(
                uow, bookmark, tag_names,
            ):
                # Link changes are not column changes, so stamp explicitly
                bookmark.updated_at = utcnow()
            await uow.save_changes()
    except IntegrityError as e:
        if is_unique_violation(e, BOOKMARK_URL_CONSTRAINT, BOOKMARK_URL_COLUMNS):
            raise DuplicateEntityError("Bookmark", "url", new_url) from e
        raise

    return await _reload(uow, user_id, bookmark.id)


async def delete_bookmark(uow: UnitOfWork, user_id: str, bookmark_id: UUID) -> None:
    """Delete a bookmark and its tag links. Tags are kept even if no longer used."""
    bookmark = await uow.bookmarks.get_owned(user_id, bookmark_id)
    async with uow.transaction():
        await uow.bookmarks.delete(bookmark)
    logger.info("Deleted bookmark %s for user %s", bookmark_id, user_id)


async def track_click(uow: UnitOfWork, user_id: str, bookmark_id: UUID) -> ClickResponse:
    """
    Record one click on a bookmark.

    The counter is incremented by a single UPDATE statement so concurrent
    clicks are never lost. The bookmark is looked up only when that UPDATE
    matched no row, to report not-found or access-denied.
    """
    click_count = await uow.bookmarks.increment_click_count(user_id, bookmark_id)
    if click_count is None:
        await uow.bookmarks.get_owned(user_id, bookmark_id)
    return ClickResponse(id=bookmark_id, click_count=click_count)


async def reorder_bookmarks(uow: UnitOfWork, user_id: str, bookmark_ids: list[UUID]) -> None:
    """
    Set sort order = list position for the given bookmarks, all or nothing.

    Raises:
        InvalidArgumentError: If ids repeat.
        EntityNotFoundError: If an id doesn't exist.
        AccessDeniedError: If a bookmark belongs to another user.
    """
    if len(set(bookmark_ids)) != len(bookmark_ids):
        raise InvalidArgumentError("Bookmark ids must not repeat")

    await uow.bookmarks.get_owned_many(user_id, bookmark_ids)

    async with uow.transaction():
        await uow.bookmarks.update_sort_order(
            user_id, [(bookmark_id, position) for position, bookmark_id in enumerate(bookmark_ids)],
        )


# =============================================================================
# Import / export
# =============================================================================


async def _import_folders(
    uow: UnitOfWork, user_id: str, folders: list[ImportFolder],
) -> dict[UUID, UUID]:
    """
    Recreate imported folders and map their source ids to ids in this account.

    Folders whose id the user already owns are reused as-is. Parents are
    created before children; a parent that cannot be resolved (missing, or
    part of a cycle in the payload) makes the folder a root folder.
    """
    referenced = {f.id for f in folders if f.id} | {
        f.parent_folder_id for f in folders if f.parent_folder_id
    }
    id_map = {folder_id: folder_id for folder_id in await uow.folders.owned_ids(user_id, referenced)}

    pending = [f for f in folders if f.id is None or f.id not in id_map]
    pending_ids = {f.id for f in pending if f.id}

    async def create(item: ImportFolder, parent_id: UUID | None) -> None:
        sort_order = item.sort_order
        if sort_order is None:
            sort_order = await uow.folders.next_sort_order(user_id, parent_id)
        folder = uow.folders.add(
            Folder(
                user_id=user_id,
                name=item.name,
                color=item.color,
                icon=item.icon,
                parent_folder_id=parent_id,
                sort_order=sort_order,
            ),
        )
        await uow.save_changes()
        if item.id is not None:
            id_map[item.id] = folder.id

    while pending:
        ready = [
            f for f in pending
            if f.parent_folder_id is None
            or f.parent_folder_id in id_map
            or f.parent_folder_id not in pending_ids
        ]
        if not ready:
            # Remaining folders only reference each other in a cycle
            logger.warning("Import folders contain a parent cycle; placing them at the root")
            for item in pending:
                await create(item, None)
            break
        for item in ready:
            await create(item, id_map.get(item.parent_folder_id))
            pending.remove(item)
            pending_ids.discard(item.id)

    return id_map


def _prepare_import_item(item: ImportBookmark, url: str) -> dict:
    """
    Validate one imported bookmark. Raises ValueError if it cannot be stored.

    A missing title falls back to the URL; an over-long favicon is dropped.
    """
    settings = get_settings()
    title = item.title.strip() if item.title else ""
    favicon = item.favicon
    if favicon and len(favicon) > settings.max_url_length:
        favicon = None
    return {
        "url": url,
        "title": validate_title(title) if title else url[: settings.max_title_length],
        "description": validate_description_length(item.description),
        "favicon": favicon or None,
        "is_favorite": item.is_favorite,
        "click_count": item.click_count,
        "sort_order": item.sort_order,
        "tags": validate_and_normalize_tags(item.tags),
    }


async def import_bookmarks(
    uow: UnitOfWork, user_id: str, data: BookmarkImportRequest,
) -> BookmarkImportResponse:
    """
    Import bookmarks together with the folders and tags they reference.

    Runs in one transaction. Each bookmark is created independently: invalid
    URLs/fields and URLs that are already stored (or repeated within the batch)
    are skipped and reported with a reason instead of failing the import.
    Any unexpected error rolls back the whole import.
    """
    created_ids: list[UUID] = []
    skipped: list[SkippedImport] = []

    async with uow.transaction():
        folder_map = await _import_folders(uow, user_id, data.folders)
        # Bookmarks may also point at folders the user already has
        unmapped = {b.folder_id for b in data.bookmarks if b.folder_id} - folder_map.keys()
        for folder_id in await uow.folders.owned_ids(user_id, unmapped):
            folder_map[folder_id] = folder_id

        tag_colors = {
            normalize_tag_name(tag.name): tag.color
            for tag in data.tags
            if normalize_tag_name(tag.name)
        }
        try:
            await tag_service.get_or_create_tags(
                uow, user_id, list(tag_colors), colors=tag_colors,
            )
        except ValueError as e:
            raise InvalidArgumentError(str(e)) from e

        seen_urls: set[str] = set()
        for item in data.bookmarks:
            try:
                url = normalize_url(item.url)
                fields = _prepare_import_item(item, url)
            except ValueError:
                skipped.append(SkippedImport(url=item.url, reason=SKIP_INVALID))
                continue

            if url in seen_urls or await uow.bookmarks.get_by_url(user_id, url) is not None:
                skipped.append(SkippedImport(url=url, reason=SKIP_DUPLICATE))
                continue
            seen_urls.add(url)

            try:
                async with uow.transaction():
                    bookmark = await _add_bookmark(
                        uow,
                        user_id,
                        folder_id=folder_map.get(item.folder_id) if item.folder_id else None,
                        **fields,
                    )
            except IntegrityError as e:
                if is_unique_violation(e, BOOKMARK_URL_CONSTRAINT, BOOKMARK_URL_COLUMNS):
                    skipped.append(SkippedImport(url=url, reason=SKIP_DUPLICATE))
                    continue
                raise
            created_ids.append(bookmark.id)

    logger.info(
        "Imported %d bookmarks for user %s (%d skipped)", len(created_ids), user_id, len(skipped),
    )
    imported = await uow.bookmarks.get_owned_many(user_id, created_ids)
    return BookmarkImportResponse(imported=_to_responses(imported), skipped=skipped)


async def export_bookmarks(uow: UnitOfWork, user_id: str) -> ExportResponse:
    """Snapshot of the user's bookmarks, folders and tags with the export time."""
    return ExportResponse(
        bookmarks=_to_responses(await uow.bookmarks.list_for_user(user_id)),
        folders=await folder_service.list_folders(uow, user_id),
        tags=await tag_service.list_tags(uow, user_id),
        exported_at=utcnow(),
    )
