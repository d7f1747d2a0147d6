"""Service layer for tag operations."""
import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from db.unit_of_work import UnitOfWork
from models.bookmark import Bookmark
from models.tag import BookmarkTag, Tag
from schemas.tag import TagCreate, TagResponse, TagUpdate
from schemas.validators import validate_and_normalize_tags
from services.exceptions import DuplicateEntityError
from services.utils import is_unique_violation

logger = logging.getLogger(__name__)

TAG_NAME_CONSTRAINT = "uq_tags_user_id_name"
TAG_NAME_COLUMNS = ("tags.user_id", "tags.name")


def to_tag_response(tag: Tag, bookmark_count: int = 0) -> TagResponse:
    """Build the API representation of a tag."""
    return TagResponse.model_validate(tag).model_copy(
        update={"bookmark_count": bookmark_count},
    )


async def list_tags(uow: UnitOfWork, user_id: str) -> list[TagResponse]:
    """Get all of the user's tags ordered by name, with bookmark counts."""
    tags = await uow.tags.list_for_user(user_id)
    counts = await uow.tags.bookmark_counts(user_id)
    return [to_tag_response(tag, counts.get(tag.id, 0)) for tag in tags]


async def get_tag(uow: UnitOfWork, user_id: str, tag_id: UUID) -> TagResponse:
    """
    Get a single tag.

    Raises:
        EntityNotFoundError: If the tag doesn't exist.
        AccessDeniedError: If the tag belongs to another user.
    """
    tag = await uow.tags.get_owned(user_id, tag_id)
    return to_tag_response(tag, await uow.tags.bookmark_count(tag.id))


async def create_tag(uow: UnitOfWork, user_id: str, data: TagCreate) -> TagResponse:
    """
    Create a tag.

    Raises:
        DuplicateEntityError: If the user already has a tag with this name.
    """
    if await uow.tags.get_by_name(user_id, data.name) is not None:
        raise DuplicateEntityError("Tag", "name", data.name)

    try:
        async with uow.transaction():
            tag = uow.tags.add(Tag(user_id=user_id, name=data.name, color=data.color))
            await uow.save_changes()
    except IntegrityError as e:
        # Another request created the tag between the check and the flush
        if is_unique_violation(e, TAG_NAME_CONSTRAINT, TAG_NAME_COLUMNS):
            raise DuplicateEntityError("Tag", "name", data.name) from e
        raise

    logger.info("Created tag %s for user %s", tag.id, user_id)
    return to_tag_response(tag)


async def update_tag(
    uow: UnitOfWork, user_id: str, tag_id: UUID, data: TagUpdate,
) -> TagResponse:
    """
    Rename a tag and/or change its color.

    Every bookmark carrying the tag reflects the new name automatically.

    Raises:
        EntityNotFoundError: If the tag doesn't exist.
        AccessDeniedError: If the tag belongs to another user.
        DuplicateEntityError: If another tag already has the new name.
    """
    tag = await uow.tags.get_owned(user_id, tag_id)
    update_data = data.model_dump(exclude_unset=True)

    new_name = update_data.get("name")
    if new_name is not None and new_name != tag.name:
        existing = await uow.tags.get_by_name(user_id, new_name)
        if existing is not None:
            raise DuplicateEntityError("Tag", "name", new_name)

    try:
        async with uow.transaction():
            for field, value in update_data.items():
                setattr(tag, field, value)
            await uow.save_changes()
    except IntegrityError as e:
        if is_unique_violation(e, TAG_NAME_CONSTRAINT, TAG_NAME_COLUMNS):
            raise DuplicateEntityError("Tag", "name", new_name) from e
        raise

    return to_tag_response(tag, await uow.tags.bookmark_count(tag.id))


async def delete_tag(uow: UnitOfWork, user_id: str, tag_id: UUID) -> None:
    """
    Delete a tag. Bookmark links cascade automatically; bookmarks are kept.

    Raises:
        EntityNotFoundError: If the tag doesn't exist.
        AccessDeniedError: If the tag belongs to another user.
    """
    tag = await uow.tags.get_owned(user_id, tag_id)
    async with uow.transaction():
        await uow.tags.delete(tag)
    logger.info("Deleted tag %s for user %s", tag_id, user_id)


async def get_or_create_tags(
    uow: UnitOfWork,
    user_id: str,
    tag_names: list[str],
    colors: dict[str, str | None] | None = None,
) -> list[Tag]:
    """
    Get existing tags or create new ones.

    Args:
        uow: Unit of work for the request.
        user_id: User ID to scope tags.
        tag_names: Tag names to get or create (normalized here).
        colors: Optional color per normalized name, used only for new tags.

    Returns:
        Tag objects in the order of the normalized names.
    """
    normalized = validate_and_normalize_tags(tag_names)
    if not normalized:
        return []

    existing_tags = {tag.name: tag for tag in await uow.tags.get_by_names(user_id, normalized)}

    tags = []
    for name in normalized:
        if name in existing_tags:
            tags.append(existing_tags[name])
        else:
            color = (colors or {}).get(name)
            tags.append(uow.tags.add(Tag(user_id=user_id, name=name, color=color)))

    await uow.save_changes()
    return tags


async def sync_bookmark_tags(uow: UnitOfWork, bookmark: Bookmark, tag_names: list[str]) -> bool:
    """
    Make the bookmark's tag set equal to tag_names.

    Links not in tag_names are removed, missing links are added and
    existing tags are reused by name. The bookmark's bookmark_tags (with their
    tags) must already be loaded. Missing tags are created before the
    collection changes.

    Returns:
        True if any link was added or removed.
    """
    wanted = validate_and_normalize_tags(tag_names)
    current = {link.tag.name: link for link in bookmark.bookmark_tags}
    new_tags = await get_or_create_tags(
        uow, bookmark.user_id, [name for name in wanted if name not in current],
    )

    removed = [link for name, link in current.items() if name not in wanted]
    for link in removed:
        bookmark.bookmark_tags.remove(link)
    for tag in new_tags:
        bookmark.bookmark_tags.append(BookmarkTag(tag=tag))

    return bool(removed or new_tags)
