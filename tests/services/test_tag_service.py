"""Tests for tag service operations."""
from unittest.mock import patch
from uuid import uuid4

import pytest

from db.unit_of_work import UnitOfWork
from models.tag import Tag
from schemas.bookmark import BookmarkCreate
from schemas.tag import TagCreate, TagUpdate
from services import bookmark_service, tag_service
from services.exceptions import AccessDeniedError, DuplicateEntityError, EntityNotFoundError

USER_ID = "auth0|tag-user"
OTHER_USER_ID = "auth0|tag-other"


async def test__create_tag__normalizes_name(uow: UnitOfWork) -> None:
    tag = await tag_service.create_tag(uow, USER_ID, TagCreate(name="  Machine   Learning "))

    assert tag.name == "machine learning"
    assert tag.bookmark_count == 0


async def test__create_tag__duplicate_name(uow: UnitOfWork) -> None:
    await tag_service.create_tag(uow, USER_ID, TagCreate(name="python"))

    with pytest.raises(DuplicateEntityError):
        await tag_service.create_tag(uow, USER_ID, TagCreate(name="PYTHON"))

    # Names are only unique per user
    other = await tag_service.create_tag(uow, OTHER_USER_ID, TagCreate(name="python"))
    assert other.name == "python"


async def test__list_tags__counts_bookmarks(uow: UnitOfWork) -> None:
    await bookmark_service.create_bookmark(
        uow, USER_ID, BookmarkCreate(url="https://a.example/", title="A", tags=["web", "python"]),
    )
    await bookmark_service.create_bookmark(
        uow, USER_ID, BookmarkCreate(url="https://b.example/", title="B", tags=["python"]),
    )
    await tag_service.create_tag(uow, USER_ID, TagCreate(name="unused"))

    tags = await tag_service.list_tags(uow, USER_ID)
    assert [(t.name, t.bookmark_count) for t in tags] == [
        ("python", 2),
        ("unused", 0),
        ("web", 1),
    ]
    assert await tag_service.list_tags(uow, OTHER_USER_ID) == []


async def test__get_tag__ownership(uow: UnitOfWork) -> None:
    tag = await tag_service.create_tag(uow, USER_ID, TagCreate(name="mine"))

    assert (await tag_service.get_tag(uow, USER_ID, tag.id)).name == "mine"
    with pytest.raises(AccessDeniedError):
        await tag_service.get_tag(uow, OTHER_USER_ID, tag.id)
    with pytest.raises(EntityNotFoundError):
        await tag_service.get_tag(uow, USER_ID, uuid4())


async def test__update_tag__rename_shows_on_bookmarks(uow: UnitOfWork) -> None:
    bookmark = await bookmark_service.create_bookmark(
        uow, USER_ID, BookmarkCreate(url="https://a.example/", title="A", tags=["js"]),
    )
    tag = await uow.tags.get_by_name(USER_ID, "js")

    renamed = await tag_service.update_tag(uow, USER_ID, tag.id, TagUpdate(name="JavaScript"))

    assert renamed.name == "javascript"
    assert renamed.bookmark_count == 1
    reloaded = await bookmark_service.get_bookmark(uow, USER_ID, bookmark.id)
    assert reloaded.tags == ["javascript"]


async def test__update_tag__color_only(uow: UnitOfWork) -> None:
    tag = await tag_service.create_tag(uow, USER_ID, TagCreate(name="color"))

    updated = await tag_service.update_tag(uow, USER_ID, tag.id, TagUpdate(color="#00ff00"))

    assert updated.name == "color"
    assert updated.color == "#00ff00"


async def test__update_tag__rename_to_existing_name(uow: UnitOfWork) -> None:
    await tag_service.create_tag(uow, USER_ID, TagCreate(name="taken"))
    tag = await tag_service.create_tag(uow, USER_ID, TagCreate(name="free"))

    with pytest.raises(DuplicateEntityError):
        await tag_service.update_tag(uow, USER_ID, tag.id, TagUpdate(name="Taken"))


async def test__delete_tag__keeps_bookmarks(uow: UnitOfWork) -> None:
    bookmark = await bookmark_service.create_bookmark(
        uow, USER_ID, BookmarkCreate(url="https://a.example/", title="A", tags=["gone", "kept"]),
    )
    tag = await uow.tags.get_by_name(USER_ID, "gone")

    await tag_service.delete_tag(uow, USER_ID, tag.id)

    reloaded = await bookmark_service.get_bookmark(uow, USER_ID, bookmark.id)
    assert reloaded.tags == ["kept"]
    with pytest.raises(EntityNotFoundError):
        await tag_service.get_tag(uow, USER_ID, tag.id)


async def test__delete_tag__other_user_denied(uow: UnitOfWork) -> None:
    tag = await tag_service.create_tag(uow, USER_ID, TagCreate(name="mine"))
    with pytest.raises(AccessDeniedError):
        await tag_service.delete_tag(uow, OTHER_USER_ID, tag.id)


async def test__get_or_create_tags__reuses_and_creates(uow: UnitOfWork) -> None:
    existing = await tag_service.create_tag(uow, USER_ID, TagCreate(name="existing"))

    tags = await tag_service.get_or_create_tags(
        uow, USER_ID, ["Existing", "fresh", "", "FRESH"], colors={"fresh": "#abcdef"},
    )

    assert [t.name for t in tags] == ["existing", "fresh"]
    assert tags[0].id == existing.id
    assert tags[0].color is None
    assert tags[1].color == "#abcdef"


async def test__get_tag__counts_only_its_bookmarks(uow: UnitOfWork) -> None:
    await bookmark_service.create_bookmark(
        uow, USER_ID, BookmarkCreate(url="https://a.example/", title="A", tags=["one", "two"]),
    )
    await bookmark_service.create_bookmark(
        uow, USER_ID, BookmarkCreate(url="https://b.example/", title="B", tags=["two"]),
    )
    one = await uow.tags.get_by_name(USER_ID, "one")
    two = await uow.tags.get_by_name(USER_ID, "two")

    assert (await tag_service.get_tag(uow, USER_ID, one.id)).bookmark_count == 1
    assert (await tag_service.get_tag(uow, USER_ID, two.id)).bookmark_count == 2


async def test__delete_tag__failure_keeps_tag(uow: UnitOfWork) -> None:
    tag = await tag_service.create_tag(uow, USER_ID, TagCreate(name="mine"))

    async def delete_then_fail(entity: Tag) -> None:
        await uow.session.delete(entity)
        await uow.session.flush()
        raise RuntimeError("boom")

    with (
        patch.object(uow.tags, "delete", side_effect=delete_then_fail),
        pytest.raises(RuntimeError, match="boom"),
    ):
        await tag_service.delete_tag(uow, USER_ID, tag.id)

    assert (await tag_service.get_tag(uow, USER_ID, tag.id)).name == "mine"
