"""Tests for bookmark service operations."""
import asyncio
from pathlib import Path
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db.session import build_engine
from db.unit_of_work import UnitOfWork
from models.base import Base
from schemas.bookmark import (
    BookmarkCreate,
    BookmarkImportRequest,
    BookmarkResponse,
    BookmarkUpdate,
    ImportBookmark,
    ImportFolder,
    ImportTag,
)
from schemas.folder import FolderCreate
from schemas.tag import TagCreate
from services import bookmark_service, folder_service, tag_service
from services.exceptions import (
    AccessDeniedError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidArgumentError,
)

USER_ID = "auth0|bookmark-user"
OTHER_USER_ID = "auth0|bookmark-other"


async def _create(
    uow: UnitOfWork, user_id: str = USER_ID, **kwargs: object,
) -> BookmarkResponse:
    data = {"url": f"https://{uuid4().hex}.example/", "title": "Example"}
    data.update(kwargs)
    return await bookmark_service.create_bookmark(uow, user_id, BookmarkCreate(**data))


# =============================================================================
# Create
# =============================================================================


async def test__create_bookmark__normalizes_and_stores(uow: UnitOfWork) -> None:
    created = await _create(
        uow,
        url="  HTTPS://Example.COM  ",
        title="  Example  ",
        tags=["Python", " web  dev ", "python"],
    )

    assert created.url == "https://example.com/"
    assert created.title == "Example"
    assert created.tags == ["python", "web dev"]
    assert created.click_count == 0
    assert created.is_favorite is False
    assert created.folder_id is None


async def test__create_bookmark__duplicate_after_normalization(uow: UnitOfWork) -> None:
    await _create(uow, url="https://example.com")

    with pytest.raises(DuplicateEntityError):
        await _create(uow, url="HTTPS://EXAMPLE.com/")


async def test__create_bookmark__same_url_for_different_users(uow: UnitOfWork) -> None:
    await _create(uow, url="https://example.com/")
    other = await _create(uow, user_id=OTHER_USER_ID, url="https://example.com/")
    assert other.url == "https://example.com/"


async def test__create_bookmark__reuses_existing_tags(uow: UnitOfWork) -> None:
    await _create(uow, tags=["python"])
    await _create(uow, tags=["PYTHON", "new"])

    tags = await uow.tags.list_for_user(USER_ID)
    assert [t.name for t in tags] == ["new", "python"]


async def test__create_bookmark__links_new_and_existing_tags(uow: UnitOfWork) -> None:
    await tag_service.create_tag(uow, USER_ID, TagCreate(name="work"))

    created = await _create(uow, url="https://b.example", tags=["Work", "new"])

    assert created.tags == ["new", "work"]
    bookmark = await uow.bookmarks.get_owned(USER_ID, created.id)
    assert sorted(link.tag.name for link in bookmark.bookmark_tags) == ["new", "work"]
    counts = {t.name: t.bookmark_count for t in await tag_service.list_tags(uow, USER_ID)}
    assert counts == {"new": 1, "work": 1}


async def test__create_bookmark__appends_within_folder(uow: UnitOfWork) -> None:
    folder = await folder_service.create_folder(uow, USER_ID, FolderCreate(name="Reading"))

    first_unfiled = await _create(uow)
    second_unfiled = await _create(uow)
    first_filed = await _create(uow, folder_id=folder.id)

    assert first_unfiled.sort_order == 0
    assert second_unfiled.sort_order == 1
    assert first_filed.sort_order == 0
    assert first_filed.folder_id == folder.id


async def test__create_bookmark__folder_checks(uow: UnitOfWork) -> None:
    theirs = await folder_service.create_folder(uow, OTHER_USER_ID, FolderCreate(name="Theirs"))

    with pytest.raises(AccessDeniedError):
        await _create(uow, folder_id=theirs.id)
    with pytest.raises(EntityNotFoundError):
        await _create(uow, folder_id=uuid4())


# =============================================================================
# Read
# =============================================================================


async def test__get_bookmark__ownership(uow: UnitOfWork) -> None:
    created = await _create(uow)

    assert (await bookmark_service.get_bookmark(uow, USER_ID, created.id)).id == created.id
    with pytest.raises(AccessDeniedError):
        await bookmark_service.get_bookmark(uow, OTHER_USER_ID, created.id)
    with pytest.raises(EntityNotFoundError):
        await bookmark_service.get_bookmark(uow, USER_ID, uuid4())


async def test__list_bookmarks__only_callers(uow: UnitOfWork) -> None:
    mine = await _create(uow)
    await _create(uow, user_id=OTHER_USER_ID)

    assert [b.id for b in await bookmark_service.list_bookmarks(uow, USER_ID)] == [mine.id]


async def test__list_bookmarks_by_folder(uow: UnitOfWork) -> None:
    folder = await folder_service.create_folder(uow, USER_ID, FolderCreate(name="Work"))
    filed = await _create(uow, folder_id=folder.id)
    unfiled = await _create(uow)

    in_folder = await bookmark_service.list_bookmarks_by_folder(uow, USER_ID, folder.id)
    assert [b.id for b in in_folder] == [filed.id]
    no_folder = await bookmark_service.list_bookmarks_by_folder(uow, USER_ID, None)
    assert [b.id for b in no_folder] == [unfiled.id]

    with pytest.raises(AccessDeniedError):
        await bookmark_service.list_bookmarks_by_folder(uow, OTHER_USER_ID, folder.id)


async def test__list_favorites(uow: UnitOfWork) -> None:
    favorite = await _create(uow, is_favorite=True)
    await _create(uow)

    assert [b.id for b in await bookmark_service.list_favorites(uow, USER_ID)] == [favorite.id]


async def test__search_bookmarks__blank_query_rejected(uow: UnitOfWork) -> None:
    with pytest.raises(InvalidArgumentError):
        await bookmark_service.search_bookmarks(uow, USER_ID, "   ")


async def test__search_bookmarks__matches_tags(uow: UnitOfWork) -> None:
    tagged = await _create(uow, title="Something", tags=["databases"])
    await _create(uow, title="Other")

    result = await bookmark_service.search_bookmarks(uow, USER_ID, " DATA ")
    assert [b.id for b in result] == [tagged.id]


async def test__list_most_used__count_bounds(uow: UnitOfWork) -> None:
    with pytest.raises(InvalidArgumentError):
        await bookmark_service.list_most_used(uow, USER_ID, 0)
    with pytest.raises(InvalidArgumentError):
        await bookmark_service.list_most_used(uow, USER_ID, 101)


async def test__list_most_used__by_clicks(uow: UnitOfWork) -> None:
    popular = await _create(uow)
    quiet = await _create(uow)
    for _ in range(3):
        await bookmark_service.track_click(uow, USER_ID, popular.id)
    await bookmark_service.track_click(uow, USER_ID, quiet.id)

    result = await bookmark_service.list_most_used(uow, USER_ID, 1)
    assert [b.id for b in result] == [popular.id]


async def test__check_duplicate(uow: UnitOfWork) -> None:
    await _create(uow, url="https://example.com/path")

    assert await bookmark_service.check_duplicate(uow, USER_ID, " HTTPS://EXAMPLE.COM/path ")
    assert not await bookmark_service.check_duplicate(uow, USER_ID, "https://example.com/Path")
    assert not await bookmark_service.check_duplicate(uow, OTHER_USER_ID, "https://example.com/path")
    with pytest.raises(InvalidArgumentError):
        await bookmark_service.check_duplicate(uow, USER_ID, "not a url")


# =============================================================================
# Update / delete
# =============================================================================


async def test__update_bookmark__partial(uow: UnitOfWork) -> None:
    created = await _create(uow, description="keep me", tags=["a"])

    updated = await bookmark_service.update_bookmark(
        uow, USER_ID, created.id, BookmarkUpdate(title="New title"),
    )

    assert updated.title == "New title"
    assert updated.description == "keep me"
    assert updated.url == created.url
    assert updated.tags == ["a"]


async def test__update_bookmark__clears_nullable_fields(uow: UnitOfWork) -> None:
    created = await _create(uow, description="text", favicon="https://example.com/f.ico")

    updated = await bookmark_service.update_bookmark(
        uow, USER_ID, created.id, BookmarkUpdate(description=None, favicon=None),
    )

    assert updated.description is None
    assert updated.favicon is None


async def test__update_bookmark__replaces_tag_set(uow: UnitOfWork) -> None:
    created = await _create(uow, tags=["keep", "drop"])

    updated = await bookmark_service.update_bookmark(
        uow, USER_ID, created.id, BookmarkUpdate(tags=["keep", "Add"]),
    )
    assert updated.tags == ["add", "keep"]
    assert updated.updated_at >= created.updated_at

    cleared = await bookmark_service.update_bookmark(
        uow, USER_ID, created.id, BookmarkUpdate(tags=[]),
    )
    assert cleared.tags == []
    # Tags themselves survive
    assert {t.name for t in await uow.tags.list_for_user(USER_ID)} == {"add", "drop", "keep"}


async def test__update_bookmark__duplicate_url(uow: UnitOfWork) -> None:
    await _create(uow, url="https://taken.example/")
    created = await _create(uow)

    with pytest.raises(DuplicateEntityError):
        await bookmark_service.update_bookmark(
            uow, USER_ID, created.id, BookmarkUpdate(url="https://TAKEN.example"),
        )


async def test__update_bookmark__same_url_is_not_duplicate(uow: UnitOfWork) -> None:
    created = await _create(uow, url="https://example.com/")

    updated = await bookmark_service.update_bookmark(
        uow, USER_ID, created.id, BookmarkUpdate(url="https://example.com"),
    )
    assert updated.url == "https://example.com/"


async def test__update_bookmark__move_appends_to_folder(uow: UnitOfWork) -> None:
    folder = await folder_service.create_folder(uow, USER_ID, FolderCreate(name="Target"))
    await _create(uow, folder_id=folder.id)
    await _create(uow, folder_id=folder.id)
    moving = await _create(uow)

    moved = await bookmark_service.update_bookmark(
        uow, USER_ID, moving.id, BookmarkUpdate(folder_id=folder.id),
    )
    assert moved.folder_id == folder.id
    assert moved.sort_order == 2

    unfiled = await bookmark_service.update_bookmark(
        uow, USER_ID, moving.id, BookmarkUpdate(folder_id=None),
    )
    assert unfiled.folder_id is None


async def test__update_bookmark__other_user_denied(uow: UnitOfWork) -> None:
    created = await _create(uow)
    with pytest.raises(AccessDeniedError):
        await bookmark_service.update_bookmark(
            uow, OTHER_USER_ID, created.id, BookmarkUpdate(title="Hijack"),
        )


async def test__delete_bookmark__keeps_tags(uow: UnitOfWork) -> None:
    created = await _create(uow, tags=["python"])

    await bookmark_service.delete_bookmark(uow, USER_ID, created.id)

    with pytest.raises(EntityNotFoundError):
        await bookmark_service.get_bookmark(uow, USER_ID, created.id)
    assert [t.name for t in await uow.tags.list_for_user(USER_ID)] == ["python"]


async def test__delete_bookmark__other_user_denied(uow: UnitOfWork) -> None:
    created = await _create(uow)
    with pytest.raises(AccessDeniedError):
        await bookmark_service.delete_bookmark(uow, OTHER_USER_ID, created.id)


# =============================================================================
# Clicks and reordering
# =============================================================================


async def test__track_click__counts_every_click(uow: UnitOfWork) -> None:
    created = await _create(uow)

    results = [await bookmark_service.track_click(uow, USER_ID, created.id) for _ in range(5)]

    assert [r.click_count for r in results] == [1, 2, 3, 4, 5]
    assert (await bookmark_service.get_bookmark(uow, USER_ID, created.id)).click_count == 5


async def test__track_click__concurrent_clicks_from_separate_sessions(tmp_path: Path) -> None:
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'clicks.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    clicks = 10

    async def click(bookmark_id: UUID) -> None:
        async with session_factory() as session:
            await bookmark_service.track_click(UnitOfWork(session), USER_ID, bookmark_id)
            await session.commit()

    try:
        async with session_factory() as session:
            created = await _create(UnitOfWork(session))
            await session.commit()

        await asyncio.gather(*(click(created.id) for _ in range(clicks)))

        async with session_factory() as session:
            stored = await bookmark_service.get_bookmark(UnitOfWork(session), USER_ID, created.id)
    finally:
        await engine.dispose()

    assert stored.click_count == clicks


async def test__track_click__does_not_touch_updated_at(uow: UnitOfWork) -> None:
    created = await _create(uow)
    before = await bookmark_service.get_bookmark(uow, USER_ID, created.id)

    await bookmark_service.track_click(uow, USER_ID, created.id)

    after = await bookmark_service.get_bookmark(uow, USER_ID, created.id)
    assert after.updated_at == before.updated_at


async def test__track_click__ownership(uow: UnitOfWork) -> None:
    created = await _create(uow)
    with pytest.raises(AccessDeniedError):
        await bookmark_service.track_click(uow, OTHER_USER_ID, created.id)
    with pytest.raises(EntityNotFoundError):
        await bookmark_service.track_click(uow, USER_ID, uuid4())


async def test__reorder_bookmarks__sets_positions(uow: UnitOfWork) -> None:
    first = await _create(uow)
    second = await _create(uow)
    third = await _create(uow)

    await bookmark_service.reorder_bookmarks(uow, USER_ID, [third.id, first.id, second.id])

    listed = await bookmark_service.list_bookmarks(uow, USER_ID)
    assert [b.id for b in listed] == [third.id, first.id, second.id]
    assert [b.sort_order for b in listed] == [0, 1, 2]


async def test__reorder_bookmarks__all_or_nothing(uow: UnitOfWork) -> None:
    first = await _create(uow)
    second = await _create(uow)
    theirs = await _create(uow, user_id=OTHER_USER_ID)

    with pytest.raises(AccessDeniedError):
        await bookmark_service.reorder_bookmarks(uow, USER_ID, [second.id, theirs.id, first.id])
    with pytest.raises(EntityNotFoundError):
        await bookmark_service.reorder_bookmarks(uow, USER_ID, [second.id, uuid4()])
    with pytest.raises(InvalidArgumentError):
        await bookmark_service.reorder_bookmarks(uow, USER_ID, [first.id, first.id])

    listed = await bookmark_service.list_bookmarks(uow, USER_ID)
    assert [(b.id, b.sort_order) for b in listed] == [(first.id, 0), (second.id, 1)]


# =============================================================================
# Import / export
# =============================================================================


async def test__import_bookmarks__skips_invalid_and_duplicates(uow: UnitOfWork) -> None:
    await _create(uow, url="https://existing.example/")

    result = await bookmark_service.import_bookmarks(
        uow,
        USER_ID,
        BookmarkImportRequest(
            bookmarks=[
                ImportBookmark(url="https://new.example/", title="New", tags=["Imported"]),
                ImportBookmark(url="not a url"),
                ImportBookmark(url="https://EXISTING.example"),
                ImportBookmark(url="https://new.example"),
                ImportBookmark(url="https://untitled.example/page"),
            ],
        ),
    )

    assert [b.url for b in result.imported] == [
        "https://new.example/",
        "https://untitled.example/page",
    ]
    assert result.imported[0].tags == ["imported"]
    # A missing title falls back to the URL
    assert result.imported[1].title == "https://untitled.example/page"
    assert [(s.url, s.reason) for s in result.skipped] == [
        ("not a url", bookmark_service.SKIP_INVALID),
        ("https://existing.example/", bookmark_service.SKIP_DUPLICATE),
        ("https://new.example/", bookmark_service.SKIP_DUPLICATE),
    ]


async def test__import_bookmarks__links_tags_per_bookmark(uow: UnitOfWork) -> None:
    await tag_service.create_tag(uow, USER_ID, TagCreate(name="t1"))

    result = await bookmark_service.import_bookmarks(
        uow,
        USER_ID,
        BookmarkImportRequest(
            bookmarks=[
                ImportBookmark(url="https://one.example/", title="One", tags=["t1"]),
                ImportBookmark(url="https://two.example/", title="Two", tags=["T1", "t2"]),
            ],
        ),
    )

    assert [b.tags for b in result.imported] == [["t1"], ["t1", "t2"]]
    counts = {t.name: t.bookmark_count for t in await tag_service.list_tags(uow, USER_ID)}
    assert counts == {"t1": 2, "t2": 1}


async def test__import_bookmarks__recreates_folder_tree(uow: UnitOfWork) -> None:
    parent_id = uuid4()
    child_id = uuid4()

    result = await bookmark_service.import_bookmarks(
        uow,
        USER_ID,
        BookmarkImportRequest(
            # Child listed first; parents are still created before children
            folders=[
                ImportFolder(id=child_id, name="Child", parent_folder_id=parent_id),
                ImportFolder(id=parent_id, name="Parent"),
            ],
            tags=[ImportTag(name="Colored", color="#ff0000")],
            bookmarks=[
                ImportBookmark(
                    url="https://filed.example/", title="Filed", folder_id=child_id,
                    tags=["colored"], click_count=7, is_favorite=True,
                ),
            ],
        ),
    )

    folders = {f.name: f for f in await folder_service.list_folders(uow, USER_ID)}
    assert set(folders) == {"Parent", "Child"}
    assert folders["Child"].parent_folder_id == folders["Parent"].id
    assert folders["Parent"].parent_folder_id is None

    imported = result.imported[0]
    assert imported.folder_id == folders["Child"].id
    assert imported.click_count == 7
    assert imported.is_favorite is True

    tag = await uow.tags.get_by_name(USER_ID, "colored")
    assert tag.color == "#ff0000"


async def test__import_bookmarks__folder_cycle_lands_at_root(uow: UnitOfWork) -> None:
    first_id = uuid4()
    second_id = uuid4()

    await bookmark_service.import_bookmarks(
        uow,
        USER_ID,
        BookmarkImportRequest(
            folders=[
                ImportFolder(id=first_id, name="First", parent_folder_id=second_id),
                ImportFolder(id=second_id, name="Second", parent_folder_id=first_id),
            ],
            bookmarks=[],
        ),
    )

    folders = await folder_service.list_folders(uow, USER_ID)
    assert sorted(f.name for f in folders) == ["First", "Second"]
    assert all(f.parent_folder_id is None for f in folders)


async def test__import_bookmarks__uses_existing_folder(uow: UnitOfWork) -> None:
    folder = await folder_service.create_folder(uow, USER_ID, FolderCreate(name="Existing"))

    result = await bookmark_service.import_bookmarks(
        uow,
        USER_ID,
        BookmarkImportRequest(
            bookmarks=[ImportBookmark(url="https://a.example/", folder_id=folder.id)],
        ),
    )

    assert result.imported[0].folder_id == folder.id
    assert len(await folder_service.list_folders(uow, USER_ID)) == 1


async def test__import_bookmarks__foreign_folder_becomes_unfiled(uow: UnitOfWork) -> None:
    theirs = await folder_service.create_folder(uow, OTHER_USER_ID, FolderCreate(name="Theirs"))

    result = await bookmark_service.import_bookmarks(
        uow,
        USER_ID,
        BookmarkImportRequest(
            bookmarks=[ImportBookmark(url="https://a.example/", folder_id=theirs.id)],
        ),
    )

    assert result.imported[0].folder_id is None


async def test__export_then_import__round_trip(uow: UnitOfWork) -> None:
    folder = await folder_service.create_folder(uow, USER_ID, FolderCreate(name="Docs"))
    await _create(uow, url="https://one.example/", tags=["python"], folder_id=folder.id)
    await _create(uow, url="https://two.example/", is_favorite=True)

    exported = await bookmark_service.export_bookmarks(uow, USER_ID)
    assert {b.url for b in exported.bookmarks} == {"https://one.example/", "https://two.example/"}
    assert [f.name for f in exported.folders] == ["Docs"]
    assert [t.name for t in exported.tags] == ["python"]
    assert exported.tags[0].bookmark_count == 1
    assert exported.exported_at is not None

    # Another account imports the exported JSON as-is
    payload = BookmarkImportRequest.model_validate(exported.model_dump(mode="json", by_alias=True))
    result = await bookmark_service.import_bookmarks(uow, OTHER_USER_ID, payload)

    assert result.skipped == []
    by_url = {b.url: b for b in result.imported}
    assert set(by_url) == {"https://one.example/", "https://two.example/"}
    assert by_url["https://one.example/"].tags == ["python"]
    assert by_url["https://two.example/"].is_favorite is True

    other_folders = await folder_service.list_folders(uow, OTHER_USER_ID)
    assert [f.name for f in other_folders] == ["Docs"]
    assert other_folders[0].id != folder.id
    assert by_url["https://one.example/"].folder_id == other_folders[0].id

    # Importing the same export again only reports duplicates
    again = await bookmark_service.import_bookmarks(uow, OTHER_USER_ID, payload)
    assert again.imported == []
    assert {s.reason for s in again.skipped} == {bookmark_service.SKIP_DUPLICATE}
