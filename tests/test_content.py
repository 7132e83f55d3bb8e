"""Tests for the unified post listing and write dispatch."""

import asyncio
from datetime import datetime, UTC
from unittest.mock import AsyncMock, MagicMock

import pytest
from litestar.exceptions import NotFoundException, ValidationException

from deskpress.content.posts import DatabasePost, PostFormData, StaticPost, effective_timestamp, unify
from deskpress.content.unified import ContentService
from deskpress.db.services import post_service
from deskpress.lib.exceptions import RemoteServiceError
from deskpress.lib.github import WriteConflict, WriteSuccess


def _db_post(id="db-1", updated_at=None, published_at=None) -> DatabasePost:
    return DatabasePost(
        id=id,
        slug=id,
        title=id,
        excerpt=None,
        content="",
        image_url=None,
        published=True,
        published_at=published_at,
        created_at=None,
        updated_at=updated_at,
    )


def _static_post(slug="s", updated_at=None, file_name="s.md", file_sha="sha") -> StaticPost:
    return StaticPost(
        id=f"static-{slug}",
        slug=slug,
        title=slug,
        excerpt=None,
        content="",
        image_url=None,
        published_at=updated_at,
        created_at=updated_at,
        updated_at=updated_at,
        file_name=file_name,
        file_sha=file_sha,
    )


def _static_service(posts=None, error=None):
    service = MagicMock()
    if error is not None:
        service.get_all_static_posts = AsyncMock(side_effect=error)
    else:
        service.get_all_static_posts = AsyncMock(return_value=posts or [])
    by_slug = {p.slug: p for p in posts or []}
    service.get_static_post = AsyncMock(side_effect=by_slug.get)
    service.create_static_post = AsyncMock(return_value=WriteSuccess(sha="new"))
    service.update_static_post = AsyncMock(return_value=WriteSuccess(sha="next"))
    service.delete_static_post = AsyncMock(return_value=WriteSuccess(sha=None))
    return service


class TestUnify:
    def test_effective_timestamp_fallbacks(self):
        updated = datetime(2026, 3, 1, tzinfo=UTC)
        published = datetime(2026, 2, 1, tzinfo=UTC)

        assert effective_timestamp(_db_post(updated_at=updated, published_at=published)) == updated
        assert effective_timestamp(_db_post(published_at=published)) == published
        assert effective_timestamp(_db_post()) == datetime(1970, 1, 1, tzinfo=UTC)

    def test_naive_timestamps_compare_as_utc(self):
        assert effective_timestamp(_db_post(updated_at=datetime(2026, 1, 1))) == datetime(2026, 1, 1, tzinfo=UTC)

    def test_newest_first_and_stable(self):
        older = _db_post("older", updated_at=datetime(2026, 1, 1, tzinfo=UTC))
        tie_a = _db_post("tie-a", updated_at=datetime(2026, 2, 1, tzinfo=UTC))
        tie_b = _static_post("tie-b", updated_at=datetime(2026, 2, 1, tzinfo=UTC))
        newest = _static_post("newest", updated_at=datetime(2026, 3, 1, tzinfo=UTC))
        undated = _static_post("undated")

        merged = unify([older, tie_a], [tie_b, newest, undated])
        assert [p.id for p in merged] == ["static-newest", "tie-a", "static-tie-b", "older", "static-undated"]


class TestListAllPosts:
    @pytest.mark.asyncio
    async def test_merges_both_sources(self, db_session, admin_user):
        await post_service.create_post(db_session, PostFormData(slug="db", title="DB"), admin_user)
        static = _static_post("repo", updated_at=datetime(1999, 1, 1, tzinfo=UTC))
        service = ContentService(db_session, _static_service([static]))

        posts = await service.list_all_posts()

        assert [p.source for p in posts] == ["database", "static"]

    @pytest.mark.asyncio
    async def test_static_failure_degrades_to_database_posts(self, db_session, admin_user):
        await post_service.create_post(db_session, PostFormData(slug="db", title="DB"), admin_user)
        service = ContentService(db_session, _static_service(error=RemoteServiceError("down")))

        posts = await service.list_all_posts()
        assert [p.slug for p in posts] == ["db"]

    @pytest.mark.asyncio
    async def test_database_failure_fails_the_listing(self, db_session, monkeypatch):
        monkeypatch.setattr(post_service, "list_posts", AsyncMock(side_effect=RuntimeError("db down")))
        service = ContentService(db_session, _static_service([_static_post("repo")]))

        with pytest.raises(RuntimeError, match="db down"):
            await service.list_all_posts()

    @pytest.mark.asyncio
    async def test_database_failure_cancels_the_static_fetch(self, db_session, monkeypatch):
        started = asyncio.Event()
        cancelled = asyncio.Event()

        async def slow_listing():
            started.set()
            try:
                await asyncio.sleep(60)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return []

        async def failing_list_posts(db_session):
            await started.wait()
            raise RuntimeError("db down")

        static = _static_service()
        static.get_all_static_posts = slow_listing
        monkeypatch.setattr(post_service, "list_posts", failing_list_posts)

        with pytest.raises(RuntimeError, match="db down"):
            await ContentService(db_session, static).list_all_posts()
        assert cancelled.is_set()


class TestFindPost:
    @pytest.mark.asyncio
    async def test_static_prefix_looks_up_the_slug(self, db_session):
        static = _static_post("hello")
        service = ContentService(db_session, _static_service([static]))

        assert await service.find_post("static-hello") == static
        service.static_posts.get_static_post.assert_awaited_once_with("hello")
        service.static_posts.get_all_static_posts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_id(self, db_session, admin_user):
        post = await post_service.create_post(db_session, PostFormData(slug="db", title="DB"), admin_user)
        service = ContentService(db_session, _static_service())

        found = await service.find_post(str(post.id))
        assert isinstance(found, DatabasePost)
        assert found.slug == "db"

    @pytest.mark.parametrize("post_id", ["static-missing", "not-a-uuid", "00000000-0000-0000-0000-000000000000"])
    @pytest.mark.asyncio
    async def test_missing(self, db_session, post_id):
        service = ContentService(db_session, _static_service())
        with pytest.raises(NotFoundException):
            await service.find_post(post_id)


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_routes_by_source(self, db_session, admin_user):
        static = _static_service()
        service = ContentService(db_session, static)
        form = PostFormData(slug="new", title="New")

        created = await service.create_post(form, admin_user)
        assert isinstance(created, DatabasePost)
        static.create_static_post.assert_not_awaited()

        result = await service.create_post(PostFormData(slug="repo", title="Repo"), admin_user, source="static")
        assert result == WriteSuccess(sha="new")
        static.create_static_post.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_save_static_uses_file_identity(self, db_session):
        static = _static_service()
        service = ContentService(db_session, static)
        form = PostFormData(slug="s", title="S")

        await service.save_post(_static_post("s", file_name="s.md", file_sha="abc"), form)
        static.update_static_post.assert_awaited_once_with("s.md", "abc", form)

    @pytest.mark.asyncio
    async def test_save_static_passes_conflict_through(self, db_session):
        static = _static_service()
        static.update_static_post.return_value = WriteConflict(message="stale")
        service = ContentService(db_session, static)

        result = await service.save_post(_static_post("s"), PostFormData(slug="s", title="S"))
        assert result == WriteConflict(message="stale")

    @pytest.mark.parametrize(
        "post",
        [
            _static_post("s", file_sha=""),
            _static_post("s", file_name=""),
            _db_post(id=""),
        ],
    )
    @pytest.mark.asyncio
    async def test_missing_identity_rejected_before_any_call(self, db_session, post):
        static = _static_service()
        service = ContentService(db_session, static)

        with pytest.raises(ValidationException):
            await service.save_post(post, PostFormData(slug="s", title="S"))
        with pytest.raises(ValidationException):
            await service.delete_post(post)

        static.update_static_post.assert_not_awaited()
        static.delete_static_post.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_save_and_delete_database_post(self, db_session, admin_user):
        post = await post_service.create_post(db_session, PostFormData(slug="db", title="DB"), admin_user)
        service = ContentService(db_session, _static_service())
        view = await service.find_post(str(post.id))

        saved = await service.save_post(view, PostFormData(slug="db", title="Renamed"))
        assert saved.title == "Renamed"

        assert await service.delete_post(view) is True

    @pytest.mark.asyncio
    async def test_delete_static_post(self, db_session):
        static = _static_service()
        service = ContentService(db_session, static)

        await service.delete_post(_static_post("s", file_name="s.md", file_sha="abc"))
        static.delete_static_post.assert_awaited_once_with("s.md", "abc", "s")

    @pytest.mark.asyncio
    async def test_database_writes_report_to_the_rebuilder(self, db_session, admin_user):
        rebuild = MagicMock()
        rebuild.post_changed = AsyncMock(return_value=True)
        service = ContentService(db_session, _static_service(), rebuild=rebuild)

        created = await service.create_post(PostFormData(slug="db", title="DB", published=True), admin_user)
        await service.save_post(created, PostFormData(slug="db", title="DB", published=False), admin_user)
        await service.delete_post(created)

        changes = [c.args[0] for c in rebuild.post_changed.await_args_list]
        assert changes == ["insert", "update", "delete"]

    @pytest.mark.asyncio
    async def test_save_records_the_modifier(self, db_session, admin_user):
        service = ContentService(db_session, _static_service())
        created = await service.create_post(PostFormData(slug="db", title="DB"), admin_user)

        saved = await service.save_post(created, PostFormData(slug="db", title="Edited"), admin_user)

        assert saved.last_modified_by is not None
        assert saved.last_modified_by_name == admin_user.name
