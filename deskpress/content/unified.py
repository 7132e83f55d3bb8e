"""One listing and one write path over database and repository posts."""

from __future__ import annotations

import asyncio
import logging
from typing import Literal, assert_never
from uuid import UUID

from litestar.exceptions import NotFoundException, ValidationException
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.content.posts import (
    DatabasePost,
    PostFormData,
    StaticPost,
    UnifiedPost,
    database_post,
    unify,
)
from deskpress.content.static_posts import StaticPostsService
from deskpress.db.models import User
from deskpress.db.services import post_service
from deskpress.lib.github import WriteResult
from deskpress.lib.rebuild import SiteRebuilder

logger = logging.getLogger(__name__)

PostSource = Literal["database", "static"]


def _require_identity(post: UnifiedPost) -> None:
    if not post.id:
        raise ValidationException("Post has no identifier")
    if isinstance(post, StaticPost) and not (post.file_name and post.file_sha):
        raise ValidationException("Static post is missing its file name or sha")


def _database_id(post: DatabasePost) -> UUID:
    try:
        return UUID(post.id)
    except ValueError as exc:
        raise ValidationException(f"Invalid post id: {post.id}") from exc


class ContentService:
    def __init__(
        self,
        db_session: AsyncSession,
        static_posts: StaticPostsService,
        rebuild: SiteRebuilder | None = None,
    ):
        self.db_session = db_session
        self.static_posts = static_posts
        self.rebuild = rebuild

    async def _database_posts(self) -> list[DatabasePost]:
        posts = await post_service.list_posts(self.db_session)
        return [database_post(p) for p in posts]

    async def _static_posts(self) -> list[StaticPost]:
        try:
            return await self.static_posts.get_all_static_posts()
        except Exception:
            logger.warning("Static posts unavailable, listing database posts only", exc_info=True)
            return []

    async def list_all_posts(self) -> list[UnifiedPost]:
        """Both sources, newest first. Only the database source is required."""
        static_task = asyncio.create_task(self._static_posts())
        try:
            db_posts = await self._database_posts()
        except BaseException:
            static_task.cancel()
            await asyncio.gather(static_task, return_exceptions=True)
            raise
        return unify(db_posts, await static_task)

    async def find_post(self, post_id: str) -> UnifiedPost:
        if post_id.startswith("static-"):
            static = await self.static_posts.get_static_post(post_id.removeprefix("static-"))
            if static is not None:
                return static
        else:
            try:
                post = await post_service.get_post_by_id(self.db_session, UUID(post_id))
            except ValueError:
                post = None
            if post is not None:
                return database_post(post)
        raise NotFoundException(f"Post {post_id} not found")

    async def create_post(
        self, form: PostFormData, user: User, source: PostSource = "database"
    ) -> DatabasePost | WriteResult:
        match source:
            case "database":
                post = await post_service.create_post(self.db_session, form, user, rebuild=self.rebuild)
                return database_post(post)
            case "static":
                return await self.static_posts.create_static_post(form)
            case _:
                assert_never(source)

    async def save_post(
        self, post: UnifiedPost, form: PostFormData, user: User | None = None
    ) -> DatabasePost | WriteResult:
        """Write ``form`` back to wherever ``post`` came from.

        ``user`` is recorded as the last modifier of a database post.

        A static save returns the ``WriteResult`` unchanged so a stale sha
        reaches the caller as ``WriteConflict``.
        """
        _require_identity(post)
        match post:
            case DatabasePost():
                updated = await post_service.update_post(
                    self.db_session, _database_id(post), form, user=user, rebuild=self.rebuild
                )
                if updated is None:
                    raise NotFoundException(f"Post {post.id} not found")
                return database_post(updated)
            case StaticPost():
                return await self.static_posts.update_static_post(post.file_name, post.file_sha, form)
            case _:
                assert_never(post)

    async def delete_post(self, post: UnifiedPost) -> bool | WriteResult:
        _require_identity(post)
        match post:
            case DatabasePost():
                return await post_service.delete_post(self.db_session, _database_id(post), rebuild=self.rebuild)
            case StaticPost():
                return await self.static_posts.delete_static_post(post.file_name, post.file_sha, post.title)
            case _:
                assert_never(post)
