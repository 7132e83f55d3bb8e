"""Markdown posts committed to the site repository."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, UTC
from typing import Any

from deskpress.content.posts import PostFormData, StaticPost
from deskpress.lib.exceptions import RemoteServiceError
from deskpress.lib.frontmatter import (
    filename_from_slug,
    parse_markdown,
    serialize_markdown,
    slug_from_filename,
)
from deskpress.lib.github import GitHubClient, RepoFile, WriteResult

logger = logging.getLogger(__name__)


def _coerce_datetime(value: Any) -> datetime | None:
    """Frontmatter dates may load as str, date or datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=UTC)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def static_post_from_file(file_name: str, text: str, sha: str) -> StaticPost:
    parsed = parse_markdown(text)
    frontmatter = parsed.frontmatter
    slug = frontmatter.get("slug") or slug_from_filename(file_name)
    published_at = _coerce_datetime(frontmatter.get("date"))

    return StaticPost(
        id=f"static-{slug}",
        slug=slug,
        title=frontmatter.get("title") or slug,
        excerpt=frontmatter.get("excerpt"),
        content=parsed.content,
        image_url=frontmatter.get("imageUrl"),
        published_at=published_at,
        created_at=published_at,
        updated_at=published_at,
        file_name=file_name,
        file_sha=sha,
    )


def build_frontmatter(form: PostFormData) -> dict[str, Any]:
    published_at = form.published_at or datetime.now(UTC)
    frontmatter: dict[str, Any] = {
        "title": form.title,
        "date": published_at.isoformat(),
        "slug": form.slug,
    }
    if form.image_url:
        frontmatter["imageUrl"] = form.image_url
    if form.excerpt:
        frontmatter["excerpt"] = form.excerpt
    return frontmatter


def commit_message(action: str, title: str) -> str:
    return f'chore: {action} post "{title}"\n\n{action.capitalize()}d from admin site'


class StaticPostsService:
    def __init__(self, github: GitHubClient, limit: int = 50, batch_size: int = 5):
        self.github = github
        self.limit = limit
        self.batch_size = batch_size

    async def _load(self, file: RepoFile) -> StaticPost | None:
        try:
            text, sha = await self.github.read_file(file.name)
        except RemoteServiceError:
            logger.exception("Error fetching content for %s", file.name)
            return None
        return static_post_from_file(file.name, text, sha)

    async def get_all_static_posts(self, limit: int | None = None) -> list[StaticPost]:
        """Fetch up to ``limit`` posts, ``batch_size`` file reads at a time.

        Never raises: an unconfigured or failing repository yields ``[]``.
        """
        if not self.github.is_configured:
            logger.warning("GitHub token not configured, skipping static posts")
            return []

        limit = self.limit if limit is None else limit
        try:
            files = await self.github.list_files()
        except RemoteServiceError as exc:
            logger.error("Error fetching static posts from GitHub: %s", exc.detail)
            return []

        to_fetch = files[:limit]
        logger.info("Found %d markdown files, fetching %d", len(files), len(to_fetch))

        posts: list[StaticPost] = []
        for i in range(0, len(to_fetch), self.batch_size):
            batch = to_fetch[i:i + self.batch_size]
            results = await asyncio.gather(*(self._load(f) for f in batch))
            posts.extend(p for p in results if p is not None)
        return posts

    async def get_static_post(self, slug: str) -> StaticPost | None:
        """Look up one post by slug, past the listing limit if need be.

        ``<slug>.md`` is read directly; a post whose frontmatter slug differs
        from its file name is found by scanning the listing.
        """
        if not self.github.is_configured:
            return None

        file_name = filename_from_slug(slug)
        found = await self.github.read_file(file_name, missing_ok=True)
        if found is not None:
            text, sha = found
            post = static_post_from_file(file_name, text, sha)
            if post.slug == slug:
                return post

        for post in await self.get_all_static_posts():
            if post.slug == slug:
                return post
        return None

    def _require_configured(self) -> None:
        if not self.github.is_configured:
            raise RemoteServiceError("GitHub token not configured")

    async def create_static_post(self, form: PostFormData) -> WriteResult:
        self._require_configured()
        markdown = serialize_markdown(build_frontmatter(form), form.content)
        return await self.github.write_file(
            filename_from_slug(form.slug), markdown, None, commit_message("create", form.title)
        )

    async def update_static_post(
        self, file_name: str, file_sha: str, form: PostFormData
    ) -> WriteResult:
        self._require_configured()
        markdown = serialize_markdown(build_frontmatter(form), form.content)
        return await self.github.write_file(
            file_name, markdown, file_sha, commit_message("update", form.title)
        )

    async def delete_static_post(self, file_name: str, file_sha: str, title: str) -> WriteResult:
        self._require_configured()
        return await self.github.delete_file(file_name, file_sha, commit_message("delete", title))
