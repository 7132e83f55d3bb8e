"""Post service for CRUD operations on database-backed posts, categories and tags."""

import logging
import re
from datetime import datetime, UTC
from typing import Literal
from uuid import UUID

from litestar.exceptions import ValidationException
from sqlalchemy import delete, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.content.posts import PostFormData
from deskpress.db.models import Author, Category, Post, Tag, User, post_tags
from deskpress.lib.rebuild import SiteRebuilder

logger = logging.getLogger(__name__)

OrderBy = Literal["created_at", "updated_at", "published_at"]


def generate_slug(title: str) -> str:
    """Generate a URL-friendly slug from a title."""
    slug = title.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip()


async def list_posts(
    db_session: AsyncSession,
    published: bool | None = None,
    limit: int | None = None,
    offset: int = 0,
    order_by: OrderBy = "updated_at",
    descending: bool = True,
) -> list[Post]:
    """List posts with author, category and tags loaded.

    Args:
        db_session: Database session
        published: Filter on published state (None for all)
        limit: Maximum number of results
        offset: Number of results to skip
        order_by: Column to order by
        descending: Sort direction

    Returns:
        List of Post objects
    """
    query = select(Post)
    if published is not None:
        query = query.where(Post.published == published)

    column = getattr(Post, order_by)
    query = query.order_by(column.desc().nullslast() if descending else column.asc().nullsfirst())

    if offset:
        query = query.offset(offset)
    if limit:
        query = query.limit(limit)

    result = await db_session.execute(query)
    return list(result.scalars().all())


async def get_post_by_slug(db_session: AsyncSession, slug: str) -> Post | None:
    result = await db_session.execute(select(Post).where(Post.slug == slug))
    return result.scalar_one_or_none()


async def get_post_by_id(db_session: AsyncSession, post_id: UUID) -> Post | None:
    result = await db_session.execute(select(Post).where(Post.id == post_id))
    return result.scalar_one_or_none()


async def _reload(db_session: AsyncSession, post_id: UUID) -> Post:
    # Tag rows are written through the association table, so refetch relationships
    result = await db_session.execute(
        select(Post).where(Post.id == post_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def is_slug_unique(
    db_session: AsyncSession,
    slug: str,
    exclude_id: UUID | None = None,
) -> bool:
    """Check that no other post uses ``slug``."""
    query = select(Post.id).where(Post.slug == slug)
    if exclude_id is not None:
        query = query.where(Post.id != exclude_id)
    result = await db_session.execute(query)
    return result.first() is None


async def ensure_author_exists(db_session: AsyncSession, user: User) -> Author:
    """Return the author row for ``user``, creating it from the profile if missing."""
    author = await db_session.get(Author, user.id)
    if author is not None:
        return author

    author = Author(
        id=user.id,
        name=user.name or user.email or "User",
        email=user.email,
        avatar_url=user.avatar_url,
    )
    db_session.add(author)
    await db_session.flush()
    logger.info("Created author record for user %s", user.id)
    return author


async def set_post_tags(db_session: AsyncSession, post_id: UUID, tag_ids: list[UUID]) -> None:
    """Replace a post's tags with ``tag_ids``; an empty list clears them."""
    await db_session.execute(delete(post_tags).where(post_tags.c.post_id == post_id))
    if tag_ids:
        rows = [{"post_id": post_id, "tag_id": tag_id} for tag_id in dict.fromkeys(tag_ids)]
        await db_session.execute(insert(post_tags), rows)


async def create_post(
    db_session: AsyncSession,
    data: PostFormData,
    user: User,
    rebuild: SiteRebuilder | None = None,
) -> Post:
    """Create a post authored by ``user``.

    Creating a published post requests a site rebuild through ``rebuild``.

    Raises:
        ValidationException: If the slug is already taken.
    """
    if not await is_slug_unique(db_session, data.slug):
        raise ValidationException(f"A post with slug '{data.slug}' already exists")

    author = await ensure_author_exists(db_session, user)

    values = data.column_values()
    values.pop("published_at", None)
    published = bool(values.pop("published", False))
    post = Post(
        **values,
        published=published,
        published_at=datetime.now(UTC) if published else None,
        author_id=author.id,
    )
    db_session.add(post)

    try:
        await db_session.flush()
        if data.tag_ids:
            await set_post_tags(db_session, post.id, data.tag_ids)
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ValidationException(f"Failed to create post: {exc.orig}") from exc

    if rebuild is not None:
        await rebuild.post_changed("insert", post.id, was_published=False, is_published=published)
    return await _reload(db_session, post.id)


async def update_post(
    db_session: AsyncSession,
    post_id: UUID,
    data: PostFormData,
    user: User | None = None,
    rebuild: SiteRebuilder | None = None,
) -> Post | None:
    """Update the fields present in ``data``.

    Publishing a post without a ``published_at`` stamps it with now. When
    ``data.tag_ids`` is given the tag set is replaced wholesale. ``user`` is
    recorded as the last modifier, and flipping ``published`` requests a
    site rebuild through ``rebuild``.

    Returns:
        Updated Post object or None if not found
    """
    post = await get_post_by_id(db_session, post_id)
    if not post:
        return None

    if data.slug != post.slug and not await is_slug_unique(db_session, data.slug, exclude_id=post_id):
        raise ValidationException(f"A post with slug '{data.slug}' already exists")

    was_published = post.published
    values = data.column_values()
    for key, value in values.items():
        setattr(post, key, value)

    if post.published and post.published_at is None:
        post.published_at = datetime.now(UTC)

    try:
        if user is not None:
            post.last_modified_by = (await ensure_author_exists(db_session, user)).id
        if data.tag_ids is not None:
            await set_post_tags(db_session, post.id, data.tag_ids)
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ValidationException(f"Failed to update post: {exc.orig}") from exc

    if rebuild is not None:
        await rebuild.post_changed("update", post.id, was_published=was_published, is_published=post.published)
    return await _reload(db_session, post.id)


async def delete_post(db_session: AsyncSession, post_id: UUID, rebuild: SiteRebuilder | None = None) -> bool:
    """Delete a post. Returns False if it did not exist.

    Deleting a published post requests a site rebuild through ``rebuild``.
    """
    post = await get_post_by_id(db_session, post_id)
    if not post:
        return False

    was_published = post.published
    await db_session.delete(post)
    await db_session.commit()

    if rebuild is not None:
        await rebuild.post_changed("delete", post_id, was_published=was_published, is_published=False)
    return True


async def list_categories(db_session: AsyncSession) -> list[Category]:
    result = await db_session.execute(select(Category).order_by(Category.name))
    return list(result.scalars().all())


async def create_category(
    db_session: AsyncSession,
    name: str,
    slug: str,
    description: str | None = None,
    color: str | None = None,
) -> Category:
    category = Category(name=name, slug=slug, description=description, color=color)
    db_session.add(category)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ValidationException(f"Failed to create category: {exc.orig}") from exc
    await db_session.refresh(category)
    return category


async def list_tags(db_session: AsyncSession) -> list[Tag]:
    result = await db_session.execute(select(Tag).order_by(Tag.name))
    return list(result.scalars().all())


async def create_tag(db_session: AsyncSession, name: str, slug: str) -> Tag:
    tag = Tag(name=name, slug=slug)
    db_session.add(tag)
    try:
        await db_session.commit()
    except IntegrityError as exc:
        await db_session.rollback()
        raise ValidationException(f"Failed to create tag: {exc.orig}") from exc
    await db_session.refresh(tag)
    return tag
