"""Post form payload and the two post read models.

``DatabasePost`` and ``StaticPost`` share the display fields; ``source``
tells them apart. Static posts never carry author, category, tag or SEO data.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from deskpress.db.models import Post

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class PostFormData(BaseModel):
    """Editor payload; accepts the camelCase keys the admin UI sends."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    slug: str = Field(min_length=1)
    title: str = Field(min_length=1)
    excerpt: str | None = None
    content: str = ""
    image_url: str | None = None
    published: bool | None = None
    published_at: datetime | None = None
    category_id: UUID | None = None
    tag_ids: list[UUID] | None = None
    meta_title: str | None = None
    meta_description: str | None = None
    meta_keywords: list[str] | None = None
    og_image: str | None = None

    def column_values(self) -> dict:
        """Snake_case column values for the posts table, excluding tags."""
        return self.model_dump(exclude={"tag_ids"}, exclude_unset=True, by_alias=False)


@dataclass(frozen=True)
class TagRef:
    id: str
    name: str
    slug: str


@dataclass(frozen=True)
class DatabasePost:
    id: str
    slug: str
    title: str
    excerpt: str | None
    content: str
    image_url: str | None
    published: bool
    published_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    author_id: str | None = None
    author_name: str | None = None
    author_avatar_url: str | None = None
    last_modified_by: str | None = None
    last_modified_by_name: str | None = None
    category_id: str | None = None
    category_name: str | None = None
    tags: list[TagRef] = field(default_factory=list)
    meta_title: str | None = None
    meta_description: str | None = None
    meta_keywords: list[str] | None = None
    og_image: str | None = None
    source: Literal["database"] = "database"


@dataclass(frozen=True)
class StaticPost:
    id: str
    slug: str
    title: str
    excerpt: str | None
    content: str
    image_url: str | None
    published_at: datetime | None
    created_at: datetime | None
    updated_at: datetime | None
    file_name: str
    file_sha: str
    published: bool = True
    source: Literal["static"] = "static"


UnifiedPost = DatabasePost | StaticPost


def database_post(post: Post) -> DatabasePost:
    """Build the read model from an ORM post with its relationships loaded."""
    return DatabasePost(
        id=str(post.id),
        slug=post.slug,
        title=post.title,
        excerpt=post.excerpt,
        content=post.content,
        image_url=post.image_url,
        published=post.published,
        published_at=post.published_at,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author_id=str(post.author_id) if post.author_id else None,
        author_name=post.author.name if post.author else None,
        author_avatar_url=post.author.avatar_url if post.author else None,
        last_modified_by=str(post.last_modified_by) if post.last_modified_by else None,
        last_modified_by_name=post.last_modifier.name if post.last_modifier else None,
        category_id=str(post.category_id) if post.category_id else None,
        category_name=post.category.name if post.category else None,
        tags=[TagRef(id=str(t.id), name=t.name, slug=t.slug) for t in post.tags],
        meta_title=post.meta_title,
        meta_description=post.meta_description,
        meta_keywords=post.meta_keywords,
        og_image=post.og_image,
    )


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def effective_timestamp(post: UnifiedPost) -> datetime:
    """``updated_at``, else ``published_at``, else the epoch."""
    value = post.updated_at or post.published_at
    return _aware(value) if value else EPOCH


def unify(db_posts: list[DatabasePost], static_posts: list[StaticPost]) -> list[UnifiedPost]:
    """Merge both sources, newest first. Equal timestamps keep input order."""
    merged: list[UnifiedPost] = [*db_posts, *static_posts]
    merged.sort(key=effective_timestamp, reverse=True)
    return merged
