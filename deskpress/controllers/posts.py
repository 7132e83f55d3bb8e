"""JSON API for the unified post list, post writes, categories and tags."""

from typing import Annotated, Literal

from litestar import Controller, delete, get, post, put
from litestar.exceptions import NotFoundException
from litestar.params import Parameter
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.guards import admin_guard
from deskpress.auth.session import SessionContext
from deskpress.content.posts import DatabasePost, PostFormData, StaticPost, UnifiedPost
from deskpress.content.unified import ContentService
from deskpress.db.models import Category, Tag, User
from deskpress.db.services import post_service
from deskpress.lib.exceptions import ConflictError
from deskpress.lib.github import WriteConflict, WriteResult, WriteSuccess


class PostUpdateData(PostFormData):
    """Form data plus the file identity a static post was loaded with."""

    file_name: str | None = None
    file_sha: str | None = None


class TaxonomyData(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1)
    slug: str | None = None
    description: str | None = None
    color: str | None = None


def _static_ref(post_id: str, file_name: str | None, file_sha: str | None, title: str | None = None) -> StaticPost:
    slug = post_id.removeprefix("static-")
    return StaticPost(
        id=post_id,
        slug=slug,
        title=title or slug,
        excerpt=None,
        content="",
        image_url=None,
        published_at=None,
        created_at=None,
        updated_at=None,
        file_name=file_name or "",
        file_sha=file_sha or "",
    )


def _write_response(result: WriteResult) -> dict:
    match result:
        case WriteSuccess(sha=sha):
            return {"success": True, "sha": sha}
        case WriteConflict(message=message):
            raise ConflictError(
                "The file changed since it was loaded, retry required",
                extra={"github": message},
            )


async def _current_user(db_session: AsyncSession, context: SessionContext) -> User:
    user = await db_session.get(User, context.user_id)
    if user is None:
        raise NotFoundException("Signed-in user no longer exists")
    return user


class PostsController(Controller):
    path = "/api"
    guards = [admin_guard]

    @get("/posts")
    async def list_posts(self, content: ContentService) -> list[UnifiedPost]:
        return await content.list_all_posts()

    @get("/posts/{post_id:str}")
    async def get_post(self, content: ContentService, post_id: str) -> UnifiedPost:
        return await content.find_post(post_id)

    @post("/posts")
    async def create_post(
        self,
        session_context: SessionContext,
        db_session: AsyncSession,
        content: ContentService,
        data: PostFormData,
        source: Literal["database", "static"] = "database",
    ) -> DatabasePost | dict:
        user = await _current_user(db_session, session_context)
        result = await content.create_post(data, user, source)
        if isinstance(result, DatabasePost):
            return result
        return _write_response(result)

    @put("/posts/{post_id:str}")
    async def update_post(
        self,
        session_context: SessionContext,
        db_session: AsyncSession,
        content: ContentService,
        post_id: str,
        data: PostUpdateData,
    ) -> DatabasePost | dict:
        form = PostFormData.model_validate(data.model_dump(exclude={"file_name", "file_sha"}, exclude_unset=True))
        if post_id.startswith("static-"):
            target: UnifiedPost = _static_ref(post_id, data.file_name, data.file_sha, data.title)
        else:
            target = await content.find_post(post_id)

        user = await _current_user(db_session, session_context)
        result = await content.save_post(target, form, user)
        if isinstance(result, DatabasePost):
            return result
        return _write_response(result)

    @delete("/posts/{post_id:str}", status_code=200)
    async def delete_post(
        self,
        content: ContentService,
        post_id: str,
        file_name: Annotated[str | None, Parameter(query="fileName")] = None,
        file_sha: Annotated[str | None, Parameter(query="fileSha")] = None,
        title: str | None = None,
    ) -> dict:
        if post_id.startswith("static-"):
            return _write_response(await content.delete_post(_static_ref(post_id, file_name, file_sha, title)))

        if not await content.delete_post(await content.find_post(post_id)):
            raise NotFoundException(f"Post {post_id} not found")
        return {"success": True}

    @get("/categories")
    async def list_categories(self, db_session: AsyncSession) -> list[dict]:
        return [
            {"id": str(c.id), "name": c.name, "slug": c.slug, "description": c.description, "color": c.color}
            for c in await post_service.list_categories(db_session)
        ]

    @post("/categories")
    async def create_category(self, db_session: AsyncSession, data: TaxonomyData) -> dict:
        category: Category = await post_service.create_category(
            db_session,
            name=data.name,
            slug=data.slug or post_service.generate_slug(data.name),
            description=data.description,
            color=data.color,
        )
        return {"id": str(category.id), "name": category.name, "slug": category.slug}

    @get("/tags")
    async def list_tags(self, db_session: AsyncSession) -> list[dict]:
        return [{"id": str(t.id), "name": t.name, "slug": t.slug} for t in await post_service.list_tags(db_session)]

    @post("/tags")
    async def create_tag(self, db_session: AsyncSession, data: TaxonomyData) -> dict:
        tag: Tag = await post_service.create_tag(
            db_session, name=data.name, slug=data.slug or post_service.generate_slug(data.name)
        )
        return {"id": str(tag.id), "name": tag.name, "slug": tag.slug}
