"""JSON API for admin users and invitations."""

from uuid import UUID

from litestar import Controller, get, post
from litestar.exceptions import NotFoundException, ValidationException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.guards import admin_guard, auth_guard
from deskpress.auth.session import SessionContext
from deskpress.config import get_settings
from deskpress.db.models import Invite
from deskpress.db.services import invite_service, user_service
from deskpress.lib.functions import FunctionsClient


class InviteRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+$")
    expires_in_days: int | None = None


class ConsumeRequest(BaseModel):
    token: str


def _invite_dict(invite: Invite, origin: str) -> dict:
    return {
        "id": str(invite.id),
        "email": invite.email,
        "status": invite_service.invite_status(invite).value,
        "createdAt": invite.created_at,
        "expiresAt": invite.expires_at,
        "usedAt": invite.used_at,
        "url": invite_service.invite_url(origin, invite.token),
    }


class UsersController(Controller):
    path = "/api/users"
    guards = [admin_guard]

    @get("/")
    async def list_users(
        self, session_context: SessionContext, db_session: AsyncSession, functions: FunctionsClient
    ) -> user_service.UserListing:
        return await user_service.list_users(db_session, functions, session_context.access_token)

    @post("/{user_id:uuid}/grant-admin", status_code=200)
    async def grant_admin(self, db_session: AsyncSession, user_id: UUID) -> dict:
        if await user_service.grant_admin_access(db_session, user_id) is None:
            raise NotFoundException(f"User {user_id} not found")
        return {"success": True}

    @post("/{user_id:uuid}/revoke-admin", status_code=200)
    async def revoke_admin(
        self, session_context: SessionContext, db_session: AsyncSession, user_id: UUID
    ) -> dict:
        if await user_service.revoke_admin_access(db_session, user_id, session_context.user_id) is None:
            raise NotFoundException(f"User {user_id} not found")
        return {"success": True}


class InvitesController(Controller):
    path = "/api/invites"

    @get("/", guards=[admin_guard])
    async def list_invites(self, db_session: AsyncSession) -> list[dict]:
        origin = get_settings().invites.origin
        return [_invite_dict(i, origin) for i in await invite_service.list_invites(db_session)]

    @post("/", guards=[admin_guard])
    async def create_invite(
        self, session_context: SessionContext, db_session: AsyncSession, data: InviteRequest
    ) -> dict:
        settings = get_settings().invites
        invite = await invite_service.create_invite(
            db_session,
            data.email,
            session_context.user_id,
            expires_in_days=data.expires_in_days or settings.default_expiry_days,
        )
        return _invite_dict(invite, settings.origin)

    @get("/validate")
    async def validate_invite(self, db_session: AsyncSession, token: str) -> dict:
        """Public: an invitee is not signed in yet when they open the link."""
        result = await invite_service.validate_invite(db_session, token)
        return {"valid": result.valid, "email": result.email}

    @post("/consume", guards=[auth_guard], status_code=200)
    async def consume_invite(
        self, session_context: SessionContext, db_session: AsyncSession, data: ConsumeRequest
    ) -> dict:
        consumed = await invite_service.consume_invite(
            db_session, data.token, session_context.user_id, session_context.email
        )
        if not consumed:
            raise ValidationException("Invite is invalid, expired or already used")
        return {"success": True}
