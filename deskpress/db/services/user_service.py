"""Admin flag checks, grants and user listing."""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.db.models import User
from deskpress.lib.exceptions import RemoteServiceError, SelfRevocationError
from deskpress.lib.functions import FunctionsClient

logger = logging.getLogger(__name__)


@dataclass
class UserSummary:
    id: str
    email: str | None
    is_admin: bool
    name: str | None = None
    avatar_url: str | None = None
    created_at: datetime | None = None
    last_sign_in_at: datetime | None = None


@dataclass
class UserListing:
    users: list[UserSummary]
    # True when provider metadata could not be fetched
    degraded: bool = False


async def is_authorized_admin(db_session: AsyncSession, user_id: UUID | str | None) -> bool:
    """Server-side admin check against the users table."""
    if not user_id:
        return False
    result = await db_session.execute(
        select(User.is_admin).where(User.id == UUID(str(user_id)))
    )
    return result.scalar_one_or_none() is True


async def _set_admin(db_session: AsyncSession, user_id: UUID, value: bool) -> User | None:
    user = await db_session.get(User, user_id)
    if user is None:
        return None
    if user.is_admin != value:
        user.is_admin = value
        await db_session.commit()
        logger.info("Admin flag for %s set to %s", user_id, value)
    return user


async def grant_admin_access(db_session: AsyncSession, user_id: UUID) -> User | None:
    """Make ``user_id`` an admin. No-op if already one; None if unknown."""
    return await _set_admin(db_session, user_id, True)


async def revoke_admin_access(
    db_session: AsyncSession,
    user_id: UUID,
    acting_user_id: UUID,
) -> User | None:
    """Remove admin rights from ``user_id``.

    Raises:
        SelfRevocationError: If an admin targets their own account.
    """
    if UUID(str(user_id)) == UUID(str(acting_user_id)):
        raise SelfRevocationError("You cannot revoke your own admin access")
    return await _set_admin(db_session, user_id, False)


def _summary(user: User) -> UserSummary:
    return UserSummary(
        id=str(user.id),
        email=user.email,
        is_admin=user.is_admin,
        name=user.name,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        last_sign_in_at=user.last_sign_in_at,
    )


async def list_local_users(db_session: AsyncSession) -> list[User]:
    result = await db_session.execute(select(User).order_by(User.created_at.desc()))
    return list(result.scalars().all())


async def list_users(
    db_session: AsyncSession,
    functions: FunctionsClient,
    access_token: str,
) -> UserListing:
    """List every identity via the privileged ``get-users`` function.

    Falls back to the local users table (without provider metadata) when the
    function cannot be reached.
    """
    try:
        remote_users = await functions.get_users(access_token)
    except RemoteServiceError as exc:
        logger.warning("get-users unavailable, falling back to local users: %s", exc.detail)
        local = await list_local_users(db_session)
        return UserListing(
            users=[
                UserSummary(id=str(u.id), email=u.email, is_admin=u.is_admin, created_at=u.created_at)
                for u in local
            ],
            degraded=True,
        )

    return UserListing(
        users=[
            UserSummary(
                id=u.id,
                email=u.email,
                is_admin=u.is_admin,
                name=u.user_metadata.get("name") or u.user_metadata.get("full_name"),
                avatar_url=u.user_metadata.get("avatar_url"),
                created_at=u.created_at,
                last_sign_in_at=u.last_sign_in_at,
            )
            for u in remote_users
        ]
    )


async def list_users_with_metadata(db_session: AsyncSession) -> list[UserSummary]:
    """Full user listing served by the ``get-users`` function itself."""
    return [_summary(u) for u in await list_local_users(db_session)]
