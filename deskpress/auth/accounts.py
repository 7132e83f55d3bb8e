"""Find-or-create for signed-in OAuth identities."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.providers import NormalizedUserData
from deskpress.db.models import User


@dataclass
class LoginResult:
    user: User
    is_new_user: bool


async def find_or_create_oauth_user(
    db_session: AsyncSession,
    provider: str,
    user_data: NormalizedUserData,
) -> LoginResult:
    """Look up by provider identity, then by email, else create.

    New users are never admins; admin access comes from an invite or a grant.
    The caller commits.
    """
    now = datetime.now(UTC)
    oauth_id = f"{provider}:{user_data.oauth_id}"

    result = await db_session.execute(select(User).where(User.oauth_id == oauth_id))
    user = result.scalar_one_or_none()

    if user is None and user_data.email:
        result = await db_session.execute(
            select(User).where(User.email == user_data.email, User.oauth_id.is_(None))
        )
        user = result.scalar_one_or_none()
        if user is not None:
            user.oauth_provider = provider
            user.oauth_id = oauth_id

    if user is not None:
        if user_data.name:
            user.name = user_data.name
        if user_data.avatar_url:
            user.avatar_url = user_data.avatar_url
        if user_data.email:
            user.email = user_data.email
        user.last_sign_in_at = now
        return LoginResult(user=user, is_new_user=False)

    user = User(
        oauth_provider=provider,
        oauth_id=oauth_id,
        email=user_data.email,
        name=user_data.name,
        avatar_url=user_data.avatar_url,
        last_sign_in_at=now,
    )
    db_session.add(user)
    await db_session.flush()
    return LoginResult(user=user, is_new_user=True)
