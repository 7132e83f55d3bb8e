"""Invitation tokens granting admin access on first sign-in."""

import enum
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, UTC
from urllib.parse import quote
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.db.models import Invite, User

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_DAYS = 7


class InviteStatus(enum.StrEnum):
    PENDING = "pending"
    CONSUMED = "consumed"
    EXPIRED = "expired"


@dataclass(frozen=True)
class InviteValidation:
    valid: bool
    email: str | None = None


def generate_invite_token() -> str:
    """32 random bytes, URL-safe base64 without padding."""
    return secrets.token_urlsafe(32)


def invite_url(origin: str, token: str) -> str:
    return f"{origin.rstrip('/')}/invite?token={quote(token, safe='')}"


def _aware(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back naive
    return value if value.tzinfo else value.replace(tzinfo=UTC)


def invite_status(invite: Invite, now: datetime | None = None) -> InviteStatus:
    """Consumed takes precedence over expired."""
    if invite.used_at is not None:
        return InviteStatus.CONSUMED
    now = now or datetime.now(UTC)
    if _aware(invite.expires_at) <= _aware(now):
        return InviteStatus.EXPIRED
    return InviteStatus.PENDING


async def create_invite(
    db_session: AsyncSession,
    email: str,
    created_by: UUID | None,
    expires_in_days: int = DEFAULT_EXPIRY_DAYS,
) -> Invite:
    invite = Invite(
        email=email.strip().lower(),
        token=generate_invite_token(),
        created_by=created_by,
        expires_at=datetime.now(UTC) + timedelta(days=expires_in_days),
    )
    db_session.add(invite)
    await db_session.commit()
    await db_session.refresh(invite)
    logger.info("Created invite for %s expiring %s", invite.email, invite.expires_at)
    return invite


async def list_invites(db_session: AsyncSession) -> list[Invite]:
    result = await db_session.execute(select(Invite).order_by(Invite.created_at.desc()))
    return list(result.scalars().all())


async def get_invite_by_token(db_session: AsyncSession, token: str) -> Invite | None:
    result = await db_session.execute(select(Invite).where(Invite.token == token))
    return result.scalar_one_or_none()


async def validate_invite(db_session: AsyncSession, token: str) -> InviteValidation:
    """An invite is valid while it is unused and unexpired."""
    invite = await get_invite_by_token(db_session, token)
    if invite is None or invite_status(invite) is not InviteStatus.PENDING:
        return InviteValidation(valid=False)
    return InviteValidation(valid=True, email=invite.email)


async def consume_invite(
    db_session: AsyncSession,
    token: str,
    user_id: UUID,
    email: str | None = None,
) -> bool:
    """Mark the invite used and make ``user_id`` an admin, in one transaction.

    Returns False without writing anything when the token is unknown, used
    or expired. Any failure during the write rolls both changes back, so the
    invite stays unused.
    """
    invite = await get_invite_by_token(db_session, token)
    if invite is None or invite_status(invite) is not InviteStatus.PENDING:
        return False

    invite_email = invite.email
    now = datetime.now(UTC)
    try:
        invite.used_at = now
        invite.used_by = user_id

        user = await db_session.get(User, user_id)
        if user is None:
            user = User(id=user_id, email=email or invite_email)
            db_session.add(user)
        user.is_admin = True
        user.invited_by = invite.created_by

        await db_session.commit()
    except Exception:
        await db_session.rollback()
        logger.exception("Failed to consume invite for %s", invite_email)
        raise

    logger.info("Invite for %s consumed by %s", invite_email, user_id)
    return True
