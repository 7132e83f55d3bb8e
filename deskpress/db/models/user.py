from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from deskpress.db.base import Base


class User(Base):
    """Signed-in identity and its admin flag.

    ``id`` is the identity's stable ID; the admin flag is only ever read
    server-side through ``user_service.is_authorized_admin``.
    """

    __tablename__ = "users"

    # OAuth identifiers
    oauth_provider: Mapped[str | None] = mapped_column(String(50), nullable=True)
    oauth_id: Mapped[str | None] = mapped_column(String(255), nullable=True, unique=True)

    # Profile data from OAuth provider
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Authorization
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    invited_by: Mapped[UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    last_sign_in_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
