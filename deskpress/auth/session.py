"""Session lifecycle for signed-in admins.

``SessionContext`` is the only code that reads or writes the identity keys
of the cookie session. It is created on sign-in, dropped on sign-out and
rebuilt per request for controllers through dependency injection.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from litestar import Request
from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException

from deskpress.auth.tokens import create_access_token, verify_access_token
from deskpress.config import get_settings
from deskpress.db.models import User

USER_ID_KEY = "user_id"
ACCESS_TOKEN_KEY = "access_token"


@dataclass(frozen=True)
class SessionContext:
    user_id: UUID
    email: str | None
    name: str | None
    access_token: str

    @classmethod
    def start(cls, connection: ASGIConnection, user: User) -> SessionContext:
        """Rotate the session and store ``user`` in it."""
        token = create_access_token(str(user.id), get_settings().secret_key)

        connection.session.clear()
        connection.session[USER_ID_KEY] = str(user.id)
        connection.session["user_email"] = user.email
        connection.session["user_name"] = user.name
        connection.session[ACCESS_TOKEN_KEY] = token
        return cls(user_id=user.id, email=user.email, name=user.name, access_token=token)

    @staticmethod
    def end(connection: ASGIConnection) -> None:
        connection.session.clear()

    @classmethod
    def current(cls, connection: ASGIConnection) -> SessionContext | None:
        session = connection.session
        if not session or not session.get(USER_ID_KEY):
            return None
        try:
            user_id = UUID(session[USER_ID_KEY])
        except (TypeError, ValueError):
            return None

        secret = get_settings().secret_key
        token = session.get(ACCESS_TOKEN_KEY)
        if not token or verify_access_token(token, secret) != str(user_id):
            # Expired bearer token; mint a new one for the live session
            token = create_access_token(str(user_id), secret)
            session[ACCESS_TOKEN_KEY] = token

        return cls(
            user_id=user_id,
            email=session.get("user_email"),
            name=session.get("user_name"),
            access_token=token,
        )

    @classmethod
    def from_request(cls, connection: ASGIConnection) -> SessionContext:
        context = cls.current(connection)
        if context is None:
            raise NotAuthorizedException("Authentication required")
        return context


async def provide_session_context(request: Request) -> SessionContext:
    """Dependency for handlers that act on behalf of the signed-in user."""
    return SessionContext.from_request(request)
