"""Route guards.

``admin_guard`` reads the admin flag from the database on every request;
nothing cached in the session or on the client is trusted for it.
"""

import logging

from litestar.connection import ASGIConnection
from litestar.exceptions import NotAuthorizedException, PermissionDeniedException
from litestar.handlers.base import BaseRouteHandler

from deskpress.auth.session import SessionContext

logger = logging.getLogger(__name__)


async def auth_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    if SessionContext.current(connection) is None:
        raise NotAuthorizedException("Authentication required")


async def admin_guard(connection: ASGIConnection, _: BaseRouteHandler) -> None:
    context = SessionContext.current(connection)
    if context is None:
        raise NotAuthorizedException("Authentication required")

    from deskpress.db.services import user_service

    session_maker = connection.app.state.session_maker_class
    async with session_maker() as db_session:
        allowed = await user_service.is_authorized_admin(db_session, context.user_id)

    if not allowed:
        logger.info("Denied admin access to %s", context.user_id)
        raise PermissionDeniedException("Access denied")
