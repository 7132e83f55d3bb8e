"""Static-site build status and manual rebuild."""

import logging

from litestar import Controller, get, post

from deskpress.auth.guards import admin_guard
from deskpress.auth.session import SessionContext
from deskpress.lib.build_status import BuildStatus
from deskpress.lib.functions import FunctionsClient

logger = logging.getLogger(__name__)


class BuildController(Controller):
    path = "/api/build"
    guards = [admin_guard]

    @get("/status")
    async def status(self, session_context: SessionContext, functions: FunctionsClient) -> BuildStatus:
        return await functions.get_build_status(session_context.access_token)

    @post("/rebuild", status_code=202)
    async def rebuild(self, session_context: SessionContext, functions: FunctionsClient) -> dict:
        await functions.trigger_rebuild(session_context.access_token)
        logger.info("Rebuild requested by %s", session_context.user_id)
        return {"success": True}
