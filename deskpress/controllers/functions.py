"""Privileged functions: the server side of ``FunctionsClient``.

Each endpoint takes a signed bearer token, re-checks the admin flag of the
user it names, then acts with the deployment's own GitHub credentials.
Failures answer ``{"error": ...}`` so the client can surface the message.
"""

import logging
from datetime import datetime
from uuid import UUID

from litestar import Controller, Request, Response, post
from litestar.status_codes import HTTP_401_UNAUTHORIZED, HTTP_403_FORBIDDEN, HTTP_500_INTERNAL_SERVER_ERROR
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.tokens import verify_access_token
from deskpress.config import get_settings
from deskpress.db.services import user_service
from deskpress.lib.build_status import fetch_build_status
from deskpress.lib.exceptions import RemoteServiceError
from deskpress.lib.github import GitHubClient

logger = logging.getLogger(__name__)


def _error(message: str, status_code: int) -> Response:
    return Response(content={"success": False, "error": message}, status_code=status_code)


async def _authorize(request: Request, db_session: AsyncSession) -> UUID | Response:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return _error("Missing bearer token", HTTP_401_UNAUTHORIZED)

    user_id = verify_access_token(token, get_settings().secret_key)
    if user_id is None:
        return _error("Invalid or expired token", HTTP_401_UNAUTHORIZED)
    if not await user_service.is_authorized_admin(db_session, user_id):
        return _error("Access denied", HTTP_403_FORBIDDEN)
    return UUID(user_id)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class FunctionsController(Controller):
    path = "/functions"

    @post("/get-users", status_code=200)
    async def get_users(self, request: Request, db_session: AsyncSession) -> Response:
        caller = await _authorize(request, db_session)
        if isinstance(caller, Response):
            return caller

        users = await user_service.list_users_with_metadata(db_session)
        return Response(
            content={
                "users": [
                    {
                        "id": u.id,
                        "email": u.email,
                        "created_at": _iso(u.created_at),
                        "last_sign_in_at": _iso(u.last_sign_in_at),
                        "user_metadata": {"name": u.name, "avatar_url": u.avatar_url},
                        "is_admin": u.is_admin,
                    }
                    for u in users
                ]
            }
        )

    @post("/get-build-status", status_code=200)
    async def get_build_status(self, request: Request, db_session: AsyncSession) -> Response:
        caller = await _authorize(request, db_session)
        if isinstance(caller, Response):
            return caller

        github = GitHubClient(get_settings().github)
        if not github.is_configured:
            return _error("GITHUB_TOKEN not configured", HTTP_500_INTERNAL_SERVER_ERROR)
        try:
            status = await fetch_build_status(github)
        except RemoteServiceError as exc:
            logger.error("Error fetching build status: %s", exc.detail)
            return _error(exc.detail, HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(
            content={
                "success": True,
                "current": status.current.model_dump(mode="json") if status.current else None,
                "lastSuccessful": (
                    status.last_successful.model_dump(mode="json") if status.last_successful else None
                ),
            }
        )

    @post("/trigger-rebuild", status_code=200)
    async def trigger_rebuild(self, request: Request, db_session: AsyncSession) -> Response:
        caller = await _authorize(request, db_session)
        if isinstance(caller, Response):
            return caller

        github = GitHubClient(get_settings().github)
        if not github.is_configured:
            return _error("GITHUB_TOKEN not configured", HTTP_500_INTERNAL_SERVER_ERROR)

        body = await request.json() if await request.body() else {}
        try:
            await github.dispatch_rebuild(manual=bool(body.get("manual", True)))
        except RemoteServiceError as exc:
            logger.error("Error triggering rebuild: %s", exc.detail)
            return _error(exc.detail, HTTP_500_INTERNAL_SERVER_ERROR)

        return Response(content={"success": True, "message": "Rebuild triggered"})
