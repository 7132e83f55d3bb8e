"""Configuration helpers and dependency providers used by ``create_app``."""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from litestar.exceptions import HTTPException
from litestar.middleware.session.client_side import CookieBackendConfig
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.session import SessionContext
from deskpress.config import LoggingConfig, get_settings
from deskpress.content.static_posts import StaticPostsService
from deskpress.content.unified import ContentService
from deskpress.lib.exceptions import http_exception_handler, internal_server_error_handler
from deskpress.lib.functions import FunctionsClient
from deskpress.lib.github import GitHubClient
from deskpress.lib.rebuild import SiteRebuilder

EXCEPTION_HANDLERS: dict[type[Exception], Any] = {
    HTTPException: http_exception_handler,
    Exception: internal_server_error_handler,
}


def configure_logging(config: LoggingConfig) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=config.format)
    root.setLevel(config.level.upper())
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def create_session_config(
    secret_key: str,
    max_age: int = 86400,
    secure: bool = False,
    cookie_domain: str | None = None,
) -> CookieBackendConfig:
    """Create an encrypted cookie-backed session config."""
    return CookieBackendConfig(
        secret=hashlib.sha256(secret_key.encode()).digest(),
        key="session",
        max_age=max_age,
        httponly=True,
        secure=secure,
        samesite="lax",
        domain=cookie_domain,
    )


async def provide_github() -> GitHubClient:
    return GitHubClient(get_settings().github)


async def provide_functions() -> FunctionsClient:
    return FunctionsClient(get_settings().functions)


async def provide_static_posts(github: GitHubClient) -> StaticPostsService:
    content = get_settings().content
    return StaticPostsService(github, limit=content.static_limit, batch_size=content.static_batch_size)


async def provide_content(
    db_session: AsyncSession,
    static_posts: StaticPostsService,
    functions: FunctionsClient,
    session_context: SessionContext,
) -> ContentService:
    async def trigger(details: dict) -> None:
        await functions.trigger_rebuild(session_context.access_token, manual=False, details=details)

    return ContentService(db_session, static_posts, rebuild=SiteRebuilder(trigger))
