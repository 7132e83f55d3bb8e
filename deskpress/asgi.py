"""ASGI application factory for deskpress."""

import logging

from advanced_alchemy.config import EngineConfig
from advanced_alchemy.extensions.litestar import (
    AsyncSessionConfig,
    SQLAlchemyAsyncConfig,
    SQLAlchemyPlugin,
)
from litestar import Litestar, get
from litestar.di import Provide

from deskpress.app_factory import (
    EXCEPTION_HANDLERS,
    configure_logging,
    create_session_config,
    provide_content,
    provide_functions,
    provide_github,
    provide_static_posts,
)
from deskpress.auth.session import provide_session_context
from deskpress.config import Settings, get_settings
from deskpress.controllers.auth import AuthController
from deskpress.controllers.build import BuildController
from deskpress.controllers.events import EventsController
from deskpress.controllers.functions import FunctionsController
from deskpress.controllers.posts import PostsController
from deskpress.controllers.users import InvitesController, UsersController
from deskpress.db.base import Base

logger = logging.getLogger(__name__)


@get("/health")
async def health() -> dict:
    return {"status": "ok"}


def create_db_config(settings: Settings) -> SQLAlchemyAsyncConfig:
    if "sqlite" in settings.db.url:
        engine_config = EngineConfig(echo=settings.db.echo)
    else:
        engine_config = EngineConfig(
            pool_size=settings.db.pool_size,
            max_overflow=settings.db.pool_overflow,
            pool_timeout=settings.db.pool_timeout,
            pool_pre_ping=settings.db.pool_pre_ping,
            echo=settings.db.echo,
        )

    return SQLAlchemyAsyncConfig(
        connection_string=settings.db.url,
        metadata=Base.metadata,
        create_all=False,
        session_config=AsyncSessionConfig(expire_on_commit=False),
        engine_config=engine_config,
    )


def create_app(settings: Settings | None = None) -> Litestar:
    settings = settings or get_settings()
    configure_logging(settings.logging)

    session_config = create_session_config(
        secret_key=settings.secret_key,
        max_age=settings.session.max_age,
        secure=not settings.debug,
        cookie_domain=settings.session.cookie_domain,
    )

    if not settings.github.is_configured:
        logger.warning("GitHub repository not configured; static posts are disabled")
    if not settings.functions.base_url:
        logger.warning("Functions endpoint not configured; user listing will use the local table")

    return Litestar(
        route_handlers=[
            health,
            AuthController,
            PostsController,
            EventsController,
            UsersController,
            InvitesController,
            BuildController,
            FunctionsController,
        ],
        plugins=[SQLAlchemyPlugin(config=create_db_config(settings))],
        middleware=[session_config.middleware],
        dependencies={
            "github": Provide(provide_github),
            "functions": Provide(provide_functions),
            "static_posts": Provide(provide_static_posts),
            "content": Provide(provide_content),
            "session_context": Provide(provide_session_context),
        },
        exception_handlers=EXCEPTION_HANDLERS,
        debug=settings.debug,
    )


def app() -> Litestar:
    """Factory entry point for ``hypercorn deskpress.asgi:app()``."""
    return create_app()
