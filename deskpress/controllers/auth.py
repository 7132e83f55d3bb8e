"""OAuth sign-in, sign-out and the current-session endpoint."""

import logging
import secrets
from typing import Annotated
from urllib.parse import urlencode

from litestar import Controller, Request, get, post
from litestar.exceptions import HTTPException, NotFoundException
from litestar.params import Parameter
from litestar.response import Redirect
from sqlalchemy.ext.asyncio import AsyncSession

from deskpress.auth.accounts import find_or_create_oauth_user
from deskpress.auth.guards import auth_guard
from deskpress.auth.providers import get_oauth_provider, is_known_provider
from deskpress.auth.session import SessionContext
from deskpress.config import get_settings
from deskpress.db.services import user_service

logger = logging.getLogger(__name__)


def _is_safe_redirect(url: str) -> bool:
    # Relative paths only, never protocol-relative
    return url.startswith("/") and not url.startswith("//")


class AuthController(Controller):
    path = "/auth"

    @get("/{provider:str}/login")
    async def oauth_login(
        self,
        request: Request,
        provider: str,
        next_url: Annotated[str | None, Parameter(query="next")] = None,
    ) -> Redirect:
        """Redirect to the provider's consent screen."""
        settings = get_settings()
        if not is_known_provider(provider):
            raise NotFoundException(f"Unknown provider: {provider}")
        if provider not in settings.auth.providers:
            raise NotFoundException(f"Provider {provider} not configured")

        if next_url and _is_safe_redirect(next_url):
            request.session["auth_next"] = next_url

        state = secrets.token_urlsafe(32)
        request.session["oauth_state"] = state

        oauth_provider = get_oauth_provider(provider)
        provider_config = settings.auth.providers[provider]
        params = oauth_provider.build_auth_params(
            client_id=provider_config.client_id,
            redirect_uri=settings.auth.get_redirect_uri(provider),
            scopes=provider_config.scopes,
            state=state,
        )
        return Redirect(path=f"{oauth_provider.endpoints.auth_url}?{urlencode(params)}")

    @get("/{provider:str}/callback")
    async def oauth_callback(
        self,
        request: Request,
        db_session: AsyncSession,
        provider: str,
        code: str | None = None,
        oauth_state: Annotated[str | None, Parameter(query="state")] = None,
        error: str | None = None,
    ) -> Redirect:
        settings = get_settings()
        provider_config = settings.auth.providers.get(provider)
        if not is_known_provider(provider) or provider_config is None:
            raise NotFoundException(f"Unknown provider: {provider}")

        if error:
            raise HTTPException(status_code=400, detail=f"OAuth error: {error}")

        stored_state = request.session.pop("oauth_state", None)
        if not oauth_state or oauth_state != stored_state:
            raise HTTPException(status_code=400, detail="Invalid OAuth state")
        if not code:
            raise HTTPException(status_code=400, detail="Missing authorization code")

        oauth_provider = get_oauth_provider(provider)
        access_token = await oauth_provider.exchange_code(
            provider_config, code, settings.auth.get_redirect_uri(provider)
        )
        user_data = oauth_provider.extract_user_data(await oauth_provider.fetch_user_info(access_token))
        if not user_data.oauth_id:
            raise HTTPException(status_code=400, detail="Could not determine user ID")

        login = await find_or_create_oauth_user(db_session, provider, user_data)
        await db_session.commit()

        next_url = request.session.pop("auth_next", None) or "/"
        SessionContext.start(request, login.user)
        logger.info("Signed in %s via %s", login.user.id, provider)
        return Redirect(path=next_url)

    @get("/me", guards=[auth_guard])
    async def me(self, session_context: SessionContext, db_session: AsyncSession) -> dict:
        return {
            "id": str(session_context.user_id),
            "email": session_context.email,
            "name": session_context.name,
            "isAdmin": await user_service.is_authorized_admin(db_session, session_context.user_id),
        }

    @post("/logout", status_code=200)
    async def logout(self, request: Request) -> dict:
        SessionContext.end(request)
        return {"success": True}
