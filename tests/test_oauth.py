"""Tests for OAuth providers and account linking."""

import httpx
import pytest
from litestar.exceptions import HTTPException
from sqlalchemy import select

from deskpress.auth.accounts import find_or_create_oauth_user
from deskpress.auth.providers import (
    GitHubProvider,
    GoogleProvider,
    NormalizedUserData,
    get_oauth_provider,
    is_known_provider,
)
from deskpress.config import OAuthProviderConfig
from deskpress.db.models import User


class TestProviders:
    def test_registry(self):
        assert isinstance(get_oauth_provider("google"), GoogleProvider)
        assert isinstance(get_oauth_provider("github"), GitHubProvider)
        assert is_known_provider("github")
        assert not is_known_provider("myspace")
        with pytest.raises(ValueError):
            get_oauth_provider("myspace")

    def test_google_prompts_account_selection(self):
        params = GoogleProvider("google").build_auth_params("cid", "http://x/cb", ["openid", "email"], "st")

        assert params["prompt"] == "select_account"
        assert params["scope"] == "openid email"
        assert params["state"] == "st"
        assert params["response_type"] == "code"

    def test_github_user_data_falls_back_to_login(self):
        data = GitHubProvider("github").extract_user_data(
            {"id": 42, "login": "octo", "email": None, "avatar_url": "https://a/octo.png"}
        )
        assert data == NormalizedUserData(oauth_id="42", email=None, name="octo", avatar_url="https://a/octo.png")

    @pytest.mark.asyncio
    async def test_exchange_code(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert b"code=abc" in request.content
            return httpx.Response(200, json={"access_token": "tok"})

        provider = GoogleProvider("google", transport=httpx.MockTransport(handler))
        config = OAuthProviderConfig(client_id="cid", client_secret="secret")

        assert await provider.exchange_code(config, "abc", "http://x/cb") == "tok"

    @pytest.mark.asyncio
    async def test_exchange_code_failure(self):
        provider = GoogleProvider(
            "google", transport=httpx.MockTransport(lambda request: httpx.Response(401, text="bad code"))
        )
        config = OAuthProviderConfig(client_id="cid", client_secret="secret")

        with pytest.raises(HTTPException) as exc_info:
            await provider.exchange_code(config, "abc", "http://x/cb")
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_github_private_email_lookup(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/user":
                return httpx.Response(200, json={"id": 1, "login": "octo", "email": None})
            return httpx.Response(
                200,
                json=[
                    {"email": "old@example.com", "primary": False},
                    {"email": "octo@example.com", "primary": True},
                ],
            )

        provider = GitHubProvider("github", transport=httpx.MockTransport(handler))
        info = await provider.fetch_user_info("tok")
        assert info["email"] == "octo@example.com"


class TestFindOrCreate:
    @pytest.mark.asyncio
    async def test_creates_non_admin_user(self, db_session):
        data = NormalizedUserData(oauth_id="123", email="new@example.com", name="New", avatar_url=None)

        result = await find_or_create_oauth_user(db_session, "google", data)
        await db_session.commit()

        assert result.is_new_user
        assert result.user.oauth_id == "google:123"
        assert result.user.is_admin is False
        assert result.user.last_sign_in_at is not None

    @pytest.mark.asyncio
    async def test_returning_user_is_updated(self, db_session):
        first = NormalizedUserData(oauth_id="123", email="a@example.com", name="Old", avatar_url=None)
        await find_or_create_oauth_user(db_session, "google", first)
        await db_session.commit()

        again = NormalizedUserData(oauth_id="123", email="a@example.com", name="New Name", avatar_url="https://a")
        result = await find_or_create_oauth_user(db_session, "google", again)

        assert not result.is_new_user
        assert result.user.name == "New Name"
        assert result.user.avatar_url == "https://a"

    @pytest.mark.asyncio
    async def test_links_invited_user_by_email(self, db_session, admin_user):
        data = NormalizedUserData(oauth_id="9", email="admin@example.com", name=None, avatar_url=None)

        result = await find_or_create_oauth_user(db_session, "github", data)
        await db_session.commit()

        assert not result.is_new_user
        assert result.user.id == admin_user.id
        assert result.user.oauth_provider == "github"
        assert result.user.name == "Admin"

        users = (await db_session.execute(select(User))).scalars().all()
        assert len(users) == 1

    @pytest.mark.asyncio
    async def test_same_id_different_provider_is_a_new_user(self, db_session):
        data = NormalizedUserData(oauth_id="1", email=None, name=None, avatar_url=None)

        await find_or_create_oauth_user(db_session, "google", data)
        result = await find_or_create_oauth_user(db_session, "github", data)

        assert result.is_new_user
        assert result.user.oauth_id == "github:1"
