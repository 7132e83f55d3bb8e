"""OAuth sign-in providers (Google and GitHub)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx
from litestar.exceptions import HTTPException

from deskpress.config import OAuthProviderConfig


@dataclass(frozen=True)
class ProviderEndpoints:
    auth_url: str
    token_url: str
    userinfo_url: str


@dataclass
class NormalizedUserData:
    """Provider-agnostic identity extracted from the userinfo response."""

    oauth_id: str | None
    email: str | None
    name: str | None
    avatar_url: str | None


class OAuthProvider(ABC):
    endpoints: ProviderEndpoints

    def __init__(self, provider_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.provider_key = provider_key
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    def build_auth_params(self, client_id: str, redirect_uri: str, scopes: list[str], state: str) -> dict:
        return {
            "client_id": client_id,
            "redirect_uri": redirect_uri,
            "response_type": "code",
            "scope": " ".join(scopes),
            "state": state,
        }

    async def exchange_code(self, config: OAuthProviderConfig, code: str, redirect_uri: str) -> str:
        """Trade an authorization code for an access token."""
        data = {
            "client_id": config.client_id,
            "client_secret": config.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": redirect_uri,
        }
        async with self._client() as client:
            response = await client.post(
                self.endpoints.token_url, data=data, headers={"Accept": "application/json"}
            )
        if response.status_code != 200:
            raise HTTPException(
                status_code=400, detail=f"Failed to exchange code for tokens: {response.text}"
            )

        access_token = response.json().get("access_token")
        if not access_token:
            raise HTTPException(status_code=400, detail="No access token received")
        return access_token

    async def fetch_user_info(self, access_token: str) -> dict:
        headers = {"Authorization": f"Bearer {access_token}"}
        async with self._client() as client:
            response = await client.get(self.endpoints.userinfo_url, headers=headers)
            if response.status_code != 200:
                raise HTTPException(status_code=400, detail="Failed to fetch user info")
            return response.json()

    @abstractmethod
    def extract_user_data(self, user_info: dict) -> NormalizedUserData:
        ...


class GoogleProvider(OAuthProvider):
    endpoints = ProviderEndpoints(
        auth_url="https://accounts.google.com/o/oauth2/v2/auth",
        token_url="https://oauth2.googleapis.com/token",
        userinfo_url="https://www.googleapis.com/oauth2/v2/userinfo",
    )

    def build_auth_params(self, client_id, redirect_uri, scopes, state):
        params = super().build_auth_params(client_id, redirect_uri, scopes, state)
        params["prompt"] = "select_account"
        return params

    def extract_user_data(self, user_info: dict) -> NormalizedUserData:
        return NormalizedUserData(
            oauth_id=user_info.get("id"),
            email=user_info.get("email"),
            name=user_info.get("name"),
            avatar_url=user_info.get("picture"),
        )


class GitHubProvider(OAuthProvider):
    endpoints = ProviderEndpoints(
        auth_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        userinfo_url="https://api.github.com/user",
    )

    async def fetch_user_info(self, access_token: str) -> dict:
        headers = {"Authorization": f"Bearer {access_token}"}
        async with self._client() as client:
            response = await client.get(self.endpoints.userinfo_url, headers=headers)
            if response.status_code != 200:
                raise HTTPException(status_code=400, detail="Failed to fetch user info")
            user_info = response.json()

            # Private emails are only exposed through /user/emails
            if not user_info.get("email"):
                email_response = await client.get("https://api.github.com/user/emails", headers=headers)
                if email_response.status_code == 200:
                    primary = next(
                        (e["email"] for e in email_response.json() if e.get("primary")), None
                    )
                    if primary:
                        user_info["email"] = primary

            return user_info

    def extract_user_data(self, user_info: dict) -> NormalizedUserData:
        return NormalizedUserData(
            oauth_id=str(user_info["id"]) if user_info.get("id") is not None else None,
            email=user_info.get("email"),
            name=user_info.get("name") or user_info.get("login"),
            avatar_url=user_info.get("avatar_url"),
        )


_PROVIDER_CLASSES: dict[str, type[OAuthProvider]] = {
    "google": GoogleProvider,
    "github": GitHubProvider,
}


def get_oauth_provider(
    provider_key: str, transport: httpx.AsyncBaseTransport | None = None
) -> OAuthProvider:
    cls = _PROVIDER_CLASSES.get(provider_key)
    if cls is None:
        raise ValueError(f"Unknown provider: {provider_key}")
    return cls(provider_key, transport=transport)


def is_known_provider(provider_key: str) -> bool:
    return provider_key in _PROVIDER_CLASSES
