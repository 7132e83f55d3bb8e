"""Client for the privileged remote functions.

These run with service-level credentials the admin panel itself does not
hold: listing every identity, reading CI build status and triggering a
rebuild. Each call forwards the caller's bearer token so the function can
re-check the admin flag on its side.
"""

from __future__ import annotations

import logging
from datetime import datetime, UTC
from typing import Any

import httpx
from pydantic import BaseModel

from deskpress.config import FunctionsConfig
from deskpress.lib.build_status import BuildStatus
from deskpress.lib.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)


class RemoteUser(BaseModel):
    """Identity as returned by ``get-users`` (provider metadata merged with the admin flag)."""

    id: str
    email: str | None = None
    created_at: datetime | None = None
    last_sign_in_at: datetime | None = None
    user_metadata: dict[str, Any] = {}
    is_admin: bool = False


class FunctionsClient:
    def __init__(self, config: FunctionsConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.config.base_url)

    async def invoke(self, name: str, access_token: str, body: dict | None = None) -> dict:
        """Invoke a function by name and return its decoded JSON payload.

        Raises:
            RemoteServiceError: If the function is unreachable, answers with a
                non-2xx status, or reports ``error`` in its payload.
        """
        if not self.is_configured:
            raise RemoteServiceError(f"Failed to invoke {name}: functions endpoint not configured")

        url = f"{self.config.base_url.rstrip('/')}/{name}"
        headers = {"Authorization": f"Bearer {access_token}"}

        async with httpx.AsyncClient(transport=self._transport, timeout=self.config.timeout) as client:
            try:
                response = await client.post(url, json=body or {}, headers=headers)
            except httpx.HTTPError as exc:
                logger.error("Function %s unreachable: %s", name, exc)
                raise RemoteServiceError(f"Failed to invoke {name}: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.is_success:
            detail = data.get("error") if isinstance(data, dict) else None
            raise RemoteServiceError(f"Failed to invoke {name}: {detail or response.text}")
        if isinstance(data, dict) and data.get("error"):
            raise RemoteServiceError(f"Failed to invoke {name}: {data['error']}")

        return data

    async def get_users(self, access_token: str) -> list[RemoteUser]:
        data = await self.invoke("get-users", access_token)
        return [RemoteUser.model_validate(user) for user in data.get("users") or []]

    async def get_build_status(self, access_token: str) -> BuildStatus:
        data = await self.invoke("get-build-status", access_token)
        return BuildStatus(
            current=data.get("current"),
            last_successful=data.get("lastSuccessful"),
        )

    async def trigger_rebuild(self, access_token: str, manual: bool = True, details: dict | None = None) -> None:
        await self.invoke(
            "trigger-rebuild",
            access_token,
            {**(details or {}), "manual": manual, "timestamp": datetime.now(UTC).isoformat()},
        )
