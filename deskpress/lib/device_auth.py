"""GitHub device-authorization flow.

The user enters ``user_code`` at ``verification_uri`` while the caller polls
the token endpoint. GitHub answers ``authorization_pending`` until the user
acts and ``slow_down`` when polled too fast (each one adds five seconds to
the interval).
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from urllib.parse import quote

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DEVICE_CODE_URL = "https://github.com/login/device/code"
ACCESS_TOKEN_URL = "https://github.com/login/oauth/access_token"
DEVICE_GRANT_TYPE = "urn:ietf:params:oauth:grant-type:device_code"

POLL_TIMEOUT = 15 * 60
SLOW_DOWN_STEP = 5


class DeviceAuthError(Exception):
    """The device flow ended without an access token."""


class DeviceCode(BaseModel):
    device_code: str
    user_code: str
    verification_uri: str
    verification_uri_complete: str | None = None
    expires_in: int
    interval: int = 5


def qr_code_url(verification_uri: str, user_code: str) -> str:
    target = f"{verification_uri}?user_code={user_code}"
    return f"https://api.qrserver.com/v1/create-qr-code/?size=200x200&data={quote(target, safe='')}"


class GitHubDeviceAuth:
    def __init__(
        self,
        client_id: str,
        scope: str = "repo",
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
        timeout: float = POLL_TIMEOUT,
    ):
        self.client_id = client_id
        self.scope = scope
        self._transport = transport
        self._sleep = sleep
        self._clock = clock
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, headers={"Accept": "application/json"})

    async def request_device_code(self) -> DeviceCode:
        async with self._client() as client:
            try:
                response = await client.post(
                    DEVICE_CODE_URL, json={"client_id": self.client_id, "scope": self.scope}
                )
            except httpx.HTTPError as exc:
                raise DeviceAuthError("Network error during authentication") from exc

        if not response.is_success:
            raise DeviceAuthError(f"Failed to get device code: {response.status_code}")
        return DeviceCode.model_validate(response.json())

    async def poll_for_token(
        self,
        device_code: str,
        interval: float,
        on_progress: Callable[[float], None] | None = None,
    ) -> str:
        """Poll until the user authorizes the device; returns the access token.

        Raises:
            DeviceAuthError: On expiry, denial, any other provider error or
                after the overall timeout.
        """
        started = self._clock()
        body = {
            "client_id": self.client_id,
            "device_code": device_code,
            "grant_type": DEVICE_GRANT_TYPE,
        }

        async with self._client() as client:
            while self._clock() - started < self.timeout:
                try:
                    response = await client.post(ACCESS_TOKEN_URL, json=body)
                    data = response.json()
                except (httpx.HTTPError, ValueError) as exc:
                    raise DeviceAuthError("Network error during authentication") from exc

                if response.is_success and data.get("access_token"):
                    return data["access_token"]

                match data.get("error"):
                    case "authorization_pending":
                        if on_progress is not None:
                            on_progress(self.timeout - (self._clock() - started))
                    case "slow_down":
                        interval += SLOW_DOWN_STEP
                        logger.debug("Device flow asked to slow down, interval now %ss", interval)
                    case "expired_token":
                        raise DeviceAuthError("Device code has expired. Please try again.")
                    case "access_denied":
                        raise DeviceAuthError("Authorization was denied.")
                    case error:
                        raise DeviceAuthError(
                            f"Authentication failed: {data.get('error_description') or error}"
                        )

                await self._sleep(interval)

        raise DeviceAuthError("Authentication timed out. Please try again.")
