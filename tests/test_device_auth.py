"""Tests for the GitHub device-authorization flow."""

import json

import httpx
import pytest

from deskpress.lib.device_auth import (
    DEVICE_GRANT_TYPE,
    DeviceAuthError,
    GitHubDeviceAuth,
    qr_code_url,
)


class FakeTime:
    """Clock that only moves when the flow sleeps."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: list[float] = []

    def clock(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _scripted(*payloads: dict):
    """Token endpoint answering with ``payloads`` in order, repeating the last."""
    remaining = list(payloads)
    requests: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(json.loads(request.content))
        payload = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        return httpx.Response(200, json=payload)

    return handler, requests


def _auth(handler, fake: FakeTime, timeout: float = 900) -> GitHubDeviceAuth:
    return GitHubDeviceAuth(
        "client-1",
        transport=httpx.MockTransport(handler),
        sleep=fake.sleep,
        clock=fake.clock,
        timeout=timeout,
    )


@pytest.mark.asyncio
async def test_request_device_code():
    def handler(request: httpx.Request) -> httpx.Response:
        assert json.loads(request.content) == {"client_id": "client-1", "scope": "repo"}
        return httpx.Response(
            200,
            json={
                "device_code": "dev",
                "user_code": "ABCD-1234",
                "verification_uri": "https://github.com/login/device",
                "expires_in": 900,
                "interval": 5,
            },
        )

    code = await _auth(handler, FakeTime()).request_device_code()
    assert code.user_code == "ABCD-1234"
    assert code.interval == 5


@pytest.mark.asyncio
async def test_device_code_failure():
    def handler(request):
        return httpx.Response(404)

    with pytest.raises(DeviceAuthError, match="Failed to get device code: 404"):
        await _auth(handler, FakeTime()).request_device_code()


@pytest.mark.asyncio
async def test_pending_then_token():
    fake = FakeTime()
    handler, requests = _scripted(
        {"error": "authorization_pending"},
        {"error": "authorization_pending"},
        {"access_token": "gho_abc", "token_type": "bearer"},
    )
    progress = []

    token = await _auth(handler, fake).poll_for_token("dev", 5, on_progress=progress.append)

    assert token == "gho_abc"
    assert fake.sleeps == [5, 5]
    assert progress == [900, 895]
    assert requests[0] == {"client_id": "client-1", "device_code": "dev", "grant_type": DEVICE_GRANT_TYPE}


@pytest.mark.asyncio
async def test_slow_down_adds_five_seconds():
    fake = FakeTime()
    handler, _ = _scripted(
        {"error": "slow_down"},
        {"error": "slow_down"},
        {"error": "authorization_pending"},
        {"access_token": "gho_abc"},
    )

    await _auth(handler, fake).poll_for_token("dev", 5)
    assert fake.sleeps == [10, 15, 15]


@pytest.mark.parametrize(
    "payload, message",
    [
        ({"error": "expired_token"}, "Device code has expired. Please try again."),
        ({"error": "access_denied"}, "Authorization was denied."),
        ({"error": "incorrect_client_credentials", "error_description": "Bad client"}, "Authentication failed: Bad client"),
    ],
)
@pytest.mark.asyncio
async def test_terminal_errors(payload, message):
    handler, _ = _scripted(payload)

    with pytest.raises(DeviceAuthError) as exc_info:
        await _auth(handler, FakeTime()).poll_for_token("dev", 5)
    assert str(exc_info.value) == message


@pytest.mark.asyncio
async def test_times_out():
    fake = FakeTime()
    handler, requests = _scripted({"error": "authorization_pending"})

    with pytest.raises(DeviceAuthError, match="timed out"):
        await _auth(handler, fake, timeout=30).poll_for_token("dev", 10)
    assert len(requests) == 3


@pytest.mark.asyncio
async def test_network_error():
    def handler(request):
        raise httpx.ConnectError("offline")

    with pytest.raises(DeviceAuthError, match="Network error"):
        await _auth(handler, FakeTime()).poll_for_token("dev", 5)


def test_qr_code_url_encodes_target():
    url = qr_code_url("https://github.com/login/device", "ABCD-1234")
    assert url.startswith("https://api.qrserver.com/v1/create-qr-code/?size=200x200&data=")
    assert "https%3A%2F%2Fgithub.com%2Flogin%2Fdevice%3Fuser_code%3DABCD-1234" in url
