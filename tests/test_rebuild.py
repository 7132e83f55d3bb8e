"""Tests for publication-driven site rebuilds."""

import logging
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from deskpress.lib.exceptions import RemoteServiceError
from deskpress.lib.rebuild import SiteRebuilder, needs_rebuild


@pytest.mark.parametrize(
    "change, was_published, is_published, expected",
    [
        ("insert", False, True, True),
        ("insert", False, False, False),
        ("update", False, True, True),
        ("update", True, False, True),
        ("update", True, True, False),
        ("update", False, False, False),
        ("delete", True, False, True),
        ("delete", False, False, False),
    ],
)
def test_needs_rebuild(change, was_published, is_published, expected):
    assert needs_rebuild(change, was_published, is_published) is expected


@pytest.mark.asyncio
async def test_sends_the_change_details():
    trigger = AsyncMock()
    post_id = uuid4()

    assert await SiteRebuilder(trigger).post_changed("update", post_id, was_published=False, is_published=True)

    trigger.assert_awaited_once_with({"event": "update", "postId": str(post_id), "published": True})


@pytest.mark.asyncio
async def test_unchanged_visibility_sends_nothing():
    trigger = AsyncMock()

    assert not await SiteRebuilder(trigger).post_changed("update", uuid4(), was_published=True, is_published=True)
    trigger.assert_not_awaited()


@pytest.mark.asyncio
async def test_failed_trigger_is_logged_not_raised(caplog):
    trigger = AsyncMock(side_effect=RemoteServiceError("Failed to invoke trigger-rebuild: down"))

    with caplog.at_level(logging.WARNING, logger="deskpress.lib.rebuild"):
        sent = await SiteRebuilder(trigger).post_changed("delete", uuid4(), was_published=True, is_published=False)

    assert sent is False
    assert "Failed to trigger rebuild after delete" in caplog.text
