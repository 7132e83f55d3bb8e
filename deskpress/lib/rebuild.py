"""Best-effort static-site rebuilds after a post's publication state changes.

The public site is static, so publishing, unpublishing or deleting a live
post only shows up after a rebuild. A failed rebuild request is logged and
never fails the write that caused it.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Literal
from uuid import UUID

from deskpress.lib.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)

PostChange = Literal["insert", "update", "delete"]
RebuildTrigger = Callable[[dict], Awaitable[object]]


def needs_rebuild(change: PostChange, was_published: bool, is_published: bool) -> bool:
    """Whether the change alters what the public site shows."""
    match change:
        case "insert":
            return is_published
        case "update":
            return was_published != is_published
        case "delete":
            return was_published


class SiteRebuilder:
    def __init__(self, trigger: RebuildTrigger):
        self._trigger = trigger

    async def post_changed(
        self, change: PostChange, post_id: UUID, was_published: bool, is_published: bool
    ) -> bool:
        """Request a rebuild when needed. Returns True only if one was sent."""
        if not needs_rebuild(change, was_published, is_published):
            return False

        try:
            await self._trigger({"event": change, "postId": str(post_id), "published": is_published})
        except RemoteServiceError as exc:
            logger.warning("Failed to trigger rebuild after %s of post %s: %s", change, post_id, exc.detail)
            return False

        logger.info("Triggered rebuild after %s of post %s", change, post_id)
        return True
