"""Static-site build status and the polling task that watches it."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel

if TYPE_CHECKING:
    from deskpress.lib.github import GitHubClient

logger = logging.getLogger(__name__)

RunStatus = Literal["queued", "in_progress", "completed"]
RunConclusion = Literal["success", "failure", "cancelled"] | None

TERMINAL_STATUSES = frozenset({"completed"})


class BuildRun(BaseModel):
    id: int
    status: str
    conclusion: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    html_url: str | None = None
    event: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


class SuccessfulRun(BaseModel):
    id: int
    completed_at: datetime | None = None
    html_url: str | None = None


class BuildStatus(BaseModel):
    current: BuildRun | None = None
    last_successful: SuccessfulRun | None = None

    @property
    def in_progress(self) -> bool:
        return self.current is not None and not self.current.is_terminal


def summarize_runs(runs: list[dict]) -> BuildStatus:
    """Reduce a newest-first list of workflow runs to the latest and last green run."""
    current = BuildRun.model_validate(runs[0]) if runs else None

    last_successful = None
    for run in runs:
        if run.get("status") == "completed" and run.get("conclusion") == "success":
            last_successful = SuccessfulRun(
                id=run["id"],
                completed_at=run.get("updated_at"),
                html_url=run.get("html_url"),
            )
            break

    return BuildStatus(current=current, last_successful=last_successful)


async def fetch_build_status(github: GitHubClient) -> BuildStatus:
    """Build status read straight from the repository's Actions runs."""
    return summarize_runs(await github.list_workflow_runs(per_page=5))


class BuildStatusPoller:
    """Re-fetch build status on a fixed interval while a build is running.

    ``start()`` fetches immediately and keeps polling every ``interval``
    seconds until the observed run reaches a terminal status (or there is no
    run at all). ``stop()`` cancels the task; both are safe to call twice.
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[BuildStatus]],
        interval: float = 10.0,
        on_update: Callable[[BuildStatus], None] | None = None,
    ):
        self._fetch = fetch
        self.interval = interval
        self._on_update = on_update
        self._task: asyncio.Task | None = None
        self.latest: BuildStatus | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if self.running:
            return self._task
        self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def wait(self) -> BuildStatus | None:
        """Block until polling stops on its own; returns the last observation."""
        if self._task is not None:
            await self._task
        return self.latest

    async def _run(self) -> None:
        while True:
            status = await self._fetch()
            self.latest = status
            if self._on_update is not None:
                self._on_update(status)

            if not status.in_progress:
                logger.debug("Build reached terminal state, polling stopped")
                return

            await asyncio.sleep(self.interval)
