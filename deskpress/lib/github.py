"""GitHub REST client for the markdown posts folder and the site build workflow.

File writes use the blob sha GitHub returned on the last read as a
compare-and-swap token. A stale sha is reported as a ``WriteConflict`` value
rather than raised, so callers have to handle the retry branch explicitly.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Any
from urllib.parse import quote

import httpx

from deskpress.config import GitHubConfig
from deskpress.lib.exceptions import RemoteServiceError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RepoFile:
    name: str
    sha: str


@dataclass(frozen=True)
class WriteSuccess:
    sha: str | None


@dataclass(frozen=True)
class WriteConflict:
    message: str


WriteResult = WriteSuccess | WriteConflict


class GitHubClient:
    """Thin async wrapper over the GitHub contents, dispatch and actions APIs."""

    def __init__(
        self,
        config: GitHubConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 15.0,
    ):
        self.config = config
        self._transport = transport
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.config.owner}/{self.config.repo}"

    def _content_path(self, file_name: str) -> str:
        posts_path = self.config.posts_path.strip("/")
        return f"{self._repo_path}/contents/{posts_path}/{quote(file_name)}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.config.api_url,
            headers={
                "Authorization": f"Bearer {self.config.token}",
                "Accept": "application/vnd.github.v3+json",
                "User-Agent": "deskpress",
            },
            transport=self._transport,
            timeout=self._timeout,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        async with self._client() as client:
            try:
                return await client.request(method, path, **kwargs)
            except httpx.HTTPError as exc:
                logger.error("GitHub API request failed: %s %s: %s", method, path, exc)
                raise RemoteServiceError(f"GitHub API unreachable: {exc}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        logger.error(
            "GitHub API error: %s %s -> %s", response.request.method, response.request.url, response.status_code
        )
        raise RemoteServiceError(f"GitHub API error: {response.status_code} - {response.text}")

    @staticmethod
    def _is_conflict(response: httpx.Response) -> bool:
        if response.status_code == 409:
            return True
        # GitHub answers 422 when a sha is required or does not match
        return response.status_code == 422 and "sha" in response.text.lower()

    # ------------------------------------------------------------------
    # Contents
    # ------------------------------------------------------------------

    async def list_files(self) -> list[RepoFile]:
        """List markdown files in the posts folder."""
        posts_path = self.config.posts_path.strip("/")
        response = await self._request("GET", f"{self._repo_path}/contents/{posts_path}")
        self._raise_for_status(response)

        return [
            RepoFile(name=entry["name"], sha=entry["sha"])
            for entry in response.json()
            if entry.get("type") == "file" and entry.get("name", "").endswith(".md")
        ]

    async def read_file(self, file_name: str, missing_ok: bool = False) -> tuple[str, str] | None:
        """Return ``(text, sha)`` for a file in the posts folder.

        With ``missing_ok`` a 404 gives ``None`` instead of an error.
        """
        response = await self._request(
            "GET", self._content_path(file_name), params={"ref": self.config.branch}
        )
        if missing_ok and response.status_code == 404:
            return None
        self._raise_for_status(response)

        data = response.json()
        content = base64.b64decode(data["content"]).decode("utf-8")
        return content, data["sha"]

    async def write_file(
        self,
        file_name: str,
        content: str,
        expected_sha: str | None,
        message: str,
    ) -> WriteResult:
        """Create or update a file; ``expected_sha`` is required for updates."""
        body: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": self.config.branch,
        }
        if expected_sha:
            body["sha"] = expected_sha

        response = await self._request("PUT", self._content_path(file_name), json=body)
        if self._is_conflict(response):
            logger.warning("Stale sha writing %s: %s", file_name, response.text)
            return WriteConflict(message=response.text)
        self._raise_for_status(response)

        data = response.json()
        return WriteSuccess(sha=(data.get("content") or {}).get("sha"))

    async def delete_file(self, file_name: str, expected_sha: str, message: str) -> WriteResult:
        response = await self._request(
            "DELETE",
            self._content_path(file_name),
            json={"message": message, "sha": expected_sha, "branch": self.config.branch},
        )
        if self._is_conflict(response):
            logger.warning("Stale sha deleting %s: %s", file_name, response.text)
            return WriteConflict(message=response.text)
        self._raise_for_status(response)
        return WriteSuccess(sha=None)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def list_workflow_runs(self, per_page: int = 5) -> list[dict]:
        response = await self._request(
            "GET", f"{self._repo_path}/actions/runs", params={"per_page": per_page}
        )
        self._raise_for_status(response)
        return response.json().get("workflow_runs", [])

    async def dispatch_rebuild(self, manual: bool = True) -> None:
        """Fire a ``repository_dispatch`` that the site workflow listens for."""
        response = await self._request(
            "POST",
            f"{self._repo_path}/dispatches",
            json={
                "event_type": "rebuild-site",
                "client_payload": {
                    "manual": manual,
                    "timestamp": datetime.now(UTC).isoformat(),
                },
            },
        )
        self._raise_for_status(response)
        logger.info("Triggered site rebuild for %s/%s", self.config.owner, self.config.repo)
