"""GitHub REST API client.

Explicitly constructed with its credential and injected into the sync
service; no process-wide client state.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from wocboard.config import get_settings
from wocboard.errors import ExternalServiceError

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"


class GitHubAPIError(ExternalServiceError):
    """GitHub returned an error response or could not be reached."""


class GitHubRateLimitError(GitHubAPIError):
    """GitHub rate limit exhausted for the configured credential."""

    def __init__(self, message: str, *, status: int | None = None, url: str | None = None,
                 reset_at: int | None = None) -> None:
        super().__init__(message, status=status, url=url)
        self.reset_at = reset_at


class GitHubClient:
    """Thin async wrapper over the GitHub REST API (pull requests and repositories)."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str = "https://api.github.com",
        timeout: float = 10.0,
        per_page: int = 100,
        max_pages: int = 50,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.per_page = per_page
        self.max_pages = max_pages

        headers = {
            "Accept": GITHUB_ACCEPT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "wocboard",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("GitHub token not configured; using unauthenticated requests")

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls) -> GitHubClient:
        settings = get_settings()
        return cls(
            token=settings.github_token or None,
            base_url=settings.github_api_url,
            timeout=settings.github_timeout_seconds,
            per_page=settings.github_per_page,
            max_pages=settings.github_max_pages,
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    async def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            logger.error("GitHub request failed: %s %s", path, exc)
            msg = f"GitHub request failed: {exc}"
            raise GitHubAPIError(msg, url=path) from exc

        if resp.status_code >= 400:
            self._raise_for_status(resp)
        try:
            return resp.json()
        except ValueError as exc:
            url = str(resp.request.url)
            logger.error("GitHub returned a non-JSON body (%s): %s", resp.headers.get("content-type"), url)
            msg = "GitHub returned an invalid response"
            raise GitHubAPIError(msg, status=resp.status_code, url=url) from exc

    @staticmethod
    def _raise_for_status(resp: httpx.Response) -> None:
        url = str(resp.request.url)
        try:
            message = resp.json().get("message") or resp.reason_phrase
        except ValueError:
            message = resp.text or resp.reason_phrase

        remaining = resp.headers.get("x-ratelimit-remaining")
        if resp.status_code == 429 or (resp.status_code == 403 and remaining == "0"):
            reset = resp.headers.get("x-ratelimit-reset")
            logger.error("GitHub rate limit exhausted (reset=%s): %s", reset, url)
            raise GitHubRateLimitError(
                f"GitHub rate limit exceeded: {message}",
                status=resp.status_code,
                url=url,
                reset_at=int(reset) if reset and reset.isdigit() else None,
            )

        logger.error("GitHub API error %d on %s: %s", resp.status_code, url, message)
        raise GitHubAPIError(message, status=resp.status_code, url=url)

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        return await self._get(f"/repos/{owner}/{repo}")

    async def validate_repository(self, owner: str, repo: str) -> dict[str, Any]:
        """Check that a repository exists and is reachable.

        Returns ``{"valid": True, "data": {...}}`` or ``{"valid": False, "error": "..."}``.
        """
        try:
            data = await self.get_repository(owner, repo)
        except GitHubAPIError as exc:
            return {"valid": False, "error": str(exc)}
        return {"valid": True, "data": data}

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        state: str = "all",
    ) -> list[dict[str, Any]]:
        """List pull requests, following pages until a short page or ``max_pages``."""
        items: list[dict[str, Any]] = []
        for page in range(1, self.max_pages + 1):
            batch = await self._get(
                f"/repos/{owner}/{repo}/pulls",
                params={
                    "state": state,
                    "sort": "updated",
                    "direction": "desc",
                    "per_page": self.per_page,
                    "page": page,
                },
            )
            if not isinstance(batch, list):
                msg = "GitHub returned an unexpected pull request listing"
                raise GitHubAPIError(msg, url=f"/repos/{owner}/{repo}/pulls")
            items.extend(batch)
            if len(batch) < self.per_page:
                break
        else:
            logger.warning(
                "Stopped listing PRs for %s/%s after %d pages", owner, repo, self.max_pages,
            )
        return items

    async def get_pull_request(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        """Full PR detail, including diff metrics missing from list payloads."""
        return await self._get(f"/repos/{owner}/{repo}/pulls/{number}")
