"""GitHub REST client against a mocked transport."""

from __future__ import annotations

import httpx
import pytest

from wocboard.github.client import GitHubAPIError, GitHubClient, GitHubRateLimitError


def _client(handler, **kwargs) -> GitHubClient:
    return GitHubClient(
        token=kwargs.pop("token", "ghp_test"),
        base_url="https://api.github.test",
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestListPullRequests:

    @pytest.mark.asyncio
    async def test_follows_pages_until_short_page(self):
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            params = dict(request.url.params)
            seen.append(params)
            page = int(params["page"])
            size = 2 if page < 3 else 1
            return httpx.Response(200, json=[{"id": page * 10 + i} for i in range(size)])

        async with _client(handler, per_page=2) as gh:
            prs = await gh.list_pull_requests("octo", "repo")

        assert [p["id"] for p in prs] == [10, 11, 20, 21, 30]
        assert [s["page"] for s in seen] == ["1", "2", "3"]
        assert seen[0]["state"] == "all"
        assert seen[0]["per_page"] == "2"

    @pytest.mark.asyncio
    async def test_stops_at_max_pages(self):
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            return httpx.Response(200, json=[{"id": calls}])

        async with _client(handler, per_page=1, max_pages=3) as gh:
            prs = await gh.list_pull_requests("octo", "repo")

        assert calls == 3
        assert len(prs) == 3

    @pytest.mark.asyncio
    async def test_sends_auth_and_api_headers(self):
        captured: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured.update(request.headers)
            return httpx.Response(200, json=[])

        async with _client(handler) as gh:
            await gh.list_pull_requests("octo", "repo")

        assert captured["authorization"] == "Bearer ghp_test"
        assert captured["accept"] == "application/vnd.github+json"

    @pytest.mark.asyncio
    async def test_no_auth_header_without_token(self):
        captured: dict[str, str] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured.update(request.headers)
            return httpx.Response(200, json=[])

        async with _client(handler, token=None) as gh:
            await gh.list_pull_requests("octo", "repo")

        assert "authorization" not in captured


class TestErrors:

    @pytest.mark.asyncio
    async def test_rate_limit_403(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403,
                json={"message": "API rate limit exceeded"},
                headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1767225600"},
            )

        async with _client(handler) as gh:
            with pytest.raises(GitHubRateLimitError) as exc_info:
                await gh.list_pull_requests("octo", "repo")

        assert exc_info.value.reset_at == 1767225600
        assert exc_info.value.status == 403

    @pytest.mark.asyncio
    async def test_rate_limit_429(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"message": "slow down"})

        async with _client(handler) as gh:
            with pytest.raises(GitHubRateLimitError):
                await gh.get_pull_request("octo", "repo", 1)

    @pytest.mark.asyncio
    async def test_plain_403_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(403, json={"message": "Resource not accessible"},
                                  headers={"x-ratelimit-remaining": "4000"})

        async with _client(handler) as gh:
            with pytest.raises(GitHubAPIError) as exc_info:
                await gh.get_repository("octo", "repo")

        assert not isinstance(exc_info.value, GitHubRateLimitError)
        assert str(exc_info.value) == "Resource not accessible"

    @pytest.mark.asyncio
    async def test_network_error_wrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        async with _client(handler) as gh:
            with pytest.raises(GitHubAPIError, match="GitHub request failed"):
                await gh.list_pull_requests("octo", "repo")

    @pytest.mark.asyncio
    async def test_html_body_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>Down for maintenance</html>",
                                  headers={"content-type": "text/html"})

        async with _client(handler) as gh:
            with pytest.raises(GitHubAPIError, match="invalid response") as exc_info:
                await gh.list_pull_requests("octo", "repo")

        assert exc_info.value.status == 200
        assert exc_info.value.url.startswith("https://api.github.test/repos/octo/repo/pulls")

    @pytest.mark.asyncio
    async def test_non_list_page_is_api_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"message": "unexpected"})

        async with _client(handler) as gh:
            with pytest.raises(GitHubAPIError, match="unexpected pull request listing"):
                await gh.list_pull_requests("octo", "repo")


class TestDefaults:

    @pytest.mark.asyncio
    async def test_page_cap_covers_large_repositories(self):
        async with GitHubClient.from_settings() as gh:
            assert gh.per_page * gh.max_pages >= 5000


class TestValidateRepository:

    @pytest.mark.asyncio
    async def test_valid(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/repos/octo/repo"
            return httpx.Response(200, json={"name": "repo", "stargazers_count": 12})

        async with _client(handler) as gh:
            result = await gh.validate_repository("octo", "repo")

        assert result == {"valid": True, "data": {"name": "repo", "stargazers_count": 12}}

    @pytest.mark.asyncio
    async def test_missing_repository(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Not Found"})

        async with _client(handler) as gh:
            result = await gh.validate_repository("octo", "missing")

        assert result == {"valid": False, "error": "Not Found"}
