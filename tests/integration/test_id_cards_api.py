"""ID-card issuing and public verification."""

from __future__ import annotations

import pytest
from conftest import auth_headers
from httpx import AsyncClient


class TestIssue:

    @pytest.mark.asyncio
    async def test_issue_and_verify(self, client: AsyncClient, factory):
        user = await factory.user("alice", full_name="Alice Liddell")

        response = await client.post("/api/v1/id-cards", json={"linkedin_id": "alice-l"},
                                     headers=auth_headers(user))
        assert response.status_code == 201
        card = response.json()
        assert card["linkedin_url"] == "https://linkedin.com/in/alice-l"
        assert (card["generations_used"], card["generations_remaining"]) == (1, 1)

        verify = await client.get("/api/v1/verify", params={"id": card["auth_key"]})
        assert verify.status_code == 200
        assert verify.json() == {
            "valid": True,
            "name": "Alice Liddell",
            "role": "Contributor",
            "github": "alice",
            "linkedin": "https://linkedin.com/in/alice-l",
        }

    @pytest.mark.asyncio
    async def test_key_is_stable_and_limit_enforced(self, client: AsyncClient, factory):
        user = await factory.user("alice")
        headers = auth_headers(user)

        first = await client.post("/api/v1/id-cards", json={"linkedin_id": "a"}, headers=headers)
        second = await client.post("/api/v1/id-cards", json={"linkedin_id": "b"}, headers=headers)
        assert first.json()["auth_key"] == second.json()["auth_key"]
        assert second.json()["generations_remaining"] == 0

        third = await client.post("/api/v1/id-cards", json={"linkedin_id": "c"}, headers=headers)
        assert third.status_code == 429
        assert "Generation limit reached" in third.json()["detail"]

    @pytest.mark.asyncio
    async def test_requires_login(self, client: AsyncClient):
        response = await client.post("/api/v1/id-cards", json={"linkedin_id": "a"})
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_blank_linkedin(self, client: AsyncClient, factory):
        user = await factory.user()
        response = await client.post("/api/v1/id-cards", json={"linkedin_id": "  "}, headers=auth_headers(user))
        assert response.status_code == 400


class TestVerify:

    @pytest.mark.asyncio
    async def test_unknown_key(self, client: AsyncClient):
        response = await client.get("/api/v1/verify", params={"id": "WOC0000"})
        assert response.status_code == 404
        assert response.json()["detail"] == "Invalid ID"
