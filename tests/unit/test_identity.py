"""Supabase identity resolution and account matching."""

from __future__ import annotations

import httpx
import pytest
from conftest import supabase_user

from wocboard.auth.identity import Identity, IdentityProviderError, SupabaseIdentityProvider, identity_from_user
from wocboard.auth.service import find_or_create_user
from wocboard.errors import ConflictError


def _provider(handler) -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider("https://sb.test/", "key", transport=httpx.MockTransport(handler))


class TestIdentityFromUser:

    def test_reads_github_metadata(self):
        identity = identity_from_user(supabase_user("octocat", "583231"))
        assert identity == Identity(
            provider_id="583231",
            username="octocat",
            email="octocat@example.com",
            full_name="Octocat",
            avatar_url="https://avatars.example.com/octocat.png",
        )

    def test_falls_back_to_preferred_username_and_name(self):
        data = {"id": "abc", "email": "x@example.com",
                "user_metadata": {"preferred_username": "xy", "name": "X Y"}}
        identity = identity_from_user(data)
        assert identity.username == "xy"
        assert identity.full_name == "X Y"
        assert identity.provider_id == "abc"

    def test_missing_email_rejected(self):
        data = supabase_user("octocat", "1")
        data["email"] = None
        with pytest.raises(IdentityProviderError) as exc_info:
            identity_from_user(data)
        assert exc_info.value.status_code == 401


class TestSupabaseIdentityProvider:

    @pytest.mark.asyncio
    async def test_exchanges_token(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url == "https://sb.test/auth/v1/user"
            assert request.headers["apikey"] == "key"
            assert request.headers["authorization"] == "Bearer tok"
            return httpx.Response(200, json=supabase_user("octocat", "7"))

        identity = await _provider(handler).get_identity("tok")
        assert identity.username == "octocat"

    @pytest.mark.asyncio
    async def test_rejected_token_is_401(self):
        provider = _provider(lambda request: httpx.Response(401, json={"msg": "bad jwt"}))
        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.get_identity("tok")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_provider_outage_is_503(self):
        provider = _provider(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.get_identity("tok")
        assert exc_info.value.status_code == 503

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self):
        with pytest.raises(IdentityProviderError, match="not available"):
            await SupabaseIdentityProvider("", "").get_identity("tok")


def _identity(username: str, provider_id: str, email: str | None = None) -> Identity:
    return identity_from_user(supabase_user(username, provider_id, email))


class TestFindOrCreateUser:

    @pytest.mark.asyncio
    async def test_creates_contributor(self, seeded_db):
        user, created = await find_or_create_user(seeded_db, _identity("newbie", "11"))
        assert created is True
        assert user.role == "Contributor"
        assert user.github_id == "11"
        assert user.last_login is not None

    @pytest.mark.asyncio
    async def test_second_login_updates_profile(self, db_session):
        first, _ = await find_or_create_user(db_session, _identity("octocat", "11"))
        again, created = await find_or_create_user(db_session, _identity("octocat-renamed", "11"))
        assert created is False
        assert again.id == first.id
        assert again.github_username == "octocat-renamed"

    @pytest.mark.asyncio
    async def test_username_collision(self, db_session, factory):
        await factory.user("octocat", github_id="99")
        with pytest.raises(ConflictError, match="github_username"):
            await find_or_create_user(db_session, _identity("octocat", "11", "other@example.com"))

    @pytest.mark.asyncio
    async def test_email_collision(self, db_session, factory):
        await factory.user("someone", github_id="99", email="shared@example.com")
        with pytest.raises(ConflictError, match="email"):
            await find_or_create_user(db_session, _identity("octocat", "11", "shared@example.com"))
