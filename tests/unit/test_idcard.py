"""ID-card auth keys and generation quota."""

from __future__ import annotations

import re

import pytest

from wocboard.errors import LimitExceededError, NotFoundError, ValidationError
from wocboard.idcard.service import generate_auth_key, issue_id_card, linkedin_url, verify_auth_key


class TestHelpers:

    def test_auth_key_format(self):
        for _ in range(50):
            assert re.fullmatch(r"DSW-26-[1-9]\d{3}", generate_auth_key())

    def test_custom_prefix(self):
        assert generate_auth_key("X-").startswith("X-")

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("jane-doe", "https://linkedin.com/in/jane-doe"),
            ("https://www.linkedin.com/in/jane", "https://www.linkedin.com/in/jane"),
        ],
    )
    def test_linkedin_url(self, value, expected):
        assert linkedin_url(value) == expected


class TestIssueIdCard:

    @pytest.mark.asyncio
    async def test_first_issue_allocates_key(self, db_session, factory):
        user = await factory.user("alice")
        user = await issue_id_card(db_session, user, "alice-li")
        assert user.auth_key.startswith("DSW-26-")
        assert user.id_generated_count == 1
        assert user.linkedin_url == "https://linkedin.com/in/alice-li"

    @pytest.mark.asyncio
    async def test_key_is_stable_across_generations(self, db_session, factory):
        user = await factory.user("bob")
        key = (await issue_id_card(db_session, user, "bob")).auth_key
        assert (await issue_id_card(db_session, user, "bob")).auth_key == key

    @pytest.mark.asyncio
    async def test_third_generation_refused(self, db_session, factory):
        user = await factory.user("carol")
        await issue_id_card(db_session, user, "carol")
        await issue_id_card(db_session, user, "carol")
        with pytest.raises(LimitExceededError, match="Generation limit reached"):
            await issue_id_card(db_session, user, "carol")
        assert user.id_generated_count == 2

    @pytest.mark.asyncio
    async def test_blank_linkedin_rejected(self, db_session, factory):
        user = await factory.user()
        with pytest.raises(ValidationError):
            await issue_id_card(db_session, user, "  ")


class TestVerifyAuthKey:

    @pytest.mark.asyncio
    async def test_known_key(self, db_session, factory):
        user = await factory.user("dave")
        await issue_id_card(db_session, user, "dave")
        assert (await verify_auth_key(db_session, user.auth_key)).id == user.id

    @pytest.mark.asyncio
    async def test_unknown_key(self, db_session):
        with pytest.raises(NotFoundError):
            await verify_auth_key(db_session, "DSW-26-0000")
