"""Badge qualification engine and badge awarding."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest

from wocboard.gamification import badge_service
from wocboard.gamification.badge_engine import BadgeEngine
from wocboard.gamification.badge_service import (
    award_badge,
    create_badge,
    get_badge_by_name,
    get_user_badges,
    has_badge,
)
from wocboard.gamification.pipeline import recompute_user


class TestMeetsCriteria:

    @pytest.mark.asyncio
    async def test_pr_count(self, seeded_db, factory):
        badge = await get_badge_by_name(seeded_db, "Getting Started")
        engine = BadgeEngine(seeded_db)
        assert await engine.meets_criteria(await factory.user(total_prs=4), badge) is False
        assert await engine.meets_criteria(await factory.user(total_prs=5), badge) is True

    @pytest.mark.asyncio
    async def test_merged_prs_and_points(self, seeded_db, factory):
        engine = BadgeEngine(seeded_db)
        contributor = await get_badge_by_name(seeded_db, "Contributor")
        point_master = await get_badge_by_name(seeded_db, "Point Master")
        user = await factory.user(merged_prs=1, points=99)
        assert await engine.meets_criteria(user, contributor) is True
        assert await engine.meets_criteria(user, point_master) is False

    @pytest.mark.asyncio
    async def test_special_never_auto_qualifies(self, seeded_db, factory):
        badge = await create_badge(seeded_db, {
            "name": "Hall of Fame",
            "description": "Hand-picked",
            "criteria_type": "special",
            "criteria_threshold": None,
            "criteria_description": "Awarded by the organisers",
        })
        user = await factory.user(total_prs=100, merged_prs=100, points=10_000)
        assert await BadgeEngine(seeded_db).meets_criteria(user, badge) is False

    @pytest.mark.asyncio
    async def test_streak_counts_recent_prs(self, seeded_db, factory):
        badge = await create_badge(seeded_db, {
            "name": "On a Roll",
            "description": "Three PRs in three days",
            "criteria_type": "streak",
            "criteria_threshold": 3,
            "criteria_description": "3 PRs within 3 days",
        })
        user = await factory.user()
        project = await factory.project()
        for _ in range(3):
            await factory.pull_request(user, project)
        assert await BadgeEngine(seeded_db).meets_criteria(user, badge) is True


class TestEvaluate:

    @pytest.mark.asyncio
    async def test_awards_once(self, seeded_db, factory):
        user = await factory.user("alice")
        project = await factory.project()
        await factory.pull_request(user, project, status="merged")

        first = await recompute_user(seeded_db, user)
        assert {b.name for b in first} == {"First Steps", "Contributor"}
        # 10 for the PR, 5 + 15 in badge rewards
        assert user.points == 30

        second = await BadgeEngine(seeded_db).evaluate(user)
        assert second == []
        assert user.points == 30
        assert len(await get_user_badges(seeded_db, user.id)) == 2

    @pytest.mark.asyncio
    async def test_new_user_earns_nothing(self, seeded_db, factory):
        user = await factory.user()
        assert await BadgeEngine(seeded_db).evaluate(user) == []

    @pytest.mark.asyncio
    async def test_inactive_badge_skipped(self, seeded_db, factory):
        badge = await get_badge_by_name(seeded_db, "First Steps")
        badge.is_active = False
        user = await factory.user(total_prs=1)
        assert await BadgeEngine(seeded_db).evaluate(user) == []

    @pytest.mark.asyncio
    async def test_manual_award_not_reawarded(self, seeded_db, factory):
        admin = await factory.user("root", role="Admin")
        user = await factory.user("bob", total_prs=1)
        badge = await get_badge_by_name(seeded_db, "First Steps")

        assert await award_badge(seeded_db, None, user, badge, awarded_by=admin, reason="Early bird")
        assert user.bonus_points == 5

        assert await BadgeEngine(seeded_db).evaluate(user) == []
        assert user.bonus_points == 5

    @pytest.mark.asyncio
    async def test_qualifies_false_when_held(self, seeded_db, factory):
        user = await factory.user(total_prs=1)
        badge = await get_badge_by_name(seeded_db, "First Steps")
        engine = BadgeEngine(seeded_db)
        assert await engine.qualifies(user, badge) is True
        await engine.evaluate(user)
        assert await has_badge(seeded_db, user.id, badge.id) is True
        assert await engine.qualifies(user, badge) is False


class TestAwardBadge:

    @pytest.mark.asyncio
    async def test_updates_statistics(self, seeded_db, factory):
        badge = await get_badge_by_name(seeded_db, "Legend")
        user = await factory.user()
        assert await award_badge(seeded_db, None, user, badge) is True
        assert badge.total_awarded == 1
        assert badge.last_awarded_at is not None
        assert await award_badge(seeded_db, None, user, badge) is False
        assert badge.total_awarded == 1

    @pytest.mark.asyncio
    async def test_publishes_badge_event(self, seeded_db, factory):
        redis = AsyncMock()
        badge = await get_badge_by_name(seeded_db, "First Steps")
        user = await factory.user("carol")

        await award_badge(seeded_db, redis, user, badge)
        redis.publish.assert_awaited_once()
        channel, payload = redis.publish.await_args.args
        assert channel == "pubsub:badge_earned"
        assert json.loads(payload)["badge_name"] == "First Steps"

    @pytest.mark.asyncio
    async def test_publish_failure_does_not_block_award(self, seeded_db, factory):
        redis = AsyncMock()
        redis.publish.side_effect = ConnectionError("redis down")
        badge = await get_badge_by_name(seeded_db, "First Steps")
        user = await factory.user()

        assert await award_badge(seeded_db, redis, user, badge) is True

    @pytest.mark.asyncio
    async def test_lost_race_keeps_callers_changes(self, seeded_db, factory, monkeypatch):
        badge = await get_badge_by_name(seeded_db, "Legend")
        user = await factory.user("dave")
        assert await award_badge(seeded_db, None, user, badge) is True
        await seeded_db.commit()

        # Another worker awarded the badge between the check and the insert
        monkeypatch.setattr(badge_service, "has_badge", AsyncMock(return_value=False))
        user.bio = "edited before the award"
        await seeded_db.flush()

        assert await award_badge(seeded_db, None, user, badge) is False
        assert user.bio == "edited before the award"
        assert user.bonus_points == 50
        assert badge.total_awarded == 1
        assert len(await get_user_badges(seeded_db, user.id)) == 1
