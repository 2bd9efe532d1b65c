"""Full leaderboard recalculation."""

from __future__ import annotations

import pytest

from wocboard.gamification.pipeline import recalculate_leaderboard, recompute_pr_points


class TestRecomputePrPoints:

    @pytest.mark.asyncio
    async def test_fixes_stale_points(self, db_session, factory):
        user = await factory.user()
        project = await factory.project()
        stale = await factory.pull_request(user, project, status="merged")
        fresh = await factory.pull_request(user, project, status="open")
        stale.points = 999
        await db_session.flush()

        scanned, changed = await recompute_pr_points(db_session)
        assert (scanned, changed) == (2, 1)
        assert stale.points == 10
        assert fresh.points == 5


class TestRecalculateLeaderboard:

    @pytest.mark.asyncio
    async def test_rebuilds_stats_badges_and_ranks(self, seeded_db, factory):
        alice = await factory.user("alice")
        bob = await factory.user("bob")
        project = await factory.project()
        await factory.pull_request(alice, project, status="open")
        await factory.pull_request(bob, project, status="merged")

        summary = await recalculate_leaderboard(seeded_db)

        assert summary.users_recomputed == 2
        assert summary.users_changed == 2
        assert summary.ranked == 2
        # bob: 10 + First Steps 5 + Contributor 15; alice: 5 + First Steps 5
        assert (bob.points, alice.points) == (30, 10)
        assert (bob.rank, alice.rank) == (1, 2)

    @pytest.mark.asyncio
    async def test_second_run_changes_nothing(self, seeded_db, factory):
        user = await factory.user()
        project = await factory.project()
        await factory.pull_request(user, project, status="merged")

        await recalculate_leaderboard(seeded_db)
        summary = await recalculate_leaderboard(seeded_db)
        assert summary.prs_changed == 0
        assert summary.users_changed == 0

    @pytest.mark.asyncio
    async def test_role_filter(self, db_session, factory):
        contributor = await factory.user(role="Contributor")
        mentor = await factory.user(role="Mentor")
        project = await factory.project()
        await factory.pull_request(contributor, project)
        await factory.pull_request(mentor, project)

        summary = await recalculate_leaderboard(db_session, role="Mentor", recalculate_pr_points=False)
        assert summary.users_recomputed == 1
        assert summary.prs_scanned == 0
        assert mentor.total_prs == 1
        assert contributor.total_prs == 0
