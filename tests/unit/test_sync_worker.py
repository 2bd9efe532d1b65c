"""Scheduled sync and recalculation tasks."""

from __future__ import annotations

import pytest
from conftest import FakeGitHubClient, gh_pull
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wocboard.db.models import PullRequest, User
from wocboard.github import worker
from wocboard.github.client import GitHubAPIError
from wocboard.workers import recalculate_runner
from wocboard.workers.settings import WorkerSettings


@pytest.fixture
def worker_db(db_session: AsyncSession, monkeypatch) -> AsyncSession:
    """Point the worker tasks at the test session."""
    monkeypatch.setattr(worker, "get_session_factory", lambda: lambda: db_session)
    return db_session


class TestScheduledSync:

    @pytest.mark.asyncio
    async def test_syncs_eligible_projects(self, factory, worker_db):
        await factory.user("alice")
        await factory.project("octo", "repo")
        github = FakeGitHubClient()
        github.pulls[("octo", "repo")] = [gh_pull(1, 1, "alice", merged=True)]

        results = await worker.scheduled_pr_sync({"github": github})

        assert len(results) == 1
        assert results[0]["success"] is True
        pr = (await worker_db.execute(select(PullRequest))).unique().scalar_one()
        assert pr.status == "merged"

    @pytest.mark.asyncio
    async def test_failures_are_reported(self, factory, worker_db):
        await factory.project("octo", "repo")
        github = FakeGitHubClient()
        github.list_error = GitHubAPIError("Bad credentials", status=401)

        results = await worker.scheduled_pr_sync({"github": github})

        assert results[0]["success"] is False
        assert results[0]["error"] == "Bad credentials"


class TestRecalculateTask:

    @pytest.mark.asyncio
    async def test_rebuilds_totals(self, factory, worker_db):
        alice = await factory.user("alice")
        await factory.pull_request(alice, await factory.project(), status="merged")

        summary = await worker.recalculate({})

        assert summary["users_recomputed"] == 1
        user = await worker_db.get(User, alice.id)
        assert (user.total_prs, user.merged_prs, user.points, user.rank) == (1, 1, 10, 1)


class TestWorkerSettings:

    def test_registers_tasks_and_cron(self):
        assert worker.scheduled_pr_sync in WorkerSettings.functions
        assert worker.recalculate in WorkerSettings.functions
        assert len(WorkerSettings.cron_jobs) == 1


class TestRecalculateRunner:

    @pytest.mark.asyncio
    async def test_unknown_role_exits_early(self):
        assert await recalculate_runner.main("Owner") == 2
