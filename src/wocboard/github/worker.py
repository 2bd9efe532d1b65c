"""PR sync arq worker: scheduled GitHub sync and leaderboard recalculation.

Run with: arq wocboard.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from arq import cron
from arq.connections import RedisSettings

from wocboard.config import get_settings
from wocboard.database import close_db, get_session_factory, init_db
from wocboard.gamification.pipeline import recalculate_leaderboard
from wocboard.github.client import GitHubClient
from wocboard.github.sync_service import ProjectSyncService

logger = logging.getLogger(__name__)


async def sync_startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB, Redis and the GitHub client on worker startup."""
    settings = get_settings()
    await init_db(settings.database_url)

    ctx["redis_client"] = aioredis.from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=10,
    )
    ctx["github"] = GitHubClient.from_settings()
    logger.info("PR sync worker started (minutes=%s)", sorted(settings.pr_sync_minutes))


async def sync_shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    github: GitHubClient | None = ctx.get("github")
    if github:
        await github.aclose()
    redis_client: aioredis.Redis | None = ctx.get("redis_client")
    if redis_client:
        await redis_client.aclose()
    await close_db()
    logger.info("PR sync worker shut down")


async def scheduled_pr_sync(ctx: dict) -> list[dict]:  # type: ignore[type-arg]
    """Scheduled task: sync every eligible project. Failures are logged, not raised."""
    async with get_session_factory()() as db:
        service = ProjectSyncService(db, ctx["github"], ctx.get("redis_client"))
        results = await service.sync_all_projects()

    failed = [r.project for r in results if not r.success]
    logger.info(
        "Scheduled PR sync finished: %d projects, %d failed %s",
        len(results), len(failed), failed or "",
    )
    return [r.to_dict() for r in results]


async def recalculate(ctx: dict, role: str | None = None) -> dict:  # type: ignore[type-arg]
    """On-demand task: full leaderboard recalculation."""
    async with get_session_factory()() as db:
        summary = await recalculate_leaderboard(db, ctx.get("redis_client"), role=role)
        await db.commit()
    return summary.to_dict()


class SyncWorkerSettings:
    """arq worker settings for the PR sync scheduler."""

    functions = [scheduled_pr_sync, recalculate]
    cron_jobs = [
        cron(scheduled_pr_sync, minute=get_settings().pr_sync_minutes, second=0,
             run_at_startup=False, unique=True),
    ]
    on_startup = sync_startup
    on_shutdown = sync_shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().redis_url)
    max_jobs = 2
    job_timeout = 25 * 60
    allow_abort_jobs = True
