"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from wocboard.admin.router import router as admin_router
from wocboard.auth.router import router as auth_router
from wocboard.config import get_settings
from wocboard.database import close_db, get_session_factory, init_db
from wocboard.gamification.router import router as badges_router
from wocboard.gamification.seed import seed_badges
from wocboard.health.router import router as health_router
from wocboard.idcard.router import router as idcard_router
from wocboard.middleware import setup_middleware
from wocboard.projects.router import router as projects_router
from wocboard.pulls.router import router as pulls_router
from wocboard.redis_client import close_redis, init_redis
from wocboard.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed badge definitions (idempotent)
    try:
        async with get_session_factory()() as db:
            created = await seed_badges(db)
            await db.commit()
        logger.info("Seeded %d default badges", created)
    except SQLAlchemyError:
        logger.warning("Badge seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="wocboard API",
        description="Contributor leaderboard API: GitHub PR sync, points, badges and ranks",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(projects_router)
    app.include_router(pulls_router)
    app.include_router(badges_router)
    app.include_router(admin_router)
    app.include_router(idcard_router)

    return app


app = create_app()
