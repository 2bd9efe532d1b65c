"""Shared test fixtures.

Every test gets a fresh in-memory SQLite database built from the ORM
metadata. API tests run the app over ``ASGITransport`` with the session,
GitHub client, identity provider and Redis dependencies overridden.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from wocboard.auth.dependencies import get_identity_provider
from wocboard.auth.identity import SupabaseIdentityProvider
from wocboard.auth.jwt import create_access_token
from wocboard.database import get_session
from wocboard.db.base import Base
from wocboard.db.models import Project, PullRequest, User
from wocboard.dependencies import get_github_client, get_optional_redis
from wocboard.github.client import GitHubAPIError
from wocboard.gamification.seed import seed_badges
from wocboard.main import create_app
from wocboard.pulls.points import apply_points

SUPABASE_URL = "https://supabase.test"
SUPABASE_KEY = "service-role-key"


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Explicit BEGIN so SAVEPOINT works under pysqlite
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, _record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """A session shared by the test body and (via overrides) the app."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest_asyncio.fixture
async def seeded_db(db_session: AsyncSession) -> AsyncSession:
    """DB session with the default badges seeded."""
    await seed_badges(db_session)
    await db_session.commit()
    return db_session


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


class Factory:
    """Creates committed users, projects and pull requests."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self._seq = 0

    def _next(self) -> int:
        self._seq += 1
        return self._seq

    async def user(self, username: str | None = None, role: str = "Contributor", **fields: Any) -> User:
        n = self._next()
        username = username or f"user{n}"
        user = User(
            github_id=fields.pop("github_id", str(1000 + n)),
            github_username=username,
            email=fields.pop("email", f"{username}@example.com"),
            full_name=fields.pop("full_name", username.title()),
            role=role,
            **fields,
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def project(
        self,
        owner: str = "octo",
        repo: str | None = None,
        mentor: User | None = None,
        **fields: Any,
    ) -> Project:
        n = self._next()
        repo = repo or f"repo{n}"
        project = Project(
            name=fields.pop("name", repo),
            description=fields.pop("description", f"{repo} description"),
            github_url=f"https://github.com/{owner}/{repo}",
            github_owner=owner,
            github_repo=repo,
            difficulty=fields.pop("difficulty", "Beginner"),
            tags=[],
            tech_stack=[],
            mentor_id=mentor.id if mentor else None,
            is_approved=fields.pop("is_approved", True),
            **fields,
        )
        self.db.add(project)
        await self.db.commit()
        await self.db.refresh(project, attribute_names=["mentor"])
        return project

    async def pull_request(
        self,
        user: User,
        project: Project,
        status: str = "open",
        **fields: Any,
    ) -> PullRequest:
        n = self._next()
        now = datetime.now(timezone.utc)
        pr = PullRequest(
            github_pr_id=fields.pop("github_pr_id", 50_000 + n),
            github_pr_number=fields.pop("github_pr_number", n),
            title=fields.pop("title", f"PR {n}"),
            github_url=f"https://github.com/{project.github_owner}/{project.github_repo}/pull/{n}",
            user_id=user.id,
            project_id=project.id,
            status=status,
            gh_created_at=fields.pop("gh_created_at", now - timedelta(hours=n)),
            gh_updated_at=fields.pop("gh_updated_at", now),
            merged_at=now if status == "merged" else None,
            **fields,
        )
        apply_points(pr)
        self.db.add(pr)
        await self.db.commit()
        await self.db.refresh(pr, attribute_names=["user", "project"])
        return pr


@pytest.fixture
def factory(db_session: AsyncSession) -> Factory:
    return Factory(db_session)


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


# ---------------------------------------------------------------------------
# GitHub
# ---------------------------------------------------------------------------


def gh_pull(
    pr_id: int,
    number: int,
    login: str | None,
    state: str = "open",
    merged: bool = False,
    **fields: Any,
) -> dict[str, Any]:
    """A GitHub pull request payload as returned by the REST API."""
    created = fields.pop("created_at", "2026-01-10T12:00:00Z")
    return {
        "id": pr_id,
        "number": number,
        "title": fields.pop("title", f"Fix #{number}"),
        "body": fields.pop("body", ""),
        "html_url": f"https://github.com/octo/repo/pull/{number}",
        "state": "closed" if merged else state,
        "user": {"login": login} if login else None,
        "created_at": created,
        "updated_at": fields.pop("updated_at", created),
        "merged_at": "2026-01-11T12:00:00Z" if merged else None,
        "closed_at": "2026-01-11T12:00:00Z" if merged or state == "closed" else None,
        **fields,
    }


class FakeGitHubClient:
    """In-memory stand-in for ``GitHubClient``.

    ``pulls`` maps (owner, repo) to list payloads; ``details`` maps
    (owner, repo, number) to detail payloads. Either value may be an
    exception instance, which is raised instead. A missing detail raises
    ``GitHubAPIError`` so the sync falls back to the list payload.
    """

    def __init__(self) -> None:
        self.pulls: dict[tuple[str, str], list[dict[str, Any]] | Exception] = {}
        self.details: dict[tuple[str, str, int], dict[str, Any] | Exception] = {}
        self.repos: dict[tuple[str, str], dict[str, Any]] = {}
        self.list_error: Exception | None = None
        self.list_calls = 0

    async def list_pull_requests(self, owner: str, repo: str, state: str = "all") -> list[dict[str, Any]]:
        self.list_calls += 1
        if self.list_error is not None:
            raise self.list_error
        pulls = self.pulls.get((owner, repo), [])
        if isinstance(pulls, Exception):
            raise pulls
        return list(pulls)

    async def get_pull_request(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        try:
            detail = self.details[(owner, repo, number)]
        except KeyError:
            msg = "Not Found"
            raise GitHubAPIError(msg, status=404) from None
        if isinstance(detail, Exception):
            raise detail
        return detail

    async def get_repository(self, owner: str, repo: str) -> dict[str, Any]:
        try:
            return self.repos[(owner, repo)]
        except KeyError:
            msg = "Not Found"
            raise GitHubAPIError(msg, status=404) from None

    async def validate_repository(self, owner: str, repo: str) -> dict[str, Any]:
        try:
            return {"valid": True, "data": await self.get_repository(owner, repo)}
        except GitHubAPIError as exc:
            return {"valid": False, "error": str(exc)}

    async def aclose(self) -> None:
        pass


@pytest.fixture
def fake_github() -> FakeGitHubClient:
    return FakeGitHubClient()


# ---------------------------------------------------------------------------
# Identity provider
# ---------------------------------------------------------------------------


def supabase_user(username: str, provider_id: str, email: str | None = None) -> dict[str, Any]:
    """A Supabase ``/auth/v1/user`` payload for a GitHub login."""
    return {
        "id": f"sb-{provider_id}",
        "email": email or f"{username}@example.com",
        "user_metadata": {
            "user_name": username,
            "provider_id": provider_id,
            "full_name": username.title(),
            "avatar_url": f"https://avatars.example.com/{username}.png",
        },
    }


@pytest.fixture
def identity_tokens() -> dict[str, dict[str, Any]]:
    """Access token -> Supabase user payload; unknown tokens get a 401."""
    return {}


@pytest.fixture
def identity_provider(identity_tokens: dict[str, dict[str, Any]]) -> SupabaseIdentityProvider:
    def handler(request: httpx.Request) -> httpx.Response:
        token = request.headers.get("Authorization", "").removeprefix("Bearer ")
        if token not in identity_tokens:
            return httpx.Response(401, json={"msg": "invalid JWT"})
        return httpx.Response(200, json=identity_tokens[token])

    return SupabaseIdentityProvider(SUPABASE_URL, SUPABASE_KEY, transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    fake_github: FakeGitHubClient,
    identity_provider: SupabaseIdentityProvider,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app, wired to the test database and fakes."""
    app = create_app()

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    async def _github() -> AsyncGenerator[FakeGitHubClient, None]:
        yield fake_github

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_github_client] = _github
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    app.dependency_overrides[get_optional_redis] = lambda: None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
