"""
Shared fixtures: an in-memory SQLite database, a session bound to it, and an
HTTP client whose requests use the same database.
"""

from __future__ import annotations

from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

import app.models  # noqa: F401
from app.core.auth import create_access_token
from app.core.database import get_session
from app.main import app
from app.models.task import Task
from app.models.user import User


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
async def client(session_factory):
    async def _get_session():
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    app.dependency_overrides[get_session] = _get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    async def _make_user(
        first_name: str = "Test",
        last_name: str = "User",
        role: str = "user",
        is_active: bool = True,
        email: Optional[str] = None,
    ) -> User:
        counter["n"] += 1
        user = User(
            first_name=first_name,
            last_name=last_name,
            email=email or f"user{counter['n']}@example.com",
            role=role,
            is_active=is_active,
        )
        session.add(user)
        await session.commit()
        return user

    return _make_user


@pytest.fixture
def make_task(session):
    async def _make_task(creator: User, assignee: Optional[User] = None, **fields) -> Task:
        task = Task(
            title=fields.pop("title", "Write the weekly summary"),
            created_by=creator.id,
            assigned_user_id=assignee.id if assignee else None,
            **fields,
        )
        session.add(task)
        await session.commit()
        return task

    return _make_task


@pytest.fixture
def auth_headers():
    def _auth_headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}

    return _auth_headers
