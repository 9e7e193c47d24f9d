"""Shared fixtures and factory helpers.

Uses an in-memory SQLite database (aiosqlite) with foreign keys switched on, so
ON DELETE CASCADE behaves as it does on PostgreSQL. Each test gets a fresh
database.
"""
import asyncio
import json
import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["BROADCAST_BACKEND"] = "memory"
os.environ.pop("OPENAI_API_KEY", None)

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketState

from mikromatter.core.security import create_access_token
from mikromatter.db.base import Base
from mikromatter.db.session import build_engine, get_db
from mikromatter.main import app
from mikromatter.schemas.bookclub import BookclubCreate
from mikromatter.schemas.user import OAuthProfile
from mikromatter.services import storage_service
from mikromatter.services.bookclub_service import create_bookclub
from mikromatter.services.hashtag_service import index_post
from mikromatter.services.post_service import create_post
from mikromatter.services.storage_service import LocalStorage
from mikromatter.services.user_service import upsert_user


# ---------------------------------------------------------------------------
# Core fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine():
    engine = build_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_maker):
    """A session for accessor-level tests. Work is flushed, never committed."""
    async with session_maker() as session:
        yield session


@pytest.fixture
def storage(tmp_path, monkeypatch):
    local = LocalStorage(base_dir=str(tmp_path / "uploads"), base_url="http://test")
    monkeypatch.setattr(storage_service, "_storage", local)
    return local


@pytest.fixture
async def client(session_maker, storage):
    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Factory helpers (plain functions, not fixtures, so tests can call them
# with custom arguments easily)
# ---------------------------------------------------------------------------


async def make_user(db, user_id="github:1", first_name="Ada", **kwargs):
    return await upsert_user(db, OAuthProfile(id=user_id, first_name=first_name, **kwargs))


async def make_post(db, author, content="Hello world", image_url=None):
    post = await create_post(db, author.id, content, image_url)
    await index_post(db, post.id, post.content)
    return post


async def make_bookclub(db, creator, name="Indie Readers", **kwargs):
    fields = {
        "name": name,
        "description": "We read small-press fiction",
        "current_book": "The Quiet Orchard",
        "current_author": "M. Vale",
        **kwargs,
    }
    return await create_bookclub(db, creator.id, BookclubCreate(**fields))


async def add_user(session_maker, user_id, **kwargs):
    """Create and commit a user outside any request, for API tests."""
    async with session_maker() as session:
        user = await make_user(session, user_id, **kwargs)
        await session.commit()
        return user


def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


class FakeSocket:
    """Stands in for a WebSocket held by the broadcast hub."""

    def __init__(self, fail=False):
        self.client_state = WebSocketState.CONNECTING
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, message):
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(json.loads(message))


class SlowSocket(FakeSocket):
    def __init__(self, delay):
        super().__init__()
        self.delay = delay

    async def send_text(self, message):
        await asyncio.sleep(self.delay)
        await super().send_text(message)
