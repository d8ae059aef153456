"""Shared fixtures and fakes for all tests."""

from __future__ import annotations

import os

# Must be set before core.config is imported anywhere
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from app.modules.assistant.services.auth import Identity
from app.modules.assistant.services.errors import AuthError, StorageError
from app.services.memory.db import make_sessionmaker
from app.services.memory.models import Base, ChatMessage, Conversation
from core.config import build_services, settings

GOOD_TOKEN = "token-user-1"
OTHER_TOKEN = "token-user-2"
AUTH = {"Authorization": f"Bearer {GOOD_TOKEN}"}
OTHER_AUTH = {"Authorization": f"Bearer {OTHER_TOKEN}"}


class FakeLLM:
    """Scripted stand-in for LLMClient; records every call."""

    def __init__(self, replies=None, error: Exception | None = None):
        self.replies = list(replies or [])
        self.error = error
        self.calls: list[dict] = []

    async def complete(self, messages, *, model, max_tokens, temperature):
        self.calls.append({
            "messages": [dict(m) for m in messages],
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.error is not None:
            raise self.error
        if self.replies:
            return self.replies.pop(0)
        return "Sure, happy to help."


class FakeIdentity:
    async def resolve(self, token: str) -> Identity:
        if token == GOOD_TOKEN:
            return Identity(user_id="user-1", email="one@example.com")
        if token == OTHER_TOKEN:
            return Identity(user_id="user-2", email="two@example.com")
        raise AuthError("unknown token")


class FakeStorage:
    def __init__(self, fail_upload: bool = False, fail_remove: bool = False):
        self.bucket = "invoices"
        self.objects: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.removed: list[str] = []
        self.fail_upload = fail_upload
        self.fail_remove = fail_remove

    async def upload(self, path: str, data: bytes, content_type: str) -> str:
        if self.fail_upload:
            raise StorageError("upload failed")
        self.objects[path] = data
        self.content_types[path] = content_type
        return path

    async def remove(self, paths):
        if self.fail_remove:
            raise StorageError("remove failed")
        for p in paths:
            self.objects.pop(p, None)
            self.removed.append(p)

    def public_url(self, path: str) -> str:
        return f"https://storage.test/{self.bucket}/{path}"


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite; StaticPool keeps every session on the same database."""
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def sessions(engine):
    return make_sessionmaker(engine)


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def fake_storage():
    return FakeStorage()


@pytest.fixture
def make_client(sessions, fake_llm, fake_storage):
    """Factory for an httpx client bound to a freshly wired app."""
    from app.main import create_app

    def _make(cfg=None, llm=None, storage=None, sql_executor=None) -> httpx.AsyncClient:
        services = build_services(
            cfg=cfg or settings,
            sessions=sessions,
            llm=llm or fake_llm,
            identity=FakeIdentity(),
            storage=storage or fake_storage,
            sql_executor=sql_executor,
        )
        app = create_app(services)
        transport = httpx.ASGITransport(app=app, raise_app_exceptions=False)
        return httpx.AsyncClient(transport=transport, base_url="http://testserver")

    return _make


@pytest_asyncio.fixture
async def client(make_client):
    c = make_client()
    yield c
    await c.aclose()


@pytest.fixture
def seed_conversation(sessions):
    """Insert a conversation with `n` alternating turns, one second apart."""

    async def _seed(n: int, user_id: str = "user-1") -> str:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        async with sessions() as db:
            conv = Conversation(user_id=user_id, title="seeded")
            db.add(conv)
            await db.flush()
            for i in range(n):
                db.add(ChatMessage(
                    conversation_id=conv.id,
                    role="user" if i % 2 == 0 else "assistant",
                    content=f"turn {i}",
                    created_at=base + timedelta(seconds=i),
                ))
            await db.commit()
            return conv.id

    return _seed
