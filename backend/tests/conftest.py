"""
Shared pytest fixtures.

Every test runs against fakes:
  • in-memory SQLite (aiosqlite) with the real ORM models
  • httpx.MockTransport for every outbound HTTP call
  • a virtual clock for the polling supervisor
"""

from __future__ import annotations

import uuid
from typing import Callable

import httpx
import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from reportflow.core.config import Settings
from reportflow.core.constants import OrderStatus
from reportflow.db.models import Base, Order, User
from reportflow.db.session import create_session_factory
from tests.helpers import (
    ANALYSIS_URL,
    CDN_BASE,
    COOKIE_URL,
    SOURCE_URL,
    STORAGE_BASE,
    TOKEN_URL,
    WORKFLOW_ID,
    RecordingRouter,
    VirtualClock,
)


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        STORAGE_BASE_URL=STORAGE_BASE,
        STORAGE_API_KEY="anon-key",
        STORAGE_BUCKET="files",
        WORKFLOW_ID=WORKFLOW_ID,
        ANALYSIS_SUBMIT_URL=ANALYSIS_URL,
        CREDENTIAL_TOKEN_URL=TOKEN_URL,
        CREDENTIAL_COOKIE_URL=COOKIE_URL,
        CLOUDINARY_CLOUD_NAME="demo",
        CLOUDINARY_API_KEY="cdn-key",
        CLOUDINARY_API_SECRET="cdn-secret",
        CLOUDINARY_UPLOAD_BASE_URL=CDN_BASE,
    )


# ─────────────────────────────────────────────────────────────────────────────
# Database
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture
def create_user(session_factory):
    async def _create(checks: int = 0, daily_used: int = 0) -> uuid.UUID:
        async with session_factory() as session:
            async with session.begin():
                user = User(checks=checks, daily_credits_used_today=daily_used)
                session.add(user)
            return user.id
    return _create


@pytest.fixture
def create_order(session_factory):
    async def _create(
        user_id: uuid.UUID | None,
        payment_source: str | None = "regular",
        filename: str = "essay.docx",
        url: str | None = SOURCE_URL,
    ) -> Order:
        async with session_factory() as session:
            async with session.begin():
                order = Order(
                    file_name=filename,
                    user_id=user_id,
                    payment_source=payment_source,
                    user_file_url=url,
                    user_file_filename=filename,
                    status=OrderStatus.PENDING.value,
                )
                session.add(order)
            return order
    return _create


@pytest.fixture
def load(session_factory):
    """Fresh read of a row in its own session."""
    async def _load(model, pk):
        async with session_factory() as session:
            return await session.get(model, pk)
    return _load


# ─────────────────────────────────────────────────────────────────────────────
# HTTP
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
async def make_http():
    """Factory: an AsyncClient whose requests go to `handler`."""
    clients: list[httpx.AsyncClient] = []

    def _build(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _build

    for client in clients:
        await client.aclose()


@pytest.fixture
def router() -> RecordingRouter:
    return RecordingRouter()


# ─────────────────────────────────────────────────────────────────────────────
# Time
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def clock() -> VirtualClock:
    return VirtualClock()
