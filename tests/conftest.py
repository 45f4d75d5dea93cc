"""Shared fixtures for edgeprops tests."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import Session, SQLModel, create_engine

import edgeprops.models  # noqa: F401  registers edge tables on SQLModel.metadata
from edgeprops._edges_async import EdgesAsync
from edgeprops.store.database import DatabaseCollection
from edgeprops.store.memory import MemoryCollection

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator

    from sqlalchemy import Engine
    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
def engine() -> Engine:
    """In-memory SQLite engine with all tables created."""
    eng = create_engine("sqlite://", echo=False)
    SQLModel.metadata.create_all(eng)
    return eng


@pytest.fixture
def session(engine: Engine) -> Iterator[Session]:
    """SQLModel session bound to the in-memory engine, rolled back after each test."""
    with Session(engine) as s:
        s.begin()
        yield s
        s.rollback()


@pytest.fixture
async def async_engine() -> AsyncIterator[AsyncEngine]:
    """Async in-memory SQLite engine with all tables created."""
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLModel session on the shared in-memory engine."""
    factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
def db_collection(async_engine: AsyncEngine) -> DatabaseCollection:
    return DatabaseCollection.from_engine(async_engine)


@pytest.fixture(params=["memory", "database"])
async def edges(request: pytest.FixtureRequest, async_engine: AsyncEngine) -> AsyncIterator[EdgesAsync]:
    """EdgesAsync over each bundled collection."""
    if request.param == "memory":
        store = EdgesAsync(MemoryCollection())
    else:
        store = EdgesAsync(engine=async_engine)
    await store.open()
    yield store
    await store.close()


@pytest.fixture
def pair() -> tuple[uuid.UUID, uuid.UUID]:
    """A fresh ``(src, dest)`` pair."""
    return uuid.uuid4(), uuid.uuid4()
