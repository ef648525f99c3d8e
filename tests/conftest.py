"""
Shared fixtures: settings for an offline run, a SQLite database and an
API client wired to it.
"""
import os

# Settings are read once at import time
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("MOCK_LLM", "true")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from eduticket.infrastructure.database import Base, get_session
import eduticket.tickets.infrastructure.models  # noqa: F401
import eduticket.assistant.infrastructure.models  # noqa: F401
import eduticket.knowledge.infrastructure.models  # noqa: F401


def _make_engine(path):
    # NullPool: every session opens its own connection on the running loop
    return create_async_engine(f"sqlite+aiosqlite:///{path}", poolclass=NullPool)


async def _create_all(engine):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@pytest.fixture
async def db_session(tmp_path):
    """AsyncSession on a fresh SQLite file."""
    engine = _make_engine(tmp_path / "test.db")
    await _create_all(engine)

    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def client(tmp_path):
    """TestClient whose requests share one SQLite file."""
    from eduticket.main import app

    engine = _make_engine(tmp_path / "api.db")
    asyncio.run(_create_all(engine))
    session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_session] = override_get_session
    stores = (app.state.documents_store, app.state.knowledge_store)
    app.state.documents_store = None
    app.state.knowledge_store = None

    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.documents_store, app.state.knowledge_store = stores


@pytest.fixture
def student(client):
    response = client.post("/profiles", json={"email": "student@example.edu", "full_name": "Sam Student"})
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def instructor(client):
    response = client.post(
        "/profiles",
        json={"email": "instructor@example.edu", "full_name": "Ines Instructor", "role": "instructor"}
    )
    assert response.status_code == 201
    return response.json()
