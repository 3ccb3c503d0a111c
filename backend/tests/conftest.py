import asyncio
import os
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Must be set before hubapi.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("LOG_FORMAT", "console")

from hubapi.db import Base, get_session
from hubapi.main import app
import hubapi.models.user  # noqa: F401
import hubapi.models.organization  # noqa: F401
import hubapi.models.invitation  # noqa: F401
import hubapi.models.event  # noqa: F401
import hubapi.models.submission  # noqa: F401
import hubapi.models.vote  # noqa: F401


@pytest.fixture(autouse=True)
def session_factory(tmp_path: Path):
    """Fresh SQLite file per test; the app's get_session is pointed at it."""
    # NullPool: connections never outlive the event loop that opened them
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.sqlite3'}", poolclass=NullPool)

    async def _create_all():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(_create_all())
    factory = async_sessionmaker(engine, expire_on_commit=False)

    async def _session_override():
        async with factory() as session:
            yield session

    app.dependency_overrides[get_session] = _session_override
    yield factory
    app.dependency_overrides.pop(get_session, None)
