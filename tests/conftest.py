"""Test configuration helpers."""

from __future__ import annotations

import asyncio
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("BOT_TOKEN", "123456:test-token")
os.environ.setdefault("DB_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("MAIN_ADMIN_ID", "1")
os.environ.setdefault("ADMIN_USER_IDS", "1,2")
os.environ.setdefault("MIGRATE_ON_START", "false")
os.environ.setdefault("RATE_LIMIT_DELAY_MS", "0")

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from quizbot.db.models import Base  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register the asyncio marker for the lightweight runner below."""

    config.addinivalue_line("markers", "asyncio: execute the test inside an event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute ``@pytest.mark.asyncio`` tests without requiring pytest-asyncio."""

    marker = pyfuncitem.get_closest_marker("asyncio")
    if marker is None:
        return None

    func = pyfuncitem.obj
    if not asyncio.iscoroutinefunction(func):
        return None

    argnames = pyfuncitem._fixtureinfo.argnames
    kwargs = {name: pyfuncitem.funcargs[name] for name in argnames}
    loop = asyncio.new_event_loop()
    try:
        asyncio.set_event_loop(loop)
        loop.run_until_complete(func(**kwargs))
    finally:
        asyncio.set_event_loop(None)
        loop.close()
    return True


class MemoryDB:
    """Shared in-memory SQLite database; enter it inside the test's event loop."""

    def __init__(self) -> None:
        self._engine = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None

    async def __aenter__(self) -> "MemoryDB":
        self._engine = create_async_engine(
            "sqlite+aiosqlite:///:memory:",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        self._sessionmaker = async_sessionmaker(self._engine, expire_on_commit=False, class_=AsyncSession)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._engine is not None:
            await self._engine.dispose()

    def session(self) -> AsyncSession:
        assert self._sessionmaker is not None, "MemoryDB must be entered first"
        return self._sessionmaker()

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[AsyncSession]:
        async with self.session() as session:
            yield session


@pytest.fixture
def memory_db() -> MemoryDB:
    return MemoryDB()
