from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from sqlalchemy import create_engine, text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from quizbot.config import settings

PROJECT_ROOT = Path(__file__).resolve().parents[2]
_SYNC_DRIVER_REPLACEMENTS = ("+aiosqlite", "+asyncpg")

log = logging.getLogger("db")


def _strip_driver(db_url: str) -> str:
    stripped = db_url
    for suffix in _SYNC_DRIVER_REPLACEMENTS:
        stripped = stripped.replace(suffix, "")
    return stripped


def _ensure_sqlite_dir(db_url: str) -> None:
    if not db_url.startswith("sqlite"):
        return
    _, _, raw_path = db_url.partition("///")
    if not raw_path or raw_path.startswith(":memory:"):
        return
    directory = Path(raw_path).parent
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        log.exception("DB: ensure sqlite dir failed")


def _fetch_revision_sync(db_url: str) -> str | None:
    engine = create_engine(_strip_driver(db_url), future=True)
    try:
        with engine.connect() as connection:
            return connection.execute(
                text("SELECT version_num FROM alembic_version")
            ).scalar_one_or_none()
    finally:
        engine.dispose()


def _build_alembic_config(db_url: str):
    from alembic.config import Config

    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", db_url)
    cfg.attributes["configure_logger"] = False
    return cfg


def _alembic_upgrade_head_sync(db_url: str) -> None:
    from alembic import command

    command.upgrade(_build_alembic_config(db_url), "head")


_DB_URL = settings.DB_URL
_ensure_sqlite_dir(_DB_URL)

async_engine: AsyncEngine = create_async_engine(_DB_URL, echo=False, pool_pre_ping=True)
async_session_factory = async_sessionmaker(async_engine, expire_on_commit=False, class_=AsyncSession)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    async with async_session_factory() as session:
        yield session


async def current_revision(db_url: str | None = None) -> str | None:
    url = db_url or settings.DB_URL
    try:
        return await asyncio.to_thread(_fetch_revision_sync, url)
    except Exception:
        log.exception("DB: get current revision failed")
        return None


async def upgrade_to_head(db_url: str | None = None, *, timeout: float | None = 15.0) -> bool:
    url = db_url or settings.DB_URL
    log.info("DB: alembic upgrade head start")
    task = asyncio.to_thread(_alembic_upgrade_head_sync, url)
    try:
        if timeout is None:
            await task
        else:
            await asyncio.wait_for(task, timeout=timeout)
    except asyncio.TimeoutError:
        log.error("DB: migration timeout, continue without blocking startup")
        return False
    except Exception:
        log.exception("DB: migration failed, continue without blocking startup")
        return False

    log.info("DB: alembic upgrade head done")
    return True


async def init_db(engine: AsyncEngine | None = None) -> str | None:
    """Check connectivity and apply migrations; never blocks startup."""

    db_url = settings.DB_URL
    log.info("DB: url=%s migrate_on_start=%s", db_url, settings.MIGRATE_ON_START)

    engine = engine or async_engine
    try:
        async with engine.begin() as connection:
            await connection.execute(text("SELECT 1"))
        log.info("DB: connectivity ok")
    except Exception:
        log.exception("DB: connectivity check failed")

    if not settings.MIGRATE_ON_START:
        log.warning("DB: migrations skipped by flag")
    else:
        await upgrade_to_head(db_url=db_url, timeout=15.0)

    revision = await current_revision(db_url)
    log.info("DB: current revision=%s", revision or "unknown")
    return revision
