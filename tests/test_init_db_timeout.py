import asyncio
import logging

import pytest

from quizbot.db import session as session_module


class _FailingEngine:
    def begin(self):
        raise ConnectionError("database is down")


@pytest.mark.asyncio
async def test_migration_timeout_does_not_block_startup(monkeypatch, caplog):
    monkeypatch.setattr(session_module.settings, "MIGRATE_ON_START", True)

    async def fake_to_thread(func, *args, **kwargs):
        if func is session_module._fetch_revision_sync:
            return "rev-test"
        return None

    async def fake_wait_for(awaitable, timeout):
        awaitable.close()
        raise asyncio.TimeoutError

    monkeypatch.setattr(session_module.asyncio, "to_thread", fake_to_thread)
    monkeypatch.setattr(session_module.asyncio, "wait_for", fake_wait_for)

    with caplog.at_level(logging.INFO, logger="db"):
        revision = await session_module.init_db(engine=_FailingEngine())

    assert revision == "rev-test"
    messages = [record.getMessage() for record in caplog.records if record.name == "db"]
    assert "DB: connectivity check failed" in messages
    assert "DB: migration timeout, continue without blocking startup" in messages


@pytest.mark.asyncio
async def test_migrations_skipped_by_flag(monkeypatch, caplog):
    monkeypatch.setattr(session_module.settings, "MIGRATE_ON_START", False)
    upgrade_calls = []

    async def fake_upgrade(*args, **kwargs):
        upgrade_calls.append(kwargs)
        return True

    async def fake_revision(db_url=None):
        return None

    monkeypatch.setattr(session_module, "upgrade_to_head", fake_upgrade)
    monkeypatch.setattr(session_module, "current_revision", fake_revision)

    with caplog.at_level(logging.INFO, logger="db"):
        assert await session_module.init_db(engine=_FailingEngine()) is None

    assert upgrade_calls == []
    assert any("migrations skipped by flag" in record.getMessage() for record in caplog.records)
