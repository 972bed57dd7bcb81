from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.exceptions import TelegramRetryAfter
from aiogram.methods import SendMessage

from quizbot.utils.telegram_session import FloodWaitRetrySession


def _flood(method, seconds: int) -> TelegramRetryAfter:
    return TelegramRetryAfter(method=method, message="Too Many Requests", retry_after=seconds)


@pytest.mark.asyncio
async def test_retries_after_flood_wait(monkeypatch):
    method = SendMessage(chat_id=1, text="hi")
    outcomes = [_flood(method, 3), "sent"]

    async def fake_make_request(self, bot, method, timeout=None):
        result = outcomes.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(AiohttpSession, "make_request", fake_make_request)
    sleep = AsyncMock()
    session = FloodWaitRetrySession(sleep_func=sleep)

    assert await session.make_request(SimpleNamespace(), method) == "sent"
    sleep.assert_awaited_once_with(3.0)
    await session.close()


@pytest.mark.asyncio
async def test_gives_up_after_max_attempts(monkeypatch):
    method = SendMessage(chat_id=1, text="hi")
    calls = []

    async def always_flooded(self, bot, method, timeout=None):
        calls.append(method)
        raise _flood(method, 1)

    monkeypatch.setattr(AiohttpSession, "make_request", always_flooded)
    sleep = AsyncMock()
    session = FloodWaitRetrySession(max_attempts=2, sleep_func=sleep)

    with pytest.raises(TelegramRetryAfter):
        await session.make_request(SimpleNamespace(), method)
    assert len(calls) == 2
    assert sleep.await_count == 1
    await session.close()


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        FloodWaitRetrySession(max_attempts=0)
