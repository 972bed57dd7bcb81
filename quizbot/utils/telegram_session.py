"""Bot API session that waits out flood limits during broadcasts."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from aiogram.client.session.aiohttp import AiohttpSession
from aiogram.exceptions import TelegramRetryAfter
from aiogram.methods.base import TelegramMethod

if TYPE_CHECKING:  # pragma: no cover - import for type checking only
    from aiogram import Bot

logger = logging.getLogger("telegram.floodwait")

SleepFunc = Callable[[float], Awaitable[None]]


class FloodWaitRetrySession(AiohttpSession):
    def __init__(self, *, max_attempts: int = 3, sleep_func: SleepFunc | None = None, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._max_attempts = max_attempts
        self._sleep = sleep_func or asyncio.sleep

    async def make_request(
        self,
        bot: "Bot",
        method: TelegramMethod[Any],
        timeout: int | None = None,
    ) -> Any:
        attempt = 0
        while True:
            attempt += 1
            try:
                return await super().make_request(bot, method, timeout=timeout)
            except TelegramRetryAfter as exc:
                delay = max(float(exc.retry_after), 0.0)
                method_name = type(method).__name__
                if attempt >= self._max_attempts:
                    logger.warning("flood wait: giving up method=%s attempts=%s", method_name, attempt)
                    raise
                logger.warning(
                    "flood wait method=%s retry_after=%.1f attempt=%s/%s",
                    method_name,
                    delay,
                    attempt,
                    self._max_attempts,
                )
                await self._sleep(delay)


__all__ = ["FloodWaitRetrySession"]
