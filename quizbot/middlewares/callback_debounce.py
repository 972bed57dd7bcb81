from __future__ import annotations

import contextlib
import logging
from time import monotonic
from typing import Any, Awaitable, Callable

from aiogram import BaseMiddleware
from aiogram.types import CallbackQuery, TelegramObject

logger = logging.getLogger("callback.debounce")

BUSY_NOTICE = "⏳ One moment…"


class CallbackDebounceMiddleware(BaseMiddleware):
    """Drop a repeated button press from the same user within ``interval`` seconds.

    Only the latest press per user is remembered, so a different button always
    goes through and memory stays bounded by the number of respondents.
    """

    def __init__(self, interval: float = 0.8, *, clock: Callable[[], float] = monotonic) -> None:
        self.interval = max(0.0, float(interval))
        self._clock = clock
        self._last_press: dict[int | None, tuple[str, float]] = {}

    def is_repeat(self, user_id: int | None, data: str, now: float) -> bool:
        previous = self._last_press.get(user_id)
        self._last_press[user_id] = (data, now)
        if previous is None:
            return False
        last_data, pressed_at = previous
        return last_data == data and now - pressed_at < self.interval

    async def __call__(
        self,
        handler: Callable[[TelegramObject, dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: dict[str, Any],
    ) -> Any:
        if not isinstance(event, CallbackQuery) or not event.data:
            return await handler(event, data)

        user_id = getattr(event.from_user, "id", None)
        if self.is_repeat(user_id, event.data, self._clock()):
            logger.debug("debounced uid=%s data=%s", user_id, event.data)
            with contextlib.suppress(Exception):
                await event.answer(BUSY_NOTICE)
            return None
        return await handler(event, data)


__all__ = ["BUSY_NOTICE", "CallbackDebounceMiddleware"]
