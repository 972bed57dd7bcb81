"""Paced outbound delivery to respondents and subscribers."""

from __future__ import annotations

import asyncio
import html
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.config import settings
from quizbot.errors import DeliveryFailure
from quizbot.quiz.taker import render_question
from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo
from quizbot.repo import subscribers as subscribers_repo

logger = logging.getLogger("broadcast")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class BroadcastReport:
    sent: int = 0
    failed: list[int] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.sent + len(self.failed)


def _delay_seconds(delay_ms: int | None) -> float:
    value = settings.RATE_LIMIT_DELAY_MS if delay_ms is None else delay_ms
    return max(int(value), 0) / 1000


async def deliver(
    bot: Bot,
    chat_id: int,
    text: str,
    reply_markup: Any | None = None,
    photo: str | None = None,
) -> None:
    try:
        if photo:
            await bot.send_photo(chat_id, photo, caption=text, reply_markup=reply_markup)
        else:
            await bot.send_message(chat_id, text, reply_markup=reply_markup)
    except (TelegramAPIError, OSError, asyncio.TimeoutError) as exc:
        raise DeliveryFailure(chat_id, str(exc)) from exc


async def _fan_out(
    bot: Bot,
    messages: Iterable[tuple[int, str, Any | None, str | None]],
    *,
    delay_ms: int | None,
    sleep_func: SleepFunc | None,
) -> BroadcastReport:
    sleep = sleep_func or asyncio.sleep
    delay = _delay_seconds(delay_ms)
    report = BroadcastReport()
    for chat_id, text, markup, photo in messages:
        try:
            await deliver(bot, chat_id, text, markup, photo)
        except DeliveryFailure as exc:
            logger.warning("send failed chat=%s reason=%s", exc.chat_id, exc.reason)
            report.failed.append(chat_id)
        else:
            report.sent += 1
        if delay:
            await sleep(delay)
    return report


async def send_test_to_respondents(
    session: AsyncSession,
    bot: Bot,
    *,
    delay_ms: int | None = None,
    sleep_func: SleepFunc | None = None,
) -> BroadcastReport | None:
    """Send the first question to every respondent whose open stage is still running.

    Returns ``None`` when there is nothing to send.
    """

    bank = await questions_repo.list_open(session)
    respondents = await respondents_repo.list_active(session)
    if not bank or not respondents:
        return None

    messages = []
    for respondent in respondents:
        text, markup = render_question(bank, 0, respondent.answers)
        messages.append((respondent.user_id, text, markup, bank[0].image))

    report = await _fan_out(bot, messages, delay_ms=delay_ms, sleep_func=sleep_func)
    logger.info("test sent respondents=%s sent=%s failed=%s", len(respondents), report.sent, len(report.failed))
    return report


async def send_to_all(
    session: AsyncSession,
    bot: Bot,
    text: str,
    *,
    delay_ms: int | None = None,
    sleep_func: SleepFunc | None = None,
) -> BroadcastReport:
    """Send ``text`` as plain text to every subscriber."""

    chat_ids = await subscribers_repo.list_ids(session)
    body = html.escape(text)
    report = await _fan_out(
        bot,
        ((chat_id, body, None, None) for chat_id in chat_ids),
        delay_ms=delay_ms,
        sleep_func=sleep_func,
    )
    logger.info("text broadcast subscribers=%s sent=%s failed=%s", len(chat_ids), report.sent, len(report.failed))
    return report


__all__ = ["BroadcastReport", "deliver", "send_test_to_respondents", "send_to_all"]
