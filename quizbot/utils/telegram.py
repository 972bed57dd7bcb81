from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterable, Iterator
from typing import Any

from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError, TelegramNotFound
from aiogram.types import CallbackQuery, InputMediaPhoto, Message

_SAFE_EDIT_LOG = logging.getLogger("telegram.safe_edit")

MESSAGE_CHUNK_LINES = 20


def _markups_equal(first: Any, second: Any) -> bool:
    if first is second:
        return True
    if first is None or second is None:
        return first is None and second is None
    try:
        return first.model_dump() == second.model_dump()
    except AttributeError:
        return first == second


async def safe_edit_text(
    message: Message | None,
    new_text: str,
    new_markup: Any | None = None,
) -> Message | None:
    """Edit in place; identical content is a no-op and failed edits fall back to a new message."""

    if message is None:
        return None
    if message.text == new_text and _markups_equal(message.reply_markup, new_markup):
        return message
    try:
        return await message.edit_text(new_text, reply_markup=new_markup)
    except TelegramBadRequest as exc:
        if "message is not modified" in str(exc).lower():
            return message
        _SAFE_EDIT_LOG.debug("edit_text failed; falling back to answer", exc_info=True)
        return await message.answer(new_text, reply_markup=new_markup)
    except (TelegramForbiddenError, TelegramNotFound):
        _SAFE_EDIT_LOG.debug("edit_text forbidden/not found; falling back", exc_info=True)
        return await message.answer(new_text, reply_markup=new_markup)


async def safe_show(
    message: Message | None,
    new_text: str,
    new_markup: Any | None = None,
    photo: str | None = None,
) -> Message | None:
    """Show text or a captioned photo in place of ``message``.

    Text and photo messages cannot be converted into each other, so a kind change
    sends a new message instead of editing.
    """

    if message is None:
        return None
    if not photo:
        if message.photo:
            return await message.answer(new_text, reply_markup=new_markup)
        return await safe_edit_text(message, new_text, new_markup)
    if not message.photo:
        return await message.answer_photo(photo, caption=new_text, reply_markup=new_markup)
    try:
        return await message.edit_media(InputMediaPhoto(media=photo, caption=new_text), reply_markup=new_markup)
    except TelegramBadRequest as exc:
        if "message is not modified" in str(exc).lower():
            return message
        _SAFE_EDIT_LOG.debug("edit_media failed; falling back to answer_photo", exc_info=True)
        return await message.answer_photo(photo, caption=new_text, reply_markup=new_markup)


async def answer_callback(callback: CallbackQuery, text: str | None = None, *, alert: bool = False) -> None:
    with contextlib.suppress(TelegramBadRequest):
        await callback.answer(text, show_alert=alert)


def chunk_lines(lines: Iterable[str], size: int = MESSAGE_CHUNK_LINES) -> Iterator[str]:
    """Join ``lines`` into messages of at most ``size`` lines each."""

    batch: list[str] = []
    for line in lines:
        batch.append(line)
        if len(batch) >= size:
            yield "\n".join(batch)
            batch = []
    if batch:
        yield "\n".join(batch)


__all__ = ["answer_callback", "chunk_lines", "safe_edit_text", "safe_show"]
