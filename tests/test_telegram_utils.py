from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from quizbot.utils.telegram import chunk_lines, safe_show


def _message(*, photo: bool = False, text: str | None = "old"):
    return SimpleNamespace(
        text=None if photo else text,
        photo=[SimpleNamespace(file_id="old-photo")] if photo else None,
        reply_markup=None,
        edit_text=AsyncMock(),
        edit_media=AsyncMock(),
        answer=AsyncMock(),
        answer_photo=AsyncMock(),
    )


@pytest.mark.asyncio
async def test_text_question_edits_text_message_in_place():
    message = _message()
    await safe_show(message, "new", None)
    message.edit_text.assert_awaited_once_with("new", reply_markup=None)
    message.answer.assert_not_awaited()


@pytest.mark.asyncio
async def test_photo_question_replaces_media_of_photo_message():
    message = _message(photo=True)
    await safe_show(message, "caption", None, photo="new-photo")
    media = message.edit_media.await_args.args[0]
    assert media.media == "new-photo"
    assert media.caption == "caption"


@pytest.mark.asyncio
async def test_kind_change_sends_a_new_message():
    text_message = _message()
    await safe_show(text_message, "caption", None, photo="p")
    text_message.answer_photo.assert_awaited_once_with("p", caption="caption", reply_markup=None)

    photo_message = _message(photo=True)
    await safe_show(photo_message, "plain", None)
    photo_message.answer.assert_awaited_once_with("plain", reply_markup=None)


def test_chunk_lines():
    assert list(chunk_lines(["a", "b", "c"], size=2)) == ["a\nb", "c"]
