from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from aiogram.exceptions import TelegramForbiddenError
from aiogram.methods import SendMessage

from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo
from quizbot.repo import subscribers as subscribers_repo
from quizbot.services import broadcast


def _bot(fail_for=()):
    async def _send(chat_id, text, **_kwargs):
        if chat_id in fail_for:
            raise TelegramForbiddenError(method=SendMessage(chat_id=chat_id, text=text), message="blocked")
        return SimpleNamespace(chat_id=chat_id)

    async def _send_photo(chat_id, photo, caption=None, **_kwargs):
        return await _send(chat_id, caption)

    return SimpleNamespace(send_message=AsyncMock(side_effect=_send), send_photo=AsyncMock(side_effect=_send_photo))


@pytest.mark.asyncio
async def test_first_question_goes_to_active_respondents_only(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await questions_repo.upsert_open(session, 1, ["A", "B"], "A", Decimal("1"))
            await questions_repo.upsert_open(session, 2, ["A", "B"], "B", Decimal("1"))
            for user_id in (1, 2, 3):
                await respondents_repo.enroll(session, user_id)
            done = await respondents_repo.get(session, 2)
            done.finished = True
            await session.commit()

            bot = _bot(fail_for={3})
            sleep = AsyncMock()
            report = await broadcast.send_test_to_respondents(session, bot, delay_ms=120, sleep_func=sleep)

            assert report.sent == 1
            assert report.failed == [3]
            assert sleep.await_count == 2
            sleep.assert_awaited_with(0.12)

            first_call = bot.send_message.await_args_list[0]
            assert first_call.args[0] == 1
            markup = first_call.kwargs["reply_markup"]
            assert [b.callback_data for b in markup.inline_keyboard[-1]] == ["take:nav:1"]


@pytest.mark.asyncio
async def test_nothing_to_send_without_questions(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await respondents_repo.enroll(session, 1)
            await session.commit()
            assert await broadcast.send_test_to_respondents(session, _bot()) is None


@pytest.mark.asyncio
async def test_text_broadcast_reaches_every_subscriber(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            for chat_id in (5, 6, 7):
                await subscribers_repo.add(session, chat_id)
            await session.commit()

            bot = _bot(fail_for={6})
            report = await broadcast.send_to_all(session, bot, "hello", delay_ms=0)

            assert report.sent == 2
            assert report.failed == [6]
            assert report.total == 3
            assert {call.args[1] for call in bot.send_message.await_args_list} == {"hello"}


@pytest.mark.asyncio
async def test_text_broadcast_is_sent_as_plain_text(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await subscribers_repo.add(session, 5)
            await session.commit()

            bot = _bot()
            await broadcast.send_to_all(session, bot, "2 < 3 & <b>bold</b>", delay_ms=0)
            assert bot.send_message.await_args.args[1] == "2 &lt; 3 &amp; &lt;b&gt;bold&lt;/b&gt;"


@pytest.mark.asyncio
async def test_first_question_with_photo_is_sent_as_photo(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await questions_repo.upsert_open(
                session, 1, ["x<y", "B"], "A", Decimal("1"), text="Look:", image="photo-1"
            )
            await respondents_repo.enroll(session, 1)
            await session.commit()

            bot = _bot()
            report = await broadcast.send_test_to_respondents(session, bot, delay_ms=0)

            assert report.sent == 1
            bot.send_message.assert_not_awaited()
            call = bot.send_photo.await_args
            assert call.args[:2] == (1, "photo-1")
            assert "A) x&lt;y" in call.kwargs["caption"]
