from __future__ import annotations

import logging
from html import escape

from aiogram import Bot, F, Router
from aiogram.filters import CommandStart
from aiogram.types import CallbackQuery, Message

from quizbot.config import settings
from quizbot.db.session import session_scope
from quizbot.keyboards import CHECK_SUB_CALLBACK, PROFILE_CALLBACK, kb_admin_panel, kb_greeting, kb_subscribe
from quizbot.repo import respondents as respondents_repo
from quizbot.repo import subscribers as subscribers_repo
from quizbot.services.names import is_channel_member
from quizbot.storage import commit_safely
from quizbot.utils.telegram import answer_callback, safe_edit_text

router = Router(name="start")
logger = logging.getLogger(__name__)


@router.message(CommandStart())
async def start(message: Message, bot: Bot) -> None:
    chat_id = message.chat.id
    async with session_scope() as session:
        if await subscribers_repo.add(session, chat_id):
            logger.info("new subscriber chat=%s", chat_id)
        await commit_safely(session)

    user_id = message.from_user.id if message.from_user else chat_id
    if not await is_channel_member(bot, settings.CHANNEL, user_id):
        await message.answer("📢 Please subscribe to the channel first:", reply_markup=kb_subscribe())
        return

    first_name = message.from_user.first_name if message.from_user else None
    await message.answer(
        f"👋 Hello, {escape(first_name or 'friend')}!",
        reply_markup=kb_greeting(),
    )
    if settings.is_admin(user_id):
        await message.answer("🔧 Admin panel:", reply_markup=kb_admin_panel())


@router.callback_query(F.data == PROFILE_CALLBACK)
async def profile(c: CallbackQuery) -> None:
    user_id = c.from_user.id
    async with session_scope() as session:
        respondent = await respondents_repo.get(session, user_id)
    score = respondent.score if respondent is not None else 0
    degree = respondent.degree if respondent is not None else "—"
    await answer_callback(c)
    text = (
        f"👤 Name: {escape(c.from_user.first_name or '—')}\n"
        f"🆔 ID: <code>{user_id}</code>\n"
        f"🎯 Score: {score}\n"
        f"🎓 Degree: {degree}"
    )
    if c.message is not None:
        await c.message.answer(text)


@router.callback_query(F.data == CHECK_SUB_CALLBACK)
async def check_subscription(c: CallbackQuery, bot: Bot) -> None:
    if await is_channel_member(bot, settings.CHANNEL, c.from_user.id):
        await answer_callback(c)
        await safe_edit_text(c.message, "✅ Subscription confirmed! Press /start again.")
        return
    await answer_callback(c, "❌ You are not subscribed yet!", alert=True)
