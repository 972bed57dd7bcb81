from __future__ import annotations

import logging

from aiogram import F, Router
from aiogram.types import CallbackQuery

from quizbot.config import settings
from quizbot.db.session import session_scope
from quizbot.errors import QuizError
from quizbot.quiz import taker
from quizbot.utils.telegram import answer_callback, safe_show

router = Router(name="taker")
logger = logging.getLogger(__name__)


async def _dispatch(session, user_id: int, payload: taker.TakerCallbackPayload) -> taker.TakerReply:
    if payload.kind == "nav":
        return await taker.navigate(session, user_id, payload.index or 0)
    if payload.kind == "pick":
        return await taker.pick(session, user_id, payload.number or 0, payload.choice or 0)
    return await taker.finish(session, user_id, form_url=settings.FORM_URL)


@router.callback_query(F.data.startswith(f"{taker.TAKER_CALLBACK_PREFIX}:"))
async def on_taker_callback(c: CallbackQuery) -> None:
    payload = taker.parse_callback_data(c.data)
    if payload is None:
        await answer_callback(c)
        return

    user_id = c.from_user.id
    try:
        async with session_scope() as session:
            reply = await _dispatch(session, user_id, payload)
    except QuizError as exc:
        await answer_callback(c, str(exc), alert=True)
        return
    except Exception:
        logger.exception("taker callback failed uid=%s data=%s", user_id, c.data)
        await answer_callback(c, "⚠️ Something went wrong.", alert=True)
        return

    await answer_callback(c, reply.notice)
    if payload.kind == "finish":
        if c.message is not None:
            await c.message.answer(reply.text)
            if reply.followup is not None:
                await c.message.answer(reply.followup.text, reply_markup=reply.followup.markup)
        return
    await safe_show(c.message, reply.text, reply.markup, reply.image)
