"""Admin wizards for creating open-form batches and closed-form questions."""

from __future__ import annotations

import logging
from decimal import Decimal

from aiogram import Router
from aiogram.filters import BaseFilter, Command, CommandObject
from aiogram.types import Message

from quizbot.config import settings
from quizbot.db.session import session_scope
from quizbot.errors import QuizError
from quizbot.quiz.authoring import (
    AUTHORING_SESSIONS,
    SKIP_COMMAND,
    AuthoringSession,
    ClosedAuthoringSession,
)
from quizbot.storage import commit_safely

router = Router(name="authoring")
logger = logging.getLogger(__name__)


class ActiveAuthoringFilter(BaseFilter):
    """Plain text, a photo or ``/skip`` from an author with a running wizard."""

    async def __call__(self, message: Message) -> bool:
        if message.from_user is None or message.from_user.id not in AUTHORING_SESSIONS:
            return False
        if message.photo:
            return True
        if message.text is None:
            return False
        text = message.text.strip()
        return not text.startswith("/") or text == SKIP_COMMAND


def _admin_id(message: Message) -> int | None:
    user_id = message.from_user.id if message.from_user else None
    return user_id if settings.is_admin(user_id) else None


@router.message(Command("new_test"))
async def new_test(message: Message, command: CommandObject) -> None:
    user_id = _admin_id(message)
    if user_id is None:
        return
    start_number: int | None = None
    if command.args:
        arg = command.args.strip()
        if not arg.isdigit() or int(arg) <= 0:
            await message.answer("⚠️ Usage: /new_test [start number]")
            return
        start_number = int(arg)
    session = AUTHORING_SESSIONS.start(user_id, AuthoringSession(start_number=start_number))
    await message.answer(session.intro())


@router.message(Command("new_closed"))
async def new_closed(message: Message) -> None:
    user_id = _admin_id(message)
    if user_id is None:
        return
    session = AUTHORING_SESSIONS.start(
        user_id,
        ClosedAuthoringSession(default_points=Decimal(str(settings.CLOSED_DEFAULT_POINTS))),
    )
    await message.answer(session.intro())


@router.message(Command("new_test_done"))
async def new_test_done(message: Message) -> None:
    user_id = _admin_id(message)
    if user_id is None:
        return
    wizard = AUTHORING_SESSIONS.get(user_id)
    if not isinstance(wizard, AuthoringSession):
        await message.answer("ℹ️ No test creation is running. Start one with /new_test.")
        return
    AUTHORING_SESSIONS.finish(user_id)
    if not wizard.queue:
        await message.answer("⚠️ No questions were added. Creation cancelled.")
        return
    try:
        async with session_scope() as db:
            numbers = await wizard.commit(db)
            await commit_safely(db)
    except Exception:
        logger.exception("authoring commit failed uid=%s", user_id)
        await message.answer("⚠️ Failed to save the questions.")
        return
    await message.answer(f"✅ Saved {len(numbers)} questions: №{numbers[0]}–№{numbers[-1]}.")


@router.message(Command("cancel"))
async def cancel(message: Message) -> None:
    user_id = _admin_id(message)
    if user_id is None:
        return
    if AUTHORING_SESSIONS.finish(user_id) is None:
        await message.answer("ℹ️ Nothing to cancel.")
        return
    await message.answer("🛑 Creation cancelled, nothing was saved.")


@router.message(ActiveAuthoringFilter())
async def on_wizard_text(message: Message) -> None:
    user_id = message.from_user.id
    wizard = AUTHORING_SESSIONS[user_id]
    photo = message.photo[-1].file_id if message.photo else None
    try:
        prompt = wizard.handle(message.text or message.caption or "", photo)
    except QuizError as exc:
        await message.answer(str(exc))
        return

    if isinstance(wizard, ClosedAuthoringSession) and wizard.complete:
        AUTHORING_SESSIONS.finish(user_id)
        try:
            async with session_scope() as db:
                question = await wizard.commit(db)
                await commit_safely(db)
        except Exception:
            logger.exception("closed question commit failed uid=%s", user_id)
            await message.answer("⚠️ Failed to save the closed question.")
            return
        await message.answer(f"{prompt}\n💾 Closed question №{question.number} saved.")
        return
    await message.answer(prompt)
