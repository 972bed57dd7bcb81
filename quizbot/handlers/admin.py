from __future__ import annotations

import asyncio
import html
import logging
import re
from decimal import ROUND_HALF_UP, Decimal

from aiogram import Bot, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from quizbot.config import settings
from quizbot.db.session import session_scope
from quizbot.errors import QuizError
from quizbot.keyboards import kb_admin_panel
from quizbot.quiz import scoring
from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo
from quizbot.repo import subscribers as subscribers_repo
from quizbot.services import broadcast, finalize as finalize_service
from quizbot.services.names import resolve_display_name
from quizbot.storage import commit_safely
from quizbot.utils.telegram import chunk_lines

router = Router(name="admin")
logger = logging.getLogger(__name__)

_ID_RE = re.compile(r"\d+")
_ADMIN_ONLY = "❌ This command is for admins only!"


def _is_admin(message: Message) -> bool:
    return settings.is_admin(message.from_user.id if message.from_user else None)


async def _deny(message: Message) -> None:
    await message.answer(_ADMIN_ONLY)


async def _send_chunked(message: Message, lines: list[str]) -> None:
    delay = settings.RATE_LIMIT_DELAY_MS / 1000
    for idx, chunk in enumerate(chunk_lines(lines)):
        if idx and delay:
            await asyncio.sleep(delay)
        await message.answer(chunk)


@router.message(Command("admin"))
async def admin_panel(message: Message) -> None:
    if not _is_admin(message):
        return
    await message.answer("🔧 Admin panel:", reply_markup=kb_admin_panel())


@router.message(Command("enroll"))
async def enroll(message: Message, command: CommandObject) -> None:
    if not _is_admin(message):
        return await _deny(message)
    ids = [int(raw) for raw in _ID_RE.findall(command.args or "")]
    if not ids:
        await message.answer("❌ Invalid id. Use /enroll <id> [<id> …].")
        return

    results: list[str] = []
    async with session_scope() as session:
        for user_id in ids:
            try:
                _, created = await respondents_repo.enroll(session, user_id)
                await commit_safely(session)
            except Exception:
                logger.exception("enroll failed uid=%s", user_id)
                await session.rollback()
                results.append(f"🆔 {user_id}: ❌ Error")
                continue
            results.append(f"🆔 {user_id}: {'✅ Added' if created else '⚠️ Already enrolled'}")
    await message.answer("\n".join(results))


@router.message(Command("who"))
async def who(message: Message, command: CommandObject, bot: Bot) -> None:
    if not _is_admin(message):
        return await _deny(message)
    arg = (command.args or "").strip()
    if not arg.isdigit():
        await message.answer("⚠️ Usage: /who <id>")
        return
    user_id = int(arg)
    name = await resolve_display_name(bot, user_id)
    async with session_scope() as session:
        respondent = await respondents_repo.get(session, user_id)
    if respondent is None:
        await message.answer(f"👤 {name}\n🆔 {user_id}\nℹ️ Not enrolled")
        return
    await message.answer(
        f"👤 {name}\n"
        f"🆔 {user_id}\n"
        f"🎯 Score: {respondent.score}\n"
        f"Correct: {len(respondent.correct_answers or [])}\n"
        f"Wrong: {len(respondent.wrong_answers or [])}\n"
        f"Finished: {'yes' if respondent.finished else 'no'}\n"
        f"Closed submitted: {'yes' if respondent.closed_finished else 'no'}\n"
        f"🎓 Degree: {respondent.degree}"
    )


@router.message(Command("users_count"))
async def users_count(message: Message) -> None:
    if not _is_admin(message):
        return
    async with session_scope() as session:
        total = await subscribers_repo.count(session)
    await message.answer(f"👥 Users: {total}")


@router.message(Command("respondents"))
async def list_respondents(message: Message, bot: Bot) -> None:
    if not _is_admin(message):
        return
    async with session_scope() as session:
        respondents = await respondents_repo.list_all(session)
    if not respondents:
        await message.answer("🚫 No respondents.")
        return
    lines = []
    for respondent in respondents:
        name = await resolve_display_name(bot, respondent.user_id)
        lines.append(f"👤 {name} |🆔 {respondent.user_id} |🎯 {respondent.score} |🎓 {respondent.degree}")
    await _send_chunked(message, lines)


@router.message(Command("results"))
async def results(message: Message, bot: Bot) -> None:
    if not _is_admin(message):
        return
    async with session_scope() as session:
        respondents = await respondents_repo.list_all(session)
        total = scoring.total_possible(
            await questions_repo.list_open(session),
            await questions_repo.list_closed(session),
        )
    if not respondents:
        await message.answer("🚫 No respondents.")
        return
    lines = []
    for respondent in respondents:
        name = await resolve_display_name(bot, respondent.user_id, placeholder="?")
        pct = scoring.percent(respondent.score, total).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        lines.append(f"{name} |🎯{respondent.score} |📈{pct}%|🎓{respondent.degree}")
    await _send_chunked(message, lines)


@router.message(Command("questions"))
async def list_questions(message: Message) -> None:
    if not _is_admin(message):
        return
    async with session_scope() as session:
        open_questions = await questions_repo.list_open(session)
        closed_questions = await questions_repo.list_closed(session)
    if not open_questions and not closed_questions:
        await message.answer("🚫 No questions yet.")
        return

    lines: list[str] = []
    for question in open_questions:
        options = ", ".join(
            f"{scoring.letter_for(idx)}) {html.escape(str(option))}"
            for idx, option in enumerate(question.options or [])
        )
        photo = " | 🖼" if question.image else ""
        lines.append(
            f"#️⃣ №{question.number}{photo} | ❓ {html.escape(question.text or '')} | {options}"
            f" | ✅ {html.escape(question.answer)} | 🎯 {question.points}"
        )
    for question in closed_questions:
        lines.append(
            f"📝 №{question.number} | a: {html.escape(question.answer_a)} ({question.points_a})"
            f" | b: {html.escape(question.answer_b)} ({question.points_b})"
        )
    await _send_chunked(message, lines)
    for question in open_questions:
        if question.image:
            await message.answer_photo(question.image, caption=f"🖼 №{question.number}")


@router.message(Command("delete_questions"))
async def delete_questions(message: Message) -> None:
    if not _is_admin(message):
        return await _deny(message)
    async with session_scope() as session:
        removed = await questions_repo.delete_all(session)
        await commit_safely(session)
    logger.warning("questions deleted count=%s by=%s", removed, message.from_user.id)
    await message.answer(f"🗑️ Deleted {removed} questions.")


@router.message(Command("delete_respondents"))
async def delete_respondents(message: Message) -> None:
    if not _is_admin(message):
        return await _deny(message)
    async with session_scope() as session:
        removed = await respondents_repo.delete_all(session)
        await commit_safely(session)
    logger.warning("respondents deleted count=%s by=%s", removed, message.from_user.id)
    await message.answer(f"🗑️ Deleted {removed} respondents.")


@router.message(Command("start_test"))
async def start_test(message: Message, bot: Bot) -> None:
    if not _is_admin(message):
        return await _deny(message)
    async with session_scope() as session:
        report = await broadcast.send_test_to_respondents(session, bot)
    if report is None:
        await message.answer("🚫 Nothing to send: no questions or no active respondents.")
        return
    await message.answer(f"✅ Test sent ({report.sent} delivered, {len(report.failed)} failed).")


@router.message(Command("finalize"))
async def finalize(message: Message, bot: Bot) -> None:
    if not _is_admin(message):
        return await _deny(message)
    try:
        async with session_scope() as session:
            report = await finalize_service.finalize(session, bot)
    except QuizError as exc:
        await message.answer(str(exc))
        return
    except Exception:
        logger.exception("finalize failed")
        await message.answer("⚠️ Finalize failed, see logs.")
        return
    if report is None:
        await message.answer("🚫 No respondents.")
        return
    bonus = ", ".join(f"№{number}" for number in report.bonus_questions) or "none"
    await message.answer(
        "✅ Test finalized.\n"
        f"👥 Respondents: {report.respondents}\n"
        f"🎁 Bonus questions: {bonus}\n"
        f"📨 Notified: {report.notified}, failed: {len(report.failed)}"
    )


@router.message(Command("sendtoall"))
async def send_to_all(message: Message, command: CommandObject, bot: Bot) -> None:
    if not _is_admin(message):
        return
    text = (command.args or "").strip()
    if not text:
        await message.answer("⚠️ Usage: /sendtoall <text>")
        return
    async with session_scope() as session:
        report = await broadcast.send_to_all(session, bot, text)
    await message.answer(f"📢 Message sent ({report.sent} delivered, {len(report.failed)} failed).")
