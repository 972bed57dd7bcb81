"""Admin-triggered close of the test: bonus, grades and result delivery."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from aiogram import Bot
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.config import settings
from quizbot.errors import DeliveryFailure, DuplicateSubmissionError
from quizbot.quiz import scoring
from quizbot.quiz.bonus import apply_bonuses, compute_bonuses
from quizbot.quiz.grading import GradeBander
from quizbot.quiz.taker import settle_open_stage
from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo
from quizbot.services.broadcast import SleepFunc, deliver
from quizbot.services.names import resolve_display_name

logger = logging.getLogger("finalize")

_FINALIZE_LOCK = asyncio.Lock()


@dataclass
class FinalizeReport:
    respondents: int = 0
    bonus_questions: list[int] = field(default_factory=list)
    bonus_awards: int = 0
    degrees: dict[int, str] = field(default_factory=dict)
    notified: int = 0
    failed: list[int] = field(default_factory=list)


def format_result(name: str, user_id: int, score: Decimal, total: Decimal, pct: Decimal, degree: str) -> str:
    return (
        "📊 Your final result:\n"
        f"👤 {name}\n"
        f"🆔 {user_id}\n"
        f"⭐ Score: {score}/{total}\n"
        f"📈 Percent: {pct:.2f}%\n"
        f"🎓 Degree: {degree}"
    )


def is_running() -> bool:
    return _FINALIZE_LOCK.locked()


async def finalize(
    session: AsyncSession,
    bot: Bot,
    *,
    bander: GradeBander | None = None,
    delay_ms: int | None = None,
    sleep_func: SleepFunc | None = None,
) -> FinalizeReport | None:
    """Run the finalize pass once; returns ``None`` when nobody is enrolled.

    A second call while one is running raises :class:`DuplicateSubmissionError`.
    """

    if _FINALIZE_LOCK.locked():
        raise DuplicateSubmissionError("⏳ Finalize is already running.")
    async with _FINALIZE_LOCK:
        return await _finalize(
            session,
            bot,
            bander=bander or GradeBander.from_string(settings.GRADE_BANDS),
            delay_ms=settings.RATE_LIMIT_DELAY_MS if delay_ms is None else delay_ms,
            sleep_func=sleep_func or asyncio.sleep,
        )


async def _finalize(
    session: AsyncSession,
    bot: Bot,
    *,
    bander: GradeBander,
    delay_ms: int,
    sleep_func: SleepFunc,
) -> FinalizeReport | None:
    respondents = await respondents_repo.list_all(session)
    if not respondents:
        return None

    report = FinalizeReport(respondents=len(respondents))
    bank = await questions_repo.list_open(session)
    pending = [r.user_id for r in respondents if not r.finished]
    scored = 0
    for user_id in pending:
        try:
            respondent = await respondents_repo.get(session, user_id)
            if respondent is None or respondent.finished:
                continue
            await settle_open_stage(session, respondent, bank)
            await session.commit()
        except Exception:
            logger.exception("finalize: scoring stored picks failed uid=%s", user_id)
            await session.rollback()
            bank = await questions_repo.list_open(session)
            continue
        scored += 1
    marked = await respondents_repo.mark_all_finished(session)
    await session.commit()
    logger.info("finalize: open stage closed for %s respondents, %s scored from stored picks", marked, scored)

    respondents = await respondents_repo.list_all(session)
    plan = compute_bonuses(
        respondents,
        threshold=Decimal(str(settings.BONUS_THRESHOLD)),
        points=Decimal(str(settings.BONUS_POINTS)),
    )
    report.bonus_questions = list(plan.questions)
    report.bonus_awards = await apply_bonuses(session, plan)

    open_questions = await questions_repo.list_open(session)
    closed_questions = await questions_repo.list_closed(session)
    total = scoring.total_possible(open_questions, closed_questions)

    delay = max(delay_ms, 0) / 1000
    for respondent in await respondents_repo.list_all(session):
        user_id = respondent.user_id
        score = Decimal(respondent.score or 0)
        pct = scoring.percent(score, total)
        degree = bander.grade(pct)
        try:
            await respondents_repo.set_degree(session, user_id, degree)
            await session.commit()
        except Exception:
            logger.exception("finalize: degree update failed uid=%s", user_id)
            await session.rollback()
            report.failed.append(user_id)
            continue
        report.degrees[user_id] = degree

        name = await resolve_display_name(bot, user_id)
        try:
            await deliver(bot, user_id, format_result(name, user_id, score, total, pct, degree))
        except DeliveryFailure as exc:
            logger.warning("finalize: result push failed uid=%s reason=%s", user_id, exc.reason)
            report.failed.append(user_id)
        else:
            report.notified += 1
        if delay:
            await sleep_func(delay)

    logger.info(
        "finalize done respondents=%s bonus_questions=%s notified=%s failed=%s",
        report.respondents,
        report.bonus_questions,
        report.notified,
        len(report.failed),
    )
    return report


__all__ = ["FinalizeReport", "finalize", "format_result", "is_running"]
