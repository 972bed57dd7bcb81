"""Button-driven answering of open-form questions."""

from __future__ import annotations

import html
import logging
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal

from aiogram.types import InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.db.models import OpenQuestion, Respondent
from quizbot.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from quizbot.quiz import scoring
from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo
from quizbot.storage import commit_safely

TAKER_CALLBACK_PREFIX = "take"
CALLBACK_RE = re.compile(
    r"^take:(?:nav:(?P<index>\d+)|pick:(?P<number>\d+):(?P<choice>\d+)|(?P<finish>finish))$"
)

NOT_ENROLLED_NOTICE = "⛔ You are not enrolled in this test."
ALREADY_FINISHED_NOTICE = "⚠️ You have already finished the test."
QUESTION_MISSING_NOTICE = "⚠️ Question not found."
EMPTY_BANK_NOTICE = "🚫 There are no questions yet."
CHOSEN_MARK = "✅"
MAX_ROW_WIDTH = 8

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TakerCallbackPayload:
    kind: Literal["nav", "pick", "finish"]
    index: int | None = None
    number: int | None = None
    choice: int | None = None


@dataclass
class FinishOutcome:
    earned: Decimal
    score: Decimal
    total: Decimal
    percent: Decimal
    correct: list[int] = field(default_factory=list)
    wrong: list[int] = field(default_factory=list)


@dataclass
class TakerReply:
    text: str
    markup: InlineKeyboardMarkup | None = None
    notice: str | None = None
    image: str | None = None
    followup: "TakerReply | None" = None
    outcome: FinishOutcome | None = None


def build_nav_callback_data(index: int) -> str:
    if index < 0:
        raise ValueError(f"Invalid question index {index!r}")
    return f"{TAKER_CALLBACK_PREFIX}:nav:{index}"


def build_pick_callback_data(number: int, choice: int) -> str:
    if number < 0 or choice < 0:
        raise ValueError(f"Invalid pick {number!r}/{choice!r}")
    return f"{TAKER_CALLBACK_PREFIX}:pick:{number}:{choice}"


def build_finish_callback_data() -> str:
    return f"{TAKER_CALLBACK_PREFIX}:finish"


def parse_callback_data(data: str | None) -> TakerCallbackPayload | None:
    if not data:
        return None

    match = CALLBACK_RE.fullmatch(data)
    if not match:
        return None

    if match.group("finish"):
        return TakerCallbackPayload(kind="finish")
    if match.group("index") is not None:
        return TakerCallbackPayload(kind="nav", index=int(match.group("index")))
    return TakerCallbackPayload(
        kind="pick",
        number=int(match.group("number")),
        choice=int(match.group("choice")),
    )


def render_question(
    bank: Sequence[OpenQuestion],
    index: int,
    answers: Mapping[str, str] | None = None,
) -> tuple[str, InlineKeyboardMarkup]:
    """Question text plus an option row and a navigation row."""

    question = bank[index]
    chosen = (answers or {}).get(str(question.number))
    last = len(bank) - 1

    lines = [f"❓ Question {question.number} ({index + 1}/{len(bank)}):"]
    if question.text:
        lines.append(html.escape(question.text))
    lines.append("")
    for idx, option in enumerate(question.options or []):
        letter = scoring.letter_for(idx)
        lines.append(f"{letter}) {html.escape(str(option))}")
    if chosen:
        lines.extend(["", f"📌 Your answer: {chosen}"])

    kb = InlineKeyboardBuilder()
    options = list(question.options or [])
    for idx in range(len(options)):
        letter = scoring.letter_for(idx)
        label = f"{CHOSEN_MARK} {letter}" if letter == chosen else letter
        kb.button(text=label, callback_data=build_pick_callback_data(question.number, idx))

    nav_count = 0
    if index > 0:
        kb.button(text="⬅️ Back", callback_data=build_nav_callback_data(index - 1))
        nav_count += 1
    if index < last:
        kb.button(text="Forward ➡️", callback_data=build_nav_callback_data(index + 1))
        nav_count += 1
    if index == last:
        kb.button(text="🏁 Finish the test", callback_data=build_finish_callback_data())
        nav_count += 1

    full_rows, rest = divmod(len(options), MAX_ROW_WIDTH)
    sizes = [MAX_ROW_WIDTH] * full_rows + ([rest] if rest else [])
    if nav_count:
        sizes.append(nav_count)
    kb.adjust(*sizes)
    return "\n".join(lines), kb.as_markup()


async def _load_active(session: AsyncSession, user_id: int) -> Respondent:
    respondent = await respondents_repo.get(session, user_id)
    if respondent is None:
        raise NotFoundError(NOT_ENROLLED_NOTICE)
    if respondent.finished:
        raise DuplicateSubmissionError(ALREADY_FINISHED_NOTICE)
    return respondent


async def _load_bank(session: AsyncSession) -> list[OpenQuestion]:
    bank = await questions_repo.list_open(session)
    if not bank:
        raise NotFoundError(EMPTY_BANK_NOTICE)
    return bank


async def navigate(session: AsyncSession, user_id: int, index: int) -> TakerReply:
    respondent = await _load_active(session, user_id)
    bank = await _load_bank(session)
    if index < 0 or index >= len(bank):
        raise NotFoundError(QUESTION_MISSING_NOTICE)
    text, markup = render_question(bank, index, respondent.answers)
    return TakerReply(text=text, markup=markup, image=bank[index].image)


async def pick(session: AsyncSession, user_id: int, number: int, choice: int) -> TakerReply:
    """Overwrite the stored answer for ``number`` and re-render that question."""

    respondent = await _load_active(session, user_id)
    bank = await _load_bank(session)
    index = next((idx for idx, q in enumerate(bank) if q.number == number), None)
    if index is None:
        raise NotFoundError(QUESTION_MISSING_NOTICE)
    question = bank[index]
    if choice < 0 or choice >= len(question.options or []):
        raise ValidationError("⚠️ Unknown option.")

    letter = scoring.letter_for(choice)
    answers = dict(respondent.answers or {})
    answers[str(number)] = letter
    respondent.answers = answers
    respondent.last_answer = {"question": number, "choice": letter}
    await session.flush()
    await commit_safely(session)
    logger.debug("pick uid=%s question=%s choice=%s", user_id, number, letter)

    text, markup = render_question(bank, index, answers)
    return TakerReply(text=text, markup=markup, notice=f"📌 You picked {letter}.", image=question.image)


def _round_percent(value: Decimal, places: str = "0.1") -> Decimal:
    return value.quantize(Decimal(places), rounding=ROUND_HALF_UP)


async def settle_open_stage(
    session: AsyncSession,
    respondent: Respondent,
    bank: Sequence[OpenQuestion],
) -> scoring.ScoreResult:
    """Score stored picks, extend the lists and close the open stage without committing."""

    result = scoring.score_open(bank, respondent.answers)
    respondent.correct_answers = scoring.extend_numbers(respondent.correct_answers, result.correct)
    respondent.wrong_answers = scoring.extend_numbers(respondent.wrong_answers, result.wrong)
    respondent.finished = True
    respondent.last_answer = None
    await session.flush()
    if result.earned:
        await respondents_repo.increment_score(session, respondent.user_id, result.earned)
    return result


async def finish(session: AsyncSession, user_id: int, *, form_url: str = "") -> TakerReply:
    """Score the whole bank, close the open stage and point to the closed form."""

    respondent = await _load_active(session, user_id)
    bank = await questions_repo.list_open(session)
    result = await settle_open_stage(session, respondent, bank)
    await commit_safely(session)

    refreshed = await respondents_repo.get(session, user_id)
    score = Decimal(refreshed.score if refreshed is not None else result.earned)
    total = scoring.open_total(bank)
    pct = _round_percent(scoring.percent(result.earned, total))
    outcome = FinishOutcome(
        earned=result.earned,
        score=score,
        total=total,
        percent=pct,
        correct=list(result.correct),
        wrong=list(result.wrong),
    )
    logger.info(
        "open stage finished uid=%s earned=%s correct=%s wrong=%s",
        user_id,
        result.earned,
        len(result.correct),
        len(result.wrong),
    )

    text = (
        "📊 Test finished!\n"
        f"✅ Correct: {len(result.correct)}\n"
        f"❌ Wrong: {len(result.wrong)}\n"
        f"🎯 Score: {result.earned}/{total}\n"
        f"📈 Percent: {pct}%"
    )
    followup = await _closed_entry(session, user_id, form_url)
    return TakerReply(text=text, notice="✅ Test finished.", followup=followup, outcome=outcome)


async def _closed_entry(session: AsyncSession, user_id: int, form_url: str) -> TakerReply | None:
    closed = await questions_repo.list_closed(session)
    if not closed:
        return None
    text = (
        f"📝 There are {len(closed)} written questions left.\n"
        f"Submit them once through the form using your id {user_id}."
    )
    markup = None
    if form_url:
        kb = InlineKeyboardBuilder()
        kb.button(text="📝 Open the form", url=form_url)
        markup = kb.as_markup()
    return TakerReply(text=text, markup=markup)


__all__ = [
    "ALREADY_FINISHED_NOTICE",
    "FinishOutcome",
    "NOT_ENROLLED_NOTICE",
    "TakerCallbackPayload",
    "TakerReply",
    "build_finish_callback_data",
    "build_nav_callback_data",
    "build_pick_callback_data",
    "finish",
    "navigate",
    "parse_callback_data",
    "pick",
    "render_question",
    "settle_open_stage",
]
