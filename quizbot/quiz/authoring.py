"""Authoring wizards for open-form batches and single closed-form questions.

Each wizard is an explicit state enum plus one transition method per state.
A transition either returns the prompt for the next state or raises
:class:`~quizbot.errors.ValidationError`, in which case the state is left
untouched and the same step is retried.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.db.models import ClosedQuestion
from quizbot.errors import ValidationError
from quizbot.quiz.scoring import letter_for
from quizbot.repo import questions as questions_repo
from quizbot.storage import SessionRegistry

logger = logging.getLogger(__name__)

SKIP_COMMAND = "/skip"
MIN_SYNTHETIC_OPTIONS = 2
MAX_SYNTHETIC_OPTIONS = 4
MAX_OPTIONS = 26
_BARE_INT_RE = re.compile(r"^\d+$")


def parse_options(text: str) -> list[str]:
    """``"3"`` -> ``["A", "B", "C"]``; ``"Paris, London"`` -> ``["Paris", "London"]``."""

    raw = (text or "").strip()
    if _BARE_INT_RE.fullmatch(raw):
        count = int(raw)
        if MIN_SYNTHETIC_OPTIONS <= count <= MAX_SYNTHETIC_OPTIONS:
            return [letter_for(idx) for idx in range(count)]
        raise ValidationError(
            f"⚠️ Send a number from {MIN_SYNTHETIC_OPTIONS} to {MAX_SYNTHETIC_OPTIONS} "
            "or at least 2 comma-separated options."
        )
    options = [item.strip() for item in raw.split(",") if item.strip()]
    if len(options) < 2:
        raise ValidationError("⚠️ Enter at least 2 options, separated by commas.")
    if len(options) > MAX_OPTIONS:
        raise ValidationError(f"⚠️ At most {MAX_OPTIONS} options are supported.")
    return options


def parse_points(text: str) -> Decimal:
    raw = (text or "").strip().replace(",", ".")
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise ValidationError("⚠️ Points must be a number. Send it again.") from None
    if not value.is_finite():
        raise ValidationError("⚠️ Points must be a number. Send it again.")
    return value


class OpenStep(str, Enum):
    IMAGE = "image"
    TEXT = "text"
    OPTIONS = "options"
    ANSWER = "answer"
    SCORE = "score"


@dataclass
class QuestionDraft:
    image: str | None = None
    text: str = ""
    options: list[str] = field(default_factory=list)
    answer: str = ""
    points: Decimal = Decimal("0")


@dataclass
class AuthoringState:
    step: OpenStep = OpenStep.IMAGE
    base_number: int | None = None
    draft: QuestionDraft = field(default_factory=QuestionDraft)
    queue: list[QuestionDraft] = field(default_factory=list)


class AuthoringSession:
    """Collects a batch of open-form drafts from one author."""

    kind = "open"

    def __init__(self, start_number: int | None = None) -> None:
        self.state = AuthoringState(base_number=start_number)
        self._transitions: dict[OpenStep, Callable[[str, str | None], str]] = {
            OpenStep.IMAGE: self._on_image,
            OpenStep.TEXT: self._on_text,
            OpenStep.OPTIONS: self._on_options,
            OpenStep.ANSWER: self._on_answer,
            OpenStep.SCORE: self._on_score,
        }

    @property
    def step(self) -> OpenStep:
        return self.state.step

    @property
    def queue(self) -> list[QuestionDraft]:
        return self.state.queue

    def intro(self) -> str:
        start = f" starting at №{self.state.base_number}" if self.state.base_number else ""
        return (
            f"🛠 Test creation started{start}.\n"
            f"1️⃣ Photo ({SKIP_COMMAND} if none)\n"
            "2️⃣ Question text\n"
            "3️⃣ Options: a number 2-4 (A, B, …) or a comma-separated list\n"
            "4️⃣ Correct answer (A, B, C…)\n"
            "5️⃣ Points\n"
            "Send /new_test_done when finished or /cancel to abort.\n\n"
            f"🖼 Send a photo or {SKIP_COMMAND}:"
        )

    def handle(self, text: str, photo: str | None = None) -> str:
        """Feed one author message; ``photo`` is the file id of an attached photo."""

        return self._transitions[self.state.step](text, photo)

    def _on_image(self, text: str, photo: str | None) -> str:
        if photo:
            self.state.draft = QuestionDraft(image=photo)
            self.state.step = OpenStep.TEXT
            return "✅ Photo received. Now send the question text:"
        if (text or "").strip() == SKIP_COMMAND:
            self.state.draft = QuestionDraft()
            self.state.step = OpenStep.TEXT
            return "✅ No photo. Send the question text:"
        raise ValidationError(f"⚠️ Send a photo or {SKIP_COMMAND}.")

    def _on_text(self, text: str, photo: str | None) -> str:
        value = (text or "").strip()
        if not value:
            raise ValidationError("⚠️ The question text cannot be empty.")
        self.state.draft.text = value
        self.state.step = OpenStep.OPTIONS
        return "🅰️ Send the options:"

    def _on_options(self, text: str, photo: str | None) -> str:
        self.state.draft.options = parse_options(text)
        self.state.step = OpenStep.ANSWER
        return "✅ Send the correct answer (e.g. A):"

    def _on_answer(self, text: str, photo: str | None) -> str:
        answer = (text or "").strip().upper()
        if not answer:
            raise ValidationError("⚠️ Send the correct answer (e.g. A).")
        self.state.draft.answer = answer
        self.state.step = OpenStep.SCORE
        return "🎯 Send the points (a number):"

    def _on_score(self, text: str, photo: str | None) -> str:
        self.state.draft.points = parse_points(text)
        self.state.queue.append(self.state.draft)
        self.state.draft = QuestionDraft()
        self.state.step = OpenStep.IMAGE
        return (
            f"➕ Question added ({len(self.state.queue)} in this batch). "
            f"Send the next photo or {SKIP_COMMAND}, or /new_test_done."
        )

    async def commit(self, session: AsyncSession) -> list[int]:
        """Upsert queued drafts under sequential numbers; an empty queue writes nothing."""

        if not self.state.queue:
            return []
        base = self.state.base_number
        if not base:
            base = await questions_repo.count_open(session) + 1
        numbers: list[int] = []
        for offset, draft in enumerate(self.state.queue):
            number = base + offset
            await questions_repo.upsert_open(
                session,
                number,
                draft.options,
                draft.answer,
                draft.points,
                text=draft.text,
                image=draft.image,
            )
            numbers.append(number)
        logger.info("open questions committed numbers=%s", numbers)
        return numbers


class ClosedStep(str, Enum):
    NUMBER = "number"
    ANSWER_A = "answer_a"
    SCORE_A = "score_a"
    ANSWER_B = "answer_b"
    SCORE_B = "score_b"
    DONE = "done"


@dataclass
class ClosedDraft:
    number: int | None = None
    answer_a: str = ""
    points_a: Decimal = Decimal("0")
    answer_b: str = ""
    points_b: Decimal = Decimal("0")


class ClosedAuthoringSession:
    """Linear wizard for one two-part closed-form question."""

    kind = "closed"

    def __init__(self, default_points: Decimal = Decimal("1")) -> None:
        self.default_points = Decimal(default_points)
        self.step = ClosedStep.NUMBER
        self.draft = ClosedDraft()
        self._transitions: dict[ClosedStep, Callable[[str], str]] = {
            ClosedStep.NUMBER: self._on_number,
            ClosedStep.ANSWER_A: self._on_answer_a,
            ClosedStep.SCORE_A: self._on_score_a,
            ClosedStep.ANSWER_B: self._on_answer_b,
            ClosedStep.SCORE_B: self._on_score_b,
        }

    @property
    def complete(self) -> bool:
        return self.step is ClosedStep.DONE

    def intro(self) -> str:
        return "📝 Closed question.\n#️⃣ Send the question number:"

    def handle(self, text: str, photo: str | None = None) -> str:
        transition = self._transitions.get(self.step)
        if transition is None:
            raise ValidationError("⚠️ The question is complete.")
        return transition(text)

    def _on_number(self, text: str) -> str:
        raw = (text or "").strip()
        if not _BARE_INT_RE.fullmatch(raw) or int(raw) <= 0:
            raise ValidationError("⚠️ The number must be a positive integer.")
        self.draft.number = int(raw)
        self.step = ClosedStep.ANSWER_A
        return "🅰️ Send the expected answer for part a:"

    def _on_answer_a(self, text: str) -> str:
        self.draft.answer_a = _require_text(text)
        self.step = ClosedStep.SCORE_A
        return f"🎯 Points for part a (a number, or {SKIP_COMMAND} for {self.default_points}):"

    def _on_score_a(self, text: str) -> str:
        self.draft.points_a = self._points_or_default(text)
        self.step = ClosedStep.ANSWER_B
        return "🅱️ Send the expected answer for part b:"

    def _on_answer_b(self, text: str) -> str:
        self.draft.answer_b = _require_text(text)
        self.step = ClosedStep.SCORE_B
        return f"🎯 Points for part b (a number, or {SKIP_COMMAND} for {self.default_points}):"

    def _on_score_b(self, text: str) -> str:
        self.draft.points_b = self._points_or_default(text)
        self.step = ClosedStep.DONE
        return "✅ Closed question ready."

    def _points_or_default(self, text: str) -> Decimal:
        if (text or "").strip() == SKIP_COMMAND:
            return self.default_points
        return parse_points(text)

    async def commit(self, session: AsyncSession) -> ClosedQuestion:
        if not self.complete or self.draft.number is None:
            raise ValidationError("⚠️ The closed question is not complete yet.")
        question = await questions_repo.upsert_closed(
            session,
            self.draft.number,
            self.draft.answer_a,
            self.draft.points_a,
            self.draft.answer_b,
            self.draft.points_b,
        )
        logger.info("closed question committed number=%s", question.number)
        return question


def _require_text(text: str) -> str:
    value = (text or "").strip()
    if not value:
        raise ValidationError("⚠️ The answer cannot be empty.")
    return value


AUTHORING_SESSIONS: SessionRegistry[AuthoringSession | ClosedAuthoringSession] = SessionRegistry("authoring")


__all__ = [
    "AUTHORING_SESSIONS",
    "AuthoringSession",
    "AuthoringState",
    "ClosedAuthoringSession",
    "ClosedDraft",
    "ClosedStep",
    "OpenStep",
    "QuestionDraft",
    "SKIP_COMMAND",
    "parse_options",
    "parse_points",
]
