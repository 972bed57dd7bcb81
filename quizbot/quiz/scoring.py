"""Correctness and points for open-form and closed-form answers.

Everything here is pure: results are re-derived from the stored answers and the
question bank on every call, so running the same inputs twice gives the same
output.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

SUBPART_LABELS: tuple[str, str] = ("a", "b")


class OpenQuestionLike(Protocol):
    number: int
    options: list[str]
    answer: str
    points: Decimal


class ClosedQuestionLike(Protocol):
    number: int
    answer_a: str
    points_a: Decimal
    answer_b: str
    points_b: Decimal


@dataclass
class ScoreResult:
    earned: Decimal = Decimal("0")
    correct: list[int] = field(default_factory=list)
    wrong: list[int] = field(default_factory=list)
    partial: list[int] = field(default_factory=list)


def letter_for(index: int) -> str:
    return chr(ord("A") + index)


def index_for(letter: str | None) -> int | None:
    if not letter:
        return None
    value = str(letter).strip().upper()
    if len(value) == 1 and "A" <= value <= "Z":
        return ord(value) - ord("A")
    return None


def parse_correct_index(answer: object) -> int | None:
    """Return the zero-based option index encoded by a stored correct answer.

    A single uppercase letter ``A``-``Z`` maps to its position in the alphabet.
    Any other value is read as a raw numeric index and kept only when it is a
    whole number. ``None`` means the question can never be answered correctly.
    The index is not checked against the option list.
    """

    raw = str(answer if answer is not None else "").strip()
    if not raw:
        return None
    if len(raw) == 1 and "A" <= raw <= "Z":
        return ord(raw) - ord("A")
    try:
        value = float(raw)
    except ValueError:
        return None
    if not math.isfinite(value) or not value.is_integer():
        return None
    return int(value)


def score_open(questions: Iterable[OpenQuestionLike], answers: Mapping[str, str] | None) -> ScoreResult:
    """Score stored letters against the open-form bank in ascending number order."""

    answers = answers or {}
    result = ScoreResult()
    for question in sorted(questions, key=lambda q: q.number):
        expected = parse_correct_index(question.answer)
        chosen = index_for(answers.get(str(question.number)))
        if expected is not None and chosen is not None and chosen == expected:
            result.earned += Decimal(question.points or 0)
            result.correct.append(question.number)
        else:
            result.wrong.append(question.number)
    return result


def _matches(given: object, expected: str | None) -> bool:
    if given is None or expected is None:
        return False
    return str(given).strip() == str(expected).strip()


def score_closed(
    questions: Iterable[ClosedQuestionLike],
    answers: Mapping[str, Mapping[str, str]] | None,
) -> ScoreResult:
    """Score two-part free-response answers; each matching part earns its own points."""

    answers = answers or {}
    result = ScoreResult()
    for question in sorted(questions, key=lambda q: q.number):
        given = answers.get(str(question.number)) or {}
        matched = 0
        if _matches(given.get("a"), question.answer_a):
            result.earned += Decimal(question.points_a or 0)
            matched += 1
        if _matches(given.get("b"), question.answer_b):
            result.earned += Decimal(question.points_b or 0)
            matched += 1

        if matched == 0:
            result.wrong.append(question.number)
            continue
        result.correct.append(question.number)
        if matched == 1:
            result.partial.append(question.number)
    return result


def open_total(questions: Iterable[OpenQuestionLike]) -> Decimal:
    return sum((Decimal(q.points or 0) for q in questions), Decimal("0"))


def closed_total(questions: Iterable[ClosedQuestionLike]) -> Decimal:
    return sum((Decimal(q.points_a or 0) + Decimal(q.points_b or 0) for q in questions), Decimal("0"))


def total_possible(
    open_questions: Iterable[OpenQuestionLike],
    closed_questions: Iterable[ClosedQuestionLike] = (),
) -> Decimal:
    return open_total(open_questions) + closed_total(closed_questions)


def percent(score: Decimal, total: Decimal) -> Decimal:
    """``100 * score / max(1, total)``."""

    return Decimal(100) * Decimal(score) / max(Decimal(1), Decimal(total))


def extend_numbers(existing: Iterable[int] | None, extra: Iterable[int]) -> list[int]:
    """Append one stage's numbers; open and closed numbering overlap, so repeats are kept."""

    return [int(item) for item in existing or []] + [int(item) for item in extra]


__all__ = [
    "SUBPART_LABELS",
    "ScoreResult",
    "closed_total",
    "extend_numbers",
    "index_for",
    "letter_for",
    "open_total",
    "parse_correct_index",
    "percent",
    "score_closed",
    "score_open",
    "total_possible",
]
