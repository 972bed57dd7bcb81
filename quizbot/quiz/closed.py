"""One-shot submission of two-part closed-form answers."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from quizbot.quiz import scoring
from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo
from quizbot.storage import commit_safely

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClosedSummary:
    earned: Decimal
    total_possible: Decimal
    percent: Decimal

    def as_payload(self) -> dict[str, Any]:
        return {
            "ok": True,
            "earned": float(self.earned),
            "totalPossible": float(self.total_possible),
            "percent": float(self.percent),
        }


def normalize_answers(raw: Any) -> dict[str, dict[str, str]]:
    """Validate ``{questionNumber: {"a": text, "b": text}}`` and key it by str number."""

    if not isinstance(raw, Mapping):
        raise ValidationError("answers must be an object keyed by question number")

    normalized: dict[str, dict[str, str]] = {}
    for key, parts in raw.items():
        number = str(key).strip()
        if not number.isdigit():
            raise ValidationError(f"question number must be an integer: {key!r}")
        if not isinstance(parts, Mapping):
            raise ValidationError(f"answer for question {number} must be an object")
        entry: dict[str, str] = {}
        for label, text in parts.items():
            if label not in scoring.SUBPART_LABELS:
                raise ValidationError(f"unknown subpart {label!r} for question {number}")
            if text is None:
                continue
            if not isinstance(text, (str, int, float)) or isinstance(text, bool):
                raise ValidationError(f"answer {number}{label} must be text")
            entry[label] = str(text)
        normalized[str(int(number))] = entry
    return normalized


async def submit(session: AsyncSession, respondent_id: int, answers: Any) -> ClosedSummary:
    """Score the closed-form answers once and add the earned points to the score."""

    normalized = normalize_answers(answers)
    respondent = await respondents_repo.get(session, respondent_id)
    if respondent is None:
        raise NotFoundError(f"respondent {respondent_id} is not enrolled")
    if respondent.closed_finished:
        raise DuplicateSubmissionError("closed answers were already submitted")

    questions = await questions_repo.list_closed(session)
    result = scoring.score_closed(questions, normalized)

    respondent.correct_answers = scoring.extend_numbers(respondent.correct_answers, result.correct)
    respondent.wrong_answers = scoring.extend_numbers(respondent.wrong_answers, result.wrong)
    respondent.closed_finished = True
    await session.flush()
    if result.earned:
        await respondents_repo.increment_score(session, respondent_id, result.earned)
    await commit_safely(session)

    total = scoring.closed_total(questions)
    pct = scoring.percent(result.earned, total).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    logger.info(
        "closed submission uid=%s earned=%s partial=%s",
        respondent_id,
        result.earned,
        result.partial,
    )
    return ClosedSummary(earned=result.earned, total_possible=total, percent=pct)


__all__ = ["ClosedSummary", "normalize_answers", "submit"]
