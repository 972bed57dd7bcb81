"""Class-wide fairness bonus applied once on finalize."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.repo import respondents as respondents_repo

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = Decimal("0.90")
DEFAULT_POINTS = Decimal("0.5")


class RespondentLike(Protocol):
    user_id: int
    wrong_answers: list[int]


@dataclass
class BonusPlan:
    worst_user_id: int | None = None
    questions: list[int] = field(default_factory=list)
    awards: dict[int, Decimal] = field(default_factory=dict)


def pick_worst(respondents: Sequence[RespondentLike]) -> RespondentLike | None:
    """Respondent with the strictly largest wrong list; ties keep the lowest ``user_id``."""

    worst: RespondentLike | None = None
    for respondent in sorted(respondents, key=lambda r: r.user_id):
        if worst is None or len(respondent.wrong_answers or []) > len(worst.wrong_answers or []):
            worst = respondent
    return worst


def compute_bonuses(
    respondents: Sequence[RespondentLike],
    *,
    threshold: Decimal = DEFAULT_THRESHOLD,
    points: Decimal = DEFAULT_POINTS,
) -> BonusPlan:
    plan = BonusPlan()
    worst = pick_worst(respondents)
    if worst is None or not worst.wrong_answers:
        return plan

    plan.worst_user_id = worst.user_id
    total = Decimal(len(respondents))
    seen: set[int] = set()
    for number in worst.wrong_answers:
        if number in seen:
            continue
        seen.add(number)
        missed = sum(1 for r in respondents if number in (r.wrong_answers or []))
        if Decimal(missed) / total < Decimal(threshold):
            continue
        plan.questions.append(number)
        for respondent in respondents:
            if number in (respondent.wrong_answers or []):
                continue
            plan.awards[respondent.user_id] = plan.awards.get(respondent.user_id, Decimal("0")) + Decimal(points)
    return plan


async def apply_bonuses(session: AsyncSession, plan: BonusPlan) -> int:
    """Apply awards with atomic increments, committing per respondent."""

    applied = 0
    for user_id, amount in plan.awards.items():
        try:
            await respondents_repo.increment_score(session, user_id, amount)
            await session.commit()
        except Exception:
            logger.exception("bonus increment failed uid=%s amount=%s", user_id, amount)
            await session.rollback()
            continue
        applied += 1
    logger.info(
        "bonus applied worst=%s questions=%s respondents=%s",
        plan.worst_user_id,
        plan.questions,
        applied,
    )
    return applied


__all__ = ["BonusPlan", "apply_bonuses", "compute_bonuses", "pick_worst"]
