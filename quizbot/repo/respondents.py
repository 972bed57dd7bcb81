from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.db.models import Respondent


async def get(session: AsyncSession, user_id: int) -> Optional[Respondent]:
    return await session.get(Respondent, user_id, populate_existing=True)


async def enroll(session: AsyncSession, user_id: int) -> tuple[Respondent, bool]:
    """Create the respondent if missing; returns ``(respondent, created)``."""

    respondent = await get(session, user_id)
    if respondent is not None:
        return respondent, False

    respondent = Respondent(
        user_id=user_id,
        score=Decimal("0"),
        correct_answers=[],
        wrong_answers=[],
        finished=False,
        closed_finished=False,
        degree="—",
        last_answer=None,
        answers={},
    )
    session.add(respondent)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        respondent = await get(session, user_id)
        if respondent is None:
            raise
        return respondent, False
    return respondent, True


async def list_all(session: AsyncSession) -> list[Respondent]:
    stmt = select(Respondent).order_by(Respondent.user_id.asc()).execution_options(populate_existing=True)
    result = await session.execute(stmt)
    return list(result.scalars())


async def list_active(session: AsyncSession) -> list[Respondent]:
    stmt = (
        select(Respondent)
        .where(Respondent.finished.is_(False))
        .order_by(Respondent.user_id.asc())
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return list(result.scalars())


async def count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(Respondent.user_id)))
    return result.scalar_one()


async def increment_score(session: AsyncSession, user_id: int, delta: Decimal) -> None:
    stmt = (
        update(Respondent)
        .where(Respondent.user_id == user_id)
        .values(score=Respondent.score + Decimal(delta))
        .execution_options(synchronize_session=False)
    )
    await session.execute(stmt)


async def mark_all_finished(session: AsyncSession) -> int:
    stmt = update(Respondent).values(finished=True, last_answer=None).execution_options(synchronize_session=False)
    result = await session.execute(stmt)
    return result.rowcount or 0


async def set_degree(session: AsyncSession, user_id: int, degree: str) -> None:
    stmt = (
        update(Respondent)
        .where(Respondent.user_id == user_id)
        .values(degree=degree)
        .execution_options(synchronize_session=False)
    )
    await session.execute(stmt)


async def delete_all(session: AsyncSession) -> int:
    result = await session.execute(delete(Respondent))
    return result.rowcount or 0
