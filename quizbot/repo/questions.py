from __future__ import annotations

from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.db.models import ClosedQuestion, OpenQuestion


async def get_open(session: AsyncSession, number: int) -> Optional[OpenQuestion]:
    return await session.get(OpenQuestion, number)


async def list_open(session: AsyncSession) -> list[OpenQuestion]:
    stmt = select(OpenQuestion).order_by(OpenQuestion.number.asc())
    result = await session.execute(stmt)
    return list(result.scalars())


async def count_open(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(OpenQuestion.number)))
    return result.scalar_one()


async def upsert_open(
    session: AsyncSession,
    number: int,
    options: Sequence[str],
    answer: str,
    points: Decimal,
    *,
    text: str = "",
    image: Optional[str] = None,
) -> OpenQuestion:
    question = await get_open(session, number)
    if question is None:
        question = OpenQuestion(number=number)
        session.add(question)
    question.text = text
    question.image = image
    question.options = list(options)
    question.answer = answer
    question.points = Decimal(points)
    await session.flush()
    return question


async def delete_all_open(session: AsyncSession) -> int:
    result = await session.execute(delete(OpenQuestion))
    return result.rowcount or 0


async def get_closed(session: AsyncSession, number: int) -> Optional[ClosedQuestion]:
    return await session.get(ClosedQuestion, number)


async def list_closed(session: AsyncSession) -> list[ClosedQuestion]:
    stmt = select(ClosedQuestion).order_by(ClosedQuestion.number.asc())
    result = await session.execute(stmt)
    return list(result.scalars())


async def upsert_closed(
    session: AsyncSession,
    number: int,
    answer_a: str,
    points_a: Decimal,
    answer_b: str,
    points_b: Decimal,
) -> ClosedQuestion:
    question = await get_closed(session, number)
    if question is None:
        question = ClosedQuestion(number=number)
        session.add(question)
    question.answer_a = answer_a
    question.points_a = Decimal(points_a)
    question.answer_b = answer_b
    question.points_b = Decimal(points_b)
    await session.flush()
    return question


async def delete_all_closed(session: AsyncSession) -> int:
    result = await session.execute(delete(ClosedQuestion))
    return result.rowcount or 0


async def delete_all(session: AsyncSession) -> int:
    """Bulk-delete both question kinds; returns the number of removed rows."""

    return await delete_all_open(session) + await delete_all_closed(session)
