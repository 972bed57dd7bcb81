from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from quizbot.db.models import Subscriber


async def add(session: AsyncSession, chat_id: int) -> bool:
    """Remember the chat; returns ``True`` when it was not known before."""

    if await session.get(Subscriber, chat_id) is not None:
        return False
    session.add(Subscriber(chat_id=chat_id))
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        return False
    return True


async def list_ids(session: AsyncSession) -> list[int]:
    result = await session.execute(select(Subscriber.chat_id).order_by(Subscriber.created.asc()))
    return [int(chat_id) for chat_id in result.scalars()]


async def count(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(Subscriber.chat_id)))
    return result.scalar_one()
