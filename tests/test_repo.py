from decimal import Decimal

import pytest

from quizbot.repo import questions, respondents, subscribers


@pytest.mark.asyncio
async def test_enroll_is_idempotent(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            first, created = await respondents.enroll(session, 42)
            await session.commit()
            assert created is True
            assert first.degree == "—"
            assert first.answers == {}

            again, created = await respondents.enroll(session, 42)
            assert created is False
            assert again.user_id == 42
            assert await respondents.count(session) == 1


@pytest.mark.asyncio
async def test_increment_and_bulk_updates(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            for user_id in (3, 1, 2):
                await respondents.enroll(session, user_id)
            await session.commit()

            await respondents.increment_score(session, 2, Decimal("1.5"))
            await respondents.increment_score(session, 2, Decimal("0.5"))
            await respondents.set_degree(session, 2, "B")
            await session.commit()

            listed = await respondents.list_all(session)
            assert [r.user_id for r in listed] == [1, 2, 3]
            assert listed[1].score == Decimal("2")
            assert listed[1].degree == "B"

            assert await respondents.mark_all_finished(session) == 3
            await session.commit()
            assert await respondents.list_active(session) == []

            assert await respondents.delete_all(session) == 3
            await session.commit()
            assert await respondents.count(session) == 0


@pytest.mark.asyncio
async def test_question_upsert_and_delete(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await questions.upsert_open(session, 2, ["A", "B"], "A", Decimal("1"))
            await questions.upsert_open(session, 1, ["A", "B"], "B", Decimal("1"))
            await questions.upsert_open(session, 2, ["x", "y", "z"], "C", Decimal("3"))
            await questions.upsert_closed(session, 1, "a", Decimal("1"), "b", Decimal("1"))
            await session.commit()

            listed = await questions.list_open(session)
            assert [q.number for q in listed] == [1, 2]
            assert listed[1].options == ["x", "y", "z"]
            assert await questions.count_open(session) == 2

            assert await questions.delete_all(session) == 3
            await session.commit()
            assert await questions.list_closed(session) == []


@pytest.mark.asyncio
async def test_subscribers_are_recorded_once(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            assert await subscribers.add(session, 10) is True
            assert await subscribers.add(session, 10) is False
            assert await subscribers.add(session, 11) is True
            await session.commit()
            assert await subscribers.count(session) == 2
            assert sorted(await subscribers.list_ids(session)) == [10, 11]
