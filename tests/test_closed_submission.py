from decimal import Decimal

import pytest

from quizbot.errors import DuplicateSubmissionError, NotFoundError, ValidationError
from quizbot.quiz import closed
from quizbot.repo import questions as questions_repo
from quizbot.repo import respondents as respondents_repo


async def _seed(session):
    await questions_repo.upsert_closed(session, 1, "42", Decimal("2"), "x=3", Decimal("3"))
    await questions_repo.upsert_closed(session, 2, "cat", Decimal("1"), "dog", Decimal("1"))
    respondent, _ = await respondents_repo.enroll(session, 7)
    respondent.correct_answers = [10]
    respondent.wrong_answers = [11]
    await respondents_repo.increment_score(session, 7, Decimal("4"))
    await session.commit()


@pytest.mark.asyncio
async def test_partial_credit_is_added_to_score(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await _seed(session)
            summary = await closed.submit(session, 7, {"1": {"a": "42", "b": "x=4"}, 2: {"a": " cat "}})

            assert summary.earned == Decimal("3")
            assert summary.total_possible == Decimal("7")
            assert summary.percent == Decimal("42.9")

            respondent = await respondents_repo.get(session, 7)
            assert respondent.closed_finished is True
            assert respondent.score == Decimal("7")
            assert respondent.correct_answers == [10, 1, 2]
            assert respondent.wrong_answers == [11]


@pytest.mark.asyncio
async def test_second_submission_is_rejected(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await _seed(session)
            await closed.submit(session, 7, {"1": {"a": "42"}})
            with pytest.raises(DuplicateSubmissionError):
                await closed.submit(session, 7, {"1": {"b": "x=3"}})

            respondent = await respondents_repo.get(session, 7)
            assert respondent.score == Decimal("6")


@pytest.mark.asyncio
async def test_unknown_respondent(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            await _seed(session)
            with pytest.raises(NotFoundError):
                await closed.submit(session, 8, {})


@pytest.mark.parametrize(
    "answers",
    [
        None,
        [],
        {"x": {"a": "1"}},
        {"1": "42"},
        {"1": {"c": "1"}},
        {"1": {"a": ["1"]}},
    ],
)
def test_malformed_payloads(answers):
    with pytest.raises(ValidationError):
        closed.normalize_answers(answers)


def test_normalize_keys_by_number():
    assert closed.normalize_answers({" 03 ": {"a": 5, "b": None}}) == {"3": {"a": "5"}}


@pytest.mark.asyncio
async def test_same_number_in_both_kinds_is_counted_twice(memory_db):
    from quizbot.quiz import taker

    async with memory_db:
        async with memory_db.session() as session:
            await questions_repo.upsert_open(session, 1, ["A", "B"], "A", Decimal("1"))
            await questions_repo.upsert_closed(session, 1, "42", Decimal("1"), "7", Decimal("1"))
            await respondents_repo.enroll(session, 9)
            await session.commit()

            await taker.pick(session, 9, 1, 1)
            await taker.finish(session, 9)
            await closed.submit(session, 9, {"1": {"a": "0", "b": "0"}})

            respondent = await respondents_repo.get(session, 9)
            assert respondent.wrong_answers == [1, 1]
            assert respondent.correct_answers == []
