from decimal import Decimal
from types import SimpleNamespace

import pytest

from quizbot.quiz.bonus import apply_bonuses, compute_bonuses, pick_worst
from quizbot.repo import respondents as respondents_repo


def _r(user_id, wrong):
    return SimpleNamespace(user_id=user_id, wrong_answers=list(wrong))


def test_worst_respondent_tie_goes_to_lowest_id():
    respondents = [_r(30, [1, 2]), _r(10, [3, 4]), _r(20, [1])]
    assert pick_worst(respondents).user_id == 10


def test_no_bonus_below_threshold():
    respondents = [_r(1, [7]), _r(2, [7]), _r(3, [])]
    plan = compute_bonuses(respondents)
    assert plan.worst_user_id == 1
    assert plan.questions == []
    assert plan.awards == {}


def test_bonus_for_question_almost_everyone_missed():
    respondents = [_r(idx, [5]) for idx in range(1, 10)] + [_r(10, [])]
    plan = compute_bonuses(respondents)
    assert plan.questions == [5]
    assert plan.awards == {10: Decimal("0.5")}


def test_bonuses_accumulate_per_question():
    respondents = [_r(idx, [1, 2, 1]) for idx in range(1, 10)] + [_r(99, [])]
    plan = compute_bonuses(respondents)
    assert plan.questions == [1, 2]
    assert plan.awards == {99: Decimal("1.0")}


def test_everyone_wrong_gives_nobody_a_bonus():
    respondents = [_r(1, [4]), _r(2, [4])]
    plan = compute_bonuses(respondents)
    assert plan.questions == [4]
    assert plan.awards == {}


def test_nobody_wrong_means_no_plan():
    plan = compute_bonuses([_r(1, []), _r(2, [])])
    assert plan.worst_user_id is None
    assert plan.awards == {}


@pytest.mark.asyncio
async def test_apply_bonuses_increments_scores(memory_db):
    async with memory_db:
        async with memory_db.session() as session:
            for user_id in (1, 2):
                await respondents_repo.enroll(session, user_id)
            await session.commit()

            plan = compute_bonuses([_r(1, []), _r(2, [])])
            plan.awards = {1: Decimal("0.5"), 2: Decimal("1")}
            applied = await apply_bonuses(session, plan)
            assert applied == 2

            scores = {r.user_id: r.score for r in await respondents_repo.list_all(session)}
            assert scores == {1: Decimal("0.50"), 2: Decimal("1.00")}
