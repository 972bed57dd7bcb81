from decimal import Decimal
from types import SimpleNamespace

import pytest

from quizbot.quiz import scoring


def _open(number, answer, points="1", options=("A", "B", "C", "D")):
    return SimpleNamespace(number=number, options=list(options), answer=answer, points=Decimal(points))


def _closed(number, answer_a, answer_b, points_a="1", points_b="1"):
    return SimpleNamespace(
        number=number,
        answer_a=answer_a,
        points_a=Decimal(points_a),
        answer_b=answer_b,
        points_b=Decimal(points_b),
    )


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("A", 0),
        ("C", 2),
        ("Z", 25),
        (" B ", 1),
        ("2", 2),
        ("3.0", 3),
        ("1.5", None),
        ("nan", None),
        ("inf", None),
        ("b", None),
        ("AB", None),
        ("", None),
        (None, None),
    ],
)
def test_parse_correct_index(raw, expected):
    assert scoring.parse_correct_index(raw) == expected


def test_score_open_matches_letters_in_number_order():
    bank = [_open(2, "A", "3"), _open(1, "B", "2"), _open(3, "D")]
    result = scoring.score_open(bank, {"1": "B", "2": "C"})

    assert result.earned == Decimal("2")
    assert result.correct == [1]
    assert result.wrong == [2, 3]


def test_score_open_numeric_answer_index():
    bank = [_open(1, "1", "4")]
    assert scoring.score_open(bank, {"1": "B"}).correct == [1]


def test_unparseable_answer_is_never_correct():
    bank = [_open(1, "x", "4")]
    result = scoring.score_open(bank, {"1": "A"})
    assert result.correct == []
    assert result.wrong == [1]


def test_score_open_is_idempotent():
    bank = [_open(1, "B", "2"), _open(2, "A", "1")]
    answers = {"1": "B", "2": "C"}
    assert scoring.score_open(bank, answers) == scoring.score_open(bank, answers)


def test_score_closed_partial_credit():
    bank = [_closed(1, "42", "x=3", "2", "3"), _closed(2, "cat", "dog")]
    result = scoring.score_closed(bank, {"1": {"a": " 42 ", "b": "x=4"}, "2": {"a": "cow"}})

    assert result.earned == Decimal("2")
    assert result.correct == [1]
    assert result.partial == [1]
    assert result.wrong == [2]


def test_score_closed_full_match_is_not_partial():
    bank = [_closed(5, "yes", "no", "1.5", "0.5")]
    result = scoring.score_closed(bank, {"5": {"a": "yes", "b": "no"}})
    assert result.earned == Decimal("2.0")
    assert result.partial == []
    assert result.correct == [5]


def test_totals_and_percent():
    open_bank = [_open(1, "A", "2"), _open(2, "B", "3")]
    closed_bank = [_closed(1, "a", "b", "1", "1.5")]

    assert scoring.total_possible(open_bank, closed_bank) == Decimal("7.5")
    assert scoring.percent(Decimal("2"), Decimal("0")) == Decimal("200")
    assert scoring.percent(Decimal("3"), Decimal("4")) == Decimal("75")


def test_extend_numbers_keeps_repeats_across_kinds():
    assert scoring.extend_numbers([3, 1], [1, 2]) == [3, 1, 1, 2]
    assert scoring.extend_numbers(None, [5]) == [5]
