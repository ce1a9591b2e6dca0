import itertools
import pytest

from studycore.errors import ValidationError
from studycore.flashcards import sm2_update, ReviewValidationError


def test_interval_grows_by_ease_factor_before_update():
    res = sm2_update(4, repetitions=1, ease_factor=2.5, interval_days=6)
    assert res.interval_days == 15
    assert res.repetitions == 2

    res = sm2_update(4, repetitions=2, ease_factor=2.5, interval_days=6)
    assert res.interval_days == 15
    assert res.repetitions == 3
    assert res.ease_factor == pytest.approx(2.5)


def test_first_and_second_recall_intervals():
    assert sm2_update(5, 0, 2.5, 1).interval_days == 1
    assert sm2_update(5, 1, 2.5, 1).interval_days == 6
    # graduation to six days does not shorten a longer interval
    assert sm2_update(5, 1, 2.5, 4).interval_days == 6
    assert sm2_update(3, 1, 2.0, 8).interval_days == 16


@pytest.mark.parametrize('reps,interval,expected', [
    (2, 5, 13),
    (3, 9, 23),
    (2, 7, 18),
])
def test_interval_rounds_half_up(reps, interval, expected):
    assert sm2_update(4, reps, 2.5, interval).interval_days == expected


@pytest.mark.parametrize('quality', [0, 1, 2])
def test_failed_recall_resets(quality):
    res = sm2_update(quality, repetitions=7, ease_factor=2.8, interval_days=40)
    assert res.repetitions == 0
    assert res.interval_days == 1


def test_ease_factor_adjustment_per_quality():
    assert sm2_update(5, 0, 2.5, 1).ease_factor == pytest.approx(2.6)
    assert sm2_update(3, 0, 2.5, 1).ease_factor == pytest.approx(2.36)
    assert sm2_update(0, 0, 2.5, 1).ease_factor == pytest.approx(1.7)


def test_ease_factor_never_below_floor():
    reps, ef, interval = 0, 2.5, 1
    for q in itertools.islice(itertools.cycle([0, 1, 3, 0, 2, 5, 0]), 60):
        res = sm2_update(q, reps, ef, interval)
        reps, interval, ef = res.repetitions, res.interval_days, res.ease_factor
        assert ef >= 1.3
        assert interval >= 1


@pytest.mark.parametrize('quality', [-1, 6, 2.5, '3', True, None])
def test_rejects_out_of_range_quality(quality):
    with pytest.raises(ReviewValidationError):
        sm2_update(quality, 0, 2.5, 1)


def test_validation_error_is_value_error():
    with pytest.raises(ValueError):
        sm2_update(9, 0, 2.5, 1)
    assert issubclass(ReviewValidationError, ValidationError)
