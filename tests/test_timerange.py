import pytest

from errors import InvalidRange, InvalidRepeats, TooManyRepeats, ValidationError
from expander import expand_weekly
from timerange import INT64_MAX, INT64_MIN, WEEK_SECONDS, TimeRange


def test_range_requires_start_before_end():
    with pytest.raises(InvalidRange):
        TimeRange(11000, 10000)
    with pytest.raises(InvalidRange):
        TimeRange(10000, 10000)
    # InvalidRange is reported as a validation failure
    with pytest.raises(ValidationError):
        TimeRange(5, 1)


def test_range_must_fit_bigint():
    assert TimeRange(INT64_MIN, INT64_MAX).duration == INT64_MAX - INT64_MIN
    with pytest.raises(InvalidRange):
        TimeRange(0, INT64_MAX + 1)
    with pytest.raises(InvalidRange):
        TimeRange(INT64_MIN - 1, 0)


def test_half_open_ranges_can_touch():
    a = TimeRange(10000, 11000)
    assert not a.overlaps(TimeRange(11000, 12000))
    assert not TimeRange(9000, 10000).overlaps(a)
    assert a.overlaps(TimeRange(10500, 11500))
    assert a.overlaps(TimeRange(9000, 10001))
    assert a.overlaps(TimeRange(10100, 10200))


def test_contains():
    window = TimeRange(0, 100)
    assert window.contains(TimeRange(0, 100))
    assert window.contains(TimeRange(10, 20))
    assert not window.contains(TimeRange(90, 101))


def test_shift_weeks_keeps_duration():
    base = TimeRange(10000, 11000)
    shifted = base.shift_weeks(3)
    assert shifted == TimeRange(10000 + 3 * WEEK_SECONDS, 11000 + 3 * WEEK_SECONDS)
    assert shifted.duration == base.duration
    assert base.shift_weeks(0) == base


class TestExpandWeekly:
    def test_single(self):
        base = TimeRange(10000, 11000)
        assert expand_weekly(base, 1, 10) == [base]

    def test_weekly_series_in_order(self):
        base = TimeRange(11000, 12000)
        ranges = expand_weekly(base, 10, 10)
        assert len(ranges) == 10
        assert ranges[0] == base
        for prev, nxt in zip(ranges, ranges[1:]):
            assert nxt.start - prev.start == WEEK_SECONDS
            assert nxt.end - prev.end == WEEK_SECONDS

    def test_repeat_bounds(self):
        base = TimeRange(10000, 11000)
        with pytest.raises(InvalidRepeats):
            expand_weekly(base, 0, 10)
        with pytest.raises(InvalidRepeats):
            expand_weekly(base, -3, 10)
        with pytest.raises(TooManyRepeats):
            expand_weekly(base, 11, 10)

    def test_last_week_must_fit_bigint(self):
        base = TimeRange(INT64_MAX - WEEK_SECONDS - 1000, INT64_MAX - WEEK_SECONDS)
        assert len(expand_weekly(base, 2, 10)) == 2
        with pytest.raises(InvalidRange):
            expand_weekly(base, 3, 10)
