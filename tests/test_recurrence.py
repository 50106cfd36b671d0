import datetime as dt
import random
from types import SimpleNamespace

import pytest

from parking_lots.exceptions import InvalidRecurrence
from schedules import recurrence


def booking(day, start, end, days=None):
    return SimpleNamespace(
        date=day,
        start_time=dt.time(*start),
        end_time=dt.time(*end),
        is_recurring=bool(days),
        recurring_days=sorted(days or []),
    )


def test_normalize_days_accepts_numbers_and_names():
    assert recurrence.normalize_days(['Monday', 'wed', 4, '6']) == [0, 2, 4, 6]
    assert recurrence.normalize_days(['MON', 'monday', 0]) == [0]
    assert recurrence.normalize_days(None) == []


@pytest.mark.parametrize('raw', [['funday'], [7], [-1], [True], 'monday', 3])
def test_normalize_days_rejects_garbage(raw):
    with pytest.raises(InvalidRecurrence):
        recurrence.normalize_days(raw)


def test_back_to_back_intervals_do_not_overlap():
    assert not recurrence.times_overlap(dt.time(9), dt.time(10), dt.time(10), dt.time(11))
    assert recurrence.times_overlap(dt.time(9), dt.time(10, 30), dt.time(10), dt.time(11))


def test_one_shots_share_only_their_date():
    a = booking(dt.date(2025, 3, 3), (9, 0), (10, 0))
    b = booking(dt.date(2025, 3, 4), (9, 0), (10, 0))
    assert recurrence.conflict_date(a, b) is None
    assert recurrence.conflict_date(a, booking(dt.date(2025, 3, 3), (9, 30), (11, 0))) == dt.date(2025, 3, 3)


def test_series_covers_matching_weekdays_from_its_start():
    series = booking(dt.date(2025, 1, 6), (8, 0), (9, 0), days=[0])
    assert recurrence.conflict_date(series, booking(dt.date(2025, 2, 3), (8, 30), (9, 0))) == dt.date(2025, 2, 3)
    # Monday before the series starts
    assert recurrence.conflict_date(series, booking(dt.date(2024, 12, 30), (8, 30), (9, 0))) is None
    # Tuesday
    assert recurrence.conflict_date(series, booking(dt.date(2025, 2, 4), (8, 30), (9, 0))) is None


def test_two_series_collide_on_a_shared_weekday():
    a = booking(dt.date(2025, 1, 6), (8, 0), (9, 0), days=[0, 2])
    b = booking(dt.date(2025, 3, 1), (8, 30), (9, 30), days=[2, 5])
    # First Wednesday on or after 2025-03-01
    assert recurrence.conflict_date(a, b) == dt.date(2025, 3, 5)
    assert recurrence.conflict_date(a, booking(dt.date(2025, 3, 1), (8, 30), (9, 30), days=[1, 3])) is None


def test_occurrence_at_uses_half_open_interval():
    b = booking(dt.date(2025, 1, 6), (9, 0), (10, 0))
    assert recurrence.occurrence_at(b, dt.datetime(2025, 1, 6, 9, 0)) is not None
    assert recurrence.occurrence_at(b, dt.datetime(2025, 1, 6, 10, 0)) is None
    assert recurrence.is_past(b, dt.datetime(2025, 1, 6, 10, 0))


def _brute_force_conflict(a, b):
    start = min(a.date, b.date)
    end = max(a.date, b.date) + dt.timedelta(days=14)
    if not recurrence.times_overlap(a.start_time, a.end_time, b.start_time, b.end_time):
        return False
    a_days = set(recurrence.effective_dates(a, start, end))
    return any(day in a_days for day in recurrence.effective_dates(b, start, end))


def test_conflict_date_agrees_with_day_by_day_expansion():
    rng = random.Random(262)
    base = dt.date(2025, 1, 1)
    for _ in range(500):
        pair = []
        for _ in range(2):
            day = base + dt.timedelta(days=rng.randrange(21))
            start = rng.randrange(0, 22)
            end = rng.randrange(start + 1, 24)
            days = rng.sample(range(7), rng.randrange(1, 4)) if rng.random() < 0.5 else None
            pair.append(booking(day, (start, 0), (end, 0), days=days))
        a, b = pair
        assert (recurrence.conflict_date(a, b) is not None) == _brute_force_conflict(a, b)
        assert recurrence.conflict_date(a, b) == recurrence.conflict_date(b, a)
