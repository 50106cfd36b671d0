"""Occurrence algebra for schedules.

A schedule is in effect on its own ``date`` when it is a one-shot booking, or
on every date on or after ``date`` whose weekday is in ``recurring_days`` when
it recurs. Each date it is in effect on carries the half-open interval
``[start_time, end_time)``. The helpers here work on anything exposing those
attributes, saved ``Schedule`` rows and unsaved candidates alike.
"""
from datetime import datetime, timedelta

from django.utils import timezone

from parking_lots.exceptions import InvalidRecurrence

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

_WEEKDAY_LOOKUP = {name: i for i, name in enumerate(WEEKDAYS)}
_WEEKDAY_LOOKUP.update({name[:3]: i for i, name in enumerate(WEEKDAYS)})


def normalize_days(raw_days):
    """Turn weekday numbers (Monday = 0) or English names into a sorted list of numbers."""
    if raw_days is None:
        return []
    if isinstance(raw_days, (str, bytes)) or not hasattr(raw_days, '__iter__'):
        raise InvalidRecurrence(f"Recurring days must be a list, got {raw_days!r}")

    days = set()
    for raw in raw_days:
        if isinstance(raw, bool):
            raise InvalidRecurrence(f"Invalid weekday {raw!r}")
        if isinstance(raw, int):
            day = raw
        elif isinstance(raw, str) and raw.strip().isdigit():
            day = int(raw.strip())
        elif isinstance(raw, str) and raw.strip().lower() in _WEEKDAY_LOOKUP:
            day = _WEEKDAY_LOOKUP[raw.strip().lower()]
        else:
            raise InvalidRecurrence(f"Invalid weekday {raw!r}")
        if not 0 <= day <= 6:
            raise InvalidRecurrence(f"Invalid weekday {raw!r}")
        days.add(day)
    return sorted(days)


def times_overlap(a_start, a_end, b_start, b_end):
    # Half-open: back-to-back intervals do not overlap
    return a_start < b_end and b_start < a_end


def in_effect_on(schedule, day):
    if not schedule.is_recurring:
        return day == schedule.date
    return day >= schedule.date and day.weekday() in schedule.recurring_days


def _first_matching_day(start, weekdays):
    for offset in range(7):
        day = start + timedelta(days=offset)
        if day.weekday() in weekdays:
            return day
    return None


def shared_date(a, b):
    """Earliest date on which both schedules are in effect, or None."""
    if not a.is_recurring and not b.is_recurring:
        return a.date if a.date == b.date else None
    if a.is_recurring and b.is_recurring:
        common = set(a.recurring_days) & set(b.recurring_days)
        if not common:
            return None
        return _first_matching_day(max(a.date, b.date), common)
    one_shot, series = (a, b) if b.is_recurring else (b, a)
    return one_shot.date if in_effect_on(series, one_shot.date) else None


def conflict_date(a, b):
    """Date of the first overlapping occurrence of ``a`` and ``b``, or None if they never collide."""
    if not times_overlap(a.start_time, a.end_time, b.start_time, b.end_time):
        return None
    return shared_date(a, b)


def occurrence_on(schedule, day):
    if not in_effect_on(schedule, day):
        return None
    return (datetime.combine(day, schedule.start_time), datetime.combine(day, schedule.end_time))


def occurrence_at(schedule, moment):
    """The occurrence ``(start, end)`` containing the naive local ``moment``, if any."""
    occurrence = occurrence_on(schedule, moment.date())
    if occurrence and occurrence[0] <= moment < occurrence[1]:
        return occurrence
    return None


def last_day(schedule):
    """Last date the schedule is in effect on; None for an open-ended series."""
    return None if schedule.is_recurring else schedule.date


def is_past(schedule, moment):
    end = last_day(schedule)
    if end is None:
        return False
    return moment >= datetime.combine(end, schedule.end_time)


def effective_dates(schedule, start, end):
    """Dates in ``[start, end]`` on which the schedule is in effect."""
    day = start
    while day <= end:
        if in_effect_on(schedule, day):
            yield day
        day += timedelta(days=1)


def local_moment(moment):
    """Schedules hold wall-clock dates and times; bring an aware ``moment`` into that frame."""
    if timezone.is_aware(moment):
        return timezone.localtime(moment).replace(tzinfo=None)
    return moment
