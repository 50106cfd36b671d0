"""Booking arbitration for parking spots.

``propose`` runs its checks in a fixed order, and the first one to fail decides
the rejection:

1. the spot exists and sits on a parkable cell (``InvalidSpot``)
2. the spot is not disabled (``SpotDisabled``)
3. start is before end on a single day (``InvalidTimeRange``)
4. recurring bookings name at least one valid weekday (``InvalidRecurrence``)
5. no live booking on the spot shares an occurrence (``ScheduleConflict``)

The spot row is locked for the duration of the overlap check and insert, so
concurrent proposals for one spot are serialised while other spots proceed
in parallel.
"""
import datetime as dt
import logging

from django.db import transaction
from django.db.models import Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_time

from parking_lots.exceptions import (
    InvalidSpot, SpotDisabled, InvalidTimeRange, InvalidRecurrence,
    ScheduleConflict, NotFound, store_errors,
)
from parking_lots.layout import layout_of, is_parkable
from parking_lots.models import ParkingLot, Spot
from . import recurrence
from .models import Schedule

logger = logging.getLogger(__name__)

_STATUS_RANK = {
    Schedule.STATUS_PENDING: 0,
    Schedule.STATUS_ACTIVE: 1,
    Schedule.STATUS_COMPLETED: 2,
}


def _coerce_date(value):
    if isinstance(value, dt.date):
        return value
    try:
        parsed = parse_date(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidTimeRange(f"Invalid date {value!r}")
    return parsed


def _coerce_time(value, what):
    if isinstance(value, dt.time):
        return value
    try:
        parsed = parse_time(value) if isinstance(value, str) else None
    except ValueError:
        parsed = None
    if parsed is None:
        raise InvalidTimeRange(f"Invalid {what} {value!r}")
    return parsed


def _resolve_spot(lot_id, spot_label):
    try:
        lot = ParkingLot.objects.get(id=lot_id)
    except (ParkingLot.DoesNotExist, ValueError, TypeError):
        raise InvalidSpot(f"Parking lot {lot_id} does not exist")

    label = str(spot_label or '').strip().upper()
    spot = (
        Spot.objects.select_for_update()
        .filter(parking_lot=lot, label=label, is_retired=False)
        .first()
    )
    if spot is None:
        raise InvalidSpot(f"Spot {spot_label!r} does not exist in lot {lot.name}")
    if spot.coord is None or not is_parkable(layout_of(lot), spot.coord):
        raise InvalidSpot(f"Spot {spot.label} is not on a parkable cell of lot {lot.name}")
    return lot, spot


def find_conflict(spot, candidate):
    """First live booking on ``spot`` (lowest id) sharing an occurrence with ``candidate``."""
    overlapping = (
        Schedule.objects.filter(spot=spot)
        .exclude(status=Schedule.STATUS_CANCELLED)
        .filter(start_time__lt=candidate.end_time, end_time__gt=candidate.start_time)
    )
    if candidate.is_recurring:
        overlapping = overlapping.filter(Q(is_recurring=True) | Q(is_recurring=False, date__gte=candidate.date))
    else:
        overlapping = overlapping.filter(
            Q(is_recurring=False, date=candidate.date) | Q(is_recurring=True, date__lte=candidate.date)
        )
    if candidate.pk:
        overlapping = overlapping.exclude(pk=candidate.pk)

    for existing in overlapping.order_by('id'):
        if recurrence.conflict_date(existing, candidate) is not None:
            return existing
    return None


def propose(lot_id, spot_label, date, start_time, end_time, is_recurring=False,
            recurring_days=None, user=None, vehicle=None, location=''):
    """Validate a booking request and store it as a pending schedule.

    Returns the new ``Schedule``; raises the ``ParkingError`` naming the first
    check that failed.
    """
    with store_errors(f"booking spot {spot_label} in lot {lot_id}"), transaction.atomic():
        lot, spot = _resolve_spot(lot_id, spot_label)

        if spot.status == Spot.STATUS_DISABLED:
            raise SpotDisabled(f"Spot {spot.label} is disabled")

        booking_date = _coerce_date(date)
        start = _coerce_time(start_time, 'start time')
        end = _coerce_time(end_time, 'end time')
        if not start < end:
            raise InvalidTimeRange(f"Start time {start} must be before end time {end}")

        days = recurrence.normalize_days(recurring_days)
        if is_recurring and not days:
            raise InvalidRecurrence('Recurring bookings need at least one weekday')
        if not is_recurring and days:
            raise InvalidRecurrence('Recurring days given for a one-time booking')

        candidate = Schedule(
            user=user,
            vehicle=vehicle,
            parking_lot=lot,
            spot=spot,
            spot_label=spot.label,
            date=booking_date,
            start_time=start,
            end_time=end,
            is_recurring=bool(is_recurring),
            recurring_days=days,
            location=location or '',
            status=Schedule.STATUS_PENDING,
        )

        existing = find_conflict(spot, candidate)
        if existing is not None:
            raise ScheduleConflict(
                existing.id,
                f"Spot {spot.label} is already booked by schedule {existing.id} "
                f"({existing.start_time:%H:%M}-{existing.end_time:%H:%M})",
            )

        candidate.save()

    logger.info(f"Schedule {candidate.id} accepted for spot {spot.label} in lot {lot.id} on {candidate.date}")
    return candidate


def get_schedule(schedule_id):
    with store_errors(f"reading schedule {schedule_id}"):
        try:
            return Schedule.objects.select_related('parking_lot', 'spot').get(id=schedule_id)
        except (Schedule.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Schedule {schedule_id} not found")


def cancel(schedule_id, actor=None):
    """Cancel a booking. Cancelling an already cancelled booking changes nothing."""
    with store_errors(f"cancelling schedule {schedule_id}"), transaction.atomic():
        try:
            schedule = Schedule.objects.select_for_update().get(id=schedule_id)
        except (Schedule.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Schedule {schedule_id} not found")

        if schedule.status == Schedule.STATUS_CANCELLED:
            return schedule

        schedule.status = Schedule.STATUS_CANCELLED
        schedule.cancelled_at = timezone.now()
        schedule.save(update_fields=['status', 'cancelled_at', 'updated_at'])

    logger.info(f"Schedule {schedule.id} cancelled by {actor or 'system'}")
    return schedule


def _target_status(schedule, moment):
    if schedule.is_recurring:
        # Series go active per occurrence and return to pending in between
        if recurrence.occurrence_at(schedule, moment):
            return Schedule.STATUS_ACTIVE
        return Schedule.STATUS_PENDING
    if recurrence.is_past(schedule, moment):
        return Schedule.STATUS_COMPLETED
    if recurrence.occurrence_at(schedule, moment):
        return Schedule.STATUS_ACTIVE
    return Schedule.STATUS_PENDING


def advance(now=None):
    """Move live schedules to the status ``now`` implies.

    One-time bookings only move forward (pending, active, completed); a
    recurring series flips between pending and active without its rule
    being touched. Running it twice with the same ``now`` is a no-op the
    second time. Returns ``{schedule_id: (old_status, new_status)}``.
    """
    moment = recurrence.local_moment(now or timezone.now())
    transitions = {}

    with store_errors('advancing schedules'):
        live = Schedule.objects.filter(status__in=Schedule.LIVE_STATUSES, date__lte=moment.date()).order_by('id')
        for schedule in live:
            target = _target_status(schedule, moment)
            if target == schedule.status:
                continue
            if not schedule.is_recurring and _STATUS_RANK[target] < _STATUS_RANK[schedule.status]:
                continue
            # Only moves the row if nobody changed it since it was read, so a
            # cancel that lands in between stays cancelled
            updated = (
                Schedule.objects.filter(id=schedule.id, status=schedule.status)
                .update(status=target, updated_at=timezone.now())
            )
            if not updated:
                continue
            transitions[schedule.id] = (schedule.status, target)

    if transitions:
        logger.info(f"Advanced {len(transitions)} schedules at {moment:%Y-%m-%d %H:%M}")
    return transitions


def purge(schedule_id):
    with store_errors(f"purging schedule {schedule_id}"):
        deleted, _ = Schedule.objects.filter(id=schedule_id).delete()
    if not deleted:
        raise NotFound(f"Schedule {schedule_id} not found")
    logger.info(f"Schedule {schedule_id} purged")


def schedules_for(user=None, lot=None):
    schedules = Schedule.objects.select_related('parking_lot', 'spot', 'vehicle', 'user')
    if user is not None:
        schedules = schedules.filter(user=user)
    if lot is not None:
        schedules = schedules.filter(parking_lot=lot)
    return schedules.order_by('-date', '-start_time')
