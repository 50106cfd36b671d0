"""Live status of every spot in a lot, derived on read.

A manually disabled spot always shows ``disabled``. Otherwise the bookings in
effect at the requested moment decide: an active one makes the spot
``occupied``, a pending one ``reserved``; with neither it is ``available``.
Nothing is written.
"""
from django.db.models import Q
from django.utils import timezone

from parking_lots.exceptions import store_errors
from parking_lots.models import Spot
from . import recurrence
from .models import Schedule

# Most restrictive wins when several bookings are in effect
_PRECEDENCE = {
    Spot.STATUS_AVAILABLE: 0,
    Spot.STATUS_RESERVED: 1,
    Spot.STATUS_OCCUPIED: 2,
}

_BOOKING_STATUS = {
    Schedule.STATUS_PENDING: Spot.STATUS_RESERVED,
    Schedule.STATUS_ACTIVE: Spot.STATUS_OCCUPIED,
}


def occupancy_of(lot, at=None):
    """Map each spot label of ``lot`` to its status at ``at`` (default: now)."""
    with store_errors(f"reading occupancy of lot {lot.id}"):
        return _occupancy_of(lot, at)


def _occupancy_of(lot, at):
    moment = recurrence.local_moment(at or timezone.now())
    day = moment.date()

    in_effect = (
        Schedule.objects.filter(parking_lot=lot, status__in=Schedule.LIVE_STATUSES)
        .filter(Q(is_recurring=False, date=day) | Q(is_recurring=True, date__lte=day))
        .filter(start_time__lte=moment.time(), end_time__gt=moment.time())
    )
    booked = {}
    for schedule in in_effect:
        if not recurrence.occurrence_at(schedule, moment):
            continue
        status = _BOOKING_STATUS[schedule.status]
        current = booked.get(schedule.spot_id, Spot.STATUS_AVAILABLE)
        if _PRECEDENCE[status] > _PRECEDENCE[current]:
            booked[schedule.spot_id] = status

    occupancy = {}
    for spot in Spot.objects.filter(parking_lot=lot, is_retired=False).order_by('row', 'col'):
        if spot.status == Spot.STATUS_DISABLED:
            occupancy[spot.label] = Spot.STATUS_DISABLED
        else:
            occupancy[spot.label] = booked.get(spot.id, Spot.STATUS_AVAILABLE)
    return occupancy


def occupancy_summary(lot, at=None):
    occupancy = occupancy_of(lot, at)
    counts = {status: 0 for status, _ in Spot.STATUS_CHOICES}
    for status in occupancy.values():
        counts[status] += 1
    return {
        'capacity': lot.capacity,
        'counts': counts,
        'spots': occupancy,
    }
