import logging
import re

from django.db import transaction

from schedules.models import Schedule

from .exceptions import InvalidStatus, NotFound, store_errors
from .models import ParkingLot, Spot

logger = logging.getLogger(__name__)

# Operators may only toggle between these; reserved/occupied come from bookings
MANUAL_STATUSES = (Spot.STATUS_AVAILABLE, Spot.STATUS_DISABLED)

LABEL_RE = re.compile(r'^([A-Z]+)([1-9][0-9]*)$')


def label_for(coord):
    """Spreadsheet-style label: row letters then the 1-based column, (3, 9) -> 'D10'."""
    row, col = coord
    letters = ''
    n = row + 1
    while n:
        n, rem = divmod(n - 1, 26)
        letters = chr(ord('A') + rem) + letters
    return f"{letters}{col + 1}"


def coord_for(label):
    match = LABEL_RE.match(str(label).strip().upper())
    if not match:
        return None
    letters, number = match.groups()
    row = 0
    for ch in letters:
        row = row * 26 + (ord(ch) - ord('A') + 1)
    return (row - 1, int(number) - 1)


def ensure_spots(lot, layout):
    """Bring the lot's spots in line with ``layout``.

    Every parkable cell gets a spot (re-attaching a retired spot with the same
    label when there is one); spots on cells that are no longer parkable are
    retired: disabled and detached from the grid.
    """
    parkable = set(layout.parkable_coords())
    spots = {spot.label: spot for spot in Spot.objects.filter(parking_lot=lot)}

    retired = 0
    for spot in spots.values():
        if not spot.is_retired and spot.coord not in parkable:
            spot.is_retired = True
            spot.status = Spot.STATUS_DISABLED
            spot.row = None
            spot.col = None
            spot.save(update_fields=['is_retired', 'status', 'row', 'col', 'updated_at'])
            retired += 1

    created = []
    revived = 0
    for coord in sorted(parkable):
        label = label_for(coord)
        spot = spots.get(label)
        if spot is None:
            created.append(Spot(parking_lot=lot, label=label, row=coord[0], col=coord[1]))
        elif spot.is_retired:
            spot.is_retired = False
            spot.status = Spot.STATUS_AVAILABLE
            spot.row, spot.col = coord
            spot.save(update_fields=['is_retired', 'status', 'row', 'col', 'updated_at'])
            revived += 1
    Spot.objects.bulk_create(created)

    if created or retired or revived:
        logger.info(f"Lot {lot.id} spots synced: {len(created)} created, {revived} revived, {retired} retired")


def list_spots(lot, include_retired=False):
    spots = Spot.objects.filter(parking_lot=lot)
    if not include_retired:
        spots = spots.filter(is_retired=False)
    return spots.order_by('row', 'col', 'label')


def lookup(lot, label, include_retired=False):
    lot_id = lot.id if isinstance(lot, ParkingLot) else lot
    spots = Spot.objects.select_related('parking_lot').filter(parking_lot_id=lot_id, label=str(label).strip().upper())
    if not include_retired:
        spots = spots.filter(is_retired=False)
    spot = spots.first()
    if spot is None:
        raise NotFound(f"Spot {label} not found in lot {lot_id}")
    return spot


def set_manual_status(lot, label, status):
    """Administrative override of a spot's status.

    Returns ``(spot, advisories)`` where ``advisories`` lists the ids of live
    bookings on a spot that was just disabled; those bookings are still
    honoured, only new ones are refused.
    """
    if status not in MANUAL_STATUSES:
        raise InvalidStatus(
            f"Status '{status}' cannot be set manually; use one of {', '.join(MANUAL_STATUSES)}"
        )

    with store_errors(f"setting the status of spot {label}"), transaction.atomic():
        spot = lookup(lot, label)
        spot = Spot.objects.select_for_update().get(id=spot.id)
        spot.status = status
        spot.save(update_fields=['status', 'updated_at'])

        advisories = []
        if status == Spot.STATUS_DISABLED:
            advisories = list(
                Schedule.objects.filter(spot=spot, status__in=Schedule.LIVE_STATUSES)
                .order_by('id')
                .values_list('id', flat=True)
            )

    if advisories:
        logger.warning(f"Spot {spot} disabled with live bookings {advisories}")
    else:
        logger.info(f"Spot {spot} status set to {status}")
    return spot, advisories
