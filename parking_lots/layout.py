"""Lot geometry: the grid extent, its aisle cells and which cells can hold a spot.

A ``LotLayout`` is an immutable value; persisted lots are turned into one with
``layout_of`` and every layout change goes through ``define_lot`` so the
aisle set is validated and the capacity recomputed exactly once.
"""
import logging
from dataclasses import dataclass, field

from django.db import transaction

from schedules.models import Schedule

from .exceptions import InvalidGeometry, ConflictingResize, NotFound, store_errors
from .models import ParkingLot, AisleCell, Spot
from .registry import ensure_spots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LotLayout:
    rows: int
    cols: int
    aisles: frozenset = field(default_factory=frozenset)
    capacity: int = 0

    def in_bounds(self, coord):
        row, col = coord
        return 0 <= row < self.rows and 0 <= col < self.cols

    def parkable_coords(self):
        return [
            (row, col)
            for row in range(self.rows)
            for col in range(self.cols)
            if (row, col) not in self.aisles
        ]


def _coerce_int(value, what):
    if isinstance(value, bool):
        raise InvalidGeometry(f"{what} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidGeometry(f"{what} must be an integer")


def _coerce_coord(raw):
    if isinstance(raw, dict):
        if 'row' not in raw or 'col' not in raw:
            raise InvalidGeometry(f"Aisle cell {raw!r} needs 'row' and 'col'")
        row, col = raw['row'], raw['col']
    else:
        try:
            row, col = raw
        except (TypeError, ValueError):
            raise InvalidGeometry(f"Aisle cell {raw!r} is not a (row, col) pair")
    return (_coerce_int(row, 'Aisle row'), _coerce_int(col, 'Aisle column'))


def define_lot(rows, cols, aisles=()):
    """Validate a grid extent and aisle set and build the layout for it.

    Raises ``InvalidGeometry`` when either dimension is below one, or when an
    aisle cell is malformed, out of bounds or listed twice.
    """
    rows = _coerce_int(rows, 'rows')
    cols = _coerce_int(cols, 'cols')
    if rows <= 0 or cols <= 0:
        raise InvalidGeometry(f"Lot dimensions must be positive, got {rows}x{cols}")

    cells = set()
    for raw in aisles or ():
        coord = _coerce_coord(raw)
        if not (0 <= coord[0] < rows and 0 <= coord[1] < cols):
            raise InvalidGeometry(f"Aisle cell {coord} is outside the {rows}x{cols} grid")
        if coord in cells:
            raise InvalidGeometry(f"Aisle cell {coord} is listed more than once")
        cells.add(coord)

    return LotLayout(rows=rows, cols=cols, aisles=frozenset(cells), capacity=rows * cols - len(cells))


def is_parkable(layout, coord):
    return layout.in_bounds(coord) and tuple(coord) not in layout.aisles


def layout_of(lot):
    aisles = frozenset(lot.aisle_coords())
    return LotLayout(rows=lot.rows, cols=lot.cols, aisles=aisles, capacity=lot.rows * lot.cols - len(aisles))


def _write_aisles(lot, layout):
    AisleCell.objects.filter(parking_lot=lot).delete()
    AisleCell.objects.bulk_create(
        AisleCell(parking_lot=lot, row=row, col=col) for row, col in sorted(layout.aisles)
    )


def create_lot(name, rows, cols, aisles=()):
    layout = define_lot(rows, cols, aisles)
    with store_errors(f"creating lot '{name}'"), transaction.atomic():
        lot = ParkingLot.objects.create(name=name, rows=layout.rows, cols=layout.cols, capacity=layout.capacity)
        _write_aisles(lot, layout)
        ensure_spots(lot, layout)
    logger.info(f"Lot {lot.id} '{name}' created: {layout.rows}x{layout.cols}, capacity {layout.capacity}")
    return lot


def _lock_removed_spots(lot, removed):
    """Lock the live spots on ``removed`` cells so no booking lands on them mid-resize."""
    if not removed:
        return []
    spots = Spot.objects.select_for_update().filter(parking_lot=lot, is_retired=False).order_by('id')
    return [spot for spot in spots if spot.coord in removed]


def _blocked_labels(spots):
    """Labels of ``spots`` that non-cancelled schedules still reference."""
    if not spots:
        return set()
    referenced = (
        Schedule.objects.filter(spot__in=[spot.id for spot in spots])
        .exclude(status=Schedule.STATUS_CANCELLED)
        .values_list('spot__label', flat=True)
    )
    return set(referenced)


def _refuse(lot, blocked):
    logger.warning(f"Resize of lot {lot.id} refused, spots with bookings: {sorted(blocked)}")
    raise ConflictingResize(
        f"Resize would remove spots with bookings: {', '.join(sorted(blocked))}",
        labels=blocked,
    )


def resize(lot_id, rows, cols, aisles=(), name=None):
    """Replace a lot's extent and aisle set.

    Cells that stop being parkable retire their spots; the change is refused
    with ``ConflictingResize`` if any of those spots is still referenced by a
    non-cancelled schedule. The spots being retired stay locked until the
    change commits, and are checked again once retired.
    """
    layout = define_lot(rows, cols, aisles)
    with store_errors(f"resizing lot {lot_id}"), transaction.atomic():
        try:
            lot = ParkingLot.objects.select_for_update().get(id=lot_id)
        except ParkingLot.DoesNotExist:
            raise NotFound(f"Parking lot {lot_id} not found")

        current = layout_of(lot)
        removed = {coord for coord in current.parkable_coords() if not is_parkable(layout, coord)}
        removed_spots = _lock_removed_spots(lot, removed)
        blocked = _blocked_labels(removed_spots)
        if blocked:
            _refuse(lot, blocked)

        lot.rows = layout.rows
        lot.cols = layout.cols
        lot.capacity = layout.capacity
        if name:
            lot.name = name
        lot.save()
        _write_aisles(lot, layout)
        ensure_spots(lot, layout)

        # Rolls the whole change back if a booking slipped in before the retire
        blocked = _blocked_labels(removed_spots)
        if blocked:
            _refuse(lot, blocked)

    logger.info(f"Lot {lot.id} resized to {layout.rows}x{layout.cols}, capacity {layout.capacity}")
    return lot


def toggle_aisle(lot_id, coord):
    """Flip one cell between aisle and spot; a resize with the extent unchanged."""
    coord = _coerce_coord(coord)
    with store_errors(f"toggling a cell of lot {lot_id}"):
        try:
            lot = ParkingLot.objects.get(id=lot_id)
        except (ParkingLot.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Parking lot {lot_id} not found")
        current = layout_of(lot)
    if not current.in_bounds(coord):
        raise InvalidGeometry(f"Cell {coord} is outside the {lot.rows}x{lot.cols} grid")
    aisles = set(current.aisles) ^ {coord}
    return resize(lot.id, lot.rows, lot.cols, sorted(aisles))


def delete_lot(lot_id):
    with store_errors(f"deleting lot {lot_id}"):
        deleted, _ = ParkingLot.objects.filter(id=lot_id).delete()
    if not deleted:
        raise NotFound(f"Parking lot {lot_id} not found")
    logger.info(f"Lot {lot_id} deleted with its spots and schedules")
