import datetime as dt

import pytest

from parking_lots import registry
from parking_lots.exceptions import InvalidStatus, NotFound
from parking_lots.models import Spot
from schedules import scheduler


@pytest.mark.parametrize('coord, label', [
    ((0, 0), 'A1'),
    ((3, 9), 'D10'),
    ((25, 0), 'Z1'),
    ((26, 4), 'AA5'),
])
def test_labels_round_trip(coord, label):
    assert registry.label_for(coord) == label
    assert registry.coord_for(label) == coord


def test_coord_for_rejects_malformed_labels():
    assert registry.coord_for('10A') is None
    assert registry.coord_for('A0') is None


def test_lookup_is_case_insensitive(north_lot):
    assert registry.lookup(north_lot, 'd10').label == 'D10'
    with pytest.raises(NotFound):
        registry.lookup(north_lot, 'B5')


@pytest.mark.parametrize('status', ['reserved', 'occupied', 'broken', None])
def test_booking_driven_statuses_cannot_be_set_manually(north_lot, status):
    with pytest.raises(InvalidStatus):
        registry.set_manual_status(north_lot, 'A1', status)


def test_disable_and_enable_toggle_freely(north_lot):
    spot, advisories = registry.set_manual_status(north_lot, 'A1', 'disabled')
    assert spot.status == Spot.STATUS_DISABLED
    assert advisories == []
    spot, _ = registry.set_manual_status(north_lot, 'A1', 'available')
    assert spot.status == Spot.STATUS_AVAILABLE


def test_disabling_a_booked_spot_reports_the_bookings(north_lot):
    first = scheduler.propose(north_lot.id, 'A1', dt.date(2025, 1, 6), '09:00', '10:00')
    second = scheduler.propose(north_lot.id, 'A1', dt.date(2025, 1, 7), '09:00', '10:00')
    cancelled = scheduler.propose(north_lot.id, 'A1', dt.date(2025, 1, 8), '09:00', '10:00')
    scheduler.cancel(cancelled.id)

    _, advisories = registry.set_manual_status(north_lot, 'A1', 'disabled')
    assert advisories == [first.id, second.id]
