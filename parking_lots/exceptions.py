"""Error kinds raised by the layout, spot registry and reservation scheduler.

Each error carries the name the API reports (``code``) and the HTTP status the
views answer with. Validation errors are deterministic for a given input and
committed state; only ``StoreUnavailable`` is worth retrying.
"""
import logging
from contextlib import contextmanager

from django.db import OperationalError, InterfaceError

logger = logging.getLogger(__name__)


class ParkingError(Exception):
    code = 'ParkingError'
    http_status = 400

    def __init__(self, message=None):
        super().__init__(message or self.code)
        self.message = message or self.code

    def as_response_data(self):
        return {'status': 'error', 'code': self.code, 'message': self.message}


class InvalidGeometry(ParkingError):
    code = 'InvalidGeometry'


class ConflictingResize(ParkingError):
    code = 'ConflictingResize'
    http_status = 409

    def __init__(self, message=None, labels=()):
        super().__init__(message)
        self.labels = sorted(labels)

    def as_response_data(self):
        data = super().as_response_data()
        data['spots'] = self.labels
        return data


class InvalidSpot(ParkingError):
    code = 'InvalidSpot'


class SpotDisabled(ParkingError):
    code = 'SpotDisabled'


class InvalidStatus(ParkingError):
    code = 'InvalidStatus'


class InvalidTimeRange(ParkingError):
    code = 'InvalidTimeRange'


class InvalidRecurrence(ParkingError):
    code = 'InvalidRecurrence'


class ScheduleConflict(ParkingError):
    code = 'ScheduleConflict'
    http_status = 409

    def __init__(self, conflicting_schedule_id, message=None):
        super().__init__(message or f"Conflicts with schedule {conflicting_schedule_id}")
        self.conflicting_schedule_id = conflicting_schedule_id

    def as_response_data(self):
        data = super().as_response_data()
        data['reason'] = self.code
        data['conflictingScheduleId'] = self.conflicting_schedule_id
        return data


class NotFound(ParkingError):
    code = 'NotFound'
    http_status = 404


class StoreUnavailable(ParkingError):
    code = 'StoreUnavailable'
    http_status = 503


@contextmanager
def store_errors(action):
    """Report lost database connectivity during ``action`` as ``StoreUnavailable``."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        logger.error(f"Store error while {action}: {str(e)}")
        raise StoreUnavailable(f"Store unavailable while {action}") from e
