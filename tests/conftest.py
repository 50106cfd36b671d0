import datetime as dt

import pytest
from rest_framework.test import APIClient

from parking_lots.layout import create_lot
from users.models import User


@pytest.fixture
def admin_user(db):
    return User.objects.create_user(email='admin@calvin.edu', name='Admin User', password='adminpass123', role='admin')


@pytest.fixture
def client_user(db):
    return User.objects.create_user(email='john.smith@calvin.edu', name='John Smith', password='clientpass123')


@pytest.fixture
def admin_api(admin_user):
    api = APIClient()
    api.force_authenticate(user=admin_user)
    return api


@pytest.fixture
def client_api(client_user):
    api = APIClient()
    api.force_authenticate(user=client_user)
    return api


@pytest.fixture
def north_lot(db):
    """The 4x10 'North Lot' with a driveway across column 4 of the middle rows."""
    return create_lot('North Lot', 4, 10, [[1, 4], [2, 4]])


@pytest.fixture
def monday():
    return dt.date(2025, 1, 6)
