import pytest
from django.db import OperationalError
from django.db.models import QuerySet
from rest_framework.test import APIClient

from parking_lots.models import Spot
from schedules import scheduler
from schedules.models import Schedule


def booking(lot_id, label='A1', **overrides):
    body = {
        'lotId': lot_id,
        'spotLabel': label,
        'date': '2025-01-06',
        'startTime': '09:00',
        'endTime': '10:00',
        'isRecurring': False,
        'recurringDays': [],
    }
    body.update(overrides)
    return body


def test_health_is_public(db):
    response = APIClient().get('/api/health/')
    assert response.status_code == 200
    assert response.data['database'] == 'connected'


def test_endpoints_require_authentication(db):
    assert APIClient().get('/api/lots/').status_code == 401


def test_admin_creates_a_lot(admin_api):
    response = admin_api.post('/api/lots/', {'name': 'North Lot', 'rows': 4, 'cols': 10, 'aisles': [[1, 4]]}, format='json')
    assert response.status_code == 201
    assert response.data['capacity'] == 39
    assert response.data['aisles'] == [[1, 4]]


def test_invalid_geometry_is_a_bad_request(admin_api):
    response = admin_api.post('/api/lots/', {'name': 'Bad Lot', 'rows': 4, 'cols': 10, 'aisles': [[9, 9]]}, format='json')
    assert response.status_code == 400
    assert response.data['code'] == 'InvalidGeometry'


def test_clients_cannot_edit_layouts(client_api, north_lot):
    response = client_api.post('/api/lots/', {'name': 'Mine', 'rows': 1, 'cols': 1}, format='json')
    assert response.status_code == 403
    assert client_api.get(f'/api/lots/{north_lot.id}/').status_code == 200


def test_resize_conflict_is_reported(admin_api, client_api, north_lot):
    assert client_api.post('/api/schedules/', booking(north_lot.id, 'D10'), format='json').status_code == 201
    response = admin_api.put(f'/api/lots/{north_lot.id}/', {'rows': 3, 'cols': 10, 'aisles': []}, format='json')
    assert response.status_code == 409
    assert response.data['code'] == 'ConflictingResize'
    assert response.data['spots'] == ['D10']


def test_resize_and_toggle(admin_api, north_lot):
    response = admin_api.put(f'/api/lots/{north_lot.id}/', {'rows': 3, 'cols': 10, 'mergedAisles': [[1, 4]]}, format='json')
    assert response.status_code == 200
    assert response.data['capacity'] == 29

    response = admin_api.post(f'/api/lots/{north_lot.id}/aisles/toggle/', {'row': 1, 'col': 4}, format='json')
    assert response.status_code == 200
    assert response.data['capacity'] == 30


def test_spot_listing(client_api, north_lot):
    response = client_api.get(f'/api/lots/{north_lot.id}/spots/')
    assert response.status_code == 200
    assert len(response.data) == 38
    assert response.data[0]['label'] == 'A1'


def test_manual_status_endpoint(admin_api, client_api, north_lot):
    booked = client_api.post('/api/schedules/', booking(north_lot.id), format='json').data

    response = admin_api.post(f'/api/lots/{north_lot.id}/spots/a1/status/', {'status': 'disabled'}, format='json')
    assert response.status_code == 200
    assert response.data['spot']['status'] == 'disabled'
    assert [a['scheduleId'] for a in response.data['advisories']] == [booked['id']]

    response = admin_api.post(f'/api/lots/{north_lot.id}/spots/A1/status/', {'status': 'reserved'}, format='json')
    assert response.status_code == 400
    assert Spot.objects.get(parking_lot=north_lot, label='A1').status == 'disabled'


def test_booking_accept_and_conflict(client_api, north_lot, client_user):
    first = client_api.post('/api/schedules/', booking(north_lot.id, startTime='09:00', endTime='10:30'), format='json')
    assert first.status_code == 201
    assert first.data['status'] == 'pending'
    assert first.data['user'] == client_user.id

    second = client_api.post('/api/schedules/', booking(north_lot.id, startTime='10:00', endTime='11:00'), format='json')
    assert second.status_code == 409
    assert second.data['reason'] == 'ScheduleConflict'
    assert second.data['conflictingScheduleId'] == first.data['id']


@pytest.mark.parametrize('overrides, code', [
    ({'spotLabel': 'Z1'}, 'InvalidSpot'),
    ({'startTime': '10:00', 'endTime': '09:00'}, 'InvalidTimeRange'),
    ({'isRecurring': True, 'recurringDays': []}, 'InvalidRecurrence'),
])
def test_booking_validation_errors(client_api, north_lot, overrides, code):
    response = client_api.post('/api/schedules/', booking(north_lot.id, **overrides), format='json')
    assert response.status_code == 400
    assert response.data['code'] == code


def test_booking_snake_case_and_recurring(client_api, north_lot):
    response = client_api.post('/api/schedules/', {
        'lot_id': north_lot.id,
        'spot_label': 'C3',
        'date': '2025-01-06',
        'start_time': '08:00',
        'end_time': '09:00',
        'is_recurring': True,
        'recurring_days': ['Monday', 'Wednesday'],
    }, format='json')
    assert response.status_code == 201
    assert response.data['recurring_days'] == [0, 2]


def test_clients_cannot_book_for_someone_else(client_api, north_lot, admin_user):
    response = client_api.post('/api/schedules/', booking(north_lot.id, userId=admin_user.id), format='json')
    assert response.status_code == 403


def test_cancel_twice_and_not_found(client_api, north_lot):
    created = client_api.post('/api/schedules/', booking(north_lot.id), format='json').data
    first = client_api.delete(f"/api/schedules/{created['id']}/")
    second = client_api.delete(f"/api/schedules/{created['id']}/")
    assert first.status_code == second.status_code == 200
    assert first.data['schedule'] == second.data['schedule']
    assert client_api.delete('/api/schedules/9999/').status_code == 404


def test_purge_is_admin_only(admin_api, client_api, north_lot):
    created = client_api.post('/api/schedules/', booking(north_lot.id), format='json').data
    assert client_api.delete(f"/api/schedules/{created['id']}/purge/").status_code == 403
    assert admin_api.delete(f"/api/schedules/{created['id']}/purge/").status_code == 200
    assert not Schedule.objects.exists()


def test_schedule_listing_filters(client_api, north_lot, client_user):
    client_api.post('/api/schedules/', booking(north_lot.id), format='json')
    response = client_api.get(f'/api/schedules/?user={client_user.id}&lot={north_lot.id}')
    assert response.status_code == 200
    assert len(response.data) == 1
    assert response.data[0]['lot_name'] == 'North Lot'
    assert client_api.get('/api/schedules/?lot=abc').status_code == 400


def test_occupancy_endpoint(client_api, north_lot):
    client_api.post('/api/schedules/', booking(north_lot.id), format='json')
    response = client_api.get(f'/api/lots/{north_lot.id}/occupancy/', {'at': '2025-01-06T09:30:00'})
    assert response.status_code == 200
    assert response.data['spots']['A1'] == 'reserved'
    assert response.data['counts']['reserved'] == 1
    assert client_api.get(f'/api/lots/{north_lot.id}/occupancy/', {'at': 'yesterday'}).status_code == 400
    assert client_api.get('/api/lots/9999/occupancy/').status_code == 404


def test_delete_lot(admin_api, north_lot):
    assert admin_api.delete(f'/api/lots/{north_lot.id}/').status_code == 200
    assert admin_api.get(f'/api/lots/{north_lot.id}/').status_code == 404


def test_vehicles_belong_to_the_caller(client_api, client_user):
    response = client_api.post('/api/vehicles/', {
        'make': 'Honda', 'model': 'Civic', 'year': '2019', 'color': 'Blue', 'license_plate': 'abc 123',
    }, format='json')
    assert response.status_code == 201
    assert response.data['license_plate'] == 'ABC123'
    assert response.data['user']['id'] == client_user.id
    assert len(client_api.get('/api/vehicles/').data) == 1


def test_booking_with_vehicle(client_api, north_lot):
    vehicle = client_api.post('/api/vehicles/', {
        'make': 'Ford', 'model': 'Focus', 'year': '2020', 'license_plate': 'XYZ789',
    }, format='json').data
    response = client_api.post('/api/schedules/', booking(north_lot.id, vehicleId=vehicle['id']), format='json')
    assert response.status_code == 201
    assert response.data['vehicle'] == vehicle['id']


def test_issues_by_spot_and_read_flag(client_api):
    created = client_api.post('/api/issues/', {'message': 'Pothole', 'spot_number': 'a1'}, format='json')
    assert created.status_code == 201
    assert created.data['user_name'] == 'John Smith'
    client_api.post('/api/issues/', {'message': 'Light out', 'spot_number': 'B2'}, format='json')

    by_spot = client_api.get('/api/issues/', {'spot': 'A1'})
    assert [issue['message'] for issue in by_spot.data] == ['Pothole']

    assert client_api.patch(f"/api/issues/{created.data['id']}/read/").status_code == 200
    unread = client_api.get('/api/issues/', {'unread': 'true'})
    assert [issue['message'] for issue in unread.data] == ['Light out']


def test_issue_detail(client_api):
    created = client_api.post('/api/issues/', {'message': 'Gate stuck', 'spot_number': 'C3'}, format='json')
    response = client_api.get(f"/api/issues/{created.data['id']}/")
    assert response.status_code == 200
    assert response.data['spot_number'] == 'C3'
    assert client_api.get('/api/issues/9999/').status_code == 404


def test_vehicle_detail_update_and_delete(client_api, admin_api):
    vehicle = client_api.post('/api/vehicles/', {
        'make': 'Toyota', 'model': 'Corolla', 'year': '2018', 'license_plate': 'KDA 001',
    }, format='json').data

    assert client_api.get(f"/api/vehicles/{vehicle['id']}/").data['license_plate'] == 'KDA001'
    updated = client_api.put(f"/api/vehicles/{vehicle['id']}/", {'color': 'Silver'}, format='json')
    assert updated.status_code == 200
    assert updated.data['color'] == 'Silver'
    assert updated.data['model'] == 'Corolla'

    # Admins see every vehicle
    assert admin_api.get(f"/api/vehicles/{vehicle['id']}/").status_code == 200

    assert client_api.delete(f"/api/vehicles/{vehicle['id']}/").status_code == 204
    assert client_api.get(f"/api/vehicles/{vehicle['id']}/").status_code == 404


def test_vehicles_of_other_users_are_hidden(client_api, admin_api):
    vehicle = admin_api.post('/api/vehicles/', {
        'make': 'Tesla', 'model': 'Model 3', 'year': '2022', 'license_plate': 'ADM001',
    }, format='json').data
    assert client_api.get(f"/api/vehicles/{vehicle['id']}/").status_code == 404
    assert client_api.delete(f"/api/vehicles/{vehicle['id']}/").status_code == 404
    assert admin_api.get(f"/api/vehicles/{vehicle['id']}/").status_code == 200


def test_lost_store_is_service_unavailable(client_api, north_lot, monkeypatch):
    booked = scheduler.propose(north_lot.id, 'A1', '2025-01-06', '09:00', '10:00')

    def lost(*args, **kwargs):
        raise OperationalError('server closed the connection unexpectedly')

    monkeypatch.setattr(QuerySet, 'select_for_update', lost)
    response = client_api.delete(f'/api/schedules/{booked.id}/')
    assert response.status_code == 503
    assert response.data['code'] == 'StoreUnavailable'

    monkeypatch.undo()
    booked.refresh_from_db()
    assert booked.status == Schedule.STATUS_PENDING
