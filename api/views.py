from django.contrib.auth import get_user_model
from django.db import connection, OperationalError, InterfaceError
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from rest_framework.views import APIView
from rest_framework.permissions import AllowAny, IsAuthenticated, BasePermission, SAFE_METHODS
from rest_framework.response import Response
from rest_framework import status
import logging
from vehicles.models import Vehicle
from parking_lots.exceptions import ParkingError, NotFound
from parking_lots.models import ParkingLot
from parking_lots import layout, registry
from schedules import scheduler
from schedules.occupancy import occupancy_summary
from issues.models import Issue
from .serializers import (
    UserSerializer, VehicleSerializer, ParkingLotSerializer, SpotSerializer,
    ScheduleSerializer, IssueSerializer,
)

# Initialize logger
logger = logging.getLogger(__name__)

User = get_user_model()


def is_parking_admin(user):
    return bool(getattr(user, 'is_parking_admin', False))


class IsParkingAdmin(BasePermission):
    def has_permission(self, request, view):
        return is_parking_admin(request.user)


class IsParkingAdminOrReadOnly(BasePermission):
    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return is_parking_admin(request.user)


def error_response(exc):
    return Response(exc.as_response_data(), status=exc.http_status)


def _field(data, name, alias, default=None):
    """Accept both snake_case and camelCase request keys."""
    if name in data:
        return data.get(name)
    return data.get(alias, default)


def _get_lot(lot_id):
    try:
        return ParkingLot.objects.get(id=lot_id)
    except ParkingLot.DoesNotExist:
        raise NotFound(f"Parking lot {lot_id} not found")


class HealthAPIView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        try:
            with connection.cursor() as cursor:
                cursor.execute('SELECT 1')
        except (OperationalError, InterfaceError) as e:
            logger.error(f"Health check failed: {str(e)}")
            return Response(
                {'status': 'unhealthy', 'database': 'disconnected', 'code': 'StoreUnavailable'},
                status=status.HTTP_503_SERVICE_UNAVAILABLE
            )
        return Response({
            'status': 'healthy',
            'database': 'connected',
            'timestamp': timezone.now().isoformat(),
        }, status=status.HTTP_200_OK)


class UserProfileAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        logger.info(f"Profile retrieved for user {request.user.email}")
        return Response(UserSerializer(request.user).data, status=status.HTTP_200_OK)


class VehicleListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        vehicles = Vehicle.objects.filter(user=request.user)
        return Response(VehicleSerializer(vehicles, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = VehicleSerializer(data=request.data, context={'request': request})
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Vehicle {serializer.data['license_plate']} added for user {request.user.email}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        logger.error(f"Vehicle creation failed for user {request.user.email}: {serializer.errors}")
        return Response({'status': 'error', 'message': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)


class VehicleDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def _get_vehicle(self, request, vehicle_id):
        vehicles = Vehicle.objects.all() if is_parking_admin(request.user) else Vehicle.objects.filter(user=request.user)
        return vehicles.get(id=vehicle_id)

    def _not_found(self, request, vehicle_id):
        logger.error(f"Vehicle not found for user {request.user.email}, id: {vehicle_id}")
        return Response(
            {'status': 'error', 'code': 'NotFound', 'message': 'Vehicle not found or not authorized'},
            status=status.HTTP_404_NOT_FOUND
        )

    def get(self, request, vehicle_id):
        try:
            vehicle = self._get_vehicle(request, vehicle_id)
        except Vehicle.DoesNotExist:
            return self._not_found(request, vehicle_id)
        return Response(VehicleSerializer(vehicle).data, status=status.HTTP_200_OK)

    def put(self, request, vehicle_id):
        try:
            vehicle = self._get_vehicle(request, vehicle_id)
        except Vehicle.DoesNotExist:
            return self._not_found(request, vehicle_id)
        serializer = VehicleSerializer(vehicle, data=request.data, partial=True, context={'request': request})
        if serializer.is_valid():
            serializer.save()
            logger.info(f"Vehicle {vehicle.license_plate} updated by {request.user.email}")
            return Response(serializer.data, status=status.HTTP_200_OK)
        return Response({'status': 'error', 'message': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

    def delete(self, request, vehicle_id):
        try:
            vehicle = self._get_vehicle(request, vehicle_id)
        except Vehicle.DoesNotExist:
            return self._not_found(request, vehicle_id)
        license_plate = vehicle.license_plate
        vehicle.delete()
        logger.info(f"Vehicle {license_plate} deleted by {request.user.email}")
        return Response(
            {'status': 'success', 'message': 'Vehicle deleted successfully'},
            status=status.HTTP_204_NO_CONTENT
        )


class ParkingLotListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated, IsParkingAdminOrReadOnly]

    def get(self, request):
        lots = ParkingLot.objects.prefetch_related('aisles').order_by('name')
        return Response(ParkingLotSerializer(lots, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        name = request.data.get('name')
        if not name:
            return Response(
                {'status': 'error', 'code': 'InvalidGeometry', 'message': 'Lot name is required'},
                status=status.HTTP_400_BAD_REQUEST
            )
        try:
            lot = layout.create_lot(
                name,
                request.data.get('rows'),
                request.data.get('cols'),
                _field(request.data, 'aisles', 'mergedAisles', []),
            )
        except ParkingError as e:
            logger.warning(f"Lot creation rejected for user {request.user.email}: {e.message}")
            return error_response(e)
        return Response(ParkingLotSerializer(lot).data, status=status.HTTP_201_CREATED)


class ParkingLotDetailAPIView(APIView):
    permission_classes = [IsAuthenticated, IsParkingAdminOrReadOnly]

    def get(self, request, lot_id):
        try:
            lot = _get_lot(lot_id)
        except NotFound as e:
            return error_response(e)
        return Response(ParkingLotSerializer(lot).data, status=status.HTTP_200_OK)

    def put(self, request, lot_id):
        try:
            lot = layout.resize(
                lot_id,
                request.data.get('rows'),
                request.data.get('cols'),
                _field(request.data, 'aisles', 'mergedAisles', []),
                name=request.data.get('name'),
            )
        except ParkingError as e:
            logger.warning(f"Resize of lot {lot_id} rejected: {e.message}")
            return error_response(e)
        return Response(ParkingLotSerializer(lot).data, status=status.HTTP_200_OK)

    def delete(self, request, lot_id):
        try:
            layout.delete_lot(lot_id)
        except ParkingError as e:
            return error_response(e)
        return Response({'status': 'success', 'message': 'Parking lot deleted'}, status=status.HTTP_200_OK)


class AisleToggleAPIView(APIView):
    permission_classes = [IsAuthenticated, IsParkingAdmin]

    def post(self, request, lot_id):
        try:
            lot = layout.toggle_aisle(lot_id, request.data)
        except ParkingError as e:
            logger.warning(f"Aisle toggle on lot {lot_id} rejected: {e.message}")
            return error_response(e)
        return Response(ParkingLotSerializer(lot).data, status=status.HTTP_200_OK)


class SpotListAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, lot_id):
        try:
            lot = _get_lot(lot_id)
        except NotFound as e:
            return error_response(e)
        include_retired = request.query_params.get('include_retired', '').lower() in ('1', 'true', 'yes')
        spots = registry.list_spots(lot, include_retired=include_retired)
        return Response(SpotSerializer(spots, many=True).data, status=status.HTTP_200_OK)


class SpotStatusAPIView(APIView):
    permission_classes = [IsAuthenticated, IsParkingAdmin]

    def post(self, request, lot_id, label):
        new_status = request.data.get('status')
        try:
            spot, advisories = registry.set_manual_status(lot_id, label, new_status)
        except ParkingError as e:
            logger.warning(f"Status change of spot {label} in lot {lot_id} rejected: {e.message}")
            return error_response(e)
        return Response({
            'status': 'success',
            'spot': SpotSerializer(spot).data,
            'advisories': [
                {'scheduleId': schedule_id, 'message': 'Booking is honoured on a disabled spot'}
                for schedule_id in advisories
            ],
        }, status=status.HTTP_200_OK)


class OccupancyAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, lot_id):
        try:
            lot = _get_lot(lot_id)
        except NotFound as e:
            return error_response(e)

        at = timezone.now()
        raw_at = request.query_params.get('at')
        if raw_at:
            try:
                at = parse_datetime(raw_at)
            except ValueError:
                at = None
            if at is None:
                return Response(
                    {'status': 'error', 'code': 'InvalidTimeRange', 'message': f'Invalid timestamp {raw_at}'},
                    status=status.HTTP_400_BAD_REQUEST
                )
            if timezone.is_naive(at):
                at = timezone.make_aware(at)

        try:
            summary = occupancy_summary(lot, at)
        except ParkingError as e:
            return error_response(e)
        summary['lot'] = lot.id
        summary['at'] = at.isoformat()
        return Response(summary, status=status.HTTP_200_OK)


class ScheduleListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user_id = request.query_params.get('user')
        lot_id = request.query_params.get('lot')
        if (user_id and not user_id.isdigit()) or (lot_id and not lot_id.isdigit()):
            return Response(
                {'status': 'error', 'message': 'user and lot filters must be numeric ids'},
                status=status.HTTP_400_BAD_REQUEST
            )
        schedules = scheduler.schedules_for(
            user=user_id if user_id else None,
            lot=lot_id if lot_id else None,
        )
        return Response(ScheduleSerializer(schedules, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        data = request.data
        user = request.user
        user_id = _field(data, 'user_id', 'userId')
        if user_id and str(user_id) != str(request.user.id):
            if not is_parking_admin(request.user):
                return Response(
                    {'status': 'error', 'message': 'Cannot book on behalf of another user'},
                    status=status.HTTP_403_FORBIDDEN
                )
            user = User.objects.filter(id=user_id).first()
            if user is None:
                return Response({'status': 'error', 'message': 'User not found'}, status=status.HTTP_400_BAD_REQUEST)

        vehicle = None
        vehicle_id = _field(data, 'vehicle_id', 'vehicleId')
        if vehicle_id:
            vehicle = Vehicle.objects.filter(id=vehicle_id).first()
            if vehicle is None:
                return Response({'status': 'error', 'message': 'Vehicle not found'}, status=status.HTTP_400_BAD_REQUEST)

        is_recurring = _field(data, 'is_recurring', 'isRecurring', False)
        if isinstance(is_recurring, str):
            is_recurring = is_recurring.lower() in ('1', 'true', 'yes')

        try:
            schedule = scheduler.propose(
                _field(data, 'lot_id', 'lotId'),
                _field(data, 'spot_label', 'spotLabel'),
                data.get('date'),
                _field(data, 'start_time', 'startTime'),
                _field(data, 'end_time', 'endTime'),
                is_recurring=bool(is_recurring),
                recurring_days=_field(data, 'recurring_days', 'recurringDays'),
                user=user,
                vehicle=vehicle,
                location=data.get('location', ''),
            )
        except ParkingError as e:
            logger.warning(f"Booking rejected for user {request.user.email}: {e.code} {e.message}")
            return error_response(e)
        return Response(ScheduleSerializer(schedule).data, status=status.HTTP_201_CREATED)


class ScheduleDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, schedule_id):
        try:
            schedule = scheduler.get_schedule(schedule_id)
        except ParkingError as e:
            return error_response(e)
        return Response(ScheduleSerializer(schedule).data, status=status.HTTP_200_OK)

    def delete(self, request, schedule_id):
        try:
            schedule = scheduler.cancel(schedule_id, actor=request.user.email)
        except ParkingError as e:
            return error_response(e)
        return Response({
            'status': 'success',
            'message': 'Schedule cancelled',
            'schedule': ScheduleSerializer(schedule).data,
        }, status=status.HTTP_200_OK)


class SchedulePurgeAPIView(APIView):
    permission_classes = [IsAuthenticated, IsParkingAdmin]

    def delete(self, request, schedule_id):
        try:
            scheduler.purge(schedule_id)
        except ParkingError as e:
            return error_response(e)
        logger.info(f"Schedule {schedule_id} purged by {request.user.email}")
        return Response({'status': 'success', 'message': 'Schedule purged'}, status=status.HTTP_200_OK)


class IssueListCreateAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        issues = Issue.objects.all().order_by('-created_at')
        if request.query_params.get('unread', '').lower() in ('1', 'true', 'yes'):
            issues = issues.filter(is_read=False)
        if request.query_params.get('status'):
            issues = issues.filter(status=request.query_params['status'])
        if request.query_params.get('spot'):
            issues = issues.filter(spot_number=request.query_params['spot'].strip().upper())
        return Response(IssueSerializer(issues, many=True).data, status=status.HTTP_200_OK)

    def post(self, request):
        serializer = IssueSerializer(data=request.data)
        if serializer.is_valid():
            user_name = serializer.validated_data.get('user_name') or request.user.name
            serializer.save(user=request.user, user_name=user_name)
            logger.info(f"Issue reported by {request.user.email} for spot {serializer.data['spot_number']}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        logger.error(f"Issue creation failed for user {request.user.email}: {serializer.errors}")
        return Response({'status': 'error', 'message': serializer.errors}, status=status.HTTP_400_BAD_REQUEST)


class IssueDetailAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, issue_id):
        try:
            issue = Issue.objects.get(id=issue_id)
        except Issue.DoesNotExist:
            return Response({'status': 'error', 'code': 'NotFound', 'message': 'Issue not found'},
                            status=status.HTTP_404_NOT_FOUND)
        return Response(IssueSerializer(issue).data, status=status.HTTP_200_OK)


class IssueReadAPIView(APIView):
    permission_classes = [IsAuthenticated]

    def patch(self, request, issue_id):
        try:
            issue = Issue.objects.get(id=issue_id)
        except Issue.DoesNotExist:
            return Response({'status': 'error', 'code': 'NotFound', 'message': 'Issue not found'},
                            status=status.HTTP_404_NOT_FOUND)
        issue.is_read = True
        issue.save(update_fields=['is_read', 'updated_at'])
        return Response(IssueSerializer(issue).data, status=status.HTTP_200_OK)
