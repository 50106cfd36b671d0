from django.urls import path
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from .views import (
    HealthAPIView,
    UserProfileAPIView,
    VehicleListCreateAPIView,
    VehicleDetailAPIView,
    ParkingLotListCreateAPIView,
    ParkingLotDetailAPIView,
    AisleToggleAPIView,
    SpotListAPIView,
    SpotStatusAPIView,
    OccupancyAPIView,
    ScheduleListCreateAPIView,
    ScheduleDetailAPIView,
    SchedulePurgeAPIView,
    IssueListCreateAPIView,
    IssueDetailAPIView,
    IssueReadAPIView,
)

urlpatterns = [
    path('health/', HealthAPIView.as_view(), name='health'),
    path('token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('profile/', UserProfileAPIView.as_view(), name='profile'),
    path('vehicles/', VehicleListCreateAPIView.as_view(), name='vehicles'),
    path('vehicles/<int:vehicle_id>/', VehicleDetailAPIView.as_view(), name='vehicle-detail'),
    path('lots/', ParkingLotListCreateAPIView.as_view(), name='lots'),
    path('lots/<int:lot_id>/', ParkingLotDetailAPIView.as_view(), name='lot-detail'),
    path('lots/<int:lot_id>/aisles/toggle/', AisleToggleAPIView.as_view(), name='lot-aisle-toggle'),
    path('lots/<int:lot_id>/spots/', SpotListAPIView.as_view(), name='lot-spots'),
    path('lots/<int:lot_id>/spots/<str:label>/status/', SpotStatusAPIView.as_view(), name='spot-status'),
    path('lots/<int:lot_id>/occupancy/', OccupancyAPIView.as_view(), name='lot-occupancy'),
    path('schedules/', ScheduleListCreateAPIView.as_view(), name='schedules'),
    path('schedules/<int:schedule_id>/', ScheduleDetailAPIView.as_view(), name='schedule-detail'),
    path('schedules/<int:schedule_id>/purge/', SchedulePurgeAPIView.as_view(), name='schedule-purge'),
    path('issues/', IssueListCreateAPIView.as_view(), name='issues'),
    path('issues/<int:issue_id>/', IssueDetailAPIView.as_view(), name='issue-detail'),
    path('issues/<int:issue_id>/read/', IssueReadAPIView.as_view(), name='issue-read'),
]
