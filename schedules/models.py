from django.conf import settings
from django.db import models

from parking_lots.models import ParkingLot, Spot
from vehicles.models import Vehicle


class Schedule(models.Model):
    STATUS_PENDING = 'pending'
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]
    LIVE_STATUSES = (STATUS_PENDING, STATUS_ACTIVE)

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='schedules')
    vehicle = models.ForeignKey(Vehicle, on_delete=models.SET_NULL, null=True, blank=True, related_name='schedules')
    parking_lot = models.ForeignKey(ParkingLot, on_delete=models.CASCADE, related_name='schedules')
    spot = models.ForeignKey(Spot, on_delete=models.CASCADE, related_name='schedules')
    spot_label = models.CharField(max_length=16)
    date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_recurring = models.BooleanField(default=False)
    # Weekday numbers, Monday = 0
    recurring_days = models.JSONField(default=list, blank=True)
    location = models.CharField(max_length=255, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date', '-start_time']
        indexes = [
            models.Index(fields=['spot', 'date'], name='schedule_spot_date_idx'),
            models.Index(fields=['parking_lot', 'spot_label'], name='schedule_lot_label_idx'),
            models.Index(fields=['status'], name='schedule_status_idx'),
        ]

    def __str__(self):
        return f"{self.spot_label} {self.date} {self.start_time}-{self.end_time} ({self.status})"
