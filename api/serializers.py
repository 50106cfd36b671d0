from rest_framework import serializers
from users.models import User
from vehicles.models import Vehicle
from parking_lots.models import ParkingLot, Spot
from schedules.models import Schedule
from issues.models import Issue


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'phone', 'role', 'department', 'status', 'created_at']
        read_only_fields = ['id', 'role', 'status', 'created_at']


class VehicleSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = Vehicle
        fields = ['id', 'user', 'make', 'model', 'year', 'color', 'license_plate', 'created_at']
        read_only_fields = ['id', 'user', 'created_at']

    def validate_license_plate(self, value):
        return value.upper().replace(' ', '')

    def create(self, validated_data):
        # Set the user from the request context
        validated_data['user'] = self.context['request'].user
        return super().create(validated_data)


class ParkingLotSerializer(serializers.ModelSerializer):
    aisles = serializers.SerializerMethodField()

    class Meta:
        model = ParkingLot
        fields = ['id', 'name', 'rows', 'cols', 'capacity', 'aisles', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_aisles(self, obj):
        return [[cell.row, cell.col] for cell in obj.aisles.all()]


class SpotSerializer(serializers.ModelSerializer):
    class Meta:
        model = Spot
        fields = ['id', 'label', 'row', 'col', 'status', 'is_retired', 'updated_at']
        read_only_fields = fields


class ScheduleSerializer(serializers.ModelSerializer):
    lot_name = serializers.SerializerMethodField()

    class Meta:
        model = Schedule
        fields = [
            'id', 'user', 'vehicle', 'parking_lot', 'lot_name', 'spot_label',
            'date', 'start_time', 'end_time', 'is_recurring', 'recurring_days',
            'location', 'status', 'cancelled_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_lot_name(self, obj):
        """Parking lot name for display"""
        return obj.parking_lot.name if obj.parking_lot else "N/A"


class IssueSerializer(serializers.ModelSerializer):
    class Meta:
        model = Issue
        fields = [
            'id', 'user', 'user_name', 'message', 'spot_number', 'status',
            'is_read', 'created_at', 'updated_at', 'resolved_at',
        ]
        read_only_fields = ['id', 'user', 'status', 'is_read', 'created_at', 'updated_at', 'resolved_at']
        extra_kwargs = {'user_name': {'required': False}}

    def validate_spot_number(self, value):
        return value.strip().upper()
