from rest_framework import serializers

from accounts.models import CustomUser
from .models import TimeEntry


class TimeEntrySerializer(serializers.ModelSerializer):
    staff_name = serializers.CharField(source='staff.get_full_name', read_only=True)
    shift_title = serializers.CharField(source='shift.title', read_only=True, default=None)
    net_hours = serializers.SerializerMethodField()

    class Meta:
        model = TimeEntry
        fields = [
            'id', 'staff', 'staff_name', 'shift', 'shift_title',
            'clock_in', 'clock_out', 'state', 'break_start',
            'total_break_minutes', 'mandated_break_minutes', 'net_hours',
            'status', 'approved_by', 'approved_at',
            'clock_in_flag', 'clock_in_approved', 'clock_in_approved_by', 'clock_in_approved_at',
            'latitude', 'longitude', 'distance_metres', 'location_flagged', 'location_note',
            'is_manual', 'missed_clock_out', 'notes', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_net_hours(self, obj):
        return round(obj.net_hours, 2)


class ClockInSerializer(serializers.Serializer):
    latitude = serializers.FloatField(required=False, allow_null=True, min_value=-90, max_value=90)
    longitude = serializers.FloatField(required=False, allow_null=True, min_value=-180, max_value=180)
    shift_id = serializers.UUIDField(required=False, allow_null=True)

    def validate(self, attrs):
        if (attrs.get('latitude') is None) != (attrs.get('longitude') is None):
            raise serializers.ValidationError('Latitude and longitude must be provided together.')
        return attrs


class ClockOutSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, allow_blank=True)


class BreakSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['start', 'end'])


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class TimeEntryCorrectionSerializer(serializers.Serializer):
    clock_in = serializers.DateTimeField(required=False)
    clock_out = serializers.DateTimeField(required=False)
    total_break_minutes = serializers.IntegerField(required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if not attrs:
            raise serializers.ValidationError('Nothing to change.')
        return attrs


class ManualTimeEntrySerializer(serializers.Serializer):
    staff = serializers.PrimaryKeyRelatedField(queryset=CustomUser.objects.filter(is_active=True))
    clock_in = serializers.DateTimeField()
    clock_out = serializers.DateTimeField()
    break_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    shift_id = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_staff(self, value):
        request = self.context.get('request')
        if request and value.organization_id != request.user.organization_id:
            raise serializers.ValidationError('Staff member not found.')
        return value


class VerifyLocationSerializer(serializers.Serializer):
    latitude = serializers.FloatField(min_value=-90, max_value=90)
    longitude = serializers.FloatField(min_value=-180, max_value=180)
    shift_id = serializers.UUIDField(required=False, allow_null=True)
