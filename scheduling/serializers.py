from rest_framework import serializers

from accounts.models import CustomUser, Location
from core.exceptions import ValidationError as DomainValidationError
from .break_rules import parse_break_rules, serialize_break_rules
from .models import (
    Availability, Shift, ShiftCategory, ShiftSegment, ShiftTemplate, StaffCategoryRate, SwapRequest,
)
from .services import AvailabilityService


class OrganizationScopedField(serializers.PrimaryKeyRelatedField):
    """Primary key field limited to rows of the requesting user's organization"""

    def __init__(self, model, org_path='organization', **kwargs):
        self.model = model
        self.org_path = org_path
        super().__init__(**kwargs)

    def get_queryset(self):
        request = self.context.get('request')
        queryset = self.model.objects.all()
        if request is None:
            return queryset.none()
        return queryset.filter(**{self.org_path: request.user.organization})


class BreakRulesField(serializers.JSONField):
    def to_internal_value(self, data):
        data = super().to_internal_value(data)
        try:
            return serialize_break_rules(parse_break_rules(data))
        except DomainValidationError as exc:
            raise serializers.ValidationError(exc.detail)


class LocationSerializer(serializers.ModelSerializer):
    break_rules = BreakRulesField(required=False)

    class Meta:
        model = Location
        fields = [
            'id', 'name', 'address', 'latitude', 'longitude', 'radius',
            'break_rules', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, attrs):
        latitude = attrs.get('latitude', getattr(self.instance, 'latitude', None))
        longitude = attrs.get('longitude', getattr(self.instance, 'longitude', None))
        if (latitude is None) != (longitude is None):
            raise serializers.ValidationError('Latitude and longitude must be set together.')
        return attrs


class ShiftCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ShiftCategory
        fields = ['id', 'name', 'hourly_rate', 'color', 'is_active', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_name(self, value):
        if not value or len(value) > 100:
            raise serializers.ValidationError("Category name must be between 1 and 100 characters.")
        return value


class StaffCategoryRateSerializer(serializers.ModelSerializer):
    staff = OrganizationScopedField(CustomUser)
    category = OrganizationScopedField(ShiftCategory)

    class Meta:
        model = StaffCategoryRate
        fields = ['id', 'staff', 'category', 'hourly_rate']
        read_only_fields = ['id']


class ShiftSegmentSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)

    class Meta:
        model = ShiftSegment
        fields = ['id', 'start', 'end', 'category', 'category_name']


class SegmentInputSerializer(serializers.Serializer):
    start = serializers.DateTimeField()
    end = serializers.DateTimeField()
    category = OrganizationScopedField(ShiftCategory)


class ReplaceSegmentsSerializer(serializers.Serializer):
    segments = SegmentInputSerializer(many=True, allow_empty=True)


class ShiftSerializer(serializers.ModelSerializer):
    segments = ShiftSegmentSerializer(many=True, read_only=True)
    assigned_to_name = serializers.CharField(source='assigned_to.get_full_name', read_only=True, default=None)
    location_name = serializers.CharField(source='location.name', read_only=True, default=None)
    category_name = serializers.CharField(source='category.name', read_only=True, default=None)
    scheduled_hours = serializers.SerializerMethodField()
    has_availability = serializers.SerializerMethodField()

    class Meta:
        model = Shift
        fields = [
            'id', 'title', 'description', 'start', 'end', 'scheduled_break_minutes', 'scheduled_hours',
            'location', 'location_name', 'category', 'category_name',
            'assigned_to', 'assigned_to_name', 'status', 'is_archived', 'archived_at',
            'segments', 'has_availability', 'created_by', 'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_scheduled_hours(self, obj):
        return round(obj.scheduled_hours, 2)

    def get_has_availability(self, obj):
        """Advisory only: whether the assignee stated availability for this slot"""
        if obj.assigned_to_id is None:
            return None
        return AvailabilityService.has_stated_availability(obj.assigned_to, obj.start, obj.end)


class ShiftWriteSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    scheduled_break_minutes = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    location = OrganizationScopedField(Location, required=False, allow_null=True)
    category = OrganizationScopedField(ShiftCategory, required=False, allow_null=True)
    assigned_to = OrganizationScopedField(CustomUser, required=False, allow_null=True)
    status = serializers.ChoiceField(choices=['CONFIRMED'], required=False)

    def validate(self, attrs):
        if self.instance is None:
            missing = [field for field in ('start', 'end') if field not in attrs]
            if missing:
                raise serializers.ValidationError({field: 'This field is required.' for field in missing})
        return attrs


class AssignShiftSerializer(serializers.Serializer):
    staff = OrganizationScopedField(CustomUser, allow_null=True)


class ShiftTemplateSerializer(serializers.ModelSerializer):
    location = OrganizationScopedField(Location, required=False, allow_null=True)
    category = OrganizationScopedField(ShiftCategory, required=False, allow_null=True)

    class Meta:
        model = ShiftTemplate
        fields = [
            'id', 'name', 'start_time', 'end_time', 'location', 'category',
            'description', 'is_active', 'created_at',
        ]
        read_only_fields = ['id', 'created_at']


class ApplyTemplateSerializer(serializers.Serializer):
    date = serializers.DateField()
    assigned_to = OrganizationScopedField(CustomUser, required=False, allow_null=True)


class AvailabilitySerializer(serializers.ModelSerializer):
    class Meta:
        model = Availability
        fields = [
            'id', 'staff', 'is_recurring', 'day_of_week', 'specific_date',
            'start_time', 'end_time', 'notes', 'created_at',
        ]
        read_only_fields = ['id', 'staff', 'created_at']

    def validate(self, attrs):
        is_recurring = attrs.get('is_recurring', getattr(self.instance, 'is_recurring', True))
        day_of_week = attrs.get('day_of_week', getattr(self.instance, 'day_of_week', None))
        specific_date = attrs.get('specific_date', getattr(self.instance, 'specific_date', None))
        start_time = attrs.get('start_time', getattr(self.instance, 'start_time', None))
        end_time = attrs.get('end_time', getattr(self.instance, 'end_time', None))

        if is_recurring and day_of_week is None:
            raise serializers.ValidationError({'day_of_week': 'Recurring availability needs a day of week.'})
        if not is_recurring and specific_date is None:
            raise serializers.ValidationError({'specific_date': 'One-off availability needs a date.'})
        if start_time and end_time and start_time >= end_time:
            raise serializers.ValidationError({'end_time': 'End time must be after start time.'})
        return attrs


class SwapRequestSerializer(serializers.ModelSerializer):
    requester_name = serializers.CharField(source='requester.get_full_name', read_only=True)
    shift_title = serializers.CharField(source='shift.title', read_only=True)
    shift_start = serializers.DateTimeField(source='shift.start', read_only=True)
    shift_end = serializers.DateTimeField(source='shift.end', read_only=True)

    class Meta:
        model = SwapRequest
        fields = [
            'id', 'shift', 'shift_title', 'shift_start', 'shift_end',
            'requester', 'requester_name', 'request_type', 'proposed_to', 'replacement',
            'status', 'request_message', 'resolved_by', 'resolved_at', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class SwapRequestCreateSerializer(serializers.Serializer):
    shift = OrganizationScopedField(Shift)
    request_type = serializers.ChoiceField(choices=SwapRequest.TYPE_CHOICES)
    proposed_to = OrganizationScopedField(CustomUser, required=False, allow_null=True)
    message = serializers.CharField(required=False, allow_blank=True, default='')


class SwapRequestResolveSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    replacement = OrganizationScopedField(CustomUser, required=False, allow_null=True)
