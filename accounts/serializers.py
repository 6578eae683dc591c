from rest_framework import serializers

from scheduling.serializers import BreakRulesField, OrganizationScopedField
from .models import AuditLog, CustomUser, Location, Organization


class OrganizationSerializer(serializers.ModelSerializer):
    break_rules = BreakRulesField(required=False)

    class Meta:
        model = Organization
        fields = [
            'id', 'name', 'email', 'timezone', 'currency',
            'latitude', 'longitude', 'radius', 'require_geolocation',
            'clock_in_window_minutes', 'late_grace_minutes', 'clock_out_grace_minutes',
            'break_rules', 'enforce_break_rules', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']


class CustomUserSerializer(serializers.ModelSerializer):
    organization_name = serializers.CharField(source='organization.name', read_only=True)

    class Meta:
        model = CustomUser
        fields = [
            'id', 'email', 'first_name', 'last_name', 'role', 'phone',
            'organization', 'organization_name', 'primary_location',
            'pay_type', 'hourly_rate', 'monthly_salary', 'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['id', 'email', 'organization', 'organization_name', 'created_at', 'updated_at']

    def validate_primary_location(self, value):
        request = self.context.get('request')
        if value is not None and request and value.organization_id != request.user.organization_id:
            raise serializers.ValidationError('Location not found.')
        return value

    def validate(self, attrs):
        pay_type = attrs.get('pay_type', getattr(self.instance, 'pay_type', 'HOURLY'))
        salary = attrs.get('monthly_salary', getattr(self.instance, 'monthly_salary', None))
        if pay_type == 'MONTHLY' and salary is None:
            raise serializers.ValidationError({'monthly_salary': 'Salaried staff need a monthly salary.'})
        return attrs


class AuditLogSerializer(serializers.ModelSerializer):
    user_email = serializers.CharField(source='user.email', read_only=True, default=None)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'user', 'user_email', 'action_type', 'entity_type', 'entity_id',
            'description', 'old_values', 'new_values', 'timestamp',
        ]
        read_only_fields = fields


class MemberLocationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Location
        fields = ['id', 'name']
        read_only_fields = fields


class StaffLocationsSerializer(serializers.Serializer):
    location_ids = OrganizationScopedField(Location, many=True)
