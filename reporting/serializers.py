from rest_framework import serializers

from .models import PayPeriod


class PayPeriodSerializer(serializers.ModelSerializer):
    days = serializers.IntegerField(read_only=True)

    class Meta:
        model = PayPeriod
        fields = ['id', 'name', 'start_date', 'end_date', 'pay_date', 'is_active', 'days', 'created_at']
        read_only_fields = ['id', 'days', 'created_at']

    def validate(self, attrs):
        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date < start_date:
            raise serializers.ValidationError({'end_date': 'End date must not precede the start date.'})
        return attrs


class StaffCostQuerySerializer(serializers.Serializer):
    month = serializers.RegexField(r'^\d{4}-\d{2}$', required=False)
    pay_period = serializers.UUIDField(required=False)
    location = serializers.UUIDField(required=False)

    def validate(self, attrs):
        if not attrs.get('month') and not attrs.get('pay_period'):
            raise serializers.ValidationError('Provide a month (YYYY-MM) or a pay period.')
        return attrs
