from django.utils import timezone
from rest_framework import viewsets
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.permissions import IsManager, IsManagerOrReadOnly
from .models import PayPeriod
from .serializers import PayPeriodSerializer, StaffCostQuerySerializer
from .services_payroll import staff_cost_report


@api_view(['GET'])
@permission_classes([IsManager])
def staff_costs(request):
    """
    Staff cost report for ``?month=YYYY-MM`` or ``?pay_period=<id>``,
    optionally narrowed with ``?location=<id>``.
    """
    query = StaffCostQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    report = staff_cost_report(
        request.user,
        month=query.validated_data.get('month'),
        pay_period_id=query.validated_data.get('pay_period'),
        location_id=query.validated_data.get('location'),
    )
    return Response(report)


class PayPeriodViewSet(viewsets.ModelViewSet):
    serializer_class = PayPeriodSerializer
    permission_classes = [IsManagerOrReadOnly]

    def get_queryset(self):
        queryset = PayPeriod.objects.filter(organization=self.request.user.organization)
        if self.request.query_params.get('active_only') == 'true':
            queryset = queryset.filter(is_active=True)
        if self.request.query_params.get('current') == 'true':
            today = timezone.localdate()
            queryset = queryset.filter(start_date__lte=today, end_date__gte=today)
        return queryset

    def perform_create(self, serializer):
        serializer.save(organization=self.request.user.organization)
