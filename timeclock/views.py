import django_filters
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from core.exceptions import NotFoundError
from core.permissions import IsManager, IsOrganizationMember, is_manager
from core.timezone_utils import local_day_bounds
from .geofence import check_geofence, resolve_target
from .models import TimeEntry
from .serializers import (
    BreakSerializer, ClockInSerializer, ClockOutSerializer, ManualTimeEntrySerializer,
    RejectSerializer, TimeEntryCorrectionSerializer, TimeEntrySerializer, VerifyLocationSerializer,
)
from .services import TimeEntryService


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def clock_in(request):
    """Clock in, optionally against a specific shift, with the device's position"""
    serializer = ClockInSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = TimeEntryService.clock_in(
        request.user,
        latitude=serializer.validated_data.get('latitude'),
        longitude=serializer.validated_data.get('longitude'),
        shift_id=serializer.validated_data.get('shift_id'),
    )
    return Response(TimeEntrySerializer(entry).data, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def take_break(request):
    serializer = BreakSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    if serializer.validated_data['action'] == 'start':
        entry = TimeEntryService.start_break(request.user)
    else:
        entry = TimeEntryService.end_break(request.user)
    return Response(TimeEntrySerializer(entry).data)


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def clock_out(request):
    serializer = ClockOutSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry, warning = TimeEntryService.clock_out(request.user, notes=serializer.validated_data.get('notes'))
    data = TimeEntrySerializer(entry).data
    data['warning'] = warning
    return Response(data)


@api_view(['GET'])
@permission_classes([IsOrganizationMember])
def current_session(request):
    entry = TimeEntryService.get_open_entry(request.user)
    return Response({
        'is_clocked_in': entry is not None,
        'is_on_break': bool(entry and entry.state == 'ON_BREAK'),
        'entry': TimeEntrySerializer(entry).data if entry else None,
    })


@api_view(['POST'])
@permission_classes([IsOrganizationMember])
def verify_location(request):
    """Dry-run geofence check before clocking in"""
    serializer = VerifyLocationSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    shift = None
    if serializer.validated_data.get('shift_id'):
        shift = TimeEntryService.match_shift(request.user, None, serializer.validated_data['shift_id'])
    result = check_geofence(
        serializer.validated_data['latitude'],
        serializer.validated_data['longitude'],
        resolve_target(shift, request.user),
    )
    return Response({
        'within_geofence': result.allowed,
        'distance_metres': round(result.distance_metres, 1) if result.distance_metres is not None else None,
        'message': result.reason,
    })


class TimeEntryFilter(django_filters.FilterSet):
    date_from = django_filters.DateFilter(method='filter_date_from')
    date_to = django_filters.DateFilter(method='filter_date_to')
    flagged = django_filters.BooleanFilter(method='filter_flagged')

    class Meta:
        model = TimeEntry
        fields = ['staff', 'shift', 'status', 'state', 'clock_in_flag', 'is_manual', 'missed_clock_out']

    def filter_flagged(self, queryset, name, value):
        condition = Q(location_flagged=True) | (~Q(clock_in_flag='NONE') & Q(clock_in_approved=False))
        return queryset.filter(condition) if value else queryset.exclude(condition)

    # Dates are the organization's calendar days, not UTC ones
    def filter_date_from(self, queryset, name, value):
        start, _ = local_day_bounds(value, self.request.user.organization)
        return queryset.filter(clock_in__gte=start)

    def filter_date_to(self, queryset, name, value):
        _, end = local_day_bounds(value, self.request.user.organization)
        return queryset.filter(clock_in__lt=end)


class TimeEntryListView(generics.ListAPIView):
    """Managers see the organization's entries; staff see their own"""
    serializer_class = TimeEntrySerializer
    permission_classes = [IsOrganizationMember]
    filterset_class = TimeEntryFilter

    def get_queryset(self):
        queryset = TimeEntry.objects.filter(
            staff__organization=self.request.user.organization
        ).select_related('staff', 'shift')
        if not is_manager(self.request.user):
            queryset = queryset.filter(staff=self.request.user)
        return queryset


class TimeEntryDetailView(generics.RetrieveAPIView):
    serializer_class = TimeEntrySerializer
    permission_classes = [IsOrganizationMember]

    def get_object(self):
        entry = TimeEntryService.get_entry(self.request.user.organization, self.kwargs['entry_id'])
        if entry.staff_id != self.request.user.id and not is_manager(self.request.user):
            raise NotFoundError('Time entry not found.')
        return entry

    def patch(self, request, entry_id):
        """Manager correction of times, breaks or notes"""
        if not is_manager(request.user):
            self.permission_denied(request, message='Only managers can edit time entries.')
        serializer = TimeEntryCorrectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        entry = TimeEntryService.correct(request.user, entry_id, serializer.validated_data)
        return Response(TimeEntrySerializer(entry).data)


@api_view(['POST'])
@permission_classes([IsManager])
def approve_entry(request, entry_id):
    entry = TimeEntryService.approve(request.user, entry_id)
    return Response(TimeEntrySerializer(entry).data)


@api_view(['POST'])
@permission_classes([IsManager])
def reject_entry(request, entry_id):
    serializer = RejectSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    entry = TimeEntryService.reject(request.user, entry_id, reason=serializer.validated_data['reason'])
    return Response(TimeEntrySerializer(entry).data)


@api_view(['POST'])
@permission_classes([IsManager])
def approve_clock_in(request, entry_id):
    entry = TimeEntryService.approve_clock_in(request.user, entry_id)
    return Response(TimeEntrySerializer(entry).data)


@api_view(['POST'])
@permission_classes([IsManager])
def manual_entry(request):
    serializer = ManualTimeEntrySerializer(data=request.data, context={'request': request})
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data
    entry = TimeEntryService.create_manual_entry(
        request.user,
        data['staff'],
        data['clock_in'],
        data['clock_out'],
        break_minutes=data.get('break_minutes'),
        shift_id=data.get('shift_id'),
        notes=data.get('notes', ''),
    )
    return Response(TimeEntrySerializer(entry).data, status=status.HTTP_201_CREATED)
