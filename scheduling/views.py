import django_filters
from django.db.models import Q
from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.models import Location
from accounts.services import StaffManagementService
from core.permissions import IsManager, IsManagerOrReadOnly, IsOrganizationMember, is_manager
from .models import Availability, Shift, ShiftCategory, ShiftTemplate, StaffCategoryRate
from .serializers import (
    ApplyTemplateSerializer, AssignShiftSerializer, AvailabilitySerializer, LocationSerializer,
    ReplaceSegmentsSerializer, ShiftCategorySerializer, ShiftSerializer, ShiftTemplateSerializer,
    ShiftWriteSerializer, StaffCategoryRateSerializer, SwapRequestCreateSerializer,
    SwapRequestResolveSerializer, SwapRequestSerializer,
)
from .services import ShiftService
from .swap_service import SwapRequestService


class LocationViewSet(viewsets.ModelViewSet):
    serializer_class = LocationSerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['is_active']

    def get_queryset(self):
        return Location.objects.filter(organization=self.request.user.organization)

    def perform_create(self, serializer):
        serializer.save(organization=self.request.user.organization)


class ShiftCategoryViewSet(viewsets.ModelViewSet):
    serializer_class = ShiftCategorySerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_fields = ['is_active']

    def get_queryset(self):
        return ShiftCategory.objects.filter(organization=self.request.user.organization)

    def perform_create(self, serializer):
        serializer.save(organization=self.request.user.organization)


class StaffCategoryRateViewSet(viewsets.ModelViewSet):
    serializer_class = StaffCategoryRateSerializer
    permission_classes = [IsManager]
    filterset_fields = ['staff', 'category']

    def get_queryset(self):
        return StaffCategoryRate.objects.filter(
            staff__organization=self.request.user.organization
        ).select_related('staff', 'category')


class ShiftFilter(django_filters.FilterSet):
    start_after = django_filters.IsoDateTimeFilter(field_name='end', lookup_expr='gt')
    end_before = django_filters.IsoDateTimeFilter(field_name='start', lookup_expr='lt')
    is_open = django_filters.BooleanFilter(field_name='assigned_to', lookup_expr='isnull')

    class Meta:
        model = Shift
        fields = ['location', 'category', 'assigned_to', 'status', 'is_archived']


class ShiftViewSet(viewsets.ModelViewSet):
    """
    Shifts of the user's organization. Writes go through ShiftService so
    overnight windows, break hints and overlap checks apply everywhere.
    """
    serializer_class = ShiftSerializer
    permission_classes = [IsManagerOrReadOnly]
    filterset_class = ShiftFilter

    def get_queryset(self):
        user = self.request.user
        queryset = Shift.objects.filter(
            organization=user.organization
        ).select_related(
            'location', 'category', 'assigned_to__organization'
        ).prefetch_related('segments__category', 'assigned_to__availability')
        if self.action == 'list' and 'is_archived' not in self.request.query_params:
            queryset = queryset.filter(is_archived=False)
        if not is_manager(user):
            # Staff tied to locations only see those sites, plus their own shifts
            location_ids = StaffManagementService.member_location_ids(user)
            if location_ids:
                queryset = queryset.filter(Q(location_id__in=location_ids) | Q(assigned_to=user))
        return queryset

    def get_permissions(self):
        if self.action == 'pickup':
            return [IsOrganizationMember()]
        return super().get_permissions()

    def create(self, request, *args, **kwargs):
        serializer = ShiftWriteSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.create_shift(request.user, serializer.validated_data)
        return Response(self.get_serializer(shift).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        instance = self.get_object()
        serializer = ShiftWriteSerializer(
            instance, data=request.data, partial=True, context=self.get_serializer_context()
        )
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        if 'assigned_to' in data:
            # Reassignment has its own endpoint with locking
            ShiftService.assign_shift(request.user, instance.id, data.pop('assigned_to'))
        shift = ShiftService.update_shift(request.user, instance.id, data)
        return Response(self.get_serializer(shift).data)

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        outcome = ShiftService.delete_shift(request.user, instance.id)
        if outcome == 'deleted':
            return Response(status=status.HTTP_204_NO_CONTENT)
        return Response({'detail': 'Shift has logged time and was archived.', 'result': outcome})

    @action(detail=True, methods=['post'])
    def assign(self, request, pk=None):
        serializer = AssignShiftSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.assign_shift(request.user, pk, serializer.validated_data['staff'])
        return Response(self.get_serializer(shift).data)

    @action(detail=True, methods=['post'])
    def pickup(self, request, pk=None):
        shift = ShiftService.pickup_shift(request.user, pk)
        return Response(self.get_serializer(shift).data)

    @action(detail=True, methods=['put'])
    def segments(self, request, pk=None):
        serializer = ReplaceSegmentsSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.replace_segments(request.user, pk, serializer.validated_data['segments'])
        shift = self.get_queryset().get(id=shift.id)
        return Response(self.get_serializer(shift).data)


class ShiftTemplateViewSet(viewsets.ModelViewSet):
    serializer_class = ShiftTemplateSerializer
    permission_classes = [IsManager]
    filterset_fields = ['is_active', 'location', 'category']

    def get_queryset(self):
        return ShiftTemplate.objects.filter(organization=self.request.user.organization)

    def perform_create(self, serializer):
        serializer.save(organization=self.request.user.organization)

    @action(detail=True, methods=['post'], url_path='create-shift')
    def create_shift(self, request, pk=None):
        template = self.get_object()
        serializer = ApplyTemplateSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        shift = ShiftService.create_from_template(
            request.user, template,
            serializer.validated_data['date'],
            assigned_to=serializer.validated_data.get('assigned_to'),
        )
        return Response(ShiftSerializer(shift).data, status=status.HTTP_201_CREATED)


class AvailabilityViewSet(viewsets.ModelViewSet):
    """Staff manage their own availability; managers can read everyone's"""
    serializer_class = AvailabilitySerializer
    permission_classes = [IsOrganizationMember]
    filterset_fields = ['staff', 'is_recurring', 'day_of_week', 'specific_date']

    def get_queryset(self):
        user = self.request.user
        queryset = Availability.objects.filter(staff__organization=user.organization)
        if self.request.method in permissions.SAFE_METHODS and is_manager(user):
            return queryset
        return queryset.filter(staff=user)

    def perform_create(self, serializer):
        serializer.save(staff=self.request.user)


class SwapRequestViewSet(mixins.CreateModelMixin,
                         mixins.ListModelMixin,
                         mixins.RetrieveModelMixin,
                         viewsets.GenericViewSet):
    serializer_class = SwapRequestSerializer
    permission_classes = [IsOrganizationMember]
    filterset_fields = ['status', 'request_type', 'shift', 'requester']

    def get_queryset(self):
        return SwapRequestService.visible_requests(self.request.user)

    def create(self, request, *args, **kwargs):
        serializer = SwapRequestCreateSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        swap_request = SwapRequestService.create_request(
            request.user,
            data['shift'].id,
            data['request_type'],
            proposed_to=data.get('proposed_to'),
            message=data.get('message', ''),
        )
        return Response(self.get_serializer(swap_request).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], permission_classes=[IsManager])
    def resolve(self, request, pk=None):
        serializer = SwapRequestResolveSerializer(data=request.data, context=self.get_serializer_context())
        serializer.is_valid(raise_exception=True)
        swap_request = SwapRequestService.resolve_request(
            request.user, pk,
            approve=serializer.validated_data['action'] == 'approve',
            replacement=serializer.validated_data.get('replacement'),
        )
        return Response(self.get_serializer(swap_request).data)

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        swap_request = SwapRequestService.cancel_request(request.user, pk)
        return Response(self.get_serializer(swap_request).data)
