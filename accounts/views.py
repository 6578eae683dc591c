from rest_framework import generics, permissions
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from core.exceptions import NoOrganizationAssociated
from core.permissions import IsAdmin, IsManager
from .models import AuditLog, CustomUser, Location
from .serializers import (
    AuditLogSerializer, CustomUserSerializer, MemberLocationSerializer, OrganizationSerializer,
    StaffLocationsSerializer,
)
from .services import StaffManagementService


class CustomTokenObtainPairView(TokenObtainPairView):
    permission_classes = [permissions.AllowAny]


class CustomTokenRefreshView(TokenRefreshView):
    permission_classes = [permissions.AllowAny]


class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(CustomUserSerializer(request.user).data)


class OrganizationSettingsView(APIView):
    """Clock-in, geofence and break rules of the caller's organization"""

    def get_permissions(self):
        if self.request.method in permissions.SAFE_METHODS:
            return [permissions.IsAuthenticated()]
        return [IsAdmin()]

    def get_organization(self):
        if not self.request.user.organization_id:
            raise NoOrganizationAssociated()
        return self.request.user.organization

    def get(self, request):
        return Response(OrganizationSerializer(self.get_organization()).data)

    def patch(self, request):
        serializer = OrganizationSerializer(self.get_organization(), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)


class StaffListAPIView(generics.ListAPIView):
    serializer_class = CustomUserSerializer
    permission_classes = [IsManager]
    filterset_fields = ['role', 'pay_type', 'primary_location', 'is_active']

    def get_queryset(self):
        return CustomUser.objects.filter(organization=self.request.user.organization).order_by('first_name', 'last_name')


class StaffDetailView(generics.RetrieveUpdateAPIView):
    """Managers maintain role, pay and home location of their staff"""
    serializer_class = CustomUserSerializer
    permission_classes = [IsManager]

    def get_queryset(self):
        return CustomUser.objects.filter(organization=self.request.user.organization)


class AuditLogListView(generics.ListAPIView):
    serializer_class = AuditLogSerializer
    permission_classes = [IsManager]
    filterset_fields = ['action_type', 'entity_type', 'entity_id', 'user']

    def get_queryset(self):
        return AuditLog.objects.filter(organization=self.request.user.organization).select_related('user')


class StaffLocationsView(APIView):
    """Locations a staff member works at. Managers read them; admins replace them."""

    def get_permissions(self):
        if self.request.method in permissions.SAFE_METHODS:
            return [IsManager()]
        return [IsAdmin()]

    def get(self, request, pk):
        staff = StaffManagementService.get_staff(request.user.organization, pk)
        locations = Location.objects.filter(memberships__staff=staff).order_by('name')
        return Response(MemberLocationSerializer(locations, many=True).data)

    def put(self, request, pk):
        staff = StaffManagementService.get_staff(request.user.organization, pk)
        serializer = StaffLocationsSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        locations = StaffManagementService.set_locations(
            request.user, staff, serializer.validated_data['location_ids']
        )
        return Response(MemberLocationSerializer(locations, many=True).data)
