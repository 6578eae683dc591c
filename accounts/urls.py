from django.urls import path
from .views import (
    AuditLogListView, CustomTokenObtainPairView, CustomTokenRefreshView, MeView,
    OrganizationSettingsView, StaffDetailView, StaffListAPIView, StaffLocationsView,
)

urlpatterns = [
    path('token/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('me/', MeView.as_view(), name='me'),
    path('organization/', OrganizationSettingsView.as_view(), name='organization_settings'),
    path('staff/', StaffListAPIView.as_view(), name='staff_list'),
    path('staff/<uuid:pk>/', StaffDetailView.as_view(), name='staff_detail'),
    path('staff/<uuid:pk>/locations/', StaffLocationsView.as_view(), name='staff_locations'),
    path('audit-logs/', AuditLogListView.as_view(), name='audit_logs'),
]
