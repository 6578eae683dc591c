from django.urls import path
from . import views

urlpatterns = [
    path('clock-in/', views.clock_in, name='clock-in'),
    path('clock-out/', views.clock_out, name='clock-out'),
    path('break/', views.take_break, name='break'),
    path('current/', views.current_session, name='current-session'),
    path('verify-location/', views.verify_location, name='verify-location'),

    path('entries/', views.TimeEntryListView.as_view(), name='time-entry-list'),
    path('entries/manual/', views.manual_entry, name='time-entry-manual'),
    path('entries/<uuid:entry_id>/', views.TimeEntryDetailView.as_view(), name='time-entry-detail'),
    path('entries/<uuid:entry_id>/approve/', views.approve_entry, name='time-entry-approve'),
    path('entries/<uuid:entry_id>/reject/', views.reject_entry, name='time-entry-reject'),
    path('entries/<uuid:entry_id>/approve-clock-in/', views.approve_clock_in, name='time-entry-approve-clock-in'),
]
