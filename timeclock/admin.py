from django.contrib import admin
from .models import TimeEntry


@admin.register(TimeEntry)
class TimeEntryAdmin(admin.ModelAdmin):
    list_display = ['staff', 'clock_in', 'clock_out', 'state', 'status', 'clock_in_flag', 'location_flagged']
    list_filter = ['state', 'status', 'clock_in_flag', 'location_flagged', 'is_manual', 'missed_clock_out']
    search_fields = ['staff__email', 'staff__first_name', 'staff__last_name']
    raw_id_fields = ['staff', 'shift', 'approved_by', 'clock_in_approved_by']
    date_hierarchy = 'clock_in'
