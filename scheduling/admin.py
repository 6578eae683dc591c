from django.contrib import admin
from .models import (
    Availability, Shift, ShiftCategory, ShiftSegment, ShiftTemplate, StaffCategoryRate, SwapRequest,
)


class ShiftSegmentInline(admin.TabularInline):
    model = ShiftSegment
    extra = 0


@admin.register(Shift)
class ShiftAdmin(admin.ModelAdmin):
    list_display = ['title', 'start', 'end', 'assigned_to', 'location', 'category', 'status', 'is_archived']
    list_filter = ['status', 'is_archived', 'location', 'category']
    search_fields = ['title', 'assigned_to__email', 'assigned_to__first_name', 'assigned_to__last_name']
    raw_id_fields = ['assigned_to', 'created_by']
    date_hierarchy = 'start'
    inlines = [ShiftSegmentInline]


@admin.register(ShiftCategory)
class ShiftCategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'hourly_rate', 'is_active']
    list_filter = ['is_active', 'organization']


@admin.register(StaffCategoryRate)
class StaffCategoryRateAdmin(admin.ModelAdmin):
    list_display = ['staff', 'category', 'hourly_rate']
    raw_id_fields = ['staff']


@admin.register(ShiftTemplate)
class ShiftTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'start_time', 'end_time', 'location', 'is_active']
    list_filter = ['is_active', 'organization']


@admin.register(Availability)
class AvailabilityAdmin(admin.ModelAdmin):
    list_display = ['staff', 'is_recurring', 'day_of_week', 'specific_date', 'start_time', 'end_time']
    list_filter = ['is_recurring', 'day_of_week']
    raw_id_fields = ['staff']


@admin.register(SwapRequest)
class SwapRequestAdmin(admin.ModelAdmin):
    list_display = ['shift', 'requester', 'request_type', 'status', 'proposed_to', 'replacement', 'created_at']
    list_filter = ['request_type', 'status']
    raw_id_fields = ['shift', 'requester', 'proposed_to', 'replacement', 'resolved_by']
