from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from accounts.models import AuditLog, CustomUser, Location, LocationMembership, Organization


@admin.register(Organization)
class OrganizationAdmin(admin.ModelAdmin):
    list_display = ['name', 'timezone', 'currency', 'require_geolocation', 'clock_in_window_minutes']
    fieldsets = (
        ('Basic Info', {
            'fields': ('name', 'email', 'timezone', 'currency')
        }),
        ('Location Settings', {
            'fields': ('latitude', 'longitude', 'radius', 'require_geolocation')
        }),
        ('Time Rules', {
            'fields': ('clock_in_window_minutes', 'late_grace_minutes', 'clock_out_grace_minutes',
                       'break_rules', 'enforce_break_rules')
        }),
    )


@admin.register(Location)
class LocationAdmin(admin.ModelAdmin):
    list_display = ['name', 'organization', 'latitude', 'longitude', 'radius', 'is_active']
    list_filter = ['organization', 'is_active']


class LocationMembershipInline(admin.TabularInline):
    model = LocationMembership
    fk_name = 'staff'
    extra = 0


@admin.register(CustomUser)
class CustomUserAdmin(UserAdmin):
    ordering = ['email']
    inlines = [LocationMembershipInline]
    list_display = ['email', 'first_name', 'last_name', 'role', 'organization', 'pay_type', 'is_active']
    list_filter = ['role', 'pay_type', 'is_active', 'organization']
    search_fields = ['email', 'first_name', 'last_name']
    fieldsets = (
        (None, {'fields': ('email', 'password')}),
        ('Personal info', {'fields': ('first_name', 'last_name', 'phone')}),
        ('Employment', {'fields': ('organization', 'role', 'primary_location',
                                   'pay_type', 'hourly_rate', 'monthly_salary')}),
        ('Permissions', {'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'first_name', 'last_name', 'organization', 'role', 'password1', 'password2'),
        }),
    )


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ['timestamp', 'action_type', 'entity_type', 'entity_id', 'user']
    list_filter = ['action_type', 'entity_type']
    search_fields = ['description', 'entity_id']
    readonly_fields = [f.name for f in AuditLog._meta.fields]
