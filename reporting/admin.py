from django.contrib import admin

from .models import PayPeriod


@admin.register(PayPeriod)
class PayPeriodAdmin(admin.ModelAdmin):
    list_display = ('name', 'organization', 'start_date', 'end_date', 'pay_date', 'is_active')
    list_filter = ('is_active', 'organization')
    search_fields = ('name',)
