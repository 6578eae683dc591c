from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from django.db import models
from django.db.models import Q
import uuid
from django.core.exceptions import ValidationError


class ShiftCategory(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey('accounts.Organization', on_delete=models.CASCADE, related_name='shift_categories')
    name = models.CharField(max_length=100)
    hourly_rate = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    color = models.CharField(max_length=7, default='#3B82F6')  # Hex color code
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'shift_categories'
        unique_together = ['organization', 'name']
        ordering = ['name']
        verbose_name_plural = 'Shift Categories'

    def __str__(self):
        return self.name


class StaffCategoryRate(models.Model):
    """Per-staff override of a category's hourly rate"""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    staff = models.ForeignKey('accounts.CustomUser', on_delete=models.CASCADE, related_name='category_rates')
    category = models.ForeignKey(ShiftCategory, on_delete=models.CASCADE, related_name='staff_rates')
    hourly_rate = models.DecimalField(max_digits=8, decimal_places=2)

    class Meta:
        db_table = 'staff_category_rates'
        unique_together = ['staff', 'category']

    def __str__(self):
        return f"{self.staff} - {self.category}: {self.hourly_rate}"


@dataclass(frozen=True)
class WageSegment:
    start: datetime
    end: datetime
    category: Optional[ShiftCategory]


class Shift(models.Model):
    STATUS_CHOICES = (
        ('OPEN', 'Open'),
        ('ASSIGNED', 'Assigned'),
        ('CONFIRMED', 'Confirmed'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey('accounts.Organization', on_delete=models.CASCADE, related_name='shifts')
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    start = models.DateTimeField()
    end = models.DateTimeField()
    scheduled_break_minutes = models.PositiveIntegerField(default=0)
    location = models.ForeignKey('accounts.Location', on_delete=models.SET_NULL, null=True, blank=True, related_name='shifts')
    category = models.ForeignKey(ShiftCategory, on_delete=models.SET_NULL, null=True, blank=True, related_name='shifts')
    assigned_to = models.ForeignKey(
        'accounts.CustomUser', on_delete=models.SET_NULL, null=True, blank=True, related_name='assigned_shifts'
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='OPEN')
    is_archived = models.BooleanField(default=False)
    archived_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    created_by = models.ForeignKey('accounts.CustomUser', on_delete=models.SET_NULL, null=True, blank=True, related_name='created_shifts')

    class Meta:
        db_table = 'shifts'
        ordering = ['start']
        indexes = [
            models.Index(fields=['assigned_to', 'start'], name='shifts_assignee_start_idx'),
            models.Index(fields=['organization', 'start'], name='shifts_org_start_idx'),
            models.Index(fields=['status', 'start'], name='shifts_status_start_idx'),
        ]

    def __str__(self):
        return f'{self.title} ({self.start:%Y-%m-%d %H:%M}-{self.end:%H:%M})'

    def clean(self):
        if self.start and self.end and self.end <= self.start:
            raise ValidationError("Shift end must be after its start")

    @property
    def is_open(self):
        return self.assigned_to_id is None

    @property
    def duration_hours(self):
        return (self.end - self.start).total_seconds() / 3600

    @property
    def scheduled_hours(self):
        """Scheduled working hours excluding the unpaid break"""
        return max(0.0, self.duration_hours - self.scheduled_break_minutes / 60)

    def wage_segments(self) -> List[WageSegment]:
        """
        Segments used for cost attribution. A shift without explicit
        segments is one implicit segment carrying the base category.
        """
        segments = list(self.segments.all())
        if not segments:
            return [WageSegment(self.start, self.end, self.category)]
        return [WageSegment(s.start, s.end, s.category) for s in segments]


class ShiftSegment(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.CASCADE, related_name='segments')
    start = models.DateTimeField()
    end = models.DateTimeField()
    category = models.ForeignKey(ShiftCategory, on_delete=models.PROTECT, related_name='segments')

    class Meta:
        db_table = 'shift_segments'
        ordering = ['start']

    def __str__(self):
        return f'{self.category} {self.start:%H:%M}-{self.end:%H:%M}'


class ShiftTemplate(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    organization = models.ForeignKey('accounts.Organization', on_delete=models.CASCADE, related_name='shift_templates')
    name = models.CharField(max_length=100)
    start_time = models.TimeField()
    end_time = models.TimeField()
    location = models.ForeignKey('accounts.Location', on_delete=models.SET_NULL, null=True, blank=True)
    category = models.ForeignKey(ShiftCategory, on_delete=models.SET_NULL, null=True, blank=True)
    description = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'shift_templates'
        ordering = ['name']
        indexes = [
            models.Index(fields=['organization', 'is_active'], name='shift_tpl_org_active_idx'),
        ]

    def __str__(self):
        return self.name


class Availability(models.Model):
    DAY_CHOICES = [(0, 'Monday'), (1, 'Tuesday'), (2, 'Wednesday'),
                   (3, 'Thursday'), (4, 'Friday'), (5, 'Saturday'), (6, 'Sunday')]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    staff = models.ForeignKey('accounts.CustomUser', on_delete=models.CASCADE, related_name='availability')
    is_recurring = models.BooleanField(default=True)
    day_of_week = models.IntegerField(choices=DAY_CHOICES, null=True, blank=True)
    specific_date = models.DateField(null=True, blank=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    notes = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'staff_availability'
        ordering = ['day_of_week', 'specific_date', 'start_time']
        verbose_name_plural = 'Availability'

    def __str__(self):
        when = self.get_day_of_week_display() if self.is_recurring else self.specific_date
        return f'{self.staff} {when} {self.start_time}-{self.end_time}'

    def clean(self):
        if self.is_recurring and self.day_of_week is None:
            raise ValidationError("Recurring availability needs a day of week")
        if not self.is_recurring and self.specific_date is None:
            raise ValidationError("One-off availability needs a date")
        if self.start_time >= self.end_time:
            raise ValidationError("Availability end must be after its start")


class SwapRequest(models.Model):
    TYPE_CHOICES = (
        ('SWAP', 'Swap'),
        ('DROP', 'Drop'),
    )
    STATUS_CHOICES = (
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
        ('CANCELLED', 'Cancelled'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shift = models.ForeignKey(Shift, on_delete=models.CASCADE, related_name='swap_requests')
    requester = models.ForeignKey('accounts.CustomUser', on_delete=models.CASCADE, related_name='initiated_swap_requests')
    request_type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    # Staff member the requester would like to hand the shift to (swaps only)
    proposed_to = models.ForeignKey(
        'accounts.CustomUser', on_delete=models.SET_NULL, related_name='proposed_swap_requests', null=True, blank=True
    )
    replacement = models.ForeignKey(
        'accounts.CustomUser', on_delete=models.SET_NULL, related_name='received_swap_requests', null=True, blank=True
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='PENDING')
    request_message = models.TextField(blank=True, null=True)
    resolved_by = models.ForeignKey(
        'accounts.CustomUser', on_delete=models.SET_NULL, related_name='resolved_swap_requests', null=True, blank=True
    )
    resolved_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'shift_swap_requests'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['shift', 'requester'],
                condition=Q(status='PENDING'),
                name='one_pending_request_per_shift_requester',
            ),
        ]

    def __str__(self):
        return f"{self.get_request_type_display()} request from {self.requester} for {self.shift}"
