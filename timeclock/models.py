from django.db import models
from django.db.models import Q
import uuid


class TimeEntry(models.Model):
    STATE_CHOICES = (
        ('ACTIVE', 'Active'),
        ('ON_BREAK', 'On Break'),
        ('CLOSED', 'Closed'),
    )
    OPEN_STATES = ('ACTIVE', 'ON_BREAK')

    STATUS_CHOICES = (
        ('PENDING', 'Pending'),
        ('APPROVED', 'Approved'),
        ('REJECTED', 'Rejected'),
    )

    CLOCK_IN_FLAG_CHOICES = (
        ('NONE', 'On time'),
        ('EARLY', 'Early'),
        ('LATE', 'Late'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    staff = models.ForeignKey('accounts.CustomUser', on_delete=models.CASCADE, related_name='time_entries')
    shift = models.ForeignKey('scheduling.Shift', on_delete=models.SET_NULL, null=True, blank=True, related_name='time_entries')

    clock_in = models.DateTimeField()
    clock_out = models.DateTimeField(null=True, blank=True)
    state = models.CharField(max_length=10, choices=STATE_CHOICES, default='ACTIVE')
    break_start = models.DateTimeField(null=True, blank=True)
    total_break_minutes = models.PositiveIntegerField(default=0)
    mandated_break_minutes = models.PositiveIntegerField(default=0)

    status = models.CharField(max_length=10, choices=STATUS_CHOICES, default='PENDING')
    approved_by = models.ForeignKey(
        'accounts.CustomUser', on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_time_entries'
    )
    approved_at = models.DateTimeField(null=True, blank=True)

    clock_in_flag = models.CharField(max_length=10, choices=CLOCK_IN_FLAG_CHOICES, default='NONE')
    clock_in_approved = models.BooleanField(default=False)
    clock_in_approved_by = models.ForeignKey(
        'accounts.CustomUser', on_delete=models.SET_NULL, null=True, blank=True, related_name='approved_clock_ins'
    )
    clock_in_approved_at = models.DateTimeField(null=True, blank=True)

    # Geolocation
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    distance_metres = models.FloatField(null=True, blank=True)
    location_flagged = models.BooleanField(default=False)
    location_note = models.CharField(max_length=255, blank=True, default='')

    is_manual = models.BooleanField(default=False)
    missed_clock_out = models.BooleanField(default=False)
    notes = models.TextField(blank=True, default='')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'time_entries'
        ordering = ['-clock_in']
        verbose_name_plural = 'Time entries'
        indexes = [
            models.Index(fields=['staff', 'clock_in'], name='time_entries_staff_in_idx'),
            models.Index(fields=['status', 'clock_in'], name='time_entries_status_in_idx'),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=['staff'],
                condition=Q(state__in=['ACTIVE', 'ON_BREAK']),
                name='one_open_time_entry_per_staff',
            ),
        ]

    def __str__(self):
        return f"{self.staff} {self.clock_in:%Y-%m-%d %H:%M} ({self.state})"

    @property
    def is_open(self):
        return self.state in self.OPEN_STATES

    @property
    def net_hours(self):
        """Worked hours net of breaks, never negative"""
        if self.clock_out is None:
            return 0.0
        gross = (self.clock_out - self.clock_in).total_seconds() / 3600
        return max(0.0, gross - self.total_break_minutes / 60)
