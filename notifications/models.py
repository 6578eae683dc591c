from django.db import models
import uuid
from accounts.models import CustomUser


class Notification(models.Model):
    NOTIFICATION_TYPES = (
        ('SHIFT_ASSIGNED', 'Shift Assigned'),
        ('SHIFT_PICKUP', 'Shift Picked Up'),
        ('SWAP_REQUEST', 'Swap Request'),
        ('DROP_REQUEST', 'Drop Request'),
        ('REQUEST_APPROVED', 'Request Approved'),
        ('REQUEST_REJECTED', 'Request Rejected'),
        ('REQUEST_CANCELLED', 'Request Cancelled'),
        ('TIME_ENTRY_FLAGGED', 'Time Entry Flagged'),
        ('CLOCK_IN_APPROVED', 'Clock-in Approved'),
        ('TIMESHEET_APPROVED', 'Timesheet Approved'),
        ('TIMESHEET_REJECTED', 'Timesheet Rejected'),
        ('TIMESHEET_EDITED', 'Timesheet Edited'),
        ('MANUAL_TIME_ENTRY', 'Manual Time Entry'),
        ('MISSED_CLOCK_OUT', 'Missed Clock-out'),
        ('OTHER', 'Other'),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    recipient = models.ForeignKey(CustomUser, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=255, blank=True, default='')
    message = models.TextField()
    link = models.CharField(max_length=255, blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    is_read = models.BooleanField(default=False)
    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPES, default='OTHER')

    class Meta:
        db_table = 'notifications'
        ordering = ['-created_at']

    def __str__(self):
        return f"Notification for {self.recipient.email} - {self.notification_type}"
