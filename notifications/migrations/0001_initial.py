import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Notification',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('title', models.CharField(blank=True, default='', max_length=255)),
                ('message', models.TextField()),
                ('link', models.CharField(blank=True, default='', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('is_read', models.BooleanField(default=False)),
                ('notification_type', models.CharField(choices=[('SHIFT_ASSIGNED', 'Shift Assigned'), ('SHIFT_PICKUP', 'Shift Picked Up'), ('SWAP_REQUEST', 'Swap Request'), ('DROP_REQUEST', 'Drop Request'), ('REQUEST_APPROVED', 'Request Approved'), ('REQUEST_REJECTED', 'Request Rejected'), ('REQUEST_CANCELLED', 'Request Cancelled'), ('TIME_ENTRY_FLAGGED', 'Time Entry Flagged'), ('CLOCK_IN_APPROVED', 'Clock-in Approved'), ('TIMESHEET_APPROVED', 'Timesheet Approved'), ('TIMESHEET_REJECTED', 'Timesheet Rejected'), ('TIMESHEET_EDITED', 'Timesheet Edited'), ('MANUAL_TIME_ENTRY', 'Manual Time Entry'), ('MISSED_CLOCK_OUT', 'Missed Clock-out'), ('OTHER', 'Other')], default='OTHER', max_length=30)),
                ('recipient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='notifications', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'notifications',
                'ordering': ['-created_at'],
            },
        ),
    ]
