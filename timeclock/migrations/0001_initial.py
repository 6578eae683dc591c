import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('scheduling', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='TimeEntry',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('clock_in', models.DateTimeField()),
                ('clock_out', models.DateTimeField(blank=True, null=True)),
                ('state', models.CharField(choices=[('ACTIVE', 'Active'), ('ON_BREAK', 'On Break'), ('CLOSED', 'Closed')], default='ACTIVE', max_length=10)),
                ('break_start', models.DateTimeField(blank=True, null=True)),
                ('total_break_minutes', models.PositiveIntegerField(default=0)),
                ('mandated_break_minutes', models.PositiveIntegerField(default=0)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('APPROVED', 'Approved'), ('REJECTED', 'Rejected')], default='PENDING', max_length=10)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('clock_in_flag', models.CharField(choices=[('NONE', 'On time'), ('EARLY', 'Early'), ('LATE', 'Late')], default='NONE', max_length=10)),
                ('clock_in_approved', models.BooleanField(default=False)),
                ('clock_in_approved_at', models.DateTimeField(blank=True, null=True)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('distance_metres', models.FloatField(blank=True, null=True)),
                ('location_flagged', models.BooleanField(default=False)),
                ('location_note', models.CharField(blank=True, default='', max_length=255)),
                ('is_manual', models.BooleanField(default=False)),
                ('missed_clock_out', models.BooleanField(default=False)),
                ('notes', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='time_entries', to=settings.AUTH_USER_MODEL)),
                ('shift', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='time_entries', to='scheduling.shift')),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_time_entries', to=settings.AUTH_USER_MODEL)),
                ('clock_in_approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='approved_clock_ins', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'time_entries',
                'ordering': ['-clock_in'],
                'verbose_name_plural': 'Time entries',
                'indexes': [
                    models.Index(fields=['staff', 'clock_in'], name='time_entries_staff_in_idx'),
                    models.Index(fields=['status', 'clock_in'], name='time_entries_status_in_idx'),
                ],
            },
        ),
        migrations.AddConstraint(
            model_name='timeentry',
            constraint=models.UniqueConstraint(condition=models.Q(('state__in', ['ACTIVE', 'ON_BREAK'])), fields=('staff',), name='one_open_time_entry_per_staff'),
        ),
    ]
