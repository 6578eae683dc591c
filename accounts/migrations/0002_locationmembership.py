import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='LocationMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('location', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='accounts.location')),
                ('staff', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='location_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'location_staff',
            },
        ),
        migrations.AddConstraint(
            model_name='locationmembership',
            constraint=models.UniqueConstraint(fields=('location', 'staff'), name='unique_location_membership'),
        ),
    ]
