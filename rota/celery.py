import os
from celery import Celery
from celery.schedules import crontab

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'rota.settings')

app = Celery('rota')
app.config_from_object('django.conf:settings', namespace='CELERY')
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'flag-missed-clock-outs': {
        'task': 'timeclock.tasks.flag_missed_clock_outs',
        'schedule': crontab(hour=0, minute=5),
    },
}
