import logging
import os
from celery import Celery
from celery.signals import task_postrun
from django.conf import settings
from celery.schedules import crontab
from dotenv import load_dotenv

load_dotenv()
# set the default Django settings module for the 'celery' program.
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'tiffin_hub.settings')

logger = logging.getLogger(__name__)

app = Celery('tiffin_hub')

# Using a string here means the worker doesn't have to serialize
# the configuration object to child processes.
app.config_from_object('django.conf:settings', namespace='CELERY')

# Load task modules from all registered Django app configs.
app.autodiscover_tasks(lambda: settings.INSTALLED_APPS)

# Schedules run in CELERY_TIMEZONE (Asia/Kolkata).
app.conf.beat_schedule = {
    'expire-subscriptions-daily': {
        'task': 'subscriptions.tasks.expire_subscriptions',
        'schedule': crontab(hour=0, minute=1),  # Daily at 00:01 IST
    },
    'reset-vendor-capacity-daily': {
        'task': 'vendors.tasks.reset_daily_vendor_capacity',
        'schedule': crontab(hour=0, minute=5),
    },
    'deactivate-expired-promo-codes': {
        'task': 'promo_codes.tasks.deactivate_expired_promo_codes',
        'schedule': crontab(hour=0, minute=10),
    },
    'create-daily-orders': {
        'task': 'orders.tasks.create_daily_orders',
        'schedule': crontab(hour=6, minute=0),  # Before the lunch window opens
    },
}


@task_postrun.connect
def close_database_connections(**kwargs):
    """
    Close all database connections after each task to prevent stale connections
    in long-lived worker processes.
    """
    from django.db import connections
    for conn in connections.all():
        conn.close()
