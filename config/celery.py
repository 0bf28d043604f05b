import os

from celery import Celery
from celery.schedules import crontab  # type: ignore

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.dev")

app = Celery("agristore")

app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()


# ============================================================================
# CELERY BEAT SCHEDULE (Periodic Tasks)
# ============================================================================

app.conf.beat_schedule = {
    # Approved bookings whose storage period began - every 15 minutes
    "activate-started-bookings": {
        "task": "bookings.activate_started_bookings",
        "schedule": crontab(minute="*/15"),
    },
    # Bookings whose storage period ended - every hour
    "complete-finished-bookings": {
        "task": "bookings.complete_finished_bookings",
        "schedule": crontab(minute=15),
    },
    # Refunds the provider failed to process - every hour
    "retry-outstanding-refunds": {
        "task": "bookings.retry_outstanding_refunds",
        "schedule": crontab(minute=30),
    },
    # Zero-priced bookings - nightly
    "reconcile-zero-priced-bookings": {
        "task": "bookings.reconcile_zero_priced_bookings",
        "schedule": crontab(minute=0, hour=3),
    },
}
