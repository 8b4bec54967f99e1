"""Celery configuration."""
import os

from celery import Celery

os.environ.setdefault(
    "DJANGO_SETTINGS_MODULE",
    os.getenv("DJANGO_SETTINGS_MODULE", "config.settings.dev"),
)

app = Celery("segmentation")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()

# RFM runs are triggered on demand (analytics.tasks.run_rfm_analysis_store);
# no periodic schedule is registered.
