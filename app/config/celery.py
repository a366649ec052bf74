"""
Celery configuration for the Django application.

Celery runs the periodic housekeeping of the notification pipeline
(see CELERY_BEAT_SCHEDULE in settings). Email delivery itself does not
go through Celery: requests flush their jobs after the response, and
tasks that dispatch notifications send them inline.

Tasks are auto-discovered from all installed Django apps.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
