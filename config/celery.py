"""
config/celery.py
=================
Celery application for the leaderboard refresh job.

    celery -A config worker -B -l info

The beat schedule lives in settings (CELERY_BEAT_SCHEDULE).
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("leaderboard")
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks()
