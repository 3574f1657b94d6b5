"""
Celery configuration for the marketplace order core.

DJANGO_SETTINGS_MODULE is set before the app is instantiated so Celery
reads the Django settings (``CELERY_`` prefix), including the beat
schedule that drives the periodic sweeps.
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("marketplace")

# Reads Django settings with the CELERY_ prefix
app.config_from_object("django.conf:settings", namespace="CELERY")

# Discovers tasks.py in every installed app
app.autodiscover_tasks()
