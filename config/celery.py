# config/celery.py
import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("erp")

# CELERY_* settings come from Django
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py in installed apps
app.autodiscover_tasks()
