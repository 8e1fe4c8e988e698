"""Celery app factory."""

from celery import Celery

celery_app = Celery(
    "decola",
    include=["workers.tasks.emails", "workers.tasks.reminders"],
)
celery_app.config_from_object("workers.celery_config")
