"""Celery settings for mail delivery and the daily reminder sweep."""

from celery.schedules import crontab
from kombu import Exchange, Queue

from core.config import settings

broker_url = settings.celery_broker_url
result_backend = settings.celery_result_backend
result_expires = 60 * 60

task_serializer = result_serializer = "json"
accept_content = ["json"]
enable_utc = True
timezone = "UTC"

task_track_started = True
task_soft_time_limit = 8 * 60
task_time_limit = 10 * 60

worker_prefetch_multiplier = 1
worker_max_tasks_per_child = 1000

decola_exchange = Exchange("decola", type="direct")
task_default_queue = "default"
task_queues = tuple(
    Queue(name, exchange=decola_exchange, routing_key=name)
    for name in ("default", "emails")
)
task_routes = {
    "workers.tasks.emails.*": {"queue": "emails"},
}

beat_schedule = {
    "saved-job-reminders": {
        "task": "workers.tasks.reminders.send_saved_job_reminders",
        "schedule": crontab(hour=settings.reminder_hour_utc, minute=0),
    },
}
