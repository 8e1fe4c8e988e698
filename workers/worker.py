"""Worker script to run Celery workers with the embedded beat scheduler."""

from core.config import settings
from core.middleware.logging import setup_logging
from workers.celery_app import celery_app

if __name__ == "__main__":
    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    celery_app.worker_main(
        argv=[
            "worker",
            "--beat",
            f"--loglevel={settings.log_level.lower()}",
            "--concurrency=2",
            "-Q",
            "default,emails",
        ]
    )
