"""Celery application configuration.

Used by the worker and by celery beat. The API never enqueues work: the
enhancement stream runs in-process, and the only background job is the
stale-enhancement sweeper.

Run:
    celery -A apps.worker.main:celery_app worker --loglevel=info
    celery -A apps.worker.main:celery_app beat --loglevel=info
"""

from celery import Celery

from groundup.config import get_settings

settings = get_settings()

# Seconds between sweeper runs
SWEEP_INTERVAL_SECONDS = 300

celery_app = Celery("groundup")

celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

celery_app.conf.task_default_queue = "default"
celery_app.conf.task_always_eager = False

celery_app.conf.beat_schedule = {
    "sweep-stale-enhancements": {
        "task": "sweep_stale_enhancements",
        "schedule": SWEEP_INTERVAL_SECONDS,
    },
}
