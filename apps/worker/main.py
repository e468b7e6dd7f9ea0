"""Celery worker and beat entrypoint.

Run with:
    celery -A apps.worker.main:celery_app worker --loglevel=info
    celery -A apps.worker.main:celery_app beat --loglevel=info

Tasks are registered by explicit import from groundup.tasks (no autodiscovery).
Each task calls configure_task_logging() so its entries carry task_name and task_id.
"""

from celery.signals import worker_process_init

from groundup.celery import celery_app
from groundup.logging import configure_logging, get_logger

# Import tasks to register them with celery_app
from groundup.tasks import sweep_stale_enhancements  # noqa: F401


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Use the API's structured JSON logging in every worker process."""
    configure_logging()
    logger = get_logger(__name__)
    logger.info("celery_worker_started", queue=celery_app.conf.task_default_queue)


__all__ = ["celery_app"]
