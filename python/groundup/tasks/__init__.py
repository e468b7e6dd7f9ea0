"""Celery tasks for Ground Up.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.
"""

from groundup.tasks.sweep_stale_enhancements import sweep_stale_enhancements

__all__ = ["sweep_stale_enhancements"]
