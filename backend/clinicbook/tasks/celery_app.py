# backend/clinicbook/tasks/celery_app.py
"""
Celery application for clinicbook background work.

Two queues:
- notifications: patient notification delivery, enqueued after commits
- scheduling: the beat-driven sweeps (lapsed pending holds, stale
  waitlist offers)

The broker defaults to the Redis instance that backs the catalog cache.
Under the test environment tasks run eagerly in-process.
"""

import logging
from typing import Any, Dict, Type, cast

from celery import Celery, Task
from celery.signals import setup_logging

from ..core.config import Settings, settings
from .beat_schedule import get_beat_schedule

logger = logging.getLogger(__name__)

TASK_MODULES = (
    "clinicbook.tasks.notification_tasks",
    "clinicbook.tasks.scheduling_tasks",
)

TASK_ROUTES = {
    "clinicbook.tasks.notification_tasks.*": {"queue": "notifications"},
    "clinicbook.tasks.scheduling_tasks.*": {"queue": "scheduling"},
}


def celery_config(config: Settings) -> Dict[str, Any]:
    return {
        "task_serializer": "json",
        "accept_content": ["json"],
        "result_serializer": "json",
        "timezone": "UTC",
        "enable_utc": True,
        # Sweeps and notifications report through logs and metrics, not results
        "task_ignore_result": True,
        # A sweep touches at most a few hundred rows; notifications are one call
        "task_soft_time_limit": 60,
        "task_time_limit": 120,
        "task_acks_late": True,
        "task_reject_on_worker_lost": True,
        "worker_prefetch_multiplier": 1,
        "worker_max_tasks_per_child": 500,
        "worker_hijack_root_logger": False,
        "broker_connection_retry_on_startup": True,
        "task_always_eager": config.environment == "test",
        "imports": TASK_MODULES,
        "task_routes": TASK_ROUTES,
        "beat_schedule": get_beat_schedule(config.environment),
    }


def create_celery_app(config: Settings = settings) -> Celery:
    broker_url = config.celery_broker_url or config.redis_url
    app = Celery(
        "clinicbook",
        broker=broker_url,
        backend=config.celery_result_backend or broker_url,
    )
    app.conf.update(celery_config(config))
    return app


@setup_logging.connect
def configure_worker_logging(*args: Any, **kwargs: Any) -> None:
    """Workers log with the same format and level as the API process."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class ClinicTask(Task):
    """Default task base: failures and retries are logged with the task identity."""

    def on_failure(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logger.error(
            f"Task {self.name}[{task_id}] failed: {exc}",
            exc_info=True,
            extra={"task_id": task_id, "task_name": self.name},
        )
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc: Exception, task_id: str, args: Any, kwargs: Any, einfo: Any) -> None:
        logger.warning(
            f"Task {self.name}[{task_id}] retry {self.request.retries}: {exc}",
            extra={"task_id": task_id, "task_name": self.name, "retry_count": self.request.retries},
        )
        super().on_retry(exc, task_id, args, kwargs, einfo)


celery_app = create_celery_app()
celery_app.Task = cast(Type[Task], ClinicTask)
