# backend/clinicbook/tasks/beat_schedule.py
"""
Celery Beat schedule configuration for clinicbook.

Two sweeps keep the booking lifecycle moving without a human:
pending appointments that were never confirmed or paid give their slot back,
and waitlist offers nobody acted on pass to the next patient in line.
"""

from typing import Any

from celery.schedules import crontab

CELERYBEAT_SCHEDULE: dict[str, dict[str, Any]] = {
    "release-expired-pending-appointments": {
        "task": "clinicbook.tasks.scheduling_tasks.release_expired_pending",
        "schedule": crontab(minute="*"),
        "options": {"queue": "scheduling", "expires": 55},
    },
    "expire-stale-waitlist-offers": {
        "task": "clinicbook.tasks.scheduling_tasks.expire_stale_offers",
        "schedule": crontab(minute="*/5"),
        "options": {"queue": "scheduling", "expires": 290},
    },
}

# Environment-specific overrides
SCHEDULE_CONFIG: dict[str, dict[str, dict[str, Any]]] = {
    "development": {
        "expire-stale-waitlist-offers": {
            "task": "clinicbook.tasks.scheduling_tasks.expire_stale_offers",
            "schedule": crontab(minute="*"),
            "options": {"queue": "scheduling"},
        },
    },
}


def get_beat_schedule(environment: str = "production") -> dict[str, dict[str, Any]]:
    """
    Get the beat schedule for the specified environment.

    Args:
        environment: The environment name (production, staging, development, test)

    Returns:
        Mapping of schedule entry name to Celery beat configuration dict
    """
    base: dict[str, dict[str, Any]] = dict(CELERYBEAT_SCHEDULE)
    overrides = SCHEDULE_CONFIG.get(environment)
    if overrides:
        base.update(overrides)
    return base
