# ===== soro/config/celery_config.py =====
"""
Celery application configuration

Redis is both broker and result backend. Beat drives the lifecycle
scheduler passes.
"""
from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from soro.config.settings import get_settings

settings = get_settings()


def get_beat_schedule() -> dict:
    """Periodic lifecycle passes: reminders every few minutes, the rest hourly"""
    reminder_minutes = max(1, settings.REMINDER_INTERVAL_MINUTES)
    lifecycle_minutes = max(1, settings.LIFECYCLE_INTERVAL_MINUTES)

    if lifecycle_minutes >= 60:
        lifecycle_schedule = crontab(minute=0)
    else:
        lifecycle_schedule = crontab(minute=f"*/{lifecycle_minutes}")

    return {
        "send-session-reminders": {
            "task": "soro.tasks.lifecycle_tasks.run_reminder_pass",
            "schedule": crontab(minute=f"*/{reminder_minutes}"),
        },
        "complete-finished-sessions": {
            "task": "soro.tasks.lifecycle_tasks.run_completion_pass",
            "schedule": lifecycle_schedule,
        },
        "cancel-stale-pending-bookings": {
            "task": "soro.tasks.lifecycle_tasks.run_stale_pending_pass",
            "schedule": lifecycle_schedule,
        },
    }


def create_celery_app() -> Celery:
    """
    Create and configure the Celery application

    Returns:
        Celery: configured application with task modules and beat schedule registered
    """
    app = Celery(
        "soro",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=[
            "soro.tasks.email_tasks",
            "soro.tasks.lifecycle_tasks",
        ],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        accept_content=["json"],
        result_serializer="json",
        timezone=settings.DEFAULT_TIMEZONE,
        enable_utc=True,
        task_acks_late=True,
        task_reject_on_worker_lost=True,
        task_default_retry_delay=60,
        worker_prefetch_multiplier=1,
        worker_hijack_root_logger=False,
        result_expires=3600,
        task_routes={
            "soro.tasks.email_tasks.*": {"queue": "notifications"},
            "soro.tasks.lifecycle_tasks.*": {"queue": "lifecycle"},
        },

        # Queue definitions
        task_queues=(
            Queue("notifications", routing_key="notifications"),
            Queue("lifecycle", routing_key="lifecycle"),
        ),

        worker_max_tasks_per_child=1000,
        broker_connection_retry_on_startup=True,
    )
    app.conf.beat_schedule = get_beat_schedule()

    return app


celery_app = create_celery_app()
