# ===== soro/tasks/lifecycle_tasks.py =====
from dataclasses import asdict
import logging

from soro.config.celery_config import celery_app
from soro.config.database import SessionLocal
from soro.services.dependencies import build_lifecycle_scheduler

logger = logging.getLogger(__name__)


def _run_pass(pass_name: str) -> dict:
    db = SessionLocal()
    try:
        scheduler = build_lifecycle_scheduler(db)
        runner = {
            "reminders": scheduler.run_reminder_pass,
            "completion": scheduler.run_completion_pass,
            "stale_pending": scheduler.run_stale_pending_pass,
        }[pass_name]
        return asdict(runner())
    finally:
        db.close()


@celery_app.task(bind=True, max_retries=0)
def run_reminder_pass(self):
    """Send one reminder per confirmed session starting within the lookahead window"""
    logger.info("Running session reminder pass")
    return _run_pass("reminders")


@celery_app.task(bind=True, max_retries=0)
def run_completion_pass(self):
    """Complete confirmed sessions past their end plus grace period"""
    logger.info("Running session completion pass")
    return _run_pass("completion")


@celery_app.task(bind=True, max_retries=0)
def run_stale_pending_pass(self):
    """Cancel pending requests whose start time has passed"""
    logger.info("Running stale pending booking pass")
    return _run_pass("stale_pending")
