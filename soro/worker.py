"""
Celery worker entry point
Handles notification delivery and the lifecycle scheduler passes
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from soro.config.celery_config import celery_app
from soro.utils.my_logging import setup_logging

# Setup logging first
setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Handle worker startup"""
    logger.info("Celery worker ready")
    logger.info(f"Registered tasks: {sorted(t for t in celery_app.tasks.keys() if t.startswith('soro.'))}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Handle worker shutdown"""
    logger.info("Celery worker shutting down")


if __name__ == "__main__":
    # Run worker with embedded beat for single-node deployments
    celery_app.start([
        'worker',
        '--beat',
        '--loglevel=info',
        '--queues=notifications,lifecycle,celery',
        '--concurrency=4',
        '--max-tasks-per-child=1000'
    ])
