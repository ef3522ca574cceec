"""
Celery Application Configuration for the Portfolio Engine

This module configures Celery for background processing:
- Daily indicator refresh for every region after the market close
- Holdings snapshots refreshed during market hours
- Task failure logging
"""

import logging

from celery import Celery, Task
from celery.schedules import crontab
from celery.signals import worker_ready, worker_shutting_down
from kombu import Exchange, Queue

from portfolio_engine.config import settings


logger = logging.getLogger(__name__)

# Create Celery instance
celery_app = Celery(
    'portfolio_engine',
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        'portfolio_engine.tasks.indicator_tasks',
        'portfolio_engine.tasks.holdings_tasks',
    ]
)

# Celery configuration
celery_app.conf.update(
    # Result backend settings
    result_expires=3600,  # Results expire after 1 hour

    # Task execution settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone=settings.MARKET_TIMEZONE,
    enable_utc=True,

    # Task routing
    task_routes={
        'portfolio_engine.tasks.indicator_tasks.*': {'queue': 'indicators'},
        'portfolio_engine.tasks.holdings_tasks.*': {'queue': 'holdings'},
    },

    # Queue configuration
    task_queues=(
        Queue('default', Exchange('default'), routing_key='default'),
        Queue('indicators', Exchange('indicators'), routing_key='indicators'),
        Queue('holdings', Exchange('holdings'), routing_key='holdings'),
    ),
    task_default_queue='default',

    # Worker settings; symbols are processed sequentially inside a task
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,

    # Task execution limits
    task_soft_time_limit=1800,
    task_time_limit=2100,

    # Retry settings
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_retry_delay=60,

    # Redis
    broker_connection_retry_on_startup=True,
)

# Beat schedule for periodic tasks
celery_app.conf.beat_schedule = {
    # Indicators once the daily bars are in
    'daily-indicator-update': {
        'task': 'portfolio_engine.tasks.indicator_tasks.update_all_indicators',
        'schedule': crontab(
            hour=settings.INDICATOR_UPDATE_HOUR,
            minute=settings.INDICATOR_UPDATE_MINUTE,
            day_of_week='1-5',
        ),
        'options': {
            'queue': 'indicators',
            'expires': 3600,
        }
    },

    # Holdings during market hours
    'holdings-refresh': {
        'task': 'portfolio_engine.tasks.holdings_tasks.aggregate_all_holdings',
        'schedule': crontab(
            minute=f'*/{settings.HOLDINGS_REFRESH_MINUTES}',
            hour='9-16',
            day_of_week='1-5',
        ),
        'options': {
            'queue': 'holdings',
            'expires': settings.HOLDINGS_REFRESH_MINUTES * 60,
        }
    },
}

# Task-specific configuration
celery_app.conf.task_annotations = {
    'portfolio_engine.tasks.indicator_tasks.update_indicators': {
        'time_limit': 120,
    },
    'portfolio_engine.tasks.holdings_tasks.aggregate_holdings': {
        'time_limit': 300,
    },
}


class BaseTask(Task):
    """Base task that logs failures with their arguments"""

    def on_failure(self, exc, task_id, args, kwargs, einfo):
        logger.error(f"Task {self.name}[{task_id}] failed with args={args} kwargs={kwargs}: {exc}")
        super().on_failure(exc, task_id, args, kwargs, einfo)

    def on_retry(self, exc, task_id, args, kwargs, einfo):
        logger.warning(f"Task {self.name}[{task_id}] retry {self.request.retries}: {exc}")
        super().on_retry(exc, task_id, args, kwargs, einfo)


# Set default task base
celery_app.Task = BaseTask


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    """Handler for when worker is ready"""
    logger.info(f"Worker ready: {getattr(sender, 'hostname', sender)}")


@worker_shutting_down.connect
def worker_shutdown_handler(sender=None, **kwargs):
    """Release pooled database connections on shutdown"""
    from portfolio_engine.database.connection import close_database_connections
    close_database_connections()
    logger.info("Worker shutting down, database connections closed")


WORKER_QUEUES = ("default", "indicators", "holdings")


def worker_argv(extra_args=(), log_level: str = "info", embed_beat: bool = False) -> list:
    """
    Build the command line for a worker consuming every engine queue

    With embed_beat the worker also runs the beat schedule, so a single
    process covers the indicator and holdings refreshes.
    """
    argv = [
        'worker',
        f'--loglevel={log_level.lower()}',
        '--concurrency=2',
        '--max-tasks-per-child=1000',
        '-Q', ','.join(WORKER_QUEUES),
        '--without-gossip',
        '--without-mingle',
        '-E',  # Send task events for monitoring
    ]
    if embed_beat:
        argv += ['--beat', '--schedule=logs/celerybeat-schedule.db']
    argv.extend(extra_args)
    return argv


# Export celery app
__all__ = ['celery_app', 'worker_argv']
