#!/usr/bin/env python
"""
Celery Worker Startup Script

Starts a worker for the portfolio engine's indicator and holdings queues.
Handles logging setup, schema creation and dependency checks. Pass --beat
to run the refresh schedule inside the same process.
"""

import os
import sys
import logging
from pathlib import Path

# Add the backend directory to Python path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

from portfolio_engine.celery_app import celery_app, worker_argv
from portfolio_engine.config import settings

os.makedirs('logs', exist_ok=True)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler('logs/celery_worker.log')
    ]
)

logger = logging.getLogger(__name__)


def setup_worker():
    """Check the database and broker, create missing tables"""
    logger.info("Starting Portfolio Engine Celery Worker")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Market timezone: {settings.MARKET_TIMEZONE}")
    logger.info(f"Database URL: {settings.DATABASE_URL[:30]}...")  # Log partial URL for security

    from portfolio_engine.database.connection import verify_database_connection
    from portfolio_engine.database.init_db import init_db

    if not verify_database_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)
    logger.info("Database connection verified")
    init_db()

    # Verify Redis connection
    try:
        import redis
        r = redis.from_url(settings.CELERY_BROKER_URL)
        r.ping()
        logger.info("Redis connection verified")
    except Exception as e:
        logger.error(f"Failed to connect to Redis: {str(e)}")
        sys.exit(1)


if __name__ == '__main__':
    setup_worker()

    logger.info("Starting Celery worker...")

    extra_args = [arg for arg in sys.argv[1:] if arg != '--beat']
    embed_beat = '--beat' in sys.argv[1:]
    if embed_beat:
        for task_name, task_config in celery_app.conf.beat_schedule.items():
            logger.info(f"Scheduled: {task_name} {task_config['schedule']}")

    argv = worker_argv(extra_args, settings.LOG_LEVEL, embed_beat=embed_beat)

    try:
        celery_app.worker_main(argv)
    except KeyboardInterrupt:
        logger.info("Worker shutting down...")
    except Exception as e:
        logger.error(f"Worker crashed: {str(e)}")
        raise
