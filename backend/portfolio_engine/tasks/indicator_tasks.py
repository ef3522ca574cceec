"""
Technical Indicator Tasks

Celery entry points for the incremental indicator updater. Each task runs
through the process task registry, which guards against overlapping runs
for the same symbol/region and records the run in the update log.
"""

from typing import Any, Dict
import logging

from portfolio_engine.celery_app import celery_app
from portfolio_engine.exceptions import TaskAlreadyRunningError
from portfolio_engine.services.task_registry import get_task_registry, to_primitive


logger = logging.getLogger(__name__)


def _skipped(task_name: str, error: TaskAlreadyRunningError) -> Dict[str, Any]:
    logger.warning(f"Skipping {task_name}: {str(error)}")
    return {'skipped': True, 'reason': str(error)}


@celery_app.task(name='portfolio_engine.tasks.indicator_tasks.update_indicators')
def update_indicators(symbol: str, region: str, force_refresh_latest: bool = False) -> Dict[str, Any]:
    """
    Update stored indicators for one symbol

    Args:
        symbol: Stock symbol
        region: Portfolio region
        force_refresh_latest: Recompute the most recent date as well

    Returns:
        IndicatorUpdateResult as a dict
    """
    try:
        result = get_task_registry().run(
            'update_indicators',
            symbol=symbol,
            region=region,
            force_refresh_latest=force_refresh_latest,
        )
    except TaskAlreadyRunningError as e:
        return _skipped('update_indicators', e)
    return to_primitive(result)


@celery_app.task(name='portfolio_engine.tasks.indicator_tasks.update_indicators_for_region')
def update_indicators_for_region(region: str) -> Dict[str, Any]:
    """Update every symbol with price history in a region"""
    try:
        summary = get_task_registry().run('update_indicators_for_region', region=region)
    except TaskAlreadyRunningError as e:
        return _skipped('update_indicators_for_region', e)
    return to_primitive(summary)


@celery_app.task(name='portfolio_engine.tasks.indicator_tasks.update_all_indicators')
def update_all_indicators() -> Dict[str, Any]:
    """Scheduled daily refresh across all regions"""
    try:
        summaries = get_task_registry().run('update_all_indicators')
    except TaskAlreadyRunningError as e:
        return _skipped('update_all_indicators', e)

    total = sum(summary.total_processed for summary in summaries.values())
    failed = sum(summary.failed for summary in summaries.values())
    logger.info(f"Daily indicator update wrote {total} records, {failed} symbols failed")
    return to_primitive(summaries)
