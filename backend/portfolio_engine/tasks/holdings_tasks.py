"""
Holdings Tasks

Celery entry points for regenerating the per-region holdings snapshot.
"""

from typing import Any, Dict, List
import logging

from portfolio_engine.celery_app import celery_app
from portfolio_engine.exceptions import TaskAlreadyRunningError
from portfolio_engine.services.task_registry import get_task_registry, to_primitive


logger = logging.getLogger(__name__)


@celery_app.task(name='portfolio_engine.tasks.holdings_tasks.aggregate_holdings')
def aggregate_holdings(region: str) -> List[Dict[str, Any]]:
    """
    Rebuild one region's holdings

    Returns:
        The rows written, CASH first
    """
    try:
        rows = get_task_registry().run('aggregate_holdings', region=region)
    except TaskAlreadyRunningError as e:
        logger.warning(f"Skipping holdings aggregation for {region}: {str(e)}")
        return []
    return to_primitive(rows)


@celery_app.task(name='portfolio_engine.tasks.holdings_tasks.aggregate_all_holdings')
def aggregate_all_holdings() -> Dict[str, Any]:
    """Rebuild holdings for every region"""
    try:
        results = get_task_registry().run('aggregate_all_holdings')
    except TaskAlreadyRunningError as e:
        logger.warning(f"Skipping holdings aggregation: {str(e)}")
        return {'skipped': True, 'reason': str(e)}

    failed = [region for region, result in results.items() if not result.success]
    if failed:
        logger.error(f"Holdings aggregation failed for {', '.join(failed)}")
    return to_primitive(results)
