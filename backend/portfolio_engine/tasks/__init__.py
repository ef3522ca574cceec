"""
Celery Tasks Module for the Portfolio Engine

This module contains all background tasks for:
- Incremental technical indicator updates
- Holdings aggregation
"""

from portfolio_engine.celery_app import celery_app

__all__ = ['celery_app']
