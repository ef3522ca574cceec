"""
SQLAlchemy model definitions for the portfolio engine
This module contains all database models and base configuration
"""

from sqlalchemy import Column, DateTime, Integer, func
from sqlalchemy.orm import declarative_base

# Create the declarative base
Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model that provides common fields for all models

    Attributes:
        id: Integer primary key for all tables
        created_at: Timestamp when record was created
        updated_at: Timestamp when record was last updated
    """
    __abstract__ = True

    id = Column(
        Integer,
        primary_key=True,
        autoincrement=True
    )
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )


# Import all models to ensure they are registered with SQLAlchemy
from portfolio_engine.models.price import HistoricalPrice, CurrentPrice
from portfolio_engine.models.indicator import IndicatorData
from portfolio_engine.models.portfolio import PortfolioPosition, PortfolioCash
from portfolio_engine.models.benchmark import EtfHolding
from portfolio_engine.models.holding import Holding
from portfolio_engine.models.update_log import DataUpdateLog, UpdateStatus

__all__ = [
    "Base",
    "BaseModel",
    "HistoricalPrice",
    "CurrentPrice",
    "IndicatorData",
    "PortfolioPosition",
    "PortfolioCash",
    "EtfHolding",
    "Holding",
    "DataUpdateLog",
    "UpdateStatus",
]
