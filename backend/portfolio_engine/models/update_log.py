"""
Data update log model for tracking scheduled and manual runs
"""

import enum

from sqlalchemy import Column, String, Text, DateTime, Enum, Index, func
from portfolio_engine.models import BaseModel


class UpdateStatus(enum.Enum):
    """
    Run status enumeration

    Values:
        IN_PROGRESS: Run started and has not finished
        SUCCESS: Run finished without raising
        ERROR: Run raised; details hold the error
    """
    IN_PROGRESS = "In Progress"
    SUCCESS = "Success"
    ERROR = "Error"


class DataUpdateLog(BaseModel):
    """
    One log line per task run transition

    Attributes:
        type: Task name (update_indicators, aggregate_holdings, ...)
        status: UpdateStatus
        details: JSON text with symbol/region/result or error
        timestamp: When the transition happened
    """
    __tablename__ = "data_update_logs"

    type = Column(String(100), nullable=False)
    status = Column(Enum(UpdateStatus), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    __table_args__ = (
        Index("idx_data_update_logs_type_timestamp", "type", "timestamp"),
    )

    def __repr__(self):
        return f"<DataUpdateLog(type='{self.type}', status={self.status.value}, timestamp={self.timestamp})>"
