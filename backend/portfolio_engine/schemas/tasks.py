"""Task run Pydantic models."""

from typing import Optional, Dict, Any
from datetime import datetime

from pydantic import BaseModel, Field

from portfolio_engine.models.update_log import UpdateStatus


class TaskRunRecord(BaseModel):
    """One execution of a registered task."""

    task_name: str
    key: str
    status: UpdateStatus = UpdateStatus.IN_PROGRESS
    arguments: Dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
    result: Optional[Any] = None
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()
