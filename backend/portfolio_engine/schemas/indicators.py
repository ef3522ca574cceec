"""Indicator Pydantic models."""

from typing import List, Optional, Dict
import datetime

from pydantic import BaseModel, ConfigDict, Field


class IndicatorValues(BaseModel):
    """Indicator values for one date. None means insufficient history."""

    ma50: Optional[float] = None
    ma200: Optional[float] = None
    rsi9: Optional[float] = None
    rsi14: Optional[float] = None
    rsi21: Optional[float] = None
    macd_fast: Optional[float] = None
    macd_slow: Optional[float] = None
    macd_histogram: Optional[float] = None

    def has_values(self) -> bool:
        return any(getattr(self, name) is not None for name in IndicatorValues.model_fields)


class IndicatorRecordData(IndicatorValues):
    """Indicator row keyed by (symbol, date, region)."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    region: str
    date: datetime.date
    historical_price_id: int


class IndicatorUpdateResult(BaseModel):
    """Result of updating indicators for one symbol."""

    symbol: str
    region: str
    records_processed: int = 0


class SymbolUpdateError(BaseModel):
    """A symbol that failed during a region-wide run."""

    symbol: str
    region: str
    error: str


class RegionUpdateSummary(BaseModel):
    """Partial-success summary for a region-wide indicator run."""

    region: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    total_processed: int = 0
    errors: List[SymbolUpdateError] = Field(default_factory=list)
    results: Dict[str, int] = Field(default_factory=dict)