"""Market data Pydantic models."""

from typing import List, Optional
import datetime
import math

from pydantic import BaseModel, ConfigDict


class PricePoint(BaseModel):
    """Daily OHLC bar as read from the price store."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: int
    symbol: str
    region: str
    date: datetime.date
    open: Optional[float] = None
    high: Optional[float] = None
    low: Optional[float] = None
    close: Optional[float] = None
    adjusted_close: Optional[float] = None
    volume: Optional[float] = None

    @property
    def effective_close(self) -> Optional[float]:
        """Adjusted close, falling back to close.

        Returns None for a data gap (both missing, zero or not finite).
        """
        for value in (self.adjusted_close, self.close):
            if value is not None and value != 0 and math.isfinite(value):
                return float(value)
        return None

    @property
    def is_gap(self) -> bool:
        return self.effective_close is None


class CurrentPriceQuote(BaseModel):
    """Latest quote for a symbol."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    region: str
    regular_market_price: Optional[float] = None
    regular_market_change: Optional[float] = None
    regular_market_change_percent: Optional[float] = None

    @property
    def price(self) -> Optional[float]:
        value = self.regular_market_price
        if value is None or not math.isfinite(value):
            return None
        return float(value)


def valid_series(points: List[PricePoint]) -> List[PricePoint]:
    """Drop data gaps, keeping date order."""
    return [point for point in points if not point.is_gap]
