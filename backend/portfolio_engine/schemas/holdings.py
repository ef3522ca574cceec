"""Portfolio and holdings Pydantic models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


CASH_SYMBOL = "CASH"
CASH_RATING = "1"


class PortfolioPositionData(BaseModel):
    """A position as read from the portfolio store."""

    model_config = ConfigDict(from_attributes=True)

    symbol: str
    quantity: float = 0.0
    company: str = ""
    stock_type: Optional[str] = None
    rating: Optional[str] = None
    sector: Optional[str] = None


class BenchmarkHolding(BaseModel):
    """One benchmark ETF constituent."""

    model_config = ConfigDict(from_attributes=True)

    ticker: str
    weight: Optional[float] = None
    name: str = ""


class HoldingsRow(BaseModel):
    """One row of a region's holdings snapshot. Percentages are 0-100."""

    model_config = ConfigDict(from_attributes=True)

    region: str
    symbol: str
    company: str = ""
    stock_type: Optional[str] = None
    rating: Optional[str] = None
    sector: Optional[str] = None
    quantity: float
    current_price: float
    net_asset_value: float
    portfolio_weight: float
    benchmark_weight: float = 0.0
    delta_weight: float
    daily_change_percent: float = 0.0
    mtd_change_percent: float = 0.0
    ytd_change_percent: float = 0.0
    six_month_change_percent: float = 0.0
    fifty_two_week_change_percent: float = 0.0

    @property
    def is_cash(self) -> bool:
        return self.symbol == CASH_SYMBOL


class RegionHoldingsResult(BaseModel):
    """Outcome of aggregating one region."""

    success: bool = False
    count: int = 0
    message: str = ""
