"""
Holdings model: materialized per-region holdings table
"""

from sqlalchemy import Column, String, Float, Index
from portfolio_engine.models import BaseModel


class Holding(BaseModel):
    """
    Holdings row for the dashboard

    A materialized view regenerated wholesale per region by the holdings
    aggregator. Every region snapshot contains one synthetic CASH row.

    Attributes:
        region: Portfolio region
        symbol: Ticker or CASH
        rating, sector: Carried over from the position
        quantity, current_price, net_asset_value: Position valuation
        portfolio_weight: Share of the regional portfolio (0-100)
        benchmark_weight: Weight in the region's benchmark ETF (0-100)
        delta_weight: portfolio_weight - benchmark_weight
        *_change_percent: Daily, MTD, YTD, 6M and 52W returns in percent
    """
    __tablename__ = "holdings"

    region = Column(String(10), nullable=False)
    symbol = Column(String(20), nullable=False)
    company = Column(String(255), nullable=False, default="")
    stock_type = Column(String(50), nullable=True)
    rating = Column(String(20), nullable=True)
    sector = Column(String(100), nullable=True)

    quantity = Column(Float, nullable=False)
    current_price = Column(Float, nullable=False)
    net_asset_value = Column(Float, nullable=False)
    portfolio_weight = Column(Float, nullable=False)
    benchmark_weight = Column(Float, nullable=False, default=0.0)
    delta_weight = Column(Float, nullable=False)

    daily_change_percent = Column(Float, nullable=False, default=0.0)
    mtd_change_percent = Column(Float, nullable=False, default=0.0)
    ytd_change_percent = Column(Float, nullable=False, default=0.0)
    six_month_change_percent = Column(Float, nullable=False, default=0.0)
    fifty_two_week_change_percent = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("idx_holdings_region", "region"),
    )

    def __repr__(self):
        return (
            f"<Holding(region='{self.region}', symbol='{self.symbol}', "
            f"net_asset_value={self.net_asset_value}, portfolio_weight={self.portfolio_weight})>"
        )
