"""
Price models: daily price history and the latest quote per symbol
"""

from sqlalchemy import Column, String, Float, Date, Index, UniqueConstraint
from portfolio_engine.models import BaseModel


class HistoricalPrice(BaseModel):
    """
    Daily OHLC bar for a symbol in a portfolio region

    Rows are written by the ingestion process and are append-only; the
    engine only reads them. Indicators are derived from ``adjusted_close``
    with ``close`` as fallback.

    Attributes:
        symbol: Ticker symbol as held in the portfolio
        region: Portfolio region (USD, CAD, INTL)
        date: Trading date
        open/high/low/close: Raw prices, any of which may be missing
        adjusted_close: Split/dividend adjusted close
        volume: Shares traded

    Indexes:
        - Unique (symbol, date, region)
        - Composite index on (symbol, region) for series loads
    """
    __tablename__ = "historical_prices"

    symbol = Column(String(20), nullable=False)
    region = Column(String(10), nullable=False)
    date = Column(Date, nullable=False)

    open = Column(Float, nullable=True)
    high = Column(Float, nullable=True)
    low = Column(Float, nullable=True)
    close = Column(Float, nullable=True)
    adjusted_close = Column(Float, nullable=True)
    volume = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("symbol", "date", "region", name="uq_historical_prices_symbol_date_region"),
        Index("idx_historical_prices_symbol_region", "symbol", "region"),
    )

    def __repr__(self):
        return (
            f"<HistoricalPrice(symbol='{self.symbol}', region='{self.region}', "
            f"date={self.date}, close={self.close})>"
        )


class CurrentPrice(BaseModel):
    """
    Latest quote snapshot, one row per (symbol, region)
    """
    __tablename__ = "current_prices"

    symbol = Column(String(20), nullable=False)
    region = Column(String(10), nullable=False)

    regular_market_price = Column(Float, nullable=True)
    regular_market_change = Column(Float, nullable=True)
    regular_market_change_percent = Column(Float, nullable=True)
    regular_market_volume = Column(Float, nullable=True)
    regular_market_day_high = Column(Float, nullable=True)
    regular_market_day_low = Column(Float, nullable=True)
    fifty_two_week_high = Column(Float, nullable=True)
    fifty_two_week_low = Column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("symbol", "region", name="uq_current_prices_symbol_region"),
    )

    def __repr__(self):
        return (
            f"<CurrentPrice(symbol='{self.symbol}', region='{self.region}', "
            f"price={self.regular_market_price})>"
        )
