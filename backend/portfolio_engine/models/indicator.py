"""
Indicator model: moving averages, RSI and MACD per price point
"""

from sqlalchemy import Column, String, Float, Date, Integer, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from portfolio_engine.models import BaseModel


INDICATOR_FIELDS = (
    "ma50",
    "ma200",
    "rsi9",
    "rsi14",
    "rsi21",
    "macd_fast",
    "macd_slow",
    "macd_histogram",
)


class IndicatorData(BaseModel):
    """
    Derived technical indicators for one historical price point

    Created and updated only by the incremental indicator updater. Every
    row references the price point it was computed for; deleting the price
    point cascades to its indicators.

    Attributes:
        historical_price_id: Foreign key to HistoricalPrice
        symbol, region, date: Natural key, unique together
        ma50, ma200: Simple moving averages
        rsi9, rsi14, rsi21: Wilder RSI
        macd_fast, macd_slow: Fast and slow EMA
        macd_histogram: macd_fast - macd_slow
    """
    __tablename__ = "indicator_data"

    historical_price_id = Column(
        Integer,
        ForeignKey("historical_prices.id", ondelete="CASCADE"),
        nullable=False
    )

    symbol = Column(String(20), nullable=False)
    region = Column(String(10), nullable=False)
    date = Column(Date, nullable=False)

    ma50 = Column(Float, nullable=True)
    ma200 = Column(Float, nullable=True)
    rsi9 = Column(Float, nullable=True)
    rsi14 = Column(Float, nullable=True)
    rsi21 = Column(Float, nullable=True)
    macd_fast = Column(Float, nullable=True)
    macd_slow = Column(Float, nullable=True)
    macd_histogram = Column(Float, nullable=True)

    historical_price = relationship("HistoricalPrice")

    __table_args__ = (
        UniqueConstraint("symbol", "date", "region", name="uq_indicator_data_symbol_date_region"),
        Index("idx_indicator_data_symbol_region", "symbol", "region"),
    )

    def __repr__(self):
        return (
            f"<IndicatorData(symbol='{self.symbol}', region='{self.region}', date={self.date}, "
            f"ma50={self.ma50}, rsi14={self.rsi14})>"
        )
