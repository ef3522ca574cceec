"""
Benchmark ETF composition (SPY, XIC, ACWX)
"""

from sqlalchemy import Column, String, Float, Index
from portfolio_engine.models import BaseModel


class EtfHolding(BaseModel):
    """
    One constituent of a benchmark ETF

    The table is refreshed wholesale per ETF by the import process; the
    engine reads it to compute benchmark weights.

    Attributes:
        etf_symbol: Benchmark ETF ticker
        ticker: Constituent ticker, possibly with an exchange suffix
        name: Constituent name
        sector: Optional sector
        weight: Weight in the ETF, in percent
    """
    __tablename__ = "etf_holdings"

    etf_symbol = Column(String(10), nullable=False)
    ticker = Column(String(20), nullable=False)
    name = Column(String(255), nullable=False, default="")
    sector = Column(String(100), nullable=True)
    weight = Column(Float, nullable=True)

    __table_args__ = (
        Index("idx_etf_holdings_etf_symbol", "etf_symbol"),
    )

    def __repr__(self):
        return f"<EtfHolding(etf='{self.etf_symbol}', ticker='{self.ticker}', weight={self.weight})>"
