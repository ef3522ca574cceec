"""
Portfolio models: positions and cash per region
"""

from sqlalchemy import Column, String, Float, Index
from portfolio_engine.models import BaseModel


class PortfolioPosition(BaseModel):
    """
    A stock held in a regional portfolio

    Attributes:
        region: Portfolio region (USD, CAD, INTL)
        symbol: Ticker as held
        company: Company name
        stock_type: Classification (Comp, Cat, Cycl, ...)
        rating: Analyst rating label
        sector: Optional sector label
        quantity: Number of shares held
    """
    __tablename__ = "portfolio_positions"

    region = Column(String(10), nullable=False)
    symbol = Column(String(20), nullable=False)
    company = Column(String(255), nullable=False, default="")
    stock_type = Column(String(50), nullable=True)
    rating = Column(String(20), nullable=True)
    sector = Column(String(100), nullable=True)
    quantity = Column(Float, nullable=False, default=0.0)

    __table_args__ = (
        Index("idx_portfolio_positions_region", "region"),
    )

    def __repr__(self):
        return f"<PortfolioPosition(region='{self.region}', symbol='{self.symbol}', quantity={self.quantity})>"


class PortfolioCash(BaseModel):
    """Cash balance for a regional portfolio"""
    __tablename__ = "portfolio_cash"

    region = Column(String(10), nullable=False, unique=True)
    amount = Column(Float, nullable=False, default=0.0)

    def __repr__(self):
        return f"<PortfolioCash(region='{self.region}', amount={self.amount})>"
