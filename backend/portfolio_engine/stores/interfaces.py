"""
Store interfaces consumed by the engine

The services depend only on these protocols; the SQLAlchemy implementations
live in sqlalchemy_stores.
"""

from typing import Any, Dict, List, Optional, Protocol, Sequence

from portfolio_engine.models.update_log import UpdateStatus
from portfolio_engine.schemas.holdings import BenchmarkHolding, HoldingsRow, PortfolioPositionData
from portfolio_engine.schemas.indicators import IndicatorRecordData
from portfolio_engine.schemas.market_data import CurrentPriceQuote, PricePoint


class PriceStore(Protocol):
    def get_historical_prices(self, symbol: str, region: str) -> List[PricePoint]:
        """Price points ascending by date."""
        ...

    def get_current_price(self, symbol: str, region: str) -> Optional[CurrentPriceQuote]:
        ...

    def get_symbols_with_history(self, region: str) -> List[str]:
        ...


class PortfolioStore(Protocol):
    def get_portfolio_positions(self, region: str) -> List[PortfolioPositionData]:
        ...

    def get_cash_balance(self, region: str) -> float:
        ...


class BenchmarkStore(Protocol):
    def get_etf_holdings(self, etf_symbol: str) -> List[BenchmarkHolding]:
        ...


class IndicatorStore(Protocol):
    def get_indicator_records(self, symbol: str, region: str) -> List[IndicatorRecordData]:
        ...

    def upsert_indicator_records(self, records: Sequence[IndicatorRecordData]) -> int:
        """Insert or update on (symbol, date, region) in one transaction."""
        ...


class HoldingsStore(Protocol):
    def replace_holdings(self, region: str, rows: Sequence[HoldingsRow]) -> int:
        """Atomically swap the region's rows for ``rows``."""
        ...

    def get_holdings(self, region: str) -> List[HoldingsRow]:
        ...


class UpdateLogStore(Protocol):
    def add_log(self, type: str, status: UpdateStatus, details: Dict[str, Any]) -> None:
        ...
