"""
SQLAlchemy-backed stores

Each store owns its session lifecycle: one session and one transaction per
call. Driver and constraint errors are rolled back and re-raised as
StoreError with the symbol/region involved.
"""

from typing import Any, Dict, List, Optional, Sequence
from contextlib import contextmanager
import json
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from portfolio_engine.exceptions import (
    HoldingsIntegrityError,
    IndicatorIntegrityError,
    StoreError,
)
from portfolio_engine.models import (
    CurrentPrice,
    DataUpdateLog,
    EtfHolding,
    HistoricalPrice,
    Holding,
    IndicatorData,
    PortfolioCash,
    PortfolioPosition,
    UpdateStatus,
)
from portfolio_engine.models.indicator import INDICATOR_FIELDS
from portfolio_engine.schemas.holdings import BenchmarkHolding, HoldingsRow, PortfolioPositionData
from portfolio_engine.schemas.indicators import IndicatorRecordData
from portfolio_engine.schemas.market_data import CurrentPriceQuote, PricePoint


logger = logging.getLogger(__name__)


class SQLAlchemyStore:
    """Base class holding the session factory"""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @contextmanager
    def _session(self, write: bool = False, symbol: Optional[str] = None, region: Optional[str] = None):
        session: Session = self.session_factory()
        try:
            yield session
            if write:
                session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error(f"{type(self).__name__} failed for {symbol or '*'} ({region or '*'}): {str(e)}")
            raise StoreError(f"{type(self).__name__} failed: {e}", symbol=symbol, region=region) from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise StoreError(f"Upsert is not supported on {dialect}")
    return insert


class SQLPriceStore(SQLAlchemyStore):
    """Read access to historical prices and current quotes"""

    def get_historical_prices(self, symbol: str, region: str) -> List[PricePoint]:
        with self._session(symbol=symbol, region=region) as db:
            rows = db.execute(
                select(HistoricalPrice)
                .where(HistoricalPrice.symbol == symbol, HistoricalPrice.region == region)
                .order_by(HistoricalPrice.date.asc())
            ).scalars().all()
            return [PricePoint.model_validate(row) for row in rows]

    def get_current_price(self, symbol: str, region: str) -> Optional[CurrentPriceQuote]:
        with self._session(symbol=symbol, region=region) as db:
            row = db.execute(
                select(CurrentPrice)
                .where(CurrentPrice.symbol == symbol, CurrentPrice.region == region)
            ).scalars().first()
            return CurrentPriceQuote.model_validate(row) if row is not None else None

    def get_symbols_with_history(self, region: str) -> List[str]:
        with self._session(region=region) as db:
            return list(db.execute(
                select(HistoricalPrice.symbol)
                .where(HistoricalPrice.region == region)
                .distinct()
                .order_by(HistoricalPrice.symbol)
            ).scalars().all())


class SQLPortfolioStore(SQLAlchemyStore):
    """Read access to positions and cash"""

    def get_portfolio_positions(self, region: str) -> List[PortfolioPositionData]:
        with self._session(region=region) as db:
            rows = db.execute(
                select(PortfolioPosition)
                .where(PortfolioPosition.region == region)
                .order_by(PortfolioPosition.symbol)
            ).scalars().all()
            return [PortfolioPositionData.model_validate(row) for row in rows]

    def get_cash_balance(self, region: str) -> float:
        with self._session(region=region) as db:
            amount = db.execute(
                select(PortfolioCash.amount).where(PortfolioCash.region == region)
            ).scalars().first()
            if amount is None:
                logger.warning(f"No cash balance found for {region}, using 0")
                return 0.0
            return float(amount)


class SQLBenchmarkStore(SQLAlchemyStore):
    """Read access to benchmark ETF constituents"""

    def get_etf_holdings(self, etf_symbol: str) -> List[BenchmarkHolding]:
        with self._session() as db:
            rows = db.execute(
                select(EtfHolding).where(EtfHolding.etf_symbol == etf_symbol)
            ).scalars().all()
            return [BenchmarkHolding.model_validate(row) for row in rows]


class SQLIndicatorStore(SQLAlchemyStore):
    """Indicator rows keyed by (symbol, date, region)"""

    def get_indicator_records(self, symbol: str, region: str) -> List[IndicatorRecordData]:
        with self._session(symbol=symbol, region=region) as db:
            rows = db.execute(
                select(IndicatorData)
                .where(IndicatorData.symbol == symbol, IndicatorData.region == region)
                .order_by(IndicatorData.date.asc())
            ).scalars().all()
            return [IndicatorRecordData.model_validate(row) for row in rows]

    def upsert_indicator_records(self, records: Sequence[IndicatorRecordData]) -> int:
        """
        Insert or update indicator rows in one transaction

        Rows are written in date order. Nothing is written if any record is
        empty or references a missing price point.

        Returns:
            int: Number of rows written
        """
        if not records:
            return 0

        records = sorted(records, key=lambda record: (record.symbol, record.region, record.date))
        for record in records:
            if not record.has_values():
                raise IndicatorIntegrityError(
                    f"Indicator record for {record.symbol} ({record.region}) on {record.date} has no values"
                )

        symbol, region = records[0].symbol, records[0].region
        with self._session(write=True, symbol=symbol, region=region) as db:
            price_ids = {record.historical_price_id for record in records}
            found = set(db.execute(
                select(HistoricalPrice.id).where(HistoricalPrice.id.in_(sorted(price_ids)))
            ).scalars().all())
            missing = price_ids - found
            if missing:
                raise IndicatorIntegrityError(
                    f"Indicator records reference missing price points: {sorted(missing)}"
                )

            insert = _dialect_insert(db)
            stmt = insert(IndicatorData).values([
                record.model_dump(include={"symbol", "region", "date", "historical_price_id", *INDICATOR_FIELDS})
                for record in records
            ])
            update_columns = {name: stmt.excluded[name] for name in ("historical_price_id", *INDICATOR_FIELDS)}
            update_columns["updated_at"] = func.now()
            db.execute(stmt.on_conflict_do_update(
                index_elements=["symbol", "date", "region"],
                set_=update_columns,
            ))
        return len(records)


class SQLHoldingsStore(SQLAlchemyStore):
    """Materialized holdings per region"""

    def replace_holdings(self, region: str, rows: Sequence[HoldingsRow]) -> int:
        """
        Replace every holdings row of a region in a single transaction

        Readers see either the previous snapshot or the new one.

        Returns:
            int: Number of rows inserted
        """
        if not rows:
            raise HoldingsIntegrityError(f"Refusing to replace {region} holdings with an empty set")
        foreign = [row.symbol for row in rows if row.region != region]
        if foreign:
            raise HoldingsIntegrityError(f"Rows for other regions passed to {region} replace: {foreign}")

        with self._session(write=True, region=region) as db:
            db.execute(delete(Holding).where(Holding.region == region))
            db.add_all([Holding(**row.model_dump()) for row in rows])
            db.flush()
        return len(rows)

    def get_holdings(self, region: str) -> List[HoldingsRow]:
        with self._session(region=region) as db:
            rows = db.execute(
                select(Holding).where(Holding.region == region).order_by(Holding.id)
            ).scalars().all()
            return [HoldingsRow.model_validate(row) for row in rows]


class SQLUpdateLogStore(SQLAlchemyStore):
    """Persistent run log"""

    def add_log(self, type: str, status: UpdateStatus, details: Dict[str, Any]) -> None:
        with self._session(write=True) as db:
            db.add(DataUpdateLog(
                type=type,
                status=status,
                details=json.dumps(details, default=str),
            ))

    def get_recent_logs(self, limit: int = 50) -> List[Dict[str, Any]]:
        with self._session() as db:
            rows = db.execute(
                select(DataUpdateLog).order_by(DataUpdateLog.id.desc()).limit(limit)
            ).scalars().all()
            return [
                {
                    "type": row.type,
                    "status": row.status.value,
                    "details": json.loads(row.details) if row.details else {},
                    "timestamp": row.timestamp,
                }
                for row in rows
            ]


class SQLStores:
    """Every store bound to one session factory"""

    def __init__(self, session_factory: sessionmaker):
        self.prices = SQLPriceStore(session_factory)
        self.portfolio = SQLPortfolioStore(session_factory)
        self.benchmarks = SQLBenchmarkStore(session_factory)
        self.indicators = SQLIndicatorStore(session_factory)
        self.holdings = SQLHoldingsStore(session_factory)
        self.update_logs = SQLUpdateLogStore(session_factory)
