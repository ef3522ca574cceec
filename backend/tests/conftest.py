"""
Shared fixtures: an in-memory SQLite database with every table created,
SQLAlchemy stores bound to it, and seed helpers.
"""

from datetime import date, timedelta

import pytest

from portfolio_engine.config import Settings
from portfolio_engine.database.connection import build_engine, build_session_factory, session_scope
from portfolio_engine.models import (
    Base,
    CurrentPrice,
    EtfHolding,
    HistoricalPrice,
    PortfolioCash,
    PortfolioPosition,
)
from portfolio_engine.stores.sqlalchemy_stores import SQLStores


START_DATE = date(2024, 1, 1)


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def stores(session_factory):
    return SQLStores(session_factory)


@pytest.fixture
def test_settings():
    return Settings(
        DATABASE_URL="sqlite://",
        UPDATE_PAUSE_SECONDS=0,
        INDICATOR_UPSERT_BATCH_SIZE=100,
    )


@pytest.fixture
def add_prices(session_factory):
    """Insert daily closes for a symbol; None is stored as a bar without a close."""

    def _add(symbol, closes, region="USD", start=START_DATE):
        with session_scope(session_factory) as db:
            for offset, close in enumerate(closes):
                db.add(HistoricalPrice(
                    symbol=symbol,
                    region=region,
                    date=start + timedelta(days=offset),
                    close=close,
                    adjusted_close=close,
                ))

    return _add


@pytest.fixture
def add_price_on(session_factory):
    def _add(symbol, day, close, region="USD"):
        with session_scope(session_factory) as db:
            db.add(HistoricalPrice(symbol=symbol, region=region, date=day, close=close, adjusted_close=close))

    return _add


@pytest.fixture
def add_position(session_factory):
    def _add(symbol, quantity, region="USD", price=None, change_percent=None, company="", sector=None, rating=None):
        with session_scope(session_factory) as db:
            db.add(PortfolioPosition(
                symbol=symbol,
                region=region,
                quantity=quantity,
                company=company or symbol,
                stock_type="Stock",
                sector=sector,
                rating=rating,
            ))
            if price is not None:
                db.add(CurrentPrice(
                    symbol=symbol,
                    region=region,
                    regular_market_price=price,
                    regular_market_change_percent=change_percent,
                ))

    return _add


@pytest.fixture
def set_cash(session_factory):
    def _set(region, amount):
        with session_scope(session_factory) as db:
            db.add(PortfolioCash(region=region, amount=amount))

    return _set


@pytest.fixture
def add_etf_holding(session_factory):
    def _add(etf_symbol, ticker, weight):
        with session_scope(session_factory) as db:
            db.add(EtfHolding(etf_symbol=etf_symbol, ticker=ticker, name=ticker, weight=weight))

    return _add
