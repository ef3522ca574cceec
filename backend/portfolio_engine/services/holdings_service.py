"""
Holdings Aggregation Service

Builds one holdings snapshot per region from positions, current quotes,
benchmark weights and price history, then swaps it in atomically.
"""

from typing import Callable, Dict, List, Optional, Tuple
from bisect import bisect_left
from datetime import date, datetime
import calendar
import logging
import math

import pytz

from portfolio_engine.config import Settings, get_settings
from portfolio_engine.regions import all_regions, get_region_descriptor
from portfolio_engine.schemas.holdings import (
    CASH_RATING,
    CASH_SYMBOL,
    HoldingsRow,
    PortfolioPositionData,
    RegionHoldingsResult,
)
from portfolio_engine.schemas.market_data import CurrentPriceQuote, PricePoint, valid_series
from portfolio_engine.services.benchmark_service import BenchmarkWeightResolver, BenchmarkWeights
from portfolio_engine.stores.interfaces import HoldingsStore, PortfolioStore, PriceStore


logger = logging.getLogger(__name__)


def months_back(day: date, months: int) -> date:
    """Same day ``months`` calendar months earlier, clamped to the month's end."""
    index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def horizon_dates(as_of: date) -> Dict[str, date]:
    """Start date of each return horizon, keyed by HoldingsRow field."""
    return {
        "mtd_change_percent": as_of.replace(day=1),
        "ytd_change_percent": date(as_of.year, 1, 1),
        "six_month_change_percent": months_back(as_of, 6),
        "fifty_two_week_change_percent": months_back(as_of, 12),
    }


def reference_price(series: List[PricePoint], horizon: date) -> Optional[float]:
    """
    Nearest available price for a horizon date

    First price on or after the date, else the last price before it, else None.
    ``series`` must be gap-free and ascending.
    """
    index = bisect_left([point.date for point in series], horizon)
    if index < len(series):
        return series[index].effective_close
    if index > 0:
        return series[index - 1].effective_close
    return None


def change_percent(current: float, reference: Optional[float]) -> float:
    if not reference:
        return 0.0
    return (current - reference) / reference * 100


class HoldingsService:
    """
    Service for regenerating the per-region holdings table
    """

    def __init__(
        self,
        price_store: PriceStore,
        portfolio_store: PortfolioStore,
        holdings_store: HoldingsStore,
        benchmark_resolver: BenchmarkWeightResolver,
        settings: Optional[Settings] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.price_store = price_store
        self.portfolio_store = portfolio_store
        self.holdings_store = holdings_store
        self.benchmark_resolver = benchmark_resolver
        self.settings = settings or get_settings()
        self._today = today

    def today(self) -> date:
        """Current date in the market timezone"""
        if self._today is not None:
            return self._today()
        return datetime.now(pytz.timezone(self.settings.MARKET_TIMEZONE)).date()

    def aggregate_holdings(self, region: str, as_of: Optional[date] = None) -> List[HoldingsRow]:
        """
        Recompute and replace the holdings snapshot of a region

        Args:
            region: Portfolio region
            as_of: Date the return horizons are measured from (defaults to today)

        Returns:
            List of rows written, CASH first
        """
        region = get_region_descriptor(region).region.value
        as_of = as_of or self.today()

        positions = self.portfolio_store.get_portfolio_positions(region)
        cash = float(self.portfolio_store.get_cash_balance(region) or 0.0)
        weights = self.benchmark_resolver.resolve(region)
        logger.info(f"Aggregating {len(positions)} {region} positions with {cash:.2f} cash")

        priced = self._price_positions(positions, region)
        total_value = sum(price * position.quantity for position, _, price in priced) + cash

        rows = [self._cash_row(region, cash, total_value)]
        horizons = horizon_dates(as_of)
        # a store failure aborts the region so the previous snapshot is kept
        for position, quote, price in priced:
            rows.append(self._position_row(region, position, quote, price, total_value, weights, horizons))

        self.holdings_store.replace_holdings(region, rows)
        logger.info(f"Replaced {region} holdings with {len(rows)} rows, total value {total_value:.2f}")
        return rows

    def aggregate_all_holdings(self) -> Dict[str, RegionHoldingsResult]:
        """Aggregate every region; a failing region does not stop the others"""
        results: Dict[str, RegionHoldingsResult] = {}
        for region in all_regions():
            try:
                rows = self.aggregate_holdings(region.value)
                results[region.value] = RegionHoldingsResult(
                    success=True,
                    count=len(rows),
                    message=f"Updated {len(rows)} {region.value} holdings",
                )
            except Exception as e:
                logger.error(f"Holdings aggregation failed for {region.value}: {str(e)}")
                results[region.value] = RegionHoldingsResult(success=False, count=0, message=str(e) or "Unknown error")
        return results

    def _price_positions(
        self, positions: List[PortfolioPositionData], region: str
    ) -> List[Tuple[PortfolioPositionData, CurrentPriceQuote, float]]:
        priced = []
        for position in positions:
            quote = self.price_store.get_current_price(position.symbol, region)
            price = quote.price if quote is not None else None
            if price is None:
                logger.warning(f"No current price for {position.symbol} ({region}), skipping position")
                continue
            priced.append((position, quote, price))
        return priced

    @staticmethod
    def _cash_row(region: str, cash: float, total_value: float) -> HoldingsRow:
        weight = cash / total_value * 100 if total_value else 0.0
        return HoldingsRow(
            region=region,
            symbol=CASH_SYMBOL,
            company="Cash",
            stock_type="Cash",
            rating=CASH_RATING,
            quantity=1,
            current_price=cash,
            net_asset_value=cash,
            portfolio_weight=weight,
            benchmark_weight=0.0,
            delta_weight=weight,
        )

    def _position_row(
        self,
        region: str,
        position: PortfolioPositionData,
        quote: CurrentPriceQuote,
        price: float,
        total_value: float,
        weights: BenchmarkWeights,
        horizons: Dict[str, date],
    ) -> HoldingsRow:
        net_asset_value = price * position.quantity
        portfolio_weight = net_asset_value / total_value * 100 if total_value else 0.0
        benchmark_weight = weights.weight_for(position.symbol)

        daily = quote.regular_market_change_percent
        if daily is None or not math.isfinite(daily):
            daily = 0.0

        history = valid_series(self.price_store.get_historical_prices(position.symbol, region))
        if not history:
            logger.info(f"No price history for {position.symbol} ({region}), horizon returns are 0")
        returns = {
            field: change_percent(price, reference_price(history, start))
            for field, start in horizons.items()
        }

        return HoldingsRow(
            region=region,
            symbol=position.symbol,
            company=position.company,
            stock_type=position.stock_type,
            rating=position.rating,
            sector=position.sector,
            quantity=position.quantity,
            current_price=price,
            net_asset_value=net_asset_value,
            portfolio_weight=portfolio_weight,
            benchmark_weight=benchmark_weight,
            delta_weight=portfolio_weight - benchmark_weight,
            daily_change_percent=float(daily),
            **returns,
        )
