"""
Incremental Indicator Service

Brings stored indicator rows for a (symbol, region) up to date with its price
history. Only dates without a stored row are computed; existing rows are left
alone unless the caller forces a refresh of the latest date.
"""

from typing import Callable, Dict, List, Optional, Set
import logging
import time

from portfolio_engine.algorithms.indicators import IndicatorSeries, calculate_all
from portfolio_engine.config import Settings, get_settings
from portfolio_engine.regions import all_regions, get_region_descriptor
from portfolio_engine.schemas.indicators import (
    IndicatorRecordData,
    IndicatorUpdateResult,
    IndicatorValues,
    RegionUpdateSummary,
    SymbolUpdateError,
)
from portfolio_engine.schemas.market_data import PricePoint, valid_series
from portfolio_engine.stores.interfaces import IndicatorStore, PriceStore


logger = logging.getLogger(__name__)


class IndicatorService:
    """
    Service for incremental technical indicator updates
    """

    def __init__(
        self,
        price_store: PriceStore,
        indicator_store: IndicatorStore,
        settings: Optional[Settings] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.price_store = price_store
        self.indicator_store = indicator_store
        self.settings = settings or get_settings()
        self.sleep = sleep

    @property
    def first_computable_index(self) -> int:
        """Earliest series index at which any indicator can have a value"""
        s = self.settings
        return min(
            [period - 1 for period in s.MOVING_AVERAGE_PERIODS]
            + list(s.RSI_PERIODS)
            + [s.MACD_FAST_PERIOD - 1, s.MACD_SLOW_PERIOD - 1]
        )

    def update_indicators(
        self, symbol: str, region: str, force_refresh_latest: bool = False
    ) -> IndicatorUpdateResult:
        """
        Compute and store indicators for every price date that has none

        Args:
            symbol: Stock symbol
            region: Portfolio region
            force_refresh_latest: Also recompute the most recent date

        Returns:
            IndicatorUpdateResult with the number of rows written
        """
        region = get_region_descriptor(region).region.value
        result = IndicatorUpdateResult(symbol=symbol, region=region)

        points = self.price_store.get_historical_prices(symbol, region)
        if not points:
            logger.info(f"No historical prices for {symbol} ({region}), skipping indicators")
            return result

        series = valid_series(points)
        gaps = len(points) - len(series)
        if gaps:
            logger.warning(f"Excluded {gaps} price points without a close for {symbol} ({region})")
        if not series:
            return result

        existing_dates = {record.date for record in self.indicator_store.get_indicator_records(symbol, region)}
        targets = self._target_indexes(series, existing_dates, force_refresh_latest)
        if not targets:
            logger.info(f"Indicators for {symbol} ({region}) are up to date")
            return result

        window_start = max(0, min(targets) - self.settings.indicator_lookback)
        window = series[window_start:]
        computed = calculate_all(
            [point.effective_close for point in window],
            ma_periods=self.settings.MOVING_AVERAGE_PERIODS,
            rsi_periods=self.settings.RSI_PERIODS,
            fast_period=self.settings.MACD_FAST_PERIOD,
            slow_period=self.settings.MACD_SLOW_PERIOD,
        )

        records: List[IndicatorRecordData] = []
        for offset, point in enumerate(window):
            if window_start + offset not in targets:
                continue
            values = self._values_at(computed, offset)
            if not values.has_values():
                continue
            records.append(IndicatorRecordData(
                symbol=symbol,
                region=region,
                date=point.date,
                historical_price_id=point.id,
                **values.model_dump(),
            ))

        result.records_processed = self._upsert_in_batches(records, symbol, region)
        logger.info(
            f"Updated {result.records_processed} indicator records for {symbol} ({region}) "
            f"from a {len(window)} point window"
        )
        return result

    def update_indicators_for_region(self, region: str) -> RegionUpdateSummary:
        """
        Update every symbol with price history in a region, one at a time

        A failing symbol is recorded in the summary and the loop continues.
        """
        region = get_region_descriptor(region).region.value
        summary = RegionUpdateSummary(region=region)
        symbols = self.price_store.get_symbols_with_history(region)
        logger.info(f"Updating indicators for {len(symbols)} {region} symbols")

        for i, symbol in enumerate(symbols):
            if i > 0 and self.settings.UPDATE_PAUSE_SECONDS > 0:
                self.sleep(self.settings.UPDATE_PAUSE_SECONDS)

            summary.processed += 1
            try:
                result = self.update_indicators(symbol, region)
            except Exception as e:
                logger.error(f"Failed to update indicators for {symbol} ({region}): {str(e)}")
                summary.failed += 1
                summary.errors.append(SymbolUpdateError(symbol=symbol, region=region, error=str(e)))
                continue

            summary.succeeded += 1
            summary.total_processed += result.records_processed
            summary.results[symbol] = result.records_processed

        logger.info(
            f"Indicator update for {region} complete: {summary.succeeded} succeeded, "
            f"{summary.failed} failed, {summary.total_processed} records"
        )
        return summary

    def update_all_regions(self) -> Dict[str, RegionUpdateSummary]:
        """Region-wide update for every region"""
        return {
            region.value: self.update_indicators_for_region(region.value)
            for region in all_regions()
        }

    def _target_indexes(
        self, series: List[PricePoint], existing_dates: Set, force_refresh_latest: bool
    ) -> Set[int]:
        first = self.first_computable_index
        targets = {
            index for index, point in enumerate(series)
            if index >= first and point.date not in existing_dates
        }
        if force_refresh_latest:
            targets.add(len(series) - 1)
        return targets

    @staticmethod
    def _values_at(computed: IndicatorSeries, offset: int) -> IndicatorValues:
        values = {f"ma{period}": line[offset] for period, line in computed.moving_averages.items()}
        values.update({f"rsi{period}": line[offset] for period, line in computed.rsi.items()})
        values["macd_fast"] = computed.macd.fast[offset]
        values["macd_slow"] = computed.macd.slow[offset]
        values["macd_histogram"] = computed.macd.histogram[offset]
        return IndicatorValues(**{
            name: value for name, value in values.items() if name in IndicatorValues.model_fields
        })

    def _upsert_in_batches(self, records: List[IndicatorRecordData], symbol: str, region: str) -> int:
        # records are already in ascending date order
        batch_size = max(1, self.settings.INDICATOR_UPSERT_BATCH_SIZE)
        written = 0
        for start in range(0, len(records), batch_size):
            batch = records[start:start + batch_size]
            try:
                written += self.indicator_store.upsert_indicator_records(batch)
            except Exception as e:
                logger.error(
                    f"Indicator upsert failed for {symbol} ({region}) at {batch[0].date}; "
                    f"{written} earlier records were kept: {str(e)}"
                )
                raise
            logger.debug(f"Upserted {len(batch)} indicator records for {symbol} ({region})")
        return written
