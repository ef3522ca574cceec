"""
Benchmark Weight Service

Resolves a region's benchmark ETF constituents into a ticker -> weight lookup
that tolerates exchange suffixes (RY vs RY.TO).
"""

from typing import Dict, Iterable, Union
import logging

from portfolio_engine.regions import Region, RegionDescriptor, get_region_descriptor
from portfolio_engine.schemas.holdings import BenchmarkHolding
from portfolio_engine.stores.interfaces import BenchmarkStore


logger = logging.getLogger(__name__)


class BenchmarkWeights:
    """Ticker -> weight percentage for one benchmark ETF"""

    def __init__(self, descriptor: RegionDescriptor, holdings: Iterable[BenchmarkHolding]):
        self.descriptor = descriptor
        self._weights: Dict[str, float] = {}

        for holding in holdings:
            weight = float(holding.weight) if holding.weight is not None else 0.0
            # raw ticker wins over a stripped alias of another row
            self._weights[holding.ticker] = weight
            self._weights.setdefault(descriptor.strip_suffix(holding.ticker), weight)

    def __len__(self) -> int:
        return len(self._weights)

    def __contains__(self, symbol: str) -> bool:
        return any(form in self._weights for form in self.descriptor.ticker_forms(symbol))

    def weight_for(self, symbol: str) -> float:
        """
        Benchmark weight for a portfolio symbol

        Probes the raw symbol, its stripped form and its suffixed forms.
        Unmatched symbols weigh 0.
        """
        for form in self.descriptor.ticker_forms(symbol):
            if form in self._weights:
                return self._weights[form]
        return 0.0


class BenchmarkWeightResolver:
    """Builds BenchmarkWeights from the benchmark store"""

    def __init__(self, benchmark_store: BenchmarkStore):
        self.benchmark_store = benchmark_store

    def resolve(self, region: Union[Region, str]) -> BenchmarkWeights:
        descriptor = get_region_descriptor(region)
        holdings = self.benchmark_store.get_etf_holdings(descriptor.benchmark_etf)
        if not holdings:
            logger.warning(
                f"No {descriptor.benchmark_etf} holdings found for {descriptor.region.value}, "
                f"benchmark weights default to 0"
            )
        else:
            logger.info(f"Loaded {len(holdings)} {descriptor.benchmark_etf} holdings for {descriptor.region.value}")
        return BenchmarkWeights(descriptor, holdings)
