"""
Region descriptors

Each portfolio region is described once here: its benchmark ETF and the
exchange suffixes its tickers may carry. Services iterate this table instead
of hand-coding one handler per region.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple, Union

from portfolio_engine.exceptions import UnknownRegionError


class Region(str, Enum):
    """Portfolio regions."""
    USD = "USD"
    CAD = "CAD"
    INTL = "INTL"


@dataclass(frozen=True)
class RegionDescriptor:
    region: Region
    benchmark_etf: str
    ticker_suffixes: Tuple[str, ...] = ()

    def strip_suffix(self, ticker: str) -> str:
        for suffix in self.ticker_suffixes:
            if ticker.endswith(suffix) and len(ticker) > len(suffix):
                return ticker[: -len(suffix)]
        return ticker

    def ticker_forms(self, ticker: str) -> List[str]:
        """All spellings of a ticker to probe, raw form first."""
        forms = [ticker]
        base = self.strip_suffix(ticker)
        if base not in forms:
            forms.append(base)
        for suffix in self.ticker_suffixes:
            suffixed = f"{base}{suffix}"
            if suffixed not in forms:
                forms.append(suffixed)
        return forms


REGION_DESCRIPTORS: Dict[Region, RegionDescriptor] = {
    Region.USD: RegionDescriptor(Region.USD, "SPY"),
    Region.CAD: RegionDescriptor(Region.CAD, "XIC", (".TO",)),
    Region.INTL: RegionDescriptor(Region.INTL, "ACWX"),
}


def get_region_descriptor(region: Union[Region, str]) -> RegionDescriptor:
    try:
        return REGION_DESCRIPTORS[Region(str(getattr(region, "value", region)).upper())]
    except ValueError:
        raise UnknownRegionError(f"Unknown region: {region}")


def all_regions() -> List[Region]:
    return list(REGION_DESCRIPTORS)
