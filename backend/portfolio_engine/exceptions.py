"""
Error taxonomy for the indicator and holdings engine

Missing data is never an exception here: it resolves to sentinel values.
These classes cover store failures, integrity violations and orchestration
conflicts only.
"""

from typing import Optional


class PortfolioEngineError(Exception):
    """Base class for engine errors"""


class StoreError(PortfolioEngineError):
    """An upstream store call failed (I/O, connection, constraint)"""

    def __init__(self, message: str, symbol: Optional[str] = None, region: Optional[str] = None):
        self.symbol = symbol
        self.region = region
        super().__init__(message)

    def __str__(self) -> str:
        scope = ", ".join(
            f"{name}={value}"
            for name, value in (("symbol", self.symbol), ("region", self.region))
            if value
        )
        message = super().__str__()
        return f"{message} ({scope})" if scope else message


class IntegrityViolationError(PortfolioEngineError):
    """A write would break an invariant and was aborted before touching storage"""


class IndicatorIntegrityError(IntegrityViolationError):
    """Indicator record without values or without a source price point"""


class HoldingsIntegrityError(IntegrityViolationError):
    """A holdings replace would leave a region without rows"""


class UnknownRegionError(PortfolioEngineError):
    """Region has no descriptor"""


class TaskAlreadyRunningError(PortfolioEngineError):
    """An overlapping run of the same task family is already in flight"""
