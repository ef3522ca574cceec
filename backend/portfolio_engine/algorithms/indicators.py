"""Technical indicator calculation functions.

All functions take prices in chronological order (oldest first) and return a
list of the same length. Positions without enough history hold None.
"""

from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence

import numpy as np


Series = List[Optional[float]]


class MACDResult(NamedTuple):
    fast: Series
    slow: Series
    histogram: Series


class IndicatorSeries(NamedTuple):
    moving_averages: Dict[int, Series]
    rsi: Dict[int, Series]
    macd: MACDResult


def _empty(length: int) -> Series:
    return [None] * length


def moving_average(prices: Sequence[float], period: int) -> Series:
    """Simple moving average over the trailing ``period`` values."""
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) < period:
        return _empty(len(prices))

    windows = np.lib.stride_tricks.sliding_window_view(np.asarray(prices, dtype=float), period)
    means = windows.mean(axis=1)
    return _empty(period - 1) + [float(value) for value in means]


def _gains_and_losses(prices: Sequence[float]):
    changes = np.diff(np.asarray(prices, dtype=float))
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)
    return gains, losses


def _wilder_rsi(gains: np.ndarray, losses: np.ndarray, length: int, period: int) -> Series:
    values = _empty(length)
    if len(gains) < period:
        return values

    avg_gain = float(gains[:period].sum()) / period
    avg_loss = float(losses[:period].sum()) / period
    values[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, len(gains)):
        avg_gain = (avg_gain * (period - 1) + float(gains[i])) / period
        avg_loss = (avg_loss * (period - 1) + float(losses[i])) / period
        # change i sits between price i and price i+1
        values[i + 1] = _rsi_value(avg_gain, avg_loss)

    return values


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    # no losses in the window saturates the oscillator
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - (100.0 / (1.0 + rs))


def rsi(prices: Sequence[float], period: int = 14) -> Series:
    """Wilder's Relative Strength Index.

    Index ``period`` holds the first value, seeded from the simple average of
    the first ``period`` gains and losses. Later values use Wilder smoothing.
    """
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    if len(prices) < period + 1:
        return _empty(len(prices))
    gains, losses = _gains_and_losses(prices)
    return _wilder_rsi(gains, losses, len(prices), period)


def multiple_rsi(prices: Sequence[float], periods: Iterable[int] = (14,)) -> Dict[int, Series]:
    """RSI for several periods sharing one gain/loss series."""
    periods = list(periods)
    for period in periods:
        if period <= 0:
            raise ValueError(f"period must be positive, got {period}")
    if len(prices) < 2:
        return {period: _empty(len(prices)) for period in periods}

    gains, losses = _gains_and_losses(prices)
    return {period: _wilder_rsi(gains, losses, len(prices), period) for period in periods}


def ema(prices: Sequence[float], period: int) -> Series:
    """Exponential moving average seeded with the SMA of the first ``period`` prices."""
    if period <= 0:
        raise ValueError(f"period must be positive, got {period}")
    values = _empty(len(prices))
    if len(prices) < period:
        return values

    k = 2.0 / (period + 1)
    current = float(sum(prices[:period])) / period
    values[period - 1] = current
    for i in range(period, len(prices)):
        current = float(prices[i]) * k + current * (1.0 - k)
        values[i] = current
    return values


def macd_histogram(prices: Sequence[float], fast_period: int = 12, slow_period: int = 26) -> MACDResult:
    """Fast EMA, slow EMA and their difference.

    The histogram is fast - slow; no signal line is derived.
    """
    fast = ema(prices, fast_period)
    slow = ema(prices, slow_period)
    histogram = [
        f - s if f is not None and s is not None else None
        for f, s in zip(fast, slow)
    ]
    return MACDResult(fast=fast, slow=slow, histogram=histogram)


def calculate_all(
    prices: Sequence[float],
    ma_periods: Iterable[int] = (50, 200),
    rsi_periods: Iterable[int] = (9, 14, 21),
    fast_period: int = 12,
    slow_period: int = 26,
) -> IndicatorSeries:
    """Every indicator the engine stores, over one price window."""
    return IndicatorSeries(
        moving_averages={period: moving_average(prices, period) for period in ma_periods},
        rsi=multiple_rsi(prices, rsi_periods),
        macd=macd_histogram(prices, fast_period, slow_period),
    )


class TechnicalIndicators:
    """Technical indicator calculations for the indicator updater."""

    simple_moving_average = staticmethod(moving_average)
    exponential_moving_average = staticmethod(ema)
    relative_strength_index = staticmethod(rsi)
    multiple_relative_strength_index = staticmethod(multiple_rsi)
    macd = staticmethod(macd_histogram)
    calculate_all = staticmethod(calculate_all)


# Global instance
technical_indicators = TechnicalIndicators()
