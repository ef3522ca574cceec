"""
Tests for Technical Indicators

This module tests the pure indicator calculations used by the
incremental indicator updater.
"""

import pytest
import numpy as np

from portfolio_engine.algorithms.indicators import (
    TechnicalIndicators,
    calculate_all,
    ema,
    macd_histogram,
    moving_average,
    multiple_rsi,
    rsi,
    technical_indicators,
)


class TestMovingAverage:
    """Test simple moving average"""

    def test_window_values(self):
        assert moving_average([1, 2, 3, 4, 5], 3) == [None, None, 2, 3, 4]

    def test_short_input_is_all_none(self):
        assert moving_average([1, 2], 3) == [None, None]
        assert moving_average([], 3) == []

    def test_rejects_non_positive_period(self):
        with pytest.raises(ValueError):
            moving_average([1, 2, 3], 0)


class TestRSI:
    """Test Wilder RSI"""

    @pytest.fixture
    def random_prices(self):
        rng = np.random.default_rng(42)
        return (100 + np.cumsum(rng.normal(0, 2, 300))).tolist()

    def test_known_sequence(self):
        values = rsi([1, 2, 1, 2, 1], period=2)

        assert values[:2] == [None, None]
        assert values[2] == pytest.approx(50.0)
        assert values[3] == pytest.approx(75.0)
        assert values[4] == pytest.approx(37.5)

    def test_first_value_at_period_index(self):
        values = rsi(list(range(1, 31)), period=14)

        assert all(value is None for value in values[:14])
        assert values[14] is not None

    def test_increasing_series_converges_to_100(self):
        values = rsi([float(p) for p in range(1, 60)], period=14)
        assert values[-1] == pytest.approx(100.0)

    def test_decreasing_series_converges_to_0(self):
        values = rsi([float(p) for p in range(60, 1, -1)], period=14)
        assert values[-1] == pytest.approx(0.0)

    def test_values_within_bounds(self, random_prices):
        for period in (9, 14, 21):
            values = [v for v in rsi(random_prices, period) if v is not None]
            assert values
            assert all(0.0 <= v <= 100.0 for v in values)

    def test_multiple_periods_match_single(self, random_prices):
        combined = multiple_rsi(random_prices, (9, 14, 21))

        assert set(combined) == {9, 14, 21}
        for period, values in combined.items():
            assert values == rsi(random_prices, period)

    def test_short_input_is_all_none(self):
        assert rsi([1, 2, 3], period=14) == [None, None, None]
        assert multiple_rsi([5], (9, 14)) == {9: [None], 14: [None]}


class TestEMAAndMACD:
    """Test exponential moving average and MACD histogram"""

    def test_ema_seeded_with_sma(self):
        values = ema([1, 2, 3, 4, 5], 3)

        assert values[:2] == [None, None]
        assert values[2:] == pytest.approx([2.0, 3.0, 4.0])

    def test_ema_short_input(self):
        assert ema([1, 2], 3) == [None, None]

    def test_macd_histogram_is_fast_minus_slow(self):
        result = macd_histogram([1, 2, 3, 4, 5], fast_period=2, slow_period=3)

        assert result.fast[0] is None
        assert result.fast[1:] == pytest.approx([1.5, 2.5, 3.5, 4.5])
        assert result.slow[2:] == pytest.approx([2.0, 3.0, 4.0])
        assert result.histogram[:2] == [None, None]
        assert result.histogram[2:] == pytest.approx([0.5, 0.5, 0.5])

    def test_macd_default_periods_need_26_points(self):
        result = macd_histogram([float(p) for p in range(30)])

        assert result.histogram[24] is None
        assert result.histogram[25] is not None
        assert result.fast[11] is not None


class TestCalculateAll:
    """Test the indicator bundle"""

    def test_bundle_lengths(self):
        prices = [100 + i + (i % 3) for i in range(250)]
        result = calculate_all(prices)

        assert set(result.moving_averages) == {50, 200}
        assert set(result.rsi) == {9, 14, 21}
        assert len(result.macd.histogram) == len(prices)
        assert result.moving_averages[200][198] is None
        assert result.moving_averages[200][199] == pytest.approx(sum(prices[:200]) / 200)

    def test_class_aliases(self):
        assert isinstance(technical_indicators, TechnicalIndicators)
        assert technical_indicators.simple_moving_average([1, 2, 3], 3) == [None, None, 2]
        assert TechnicalIndicators.relative_strength_index([1, 2, 1, 2, 1], 2)[2] == pytest.approx(50.0)
