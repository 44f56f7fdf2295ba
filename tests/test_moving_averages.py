"""
Tests for moving-average cascades and adaptive averages.

Validates that:
1. Cascade warm-up follows sum(stage warm-ups) - (stages - 1)
2. First finite output lands exactly at index warmup_bars - 1
3. Kind dispatch resolves at construction
4. KAMA seeds from the SMA and holds on flat windows
"""

import math

import numpy as np
import pytest

from lockstep.core.errors import IndicatorParameterError
from lockstep.indicators.incremental import (
    DEMA,
    EMA,
    HMA,
    KAMA,
    LSMA,
    MAKind,
    RMA,
    SMA,
    T3,
    TEMA,
    TMA,
    WMA,
    ZLEMA,
    MedianMA,
    create_moving_average,
)
from lockstep.indicators.incremental.moving_averages import hma_lengths, t3_coefficients


def _run(indicator, values):
    return np.array([indicator.update(close=v) for v in values])


def _first_finite(values: np.ndarray) -> int:
    return int(np.flatnonzero(~np.isnan(values))[0])


class TestCascadeWarmup:
    """Analytic warm-up of composed averages."""

    @pytest.mark.parametrize("indicator,expected", [
        (DEMA(length=10), 19),
        (TEMA(length=10), 28),
        (T3(length=5), 25),
        (TMA(length=10), 19),
        (HMA(length=16), 19),
        (ZLEMA(length=10), 14),
        (DEMA(length=10, seed="first_sample"), 1),
        (TEMA(length=4, seed="defer"), 10),
    ])
    def test_warmup_formula(self, indicator, expected):
        assert indicator.warmup_bars == expected

    @pytest.mark.parametrize("indicator", [
        DEMA(length=10),
        TEMA(length=7),
        T3(length=4),
        TMA(length=6),
        HMA(length=9),
        ZLEMA(length=8),
        KAMA(length=10),
        LSMA(length=5),
        MedianMA(length=5),
    ])
    def test_first_output_at_warmup_boundary(self, indicator, closes):
        out = _run(indicator.fresh(), closes)
        assert _first_finite(out) == indicator.warmup_bars - 1


class TestDEMA:
    """Double EMA."""

    def test_linear_ramp_has_no_lag(self):
        """On a ramp, 2*ema1 - ema2 recovers the input once both stages are seeded."""
        values = np.arange(1.0, 41.0)
        out = _run(DEMA(length=5), values)
        np.testing.assert_allclose(out[-5:], values[-5:], rtol=1e-6)

    def test_matches_manual_chain(self, closes):
        ema1, ema2 = EMA(length=6), EMA(length=6)
        expected = []
        for c in closes[:60]:
            ema1.update(close=c)
            if ema1.is_ready:
                ema2.update(close=ema1.value)
            expected.append(2 * ema1.value - ema2.value if ema2.is_ready else math.nan)

        np.testing.assert_allclose(_run(DEMA(length=6), closes[:60]), expected, equal_nan=True)


class TestT3:
    """Tillson T3."""

    def test_coefficients_sum_to_one(self):
        assert sum(t3_coefficients(0.7)) == pytest.approx(1.0)

    def test_v_factor_bounds(self):
        with pytest.raises(IndicatorParameterError, match="v_factor"):
            T3(v_factor=1.5)


class TestHMA:
    """Hull moving average."""

    def test_lengths(self):
        assert hma_lengths(16) == (8, 4)
        assert hma_lengths(9) == (5, 3)

    def test_constant_input(self):
        out = _run(HMA(length=9), [3.0] * 30)
        assert out[-1] == pytest.approx(3.0)


class TestZLEMA:
    """Zero-lag EMA."""

    def test_lag(self):
        assert ZLEMA(length=10).lag == 4
        assert ZLEMA(length=1).lag == 0

    def test_first_sample_seed_shifts_warmup(self):
        assert ZLEMA(length=10, seed="first_sample").warmup_bars == 5


class TestKindDispatch:
    """create_moving_average()."""

    @pytest.mark.parametrize("kind,cls", [
        ("sma", SMA),
        ("ema", EMA),
        ("rma", RMA),
        (MAKind.WMA, WMA),
    ])
    def test_kinds(self, kind, cls):
        assert isinstance(create_moving_average(kind, 5), cls)

    def test_unknown_kind_raises(self):
        with pytest.raises(IndicatorParameterError, match="ma"):
            create_moving_average("hull", 5)


class TestKAMA:
    """Kaufman adaptive moving average."""

    def test_seed_is_sma(self):
        values = [1.0, 2.0, 3.0, 4.0]
        out = _run(KAMA(length=4), values)
        assert out[3] == pytest.approx(2.5)

    def test_efficient_trend_uses_fast_constant(self):
        """A straight line has efficiency ratio 1, so sc = fast_sc^2."""
        kama = KAMA(length=3, fast=2, slow=30)
        out = _run(kama, [1.0, 2.0, 3.0, 4.0])
        fast_sc = 2.0 / 3.0
        sc = fast_sc ** 2
        assert out[3] == pytest.approx(sc * 4.0 + (1 - sc) * 2.0)

    def test_flat_window_holds(self):
        out = _run(KAMA(length=3), [5.0] * 8)
        assert out[2:].tolist() == [5.0] * 6

    def test_slow_must_not_be_below_fast(self):
        with pytest.raises(IndicatorParameterError, match="slow"):
            KAMA(fast=10, slow=5)

    def test_sentinel_poisons(self):
        out = _run(KAMA(length=3), [1.0, 2.0, 3.0, math.nan, 5.0])
        assert math.isfinite(out[2])
        assert np.isnan(out[3:]).all()
