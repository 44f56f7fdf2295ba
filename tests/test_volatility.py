"""
Tests for volatility indicators, bands and range estimators.

Validates that:
1. True range needs a previous close; ATR lands at index length
2. Bands collapse onto the basis for zero dispersion
3. Multi-output indicators expose every declared output
4. Range-based estimators match direct formulas
"""

import math

import numpy as np
import pytest

from lockstep.config.constants import PARKINSON_FACTOR
from lockstep.core.errors import IndicatorParameterError
from lockstep.indicators.incremental import (
    ATR,
    ATRBands,
    BollingerBands,
    ChaikinVolatility,
    DonchianChannel,
    GarmanKlassVolatility,
    HistoricalVolatility,
    KeltnerChannels,
    NATR,
    ParkinsonVolatility,
    RogersSatchellVolatility,
    TrueRange,
    YangZhangVolatility,
)
from lockstep.indicators.incremental.volatility import annualization_factor, yang_zhang_k


def _feed(indicator, bars, n=None):
    """Feed the indicator's declared inputs from a bars dict; return primary outputs."""
    n = bars["close"].shape[0] if n is None else n
    out = []
    for i in range(n):
        out.append(indicator.update(**{name: bars[name][i] for name in indicator.INPUTS}))
    return np.array(out)


class TestTrueRange:
    """True range and ATR."""

    def test_first_bar_is_sentinel(self):
        tr = TrueRange()
        assert math.isnan(tr.update(high=10.0, low=8.0, close=9.0))
        assert tr.update(high=12.0, low=10.0, close=11.0) == 3.0
        assert tr.warmup_bars == 2

    def test_atr_first_value_at_index_length(self, bars):
        atr = ATR(length=14)
        out = _feed(atr, bars)

        assert atr.warmup_bars == 15
        assert np.isnan(out[:14]).all()
        assert math.isfinite(out[14])

    def test_atr_seed_is_mean_true_range(self, bars):
        atr = ATR(length=5)
        out = _feed(atr, bars, n=6)
        h, l, c = bars["high"][:6], bars["low"][:6], bars["close"][:6]
        tr = np.maximum(h[1:] - l[1:], np.maximum(abs(h[1:] - c[:-1]), abs(l[1:] - c[:-1])))

        assert out[5] == pytest.approx(tr.mean())

    @pytest.mark.parametrize("ma", ["sma", "ema", "rma", "wma"])
    def test_atr_kinds_share_warmup(self, ma):
        assert ATR(length=10, ma=ma).warmup_bars == 11

    def test_natr_scales_by_close(self, bars):
        atr = _feed(ATR(length=7), bars)
        natr = _feed(NATR(length=7, scale_to_100=True), bars)

        np.testing.assert_allclose(natr[7:], atr[7:] * 100.0 / bars["close"][7:])


class TestBollinger:
    """Bollinger Bands."""

    def test_zero_dispersion_scenario(self):
        """SMA(2) basis, population std(2) over a flat series: bands collapse."""
        bb = BollingerBands(length=2, sample=False)
        for v in [10.0, 10.0, 10.0, 10.0]:
            bb.update(close=v)

        assert bb.upper == bb.basis == bb.lower == 10.0
        assert bb.bandwidth == 0.0
        assert math.isnan(bb.percent_b)

    def test_outputs(self, closes):
        bb = BollingerBands(length=20, mult=2.0)
        for c in closes[:40]:
            bb.update(close=c)
        window = closes[20:40]
        std = window.std(ddof=1)

        assert set(bb.outputs) == {"upper", "basis", "lower", "bandwidth", "percent_b"}
        assert bb.basis == pytest.approx(window.mean())
        assert bb.upper == pytest.approx(window.mean() + 2.0 * std)
        assert bb.get_value("lower") == pytest.approx(window.mean() - 2.0 * std)

    def test_not_ready_outputs_are_sentinels(self):
        bb = BollingerBands(length=3)
        bb.update(close=1.0)
        assert all(math.isnan(v) for v in bb.outputs.values())

    def test_unknown_output_key(self):
        with pytest.raises(KeyError, match="Available outputs"):
            BollingerBands().get_value("middle")

    @pytest.mark.parametrize("mult", [0.0, -1.0, math.inf])
    def test_mult_must_be_positive(self, mult):
        with pytest.raises(IndicatorParameterError, match="mult"):
            BollingerBands(mult=mult)

    def test_ema_basis_warmup(self):
        assert BollingerBands(length=10, ma="ema").warmup_bars == 10


class TestChannels:
    """Keltner, ATR bands and Donchian."""

    def test_keltner_warmup_is_longer_branch(self):
        assert KeltnerChannels(length=20, atr_length=10).warmup_bars == 20
        assert KeltnerChannels(length=5, atr_length=10).warmup_bars == 11

    def test_keltner_band_width(self, bars):
        kc = KeltnerChannels(length=10, atr_length=10, mult=1.5)
        atr = ATR(length=10)
        for i in range(50):
            kc.update(high=bars["high"][i], low=bars["low"][i], close=bars["close"][i])
            atr.update(high=bars["high"][i], low=bars["low"][i], close=bars["close"][i])

        assert kc.upper - kc.basis == pytest.approx(1.5 * atr.value)

    def test_keltner_unknown_deviation(self):
        with pytest.raises(IndicatorParameterError, match="deviation"):
            KeltnerChannels(deviation="stdev")

    def test_atr_bands_outputs(self):
        assert ATRBands.output_keys() == ("upper", "basis", "lower")

    def test_donchian(self):
        dc = DonchianChannel(length=3)
        for h, l in [(10.0, 8.0), (12.0, 9.0), (11.0, 7.0)]:
            dc.update(high=h, low=l)

        assert dc.upper == 12.0
        assert dc.lower == 7.0
        assert dc.mid == 9.5
        assert dc.width == 5.0
        assert dc.percent_width == pytest.approx(5.0 / 9.5)

    def test_chaikin_warmup(self):
        assert ChaikinVolatility(ma_length=10, roc_length=10).warmup_bars == 20

    def test_chaikin_constant_range_is_zero(self):
        cv = ChaikinVolatility(ma_length=3, roc_length=2)
        out = [cv.update(high=11.0, low=10.0) for _ in range(10)]
        assert out[-1] == pytest.approx(0.0)


class TestEstimators:
    """Return- and range-based volatility estimators."""

    def test_annualization(self):
        assert annualization_factor(252.0, 252) == 1.0
        assert HistoricalVolatility(length=20).warmup_bars == 21

    def test_historical_volatility(self, closes):
        hv = HistoricalVolatility(length=10, annualize=False)
        out = [hv.update(close=c) for c in closes[:11]]
        returns = np.log(closes[1:11] / closes[:10])

        assert math.isnan(out[9])
        assert out[10] == pytest.approx(returns.std(ddof=1))

    def test_parkinson(self, bars):
        pk = ParkinsonVolatility(length=5, annualize=False)
        out = _feed(pk, bars, n=5)
        hl = np.log(bars["high"][:5] / bars["low"][:5])

        assert out[4] == pytest.approx(math.sqrt(PARKINSON_FACTOR * (hl ** 2).mean()))

    def test_flat_bars_have_zero_volatility(self):
        flat = {name: np.full(6, 50.0) for name in ("open", "high", "low", "close")}
        for cls in (GarmanKlassVolatility, RogersSatchellVolatility):
            assert _feed(cls(length=5), flat)[-1] == 0.0
        assert _feed(YangZhangVolatility(length=5), flat)[-1] == 0.0

    def test_yang_zhang_k(self):
        assert yang_zhang_k(20) == pytest.approx(0.34 / (1.34 + 21.0 / 19.0))
        assert YangZhangVolatility(length=5).warmup_bars == 6

    def test_yang_zhang_minimum_length(self):
        with pytest.raises(IndicatorParameterError):
            YangZhangVolatility(length=1)

    def test_non_positive_trading_days(self):
        with pytest.raises(IndicatorParameterError, match="trading_days"):
            ParkinsonVolatility(trading_days=0)

    def test_invalid_bar_contributes_sentinel(self):
        gk = GarmanKlassVolatility(length=3)
        gk.update(open=10.0, high=11.0, low=-1.0, close=10.5)
        gk.update(open=10.0, high=11.0, low=9.0, close=10.5)
        assert math.isnan(gk.update(open=10.0, high=11.0, low=9.0, close=10.5))
        assert math.isfinite(gk.update(open=10.0, high=11.0, low=9.0, close=10.5))
