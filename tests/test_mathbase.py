"""
Tests for the scalar primitive layer.

Validates that:
1. Safe operations return NaN on degeneracy instead of raising
2. Rounding resolves ties explicitly per mode
3. Structural misuse (digits, step, period) raises IndicatorParameterError
4. Window helpers honor bounds and sentinels
"""

import math

import numpy as np
import pytest

from lockstep.core.errors import IndicatorParameterError, SeriesLengthError
from lockstep.core.mathbase import (
    RoundMode,
    all_finite,
    almost_equal,
    bound01,
    clamp,
    fill,
    fill_nan,
    lerp,
    map_to_range,
    normalize_double,
    percent_change,
    quantize,
    round_to,
    round_to_tick,
    safe_divide,
    safe_divide_or_default,
    safe_log,
    safe_log10,
    safe_sqrt,
    sign,
    unlerp,
    window_correlation,
    window_covariance,
    window_mean,
    window_stddev,
    window_sum,
    window_variance,
)
from lockstep.core.price_action import (
    body_to_range,
    change_series,
    cumulative_return,
    directional_movement,
    directional_movement_series,
    find_swing_highs,
    find_swing_lows,
    gap_down,
    gap_up,
    garman_klass_component,
    heikin_ashi_bar,
    hl2,
    hlc3,
    is_bear,
    is_bull,
    is_doji,
    is_inside_bar,
    is_narrow_range,
    is_outside_bar,
    is_swing_high,
    is_swing_low,
    is_wide_range,
    log_return_series,
    lower_wick,
    ohlc4,
    parkinson_component,
    percent_change_series,
    real_body,
    rogers_satchell_component,
    true_range,
    true_range_series,
    upper_wick,
)


class TestSafeOperations:
    """Degenerate inputs produce the sentinel."""

    def test_safe_divide_regular(self):
        assert safe_divide(6.0, 3.0) == 2.0

    def test_safe_divide_near_zero_denominator(self):
        assert math.isnan(safe_divide(1.0, 0.0))
        assert math.isnan(safe_divide(1.0, 1e-13))

    def test_safe_divide_non_finite(self):
        assert math.isnan(safe_divide(math.inf, 1.0))
        assert math.isnan(safe_divide(1.0, math.nan))

    def test_safe_divide_or_default(self):
        assert safe_divide_or_default(1.0, 0.0, -1.0) == -1.0
        assert safe_divide_or_default(4.0, 2.0, -1.0) == 2.0

    def test_sqrt_and_log_domains(self):
        assert math.isnan(safe_sqrt(-1.0))
        assert safe_sqrt(9.0) == 3.0
        assert math.isnan(safe_log(0.0))
        assert math.isnan(safe_log(-2.0))
        assert safe_log(math.e) == pytest.approx(1.0)
        assert safe_log10(1000.0) == pytest.approx(3.0)

    def test_almost_equal_treats_two_sentinels_as_equal(self):
        assert almost_equal(math.nan, math.nan)
        assert not almost_equal(math.nan, 1.0)
        assert not almost_equal(math.inf, math.inf)
        assert almost_equal(1.0, 1.0 + 1e-13)
        assert not almost_equal(1.0, 1.0 + 1e-9)

    def test_clamp_and_bound(self):
        assert clamp(5.0, 0.0, 1.0) == 1.0
        assert clamp(-5.0, 0.0, 1.0) == 0.0
        assert bound01(0.25) == 0.25
        assert math.isnan(clamp(math.nan, 0.0, 1.0))

    def test_all_finite(self):
        assert all_finite([1.0, 2.0])
        assert all_finite([])
        assert not all_finite([1.0, math.inf])


class TestRounding:
    """Explicit tie resolution and digit validation."""

    @pytest.mark.parametrize("value,mode,expected", [
        (2.5, RoundMode.HALF_AWAY_FROM_ZERO, 3.0),
        (-2.5, RoundMode.HALF_AWAY_FROM_ZERO, -3.0),
        (2.5, RoundMode.HALF_TO_EVEN, 2.0),
        (3.5, RoundMode.HALF_TO_EVEN, 4.0),
        (-2.5, RoundMode.HALF_TO_EVEN, -2.0),
        (-2.7, RoundMode.TRUNCATE, -2.0),
        (-2.1, RoundMode.FLOOR, -3.0),
        (2.1, RoundMode.CEILING, 3.0),
    ])
    def test_integral_rounding_modes(self, value, mode, expected):
        assert round_to(value, 0, mode) == expected

    def test_tie_at_two_digits(self):
        assert round_to(0.125, 2) == 0.13
        assert round_to(0.125, 2, "half_to_even") == 0.12

    def test_non_tie_rounds_to_nearest(self):
        assert round_to(1.2345, 2) == pytest.approx(1.23)
        assert normalize_double(1.2366, 3) == pytest.approx(1.237)

    @pytest.mark.parametrize("digits", [-1, 16, True, 2.0])
    def test_invalid_digits_raise(self, digits):
        with pytest.raises(IndicatorParameterError):
            round_to(1.0, digits)

    def test_unknown_mode_raises(self):
        with pytest.raises(IndicatorParameterError):
            round_to(1.0, 2, "banker")

    def test_non_finite_value_is_sentinel(self):
        assert math.isnan(round_to(math.nan, 2))
        assert math.isnan(round_to(math.inf, 2))


class TestQuantize:
    """Snapping to a step."""

    def test_quantize_to_step(self):
        assert quantize(1.26, 0.05) == pytest.approx(1.25)
        assert quantize(1.28, 0.05) == pytest.approx(1.30)

    def test_round_to_tick_floor(self):
        assert round_to_tick(100.037, 0.01, RoundMode.FLOOR) == pytest.approx(100.03)

    @pytest.mark.parametrize("step", [0.0, -0.5, math.nan, math.inf])
    def test_invalid_step_raises(self, step):
        with pytest.raises(IndicatorParameterError):
            quantize(1.0, step)

    def test_non_finite_value_is_sentinel(self):
        assert math.isnan(quantize(math.nan, 0.5))


class TestWindowFunctions:
    """values[start:start + period] statistics."""

    def test_sum_and_mean(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert window_sum(values, 0, 4) == 10.0
        assert window_mean(values, 1, 2) == 2.5

    def test_out_of_range_window_is_sentinel(self):
        assert math.isnan(window_sum([1.0, 2.0], 1, 2))
        assert math.isnan(window_mean([1.0, 2.0], -1, 2))

    def test_sentinel_inside_window(self):
        assert math.isnan(window_mean([1.0, math.nan, 3.0], 0, 3))
        assert window_mean([1.0, math.nan, 3.0, 5.0], 2, 2) == 4.0

    def test_zero_period_raises(self):
        with pytest.raises(IndicatorParameterError):
            window_sum([1.0, 2.0], 0, 0)

    def test_variance_sample_and_population(self):
        values = [1.0, 2.0, 3.0, 4.0]
        assert window_variance(values, 0, 4) == pytest.approx(5.0 / 3.0)
        assert window_variance(values, 0, 4, sample=False) == pytest.approx(1.25)
        assert window_stddev(values, 0, 4, sample=False) == pytest.approx(math.sqrt(1.25))

    def test_sample_variance_of_one_point_is_sentinel(self):
        assert math.isnan(window_variance([1.0], 0, 1))
        assert window_variance([1.0], 0, 1, sample=False) == 0.0

    def test_covariance_and_correlation(self):
        x = [1.0, 2.0, 3.0]
        y = [2.0, 4.0, 6.0]
        assert window_covariance(x, y, 0, 3) == pytest.approx(2.0)
        assert window_correlation(x, y, 0, 3) == pytest.approx(1.0)

    def test_correlation_with_flat_side_is_sentinel(self):
        assert math.isnan(window_correlation([1.0, 2.0, 3.0], [5.0, 5.0, 5.0], 0, 3))


class TestAffine:
    """Interpolation and helpers."""

    def test_lerp_unlerp(self):
        assert lerp(0.0, 10.0, 0.25) == 2.5
        assert unlerp(0.0, 10.0, 2.5) == 0.25
        assert math.isnan(unlerp(1.0, 1.0, 3.0))

    def test_map_to_range(self):
        assert map_to_range(5.0, 0.0, 10.0, 0.0, 100.0) == pytest.approx(50.0)
        assert map_to_range(15.0, 0.0, 10.0, 0.0, 100.0) == pytest.approx(150.0)
        assert map_to_range(15.0, 0.0, 10.0, 0.0, 100.0, clamp_result=True) == 100.0

    def test_sign_dead_band(self):
        assert sign(1e-13) == 0
        assert sign(-1.0) == -1
        assert sign(0.5) == 1
        assert sign(math.nan) == 0

    def test_percent_change(self):
        assert percent_change(110.0, 100.0) == pytest.approx(10.0)
        assert math.isnan(percent_change(1.0, 0.0))

    def test_fill(self):
        assert fill(3, 1.5).tolist() == [1.5, 1.5, 1.5]
        assert np.isnan(fill_nan(2)).all()
        with pytest.raises(IndicatorParameterError):
            fill(-1, 0.0)


class TestPriceAction:
    """Price shortcuts and range components."""

    def test_price_shortcuts(self):
        assert hl2(10.0, 8.0) == 9.0
        assert hlc3(10.0, 8.0, 9.0) == pytest.approx(9.0)
        assert ohlc4(8.0, 10.0, 8.0, 10.0) == 9.0
        assert math.isnan(hl2(math.nan, 8.0))

    def test_true_range_uses_previous_close(self):
        assert true_range(10.0, 8.0, 9.0, 12.0) == 4.0
        assert true_range(10.0, 8.0, 9.0, 9.0) == 2.0
        assert math.isnan(true_range(10.0, 8.0, 9.0, math.nan))

    def test_true_range_series(self):
        tr = true_range_series([10.0, 11.0], [8.0, 9.0], [9.0, 10.0])
        assert math.isnan(tr[0])
        assert tr[1] == 2.0

    def test_true_range_series_length_mismatch(self):
        with pytest.raises(SeriesLengthError):
            true_range_series([1.0, 2.0], [1.0], [1.0, 2.0])

    def test_log_return_series(self):
        r = log_return_series([1.0, math.e, 0.0])
        assert math.isnan(r[0])
        assert r[1] == pytest.approx(1.0)
        assert math.isnan(r[2])

    def test_change_series(self):
        d = change_series([1.0, 3.0, math.nan, 2.0])
        assert math.isnan(d[0])
        assert d[1] == 2.0
        assert math.isnan(d[2]) and math.isnan(d[3])

        pct = percent_change_series([50.0, 75.0, 0.0, 1.0])
        assert math.isnan(pct[0])
        assert pct[1] == pytest.approx(50.0)
        assert pct[2] == pytest.approx(-100.0)
        # Zero base has no percent change
        assert math.isnan(pct[3])

    def test_range_components(self):
        assert parkinson_component(math.e, 1.0) == pytest.approx(1.0)
        assert math.isnan(parkinson_component(1.0, 0.0))
        # Flat bar: every log ratio is zero
        assert garman_klass_component(5.0, 5.0, 5.0, 5.0) == 0.0
        assert rogers_satchell_component(5.0, 5.0, 5.0, 5.0) == 0.0


class TestCandleAnatomy:
    """Body, wicks and candle classification."""

    def test_body_and_wicks(self):
        # open=10, high=15, low=8, close=12
        assert real_body(10.0, 12.0) == 2.0
        assert upper_wick(10.0, 15.0, 12.0) == 3.0
        assert lower_wick(10.0, 8.0, 12.0) == 2.0
        assert body_to_range(10.0, 15.0, 8.0, 12.0) == pytest.approx(2.0 / 7.0)

    def test_zero_range_has_no_ratio(self):
        assert math.isnan(body_to_range(5.0, 5.0, 5.0, 5.0))
        assert not is_doji(5.0, 5.0, 5.0, 5.0)

    def test_invalid_inputs(self):
        assert math.isnan(real_body(math.nan, 1.0))
        assert math.isnan(upper_wick(1.0, math.inf, 1.0))
        assert not is_bull(math.nan, 2.0)
        assert not is_bear(2.0, math.nan)

    def test_direction(self):
        assert is_bull(10.0, 11.0)
        assert is_bear(11.0, 10.0)
        # Inside the EPS dead-band a bar is neither
        assert not is_bull(10.0, 10.0 + 1e-13)
        assert not is_bear(10.0, 10.0 - 1e-13)

    def test_doji(self):
        assert is_doji(10.0, 12.0, 8.0, 10.2)
        assert not is_doji(10.0, 12.0, 8.0, 11.0)
        assert is_doji(10.0, 12.0, 8.0, 11.0, max_body_ratio=0.25)


class TestBarRelations:
    """Inside/outside bars, gaps and range extremes."""

    def test_inside_and_outside(self):
        assert is_inside_bar(10.0, 5.0, 9.0, 6.0)
        assert is_inside_bar(10.0, 5.0, 10.0, 5.0)
        assert not is_outside_bar(10.0, 5.0, 10.0, 5.0)
        assert is_outside_bar(10.0, 5.0, 11.0, 4.0)
        assert not is_inside_bar(math.nan, 5.0, 9.0, 6.0)

    def test_gaps(self):
        assert gap_up(10.0, 10.5)
        assert not gap_up(10.0, 10.0)
        assert gap_down(10.0, 9.5)
        assert not gap_down(math.nan, 9.5)

    def test_narrow_and_wide_range(self):
        ranges = [3.0, 2.0, 4.0, 1.0]
        assert is_narrow_range(ranges, 4)
        assert not is_wide_range(ranges, 4)
        assert is_wide_range([3.0, 2.0, 4.0, 5.0], 4)
        # Ties are not extremes
        assert not is_narrow_range([1.0, 2.0, 1.0], 3)

    def test_range_extremes_need_enough_valid_bars(self):
        assert not is_narrow_range([2.0, 1.0], 4)
        assert not is_narrow_range([3.0, math.nan, 2.0, 1.0], 4)
        with pytest.raises(IndicatorParameterError):
            is_wide_range([1.0, 2.0], 0)


class TestDirectionalMovement:
    """Wilder +DM / -DM."""

    def test_up_move_dominates(self):
        assert directional_movement(12.0, 9.5, 10.0, 9.0) == (2.0, 0.0)

    def test_down_move_dominates(self):
        assert directional_movement(10.5, 7.0, 10.0, 9.0) == (0.0, 2.0)

    def test_inside_bar_has_no_movement(self):
        assert directional_movement(9.5, 9.2, 10.0, 9.0) == (0.0, 0.0)

    def test_series(self):
        plus, minus = directional_movement_series([10.0, 12.0, 10.5], [9.0, 9.5, 7.0])
        assert math.isnan(plus[0]) and math.isnan(minus[0])
        assert (plus[1], minus[1]) == (2.0, 0.0)
        assert (plus[2], minus[2]) == (0.0, 2.5)

    def test_series_length_mismatch(self):
        with pytest.raises(SeriesLengthError):
            directional_movement_series([1.0, 2.0], [1.0])


class TestReturnsAndSwings:
    """Cumulative returns and swing pivots."""

    def test_cumulative_simple_returns(self):
        assert cumulative_return([0.1, -0.1]) == pytest.approx(1.1 * 0.9 - 1.0)

    def test_cumulative_log_returns(self):
        assert cumulative_return([math.log(2.0), math.log(1.5)], log_returns=True) == pytest.approx(2.0)

    def test_cumulative_invalid(self):
        assert math.isnan(cumulative_return([]))
        assert math.isnan(cumulative_return([0.1, math.nan]))

    def test_swing_high(self):
        highs = [1.0, 2.0, 5.0, 3.0, 5.0, 1.0]
        assert is_swing_high(highs, 2, 2, 2)
        # Equal high on the left side disqualifies the later pivot
        assert not is_swing_high(highs, 4, 2, 1)
        # Not enough bars to the right yet
        assert not is_swing_high(highs, 4, 1, 2)
        assert find_swing_highs(highs, 2, 2) == [2]

    def test_swing_low(self):
        lows = [5.0, 4.0, 1.0, 3.0, 2.0, 4.0]
        assert is_swing_low(lows, 2, 2, 2)
        assert find_swing_lows(lows, 1, 1) == [2, 4]

    def test_swing_needs_finite_window(self):
        assert not is_swing_high([1.0, math.nan, 5.0, 3.0, 2.0], 2, 2, 2)


class TestHeikinAshiBar:
    """One Heikin-Ashi candle."""

    def test_first_bar_seed(self):
        ha_open, ha_high, ha_low, ha_close = heikin_ashi_bar(10.0, 14.0, 8.0, 12.0, math.nan, math.nan)
        assert ha_close == 11.0
        assert ha_open == 11.0
        assert ha_high == 14.0
        assert ha_low == 8.0

    def test_recursive_open(self):
        ha_open, _, _, ha_close = heikin_ashi_bar(12.0, 13.0, 11.0, 12.0, 10.0, 11.0)
        assert ha_open == 10.5
        assert ha_close == 12.0

    def test_invalid_bar(self):
        assert all(math.isnan(v) for v in heikin_ashi_bar(math.nan, 1.0, 1.0, 1.0, 1.0, 1.0))
