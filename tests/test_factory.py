"""
Tests for the indicator registry and factory.

Validates that:
1. Every registered type constructs with defaults
2. Accepted params come from the dataclass init fields
3. Unknown types and params raise with a Fix hint
4. Factory-reported warm-up equals the instance's analytic warm-up
"""

import numpy as np
import pytest

from lockstep.core.errors import (
    IndicatorParameterError,
    UnknownIndicatorError,
    UnknownParameterError,
)
from lockstep.indicators.incremental import (
    BollingerBands,
    IncrementalIndicator,
    create_incremental_indicator,
    get_indicator_info,
    get_input_series,
    get_output_keys,
    get_warmup_bars,
    list_incremental_indicators,
    supports_incremental,
)
from lockstep.indicators.incremental.factory import get_accepted_params


ALL_TYPES = list_incremental_indicators()


class TestRegistry:
    """Registry queries."""

    def test_listing_is_sorted_and_complete(self):
        assert ALL_TYPES == sorted(ALL_TYPES)
        for name in ("ema", "sma", "dema", "kama", "atr", "bbands", "yang_zhang"):
            assert name in ALL_TYPES

    def test_supports_is_case_insensitive(self):
        assert supports_incremental("EMA")
        assert not supports_incremental("supertrend")

    def test_output_keys(self):
        assert get_output_keys("ema") == ("value",)
        assert get_output_keys("bbands") == ("upper", "basis", "lower", "bandwidth", "percent_b")
        assert get_output_keys("linreg") == ("endpoint", "slope")

    def test_input_series(self):
        assert get_input_series("sma") == ("close",)
        assert get_input_series("atr") == ("high", "low", "close")
        assert get_input_series("correlation") == ("x", "y")
        assert get_input_series("yang_zhang") == ("open", "high", "low", "close")

    def test_accepted_params_are_init_fields(self):
        assert get_accepted_params("ema") == frozenset({"length", "seed"})
        assert get_accepted_params("halflife_ema") == frozenset({"half_life", "seed"})
        assert "alpha" not in get_accepted_params("rma")

    def test_info(self):
        info = get_indicator_info("bbands")
        assert info.cls is BollingerBands
        assert info.category == "bands"
        assert info.is_multi_output
        assert info.primary_output == "upper"


class TestFactory:
    """create_incremental_indicator()."""

    @pytest.mark.parametrize("indicator_type", ALL_TYPES)
    def test_every_type_constructs_with_defaults(self, indicator_type):
        ind = create_incremental_indicator(indicator_type)
        assert isinstance(ind, IncrementalIndicator)
        assert ind.warmup_bars >= 1
        assert not ind.is_ready

    @pytest.mark.parametrize("indicator_type", ALL_TYPES)
    def test_warmup_lookup_matches_instance(self, indicator_type):
        assert get_warmup_bars(indicator_type) == create_incremental_indicator(indicator_type).warmup_bars

    def test_params_are_applied(self):
        ind = create_incremental_indicator("ema", {"length": 7, "seed": "first_sample"})
        assert ind.length == 7
        assert ind.warmup_bars == 1

    def test_unknown_type(self):
        with pytest.raises(UnknownIndicatorError, match="Fix:"):
            create_incremental_indicator("supertrend")

    def test_unknown_param(self):
        with pytest.raises(UnknownParameterError, match="Unknown params"):
            create_incremental_indicator("ema", {"length": 5, "period": 5})

    def test_unknown_param_is_a_parameter_error(self):
        with pytest.raises(IndicatorParameterError):
            create_incremental_indicator("sma", {"window": 5})

    def test_bad_value(self):
        with pytest.raises(IndicatorParameterError, match="length"):
            create_incremental_indicator("sma", {"length": 0})

    @pytest.mark.parametrize("indicator_type,params,expected", [
        ("sma", {"length": 20}, 20),
        ("atr", {"length": 14}, 15),
        ("dema", {"length": 10}, 19),
        ("roc", {"length": 10}, 11),
        ("historical_volatility", {"length": 20}, 21),
        ("chaikin_volatility", {}, 20),
    ])
    def test_known_warmups(self, indicator_type, params, expected):
        assert get_warmup_bars(indicator_type, params) == expected

    @pytest.mark.parametrize("indicator_type", ALL_TYPES)
    def test_reset_restores_construction_state(self, indicator_type, bars):
        ind = create_incremental_indicator(indicator_type)
        for i in range(30):
            ind.update(**{name: bars[name][i] for name in ind.INPUTS})
        ind.reset()

        assert ind.bars_seen == 0
        assert not ind.is_ready
        assert ind.bars_until_ready == ind.warmup_bars
        assert ind.init_params() == create_incremental_indicator(indicator_type).init_params()

    @pytest.mark.parametrize("indicator_type", ALL_TYPES)
    def test_reset_replays_like_new_instance(self, indicator_type, bars):
        ind = create_incremental_indicator(indicator_type)
        for i in range(30):
            ind.update(**{name: bars[name][i] for name in ind.INPUTS})
        ind.reset()
        new = create_incremental_indicator(indicator_type)

        for i in range(60):
            bar = {name: bars[name][i] for name in ind.INPUTS}
            assert ind.step(**bar)[1] == new.step(**bar)[1]
            np.testing.assert_array_equal(list(ind.outputs.values()), list(new.outputs.values()))
