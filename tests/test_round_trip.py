"""
Tests for the pandas diagnostics tables.
"""

import numpy as np
import pandas as pd

from cdxlib import ModelType, OptionSpec
from cdxlib.options import BlackModel
from cdxlib.reporting import model_comparison, summarize_round_trip, volatility_round_trip
from cdxlib.reporting.round_trip import ROUND_TRIP_COLUMNS

from conftest import INDEX_PREMIUM, STRIKE


class TestVolatilityRoundTrip:
    """Tests for volatility round-trip tables."""

    def test_black_round_trip(self, forwards):
        model = BlackModel.spread_model(True, forwards, INDEX_PREMIUM)
        table = volatility_round_trip(model, [0.2, 0.5, 1.0])
        assert list(table.columns) == ROUND_TRIP_COLUMNS
        assert len(table) == 3
        assert table["error"].abs().max() < 1e-5
        assert table["exercise_probability"].between(0.0, 1.0).all()

    def test_summary(self, forwards):
        model = BlackModel.spread_model(False, forwards, INDEX_PREMIUM)
        summary = summarize_round_trip(volatility_round_trip(model, [0.3, 0.9]))
        assert summary["n_points"] == 2
        assert summary["n_not_implied"] == 0
        assert summary["n_failures"] == 0
        assert summary["max_abs_error"] < 1e-5

    def test_summary_counts_failures(self):
        table = pd.DataFrame({
            "volatility": [0.2, 0.4, 0.6],
            "fair_value": [0.01, 0.02, 0.03],
            "exercise_probability": [0.5, 0.5, 0.5],
            "implied_volatility": [0.2, np.nan, 0.7],
            "error": [0.0, np.nan, 0.1],
        })
        summary = summarize_round_trip(table)
        assert summary["n_not_implied"] == 1
        assert summary["n_failures"] == 2
        assert abs(summary["max_abs_error"] - 0.1) < 1e-15


class TestModelComparison:
    """Tests for side-by-side model tables."""

    def test_black_family(self, forwards, context):
        option = OptionSpec(is_payer=True, strike=STRIKE, index_premium=INDEX_PREMIUM)
        table = model_comparison(
            option, forwards, context,
            ["Black", ModelType.BLACK_PRICE, "BlackArbitrageFree"],
            [0.3, 0.6],
        )
        assert len(table) == 6
        assert list(table["model_type"].unique()) == ["Black", "BlackPrice", "BlackArbitrageFree"]
        assert set(table["kind"]) == {"spread", "price", "arbitrage_free_spread"}
        assert (table["fair_value"] > 0).all()

    def test_values_increase_with_volatility(self, forwards, context):
        option = OptionSpec(is_payer=False, strike=STRIKE, index_premium=INDEX_PREMIUM)
        table = model_comparison(option, forwards, context, ["Black"], [0.2, 0.4, 0.8])
        assert table["fair_value"].is_monotonic_increasing
