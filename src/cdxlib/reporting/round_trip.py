"""
Tabular diagnostics for valuation models.

Provides pandas tables for:
- Volatility round trips (value -> implied volatility -> error)
- Side-by-side fair values of several model types on one option
"""

from typing import Any, Dict, Iterable, Sequence, Union

import numpy as np
import pandas as pd

from ..options.factory import ModelType, OptionSpec, PricerContext, build_model
from ..options.forwards import Forwards
from ..options.models import ValuationModel


ROUND_TRIP_COLUMNS = [
    "volatility",
    "fair_value",
    "exercise_probability",
    "implied_volatility",
    "error",
]


def volatility_round_trip(
    model: ValuationModel,
    volatilities: Iterable[float],
) -> pd.DataFrame:
    """
    Price at each volatility and invert the price back to a volatility.

    Args:
        model: Valuation model
        volatilities: Volatilities to test

    Returns:
        DataFrame with columns volatility, fair_value, exercise_probability,
        implied_volatility and error (implied - input, NaN if not implied)
    """
    rows = []
    for vol in volatilities:
        fv = model.calculate_fair_value(vol)
        implied = model.imply_volatility(fv)
        rows.append({
            "volatility": vol,
            "fair_value": fv,
            "exercise_probability": model.calculate_exercise_probability(vol),
            "implied_volatility": implied,
            "error": implied - vol,
        })
    return pd.DataFrame(rows, columns=ROUND_TRIP_COLUMNS)


def model_comparison(
    option: OptionSpec,
    forwards: Forwards,
    context: PricerContext,
    model_types: Sequence[Union[ModelType, str]],
    volatilities: Iterable[float],
) -> pd.DataFrame:
    """
    Fair values and exercise probabilities per model type and volatility.

    Returns:
        Long-format DataFrame with columns model_type, kind, volatility,
        fair_value and exercise_probability
    """
    vols = list(volatilities)
    rows = []
    for model_type in model_types:
        model = build_model(option, forwards, model_type, context)
        name = model_type.value if isinstance(model_type, ModelType) else model_type
        for vol in vols:
            rows.append({
                "model_type": name,
                "kind": model.kind.value,
                "volatility": vol,
                "fair_value": model.calculate_fair_value(vol),
                "exercise_probability": model.calculate_exercise_probability(vol),
            })
    return pd.DataFrame(rows)


def summarize_round_trip(table: pd.DataFrame, tolerance: float = 1e-4) -> Dict[str, Any]:
    """
    Summary statistics of a round-trip table.

    Args:
        table: Output of volatility_round_trip
        tolerance: Error above which a row counts as a failure
    """
    errors = table["error"].abs()
    return {
        "n_points": len(table),
        "n_not_implied": int(table["implied_volatility"].isna().sum()),
        "max_abs_error": float(errors.max()) if errors.notna().any() else np.nan,
        "n_failures": int((errors > tolerance).sum() + errors.isna().sum()),
    }


__all__ = ["volatility_round_trip", "model_comparison", "summarize_round_trip"]
