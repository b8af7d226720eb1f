"""
Options module - Credit index option valuation.

Provides:
- Black primitives and implied volatility
- Forward snapshots and the forward calculator
- The valuation model family and the model factory
- One-call evaluation entry points
"""

from .base_models import (
    black_b,
    black_value,
    lognormal_probability,
    implied_black_volatility,
)
from .forwards import Forwards, ForwardCalculator
from .models import (
    ModelKind,
    ValuationModel,
    BlackModel,
    ModifiedBlackModel,
    FullSpreadModel,
    DigitalModel,
)
from .factory import BarrierType, Barrier, ModelType, OptionSpec, PricerContext, build_model
from .evaluation import calculate_fair_value, calculate_exercise_probability, imply_volatility

__all__ = [
    "black_b",
    "black_value",
    "lognormal_probability",
    "implied_black_volatility",
    "Forwards",
    "ForwardCalculator",
    "ModelKind",
    "ValuationModel",
    "BlackModel",
    "ModifiedBlackModel",
    "FullSpreadModel",
    "DigitalModel",
    "BarrierType",
    "Barrier",
    "ModelType",
    "OptionSpec",
    "PricerContext",
    "build_model",
    "calculate_fair_value",
    "calculate_exercise_probability",
    "imply_volatility",
]
