"""
cdxlib: Credit Index Option Valuation Library

A modular library for:
- Valuing payer/receiver options on a credit index (vanilla, digital, barrier)
- Black, price-quoted Black, arbitrage-free Black, Modified Black and
  full-spread (log-normal hazard rate) models behind one contract
- Exercise probabilities and implied volatilities

Scope: a flat-hazard CDS pricer stands in for the index; curve
bootstrapping and trade representation are left to the caller.
"""

__version__ = "0.1.0"

from .config import NumericalSettings, DEFAULT_SETTINGS
from .errors import CdxLibError, InvalidConfiguration, NumericalFailure, CalibrationFailure

# Curves and pricers
from .curves import DiscountCurve
from .pricers import CdsPricer

# Numerics
from .numerics import QuadratureNodeSet, LogNormal, solve

# Options
from .options import (
    Forwards,
    ForwardCalculator,
    ModelKind,
    ValuationModel,
    BlackModel,
    ModifiedBlackModel,
    FullSpreadModel,
    DigitalModel,
    BarrierType,
    Barrier,
    ModelType,
    OptionSpec,
    PricerContext,
    build_model,
    calculate_fair_value,
    calculate_exercise_probability,
    imply_volatility,
)

__all__ = [
    "NumericalSettings",
    "DEFAULT_SETTINGS",
    "CdxLibError",
    "InvalidConfiguration",
    "NumericalFailure",
    "CalibrationFailure",
    "DiscountCurve",
    "CdsPricer",
    "QuadratureNodeSet",
    "LogNormal",
    "solve",
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
