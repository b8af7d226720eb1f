"""
One-call evaluation of credit index options.

Each entry point builds the valuation model for the option and forward
snapshot, then delegates to it.
"""

from typing import Union

from .factory import ModelType, OptionSpec, PricerContext, build_model
from .forwards import Forwards


def calculate_fair_value(
    option: OptionSpec,
    forwards: Forwards,
    volatility: float,
    model_type: Union[ModelType, str],
    context: PricerContext,
) -> float:
    """
    Option fair value per unit original notional.

    Args:
        option: Option terms
        forwards: Forward snapshot at expiry
        volatility: Total log-normal volatility
        model_type: Requested model
        context: Pricer context
    """
    return build_model(option, forwards, model_type, context).calculate_fair_value(volatility)


def calculate_exercise_probability(
    option: OptionSpec,
    forwards: Forwards,
    volatility: float,
    model_type: Union[ModelType, str],
    context: PricerContext,
) -> float:
    """Probability that the option is exercised."""
    model = build_model(option, forwards, model_type, context)
    return model.calculate_exercise_probability(volatility)


def imply_volatility(
    option: OptionSpec,
    fair_value: float,
    forwards: Forwards,
    model_type: Union[ModelType, str],
    context: PricerContext,
) -> float:
    """Volatility reproducing `fair_value`; NaN when none exists."""
    return build_model(option, forwards, model_type, context).imply_volatility(fair_value)


__all__ = ["calculate_fair_value", "calculate_exercise_probability", "imply_volatility"]
