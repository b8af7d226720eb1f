"""
Model factory for credit index options.

build_model selects the valuation model for an option:
1. Barrier options -> FullSpreadModel with knock-out bounds (BARRIER kind)
2. Digital options -> price digital for BLACK_PRICE, else spread digital
3. Vanilla options -> dispatch on the requested ModelType

Usage:
    >>> context = PricerContext(pricer=index_pricer, expiry=0.25)
    >>> option = OptionSpec(is_payer=True, strike=0.0075, index_premium=0.01)
    >>> model = build_model(option, forwards, "modified_black", context)
    >>> model.calculate_fair_value(0.5)
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

import numpy as np

from ..config import NumericalSettings, DEFAULT_SETTINGS
from ..errors import InvalidConfiguration
from ..numerics.quadrature import QuadratureNodeSet
from ..pricers.cds import CdsPricer
from .forwards import Forwards, forward_riskless_pv01, forward_upfront_value
from .models import BlackModel, DigitalModel, FullSpreadModel, ModifiedBlackModel, ValuationModel


class BarrierType(Enum):
    """Barrier option types."""
    UP_IN = "UpIn"
    UP_OUT = "UpOut"
    DOWN_IN = "DownIn"
    DOWN_OUT = "DownOut"
    ONE_TOUCH = "OneTouch"
    NO_TOUCH = "NoTouch"


@dataclass(frozen=True)
class Barrier:
    """A single barrier level, quoted like the option strike."""
    barrier_type: BarrierType
    value: float


class ModelType(Enum):
    """Requested valuation model."""
    BLACK = "Black"
    BLACK_PRICE = "BlackPrice"
    BLACK_ARBITRAGE_FREE = "BlackArbitrageFree"
    MODIFIED_BLACK = "ModifiedBlack"
    FULL_SPREAD = "FullSpread"

    @classmethod
    def from_string(cls, s: str) -> "ModelType":
        """Parse model type, ignoring case, spaces, dashes and underscores."""
        key = s.upper().replace(" ", "").replace("_", "").replace("-", "")
        for member in cls:
            if member.value.upper() == key:
                return member
        raise InvalidConfiguration(f"Unknown model type: {s}")


@dataclass(frozen=True)
class OptionSpec:
    """
    Credit index option terms.

    Attributes:
        is_payer: True for a payer (option to buy protection)
        strike: Strike spread, or price if strike_is_price
        index_premium: Running coupon of the index
        strike_is_price: True if strike and barriers are prices
        barriers: Up to two barriers
        is_digital: True for a digital payoff
    """
    is_payer: bool
    strike: float
    index_premium: float
    strike_is_price: bool = False
    barriers: Tuple[Barrier, ...] = ()
    is_digital: bool = False

    def __post_init__(self):
        """Validate option terms."""
        object.__setattr__(self, "barriers", tuple(self.barriers))
        if len(self.barriers) > 2:
            raise ValueError(f"At most two barriers supported, got {len(self.barriers)}")
        if not np.isfinite(self.strike):
            raise ValueError(f"Strike must be finite, got {self.strike}")

    @property
    def is_barrier(self) -> bool:
        return len(self.barriers) > 0

    @property
    def is_double_barrier(self) -> bool:
        return len(self.barriers) == 2


@dataclass
class PricerContext:
    """
    Market context shared by the pricer-backed models.

    Attributes:
        pricer: Index CDS pricer (premium = index coupon, as_of = valuation time)
        expiry: Option expiry (years)
        nodes: Quadrature nodes for the Modified Black model
        settings: Numerical settings
        logger: Diagnostics logger passed to the models
    """
    pricer: CdsPricer
    expiry: float
    nodes: QuadratureNodeSet = field(default_factory=QuadratureNodeSet.empty)
    settings: NumericalSettings = DEFAULT_SETTINGS
    logger: Optional[logging.Logger] = None

    @property
    def as_of(self) -> float:
        return self.pricer.as_of

    @property
    def effective(self) -> float:
        return self.pricer.effective

    @property
    def recovery_rate(self) -> float:
        return self.pricer.recovery_rate

    @property
    def discount_curve(self):
        return self.pricer.discount_curve

    @property
    def protection_start(self) -> float:
        """Start of forward protection, max(effective, as_of)."""
        return max(self.effective, self.as_of)

    def forward_upfront_value(self, quote: float, quote_is_price: bool) -> float:
        return forward_upfront_value(
            self.pricer, self.expiry, quote, quote_is_price, self.settings)

    def forward_riskless_pv01(self) -> float:
        return forward_riskless_pv01(self.pricer, self.expiry)

    def model_options(self) -> dict:
        return {"settings": self.settings, "logger": self.logger}


def _barrier_bounds(barriers: Tuple[Barrier, ...]) -> Tuple[float, float]:
    """(upper, lower) quote levels; NaN when absent."""
    upper = lower = np.nan
    for barrier in barriers:
        bt = barrier.barrier_type
        if bt in (BarrierType.UP_OUT, BarrierType.DOWN_IN):
            upper = barrier.value
        elif bt in (BarrierType.UP_IN, BarrierType.DOWN_OUT):
            lower = barrier.value
        else:
            raise InvalidConfiguration(f"Barrier type {bt.value} not supported")
    return upper, lower


def build_model(
    option: OptionSpec,
    forwards: Forwards,
    model_type: Union[ModelType, str],
    context: PricerContext,
) -> ValuationModel:
    """
    Build the valuation model for an option.

    Args:
        option: Option terms
        forwards: Forward snapshot at the option expiry
        model_type: Requested model (enum or name)
        context: Pricer context

    Returns:
        ValuationModel instance

    Raises:
        InvalidConfiguration: Unknown model type or unsupported barrier
    """
    if isinstance(model_type, str):
        model_type = ModelType.from_string(model_type)
    if not isinstance(model_type, ModelType):
        raise InvalidConfiguration(f"Unknown model type: {model_type!r}")

    is_payer = option.is_payer
    kwargs = context.model_options()

    if option.is_barrier:
        upper, lower = _barrier_bounds(option.barriers)
        is_price = option.strike_is_price
        if is_price:
            upper, lower = lower, upper
        upper = np.inf if np.isnan(upper) else context.forward_upfront_value(upper, is_price)
        lower = -np.inf if np.isnan(lower) else context.forward_upfront_value(lower, is_price)
        return FullSpreadModel.with_barriers(
            is_payer, forwards, context.pricer, context.protection_start, context.expiry,
            lower_upfront=lower, upper_upfront=upper, **kwargs
        )

    if option.is_digital:
        if model_type == ModelType.BLACK_PRICE:
            return DigitalModel.price_digital(is_payer, forwards, **kwargs)
        return DigitalModel.spread_digital(
            is_payer, forwards, context.pricer, context.expiry,
            nodes=context.nodes, **kwargs
        )

    if model_type == ModelType.BLACK:
        return BlackModel.spread_model(is_payer, forwards, option.index_premium, **kwargs)
    if model_type == ModelType.BLACK_PRICE:
        return BlackModel.price_model(is_payer, forwards, **kwargs)
    if model_type == ModelType.BLACK_ARBITRAGE_FREE:
        annuity = option.index_premium * context.forward_riskless_pv01()
        return BlackModel.arbitrage_free_spread_model(is_payer, forwards, annuity, **kwargs)
    if model_type == ModelType.MODIFIED_BLACK:
        return ModifiedBlackModel.from_forwards(
            is_payer, forwards, context.pricer, context.expiry,
            nodes=context.nodes, **kwargs
        )
    if model_type == ModelType.FULL_SPREAD:
        return FullSpreadModel(
            is_payer, forwards, context.pricer, context.protection_start,
            context.expiry, **kwargs
        )
    raise InvalidConfiguration(f"{model_type}: unknown model type")


__all__ = [
    "BarrierType",
    "Barrier",
    "ModelType",
    "OptionSpec",
    "PricerContext",
    "build_model",
]
