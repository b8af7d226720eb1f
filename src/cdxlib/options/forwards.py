"""
Forward market data for credit index options.

A Forwards snapshot carries, for one expiry, the forward upfront and
annuity of the index, the discount factor and survival probability to
expiry, the front-end protection and the notional-factor adjustments for
realized losses. The ForwardCalculator builds snapshots from a CDS pricer
calibrated flat to the index quote.

Conventions:
    - Upfront values are per unit of surviving notional at expiry
    - pv01 is the full forward annuity (accrued included) at expiry
    - front_end_protection is the expected loss before expiry, forward to expiry
"""

from dataclasses import dataclass
from typing import Optional

from ..config import NumericalSettings, DEFAULT_SETTINGS
from ..pricers.cds import CdsPricer, calibrate_hazard_to_pv, calibrate_hazard_to_spread


@dataclass(frozen=True)
class Forwards:
    """
    Forward snapshot for a single option expiry.

    Attributes:
        pv01: Forward risky annuity
        upfront: Forward upfront value, pv01 * (forward spread - premium)
        survival_probability: Survival from protection start to expiry
        discount_factor: Discount factor from as-of to expiry
        front_end_protection: Forward value of losses before expiry
        strike_value: Strike expressed as a forward upfront value
        initial_factor: Notional factor at option inception
        loss: Realized loss per unit original notional
        factor: Current notional factor
    """
    pv01: float
    upfront: float
    survival_probability: float
    discount_factor: float
    front_end_protection: float
    strike_value: float
    initial_factor: float = 1.0
    loss: float = 0.0
    factor: float = 1.0

    def __post_init__(self):
        """Validate snapshot."""
        if not 0.0 <= self.survival_probability <= 1.0:
            raise ValueError(
                f"Survival probability must be in [0, 1], got {self.survival_probability}"
            )
        if not 0.0 < self.discount_factor <= 1.0:
            raise ValueError(f"Discount factor must be in (0, 1], got {self.discount_factor}")
        if self.factor <= 0 or self.initial_factor <= 0:
            raise ValueError("Notional factors must be positive")
        if self.pv01 < 0:
            raise ValueError(f"pv01 must be non-negative, got {self.pv01}")

    @property
    def value(self) -> float:
        """Forward value of the protection contract, fep + sp * upfront."""
        return self.front_end_protection + self.survival_probability * self.upfront

    @property
    def net_value(self) -> float:
        """Exercise value net of strike, per unit original notional."""
        return self.loss + self.factor * self.value - self.initial_factor * self.strike_value

    @property
    def adjusted_strike_value(self) -> float:
        """Strike value per unit current notional, net of realized loss."""
        return (self.initial_factor * self.strike_value - self.loss) / self.factor

    @property
    def adjusted_forward_pv01(self) -> float:
        return self.factor * self.pv01

    @property
    def adjusted_factor(self) -> float:
        return self.factor * self.discount_factor


def forward_upfront_value(
    pricer: CdsPricer,
    expiry: float,
    quote: float,
    quote_is_price: bool,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Forward upfront value at expiry implied by a strike or barrier quote.

    Price quotes map to 1 - price. A spread quote is converted with a
    forward CDS (as_of = settle = expiry) whose clean par spread equals the
    quote; the result is the clean upfront of that CDS at the pricer's
    premium, -(product_pv() - accrued()).

    Args:
        pricer: Index CDS pricer (not modified)
        expiry: Forward date (years)
        quote: Spread or price quote
        quote_is_price: True if the quote is a price
        settings: Numerical settings
    """
    if quote_is_price:
        return 1.0 - quote
    fwd = pricer.copy()
    fwd.as_of = expiry
    fwd.settle = expiry
    premium = fwd.premium
    fwd.premium = quote
    # Zero clean PV at the quoted premium
    calibrate_hazard_to_pv(
        fwd, fwd.accrued(), quote / (1.0 - fwd.recovery_rate), settings)
    fwd.premium = premium
    return -(fwd.product_pv() - fwd.accrued())


def forward_riskless_pv01(pricer: CdsPricer, expiry: float) -> float:
    """Forward annuity at expiry on a zero hazard rate."""
    fwd = pricer.copy()
    fwd.as_of = expiry
    fwd.settle = expiry
    fwd.hazard_rate = 0.0
    return fwd.risky_annuity()


class ForwardCalculator:
    """
    Builds Forwards from a CDS pricer calibrated to the index quote.

    The pricer stands for the index as a single name: its premium is the
    index running coupon, its settle the quote settlement time. The
    calculator works on its own copy of the pricer.

    Attributes:
        pricer: Calibrated copy of the index pricer
        quote: Index quote (spread, or price if quote_is_price)
        quote_is_price: True if the quote is a price
        use_protection_pv_for_front_end: Front-end protection from the
            protection leg (True) or from (1 - sp) * (1 - R) (False)
    """

    def __init__(
        self,
        pricer: CdsPricer,
        quote: float,
        quote_is_price: bool = False,
        use_protection_pv_for_front_end: bool = True,
        settings: NumericalSettings = DEFAULT_SETTINGS,
    ):
        self.pricer = pricer.copy()
        self.quote = quote
        self.quote_is_price = quote_is_price
        self.use_protection_pv_for_front_end = use_protection_pv_for_front_end
        self.settings = settings
        self._calibrate()

    def _calibrate(self):
        pricer = self.pricer
        if self.quote_is_price:
            # Clean seller PV at the index coupon is price - 1
            target = self.quote - 1.0 + pricer.accrued()
            x0 = pricer.premium / (1.0 - pricer.recovery_rate)
            calibrate_hazard_to_pv(pricer, target, x0, self.settings)
        else:
            calibrate_hazard_to_spread(pricer, self.quote, self.settings)

    @property
    def hazard_rate(self) -> float:
        return self.pricer.hazard_rate

    def forward_upfront_value(self, expiry: float, quote: float, quote_is_price: bool) -> float:
        """Forward upfront value at expiry of a strike or barrier quote."""
        return forward_upfront_value(self.pricer, expiry, quote, quote_is_price, self.settings)

    def forwards(
        self,
        expiry: float,
        strike: float,
        strike_is_price: bool = False,
        protection_start: Optional[float] = None,
        initial_factor: float = 1.0,
        loss: float = 0.0,
        factor: float = 1.0,
    ) -> Forwards:
        """
        Forward snapshot for an option expiring at `expiry`.

        Args:
            expiry: Option expiry (years)
            strike: Option strike (spread, or price if strike_is_price)
            strike_is_price: True if the strike is a price
            protection_start: Start of front-end protection (defaults to
                max(effective, as_of))
            initial_factor: Notional factor at inception
            loss: Realized loss per unit original notional
            factor: Current notional factor

        Returns:
            Forwards snapshot
        """
        pricer = self.pricer.copy()
        if protection_start is None:
            protection_start = max(pricer.effective, pricer.as_of)
        if expiry < protection_start:
            raise ValueError(f"Expiry {expiry} precedes protection start {protection_start}")

        df = pricer.discount_curve.discount_factor_between(pricer.as_of, expiry)
        sp = pricer.survival_probability(protection_start, expiry)
        recovery = pricer.recovery_rate
        premium = pricer.premium

        pricer.premium = 1.0
        pricer.settle = protection_start
        protect0 = -pricer.protection_pv()
        pricer.settle = expiry
        protect1 = -pricer.protection_pv() / df
        pv01 = pricer.flat_fee_pv() / df

        fwd_spread = protect1 / pv01 if pv01 > 0 else 0.0
        if self.use_protection_pv_for_front_end:
            fep = protect0 / df - sp * protect1
        else:
            fep = (1.0 - sp) * (1.0 - recovery)
        upfront = pv01 * (fwd_spread - premium)

        return Forwards(
            pv01=pv01,
            upfront=upfront,
            survival_probability=sp,
            discount_factor=df,
            front_end_protection=fep,
            strike_value=self.forward_upfront_value(expiry, strike, strike_is_price),
            initial_factor=initial_factor,
            loss=loss,
            factor=factor,
        )


__all__ = [
    "Forwards",
    "ForwardCalculator",
    "forward_upfront_value",
    "forward_riskless_pv01",
]
