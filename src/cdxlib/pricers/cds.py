"""
Single-name CDS pricing engine on a flat hazard rate.

Prices a running-premium CDS with:
- Quarterly (configurable) premium dates rolled back from maturity
- A short first accrual period starting at the effective time
- Protection leg discretized on the premium grid with mid-period discounting

Conventions:
    - Times are year fractions on the discount curve's axis
    - PVs are discounted to `as_of` and conditional on survival to `settle`
    - protection_pv() is the seller's view (non-positive)
    - flat_fee_pv() is the full premium leg (accrued included, no accrual on default)
    - product_pv() = protection_pv() + flat_fee_pv()

Pricing formula:
    Fee  = C * sum(delta_i * DF(as_of, T_i) * S(settle, T_i))
    Prot = -(1 - R) * sum(DF(as_of, t_mid) * (S(settle, T_{i-1}) - S(settle, T_i)))

The pricer is mutable: the hazard rate, premium and the (as_of, settle)
pair can be overwritten. Setters invalidate cached leg values; reset()
does the same after any other external change.
"""

from typing import Callable, Optional, Tuple

import numpy as np

from ..config import NumericalSettings, DEFAULT_SETTINGS
from ..curves.curve import DiscountCurve
from ..numerics.solver import solve_from_guess


TIME_EPS = 1e-10


class CdsPricer:
    """
    Flat-hazard CDS pricer.

    Attributes:
        discount_curve: Curve used for discounting
        maturity: Protection end (years)
        effective: Accrual and protection start (years)
        frequency: Premium payments per year
    """

    def __init__(
        self,
        discount_curve: DiscountCurve,
        maturity: float,
        premium: float,
        recovery_rate: float = 0.4,
        hazard_rate: float = 0.0,
        as_of: float = 0.0,
        settle: Optional[float] = None,
        effective: float = 0.0,
        frequency: int = 4,
    ):
        if not 0.0 <= recovery_rate < 1.0:
            raise ValueError(f"Recovery rate must be in [0, 1), got {recovery_rate}")
        if maturity <= effective:
            raise ValueError(f"Maturity {maturity} must be after effective {effective}")
        if frequency <= 0:
            raise ValueError(f"Frequency must be positive, got {frequency}")
        if hazard_rate < 0:
            raise ValueError(f"Hazard rate must be non-negative, got {hazard_rate}")

        self.discount_curve = discount_curve
        self.maturity = float(maturity)
        self.effective = float(effective)
        self.frequency = int(frequency)
        self._premium = float(premium)
        self._recovery_rate = float(recovery_rate)
        self._hazard_rate = float(hazard_rate)
        self._as_of = float(as_of)
        self._settle = float(as_of if settle is None else settle)
        self._schedule = self._build_schedule()
        self._legs: Optional[Tuple[float, float]] = None

    def _build_schedule(self) -> np.ndarray:
        """Accrual boundaries: effective, then premium dates up to maturity."""
        step = 1.0 / self.frequency
        dates = []
        n = 0
        t = self.maturity
        while t > self.effective + TIME_EPS:
            dates.append(t)
            n += 1
            t = self.maturity - n * step
        dates.append(self.effective)
        return np.array(sorted(dates))

    @property
    def schedule(self) -> np.ndarray:
        return self._schedule.copy()

    @property
    def premium(self) -> float:
        return self._premium

    @premium.setter
    def premium(self, value: float):
        self._premium = float(value)
        self.reset()

    @property
    def recovery_rate(self) -> float:
        return self._recovery_rate

    @recovery_rate.setter
    def recovery_rate(self, value: float):
        if not 0.0 <= value < 1.0:
            raise ValueError(f"Recovery rate must be in [0, 1), got {value}")
        self._recovery_rate = float(value)
        self.reset()

    @property
    def hazard_rate(self) -> float:
        return self._hazard_rate

    @hazard_rate.setter
    def hazard_rate(self, value: float):
        if value < 0:
            raise ValueError(f"Hazard rate must be non-negative, got {value}")
        self._hazard_rate = float(value)
        self.reset()

    @property
    def as_of(self) -> float:
        return self._as_of

    @as_of.setter
    def as_of(self, value: float):
        self._as_of = float(value)
        self.reset()

    @property
    def settle(self) -> float:
        return self._settle

    @settle.setter
    def settle(self, value: float):
        self._settle = float(value)
        self.reset()

    def reset(self):
        """Invalidate cached leg values."""
        self._legs = None

    def copy(self) -> "CdsPricer":
        """Independent pricer with the same terms and state."""
        return CdsPricer(
            discount_curve=self.discount_curve,
            maturity=self.maturity,
            premium=self._premium,
            recovery_rate=self._recovery_rate,
            hazard_rate=self._hazard_rate,
            as_of=self._as_of,
            settle=self._settle,
            effective=self.effective,
            frequency=self.frequency,
        )

    def survival_probability(self, t1: float, t2: float) -> float:
        """Probability of surviving from t1 to t2 on the flat hazard rate."""
        return float(np.exp(-self._hazard_rate * max(t2 - t1, 0.0)))

    def _discount(self, times: np.ndarray) -> np.ndarray:
        curve = self.discount_curve
        return curve.discount_factors(times) / curve.discount_factor(self._as_of)

    def _compute_legs(self) -> Tuple[float, float]:
        """(risky annuity, unit-recovery protection) at the current state."""
        if self._legs is not None:
            return self._legs

        settle = self._settle
        h = self._hazard_rate
        ends = self._schedule[1:]
        starts = self._schedule[:-1]
        mask = ends > settle + TIME_EPS
        if not mask.any():
            self._legs = (0.0, 0.0)
            return self._legs

        pay = ends[mask]
        accrual = pay - starts[mask]
        survival = np.exp(-h * (pay - settle))
        annuity = float(np.sum(accrual * self._discount(pay) * survival))

        # Protection runs from max(settle, effective) on the same grid
        start = max(settle, self.effective)
        grid = np.concatenate(([start], pay))
        surv_grid = np.exp(-h * (grid - settle))
        mid = 0.5 * (grid[:-1] + grid[1:])
        default_prob = surv_grid[:-1] - surv_grid[1:]
        protection = float(np.sum(self._discount(mid) * default_prob))

        self._legs = (annuity, protection)
        return self._legs

    def risky_annuity(self) -> float:
        """Fee leg PV at unit premium (full, accrued included)."""
        return self._compute_legs()[0]

    def accrual_fraction(self) -> float:
        """Year fraction accrued since the last premium date at settle."""
        settle = self._settle
        if settle <= self.effective or settle >= self.maturity:
            return 0.0
        previous = self._schedule[self._schedule <= settle + TIME_EPS]
        return max(settle - float(previous[-1]), 0.0)

    def protection_pv(self) -> float:
        """Protection leg PV, seller's view (non-positive)."""
        return -(1.0 - self._recovery_rate) * self._compute_legs()[1]

    def flat_fee_pv(self) -> float:
        """Premium leg PV at the current premium."""
        return self._premium * self.risky_annuity()

    def accrued(self) -> float:
        """Premium accrued at settle."""
        return self._premium * self.accrual_fraction()

    def product_pv(self) -> float:
        """Full PV to the protection seller."""
        return self.protection_pv() + self.flat_fee_pv()

    def par_spread(self) -> float:
        """Premium that makes the full PV zero."""
        annuity = self.risky_annuity()
        if annuity <= 0:
            return 0.0
        return -self.protection_pv() / annuity

    def clean_par_spread(self) -> float:
        """Premium that makes the clean PV (full PV less accrued) zero."""
        annuity = self.risky_annuity() - self.accrual_fraction()
        if annuity <= 0:
            return np.inf
        return -self.protection_pv() / annuity


def _hazard_search(
    pricer: CdsPricer,
    fn: Callable[[float], float],
    target: float,
    x0: float,
    settings: NumericalSettings,
) -> float:
    rate = solve_from_guess(
        fn, target, x0,
        x_tolerance=settings.solver_x_tolerance,
        f_tolerance=settings.solver_f_tolerance,
        min_x=0.0,
        max_x=settings.max_hazard_rate,
        expansion=settings.bracket_expansion,
        max_evaluations=settings.max_evaluations,
    )
    pricer.hazard_rate = rate
    return rate


def calibrate_hazard_to_pv(
    pricer: CdsPricer,
    target_pv: float,
    x0: float,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Set the flat hazard rate so that product_pv() equals target_pv.

    Args:
        pricer: Pricer to calibrate (hazard rate is overwritten)
        target_pv: Target full PV to the protection seller
        x0: Initial guess of the hazard rate
        settings: Numerical settings

    Returns:
        Calibrated hazard rate

    Raises:
        NumericalFailure: If no hazard rate in [0, max_hazard_rate] fits
    """
    def pv(h):
        pricer.hazard_rate = h
        return pricer.product_pv()

    return _hazard_search(pricer, pv, target_pv, x0, settings)


def calibrate_hazard_to_spread(
    pricer: CdsPricer,
    spread: float,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Set the flat hazard rate so that par_spread() equals `spread`.

    Raises:
        NumericalFailure: If the spread cannot be matched
    """
    def par(h):
        pricer.hazard_rate = h
        return pricer.par_spread()

    x0 = spread / (1.0 - pricer.recovery_rate)
    return _hazard_search(pricer, par, spread, x0, settings)


__all__ = ["CdsPricer", "calibrate_hazard_to_pv", "calibrate_hazard_to_spread"]
