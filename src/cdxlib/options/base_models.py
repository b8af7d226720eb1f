"""
Base option pricing models.

Implements the forward-measure Black primitives used by every credit
index option model:
- Normalized Black value B(m, v) = m N(d1) - N(d2)
- Black value and log-normal exercise probability
- Black implied volatility by bracketed root search

Volatility arguments are total (already scaled by sqrt(T)).
"""

import numpy as np
from scipy.stats import norm

from ..config import NumericalSettings, DEFAULT_SETTINGS
from ..errors import NumericalFailure
from ..numerics.solver import solve


# Standard normal CDF and inverse CDF
N = norm.cdf
N_inv = norm.ppf

TINY_VOLATILITY = 1e-12


def norm_cdf(x: float) -> float:
    """Standard normal cumulative distribution."""
    return float(N(x))


def norm_inv(p: float) -> float:
    """Inverse of the standard normal cumulative distribution."""
    return float(N_inv(p))


def black_b(m: float, v: float) -> float:
    """
    Normalized Black value B(m, v) = m N(d1) - N(d2).

    Args:
        m: Moneyness ratio (positive)
        v: Total volatility (positive)
    """
    d1 = np.log(m) / v + 0.5 * v
    d2 = d1 - v
    return float(m * N(d1) - N(d2))


def black_value(
    forward: float,
    strike: float,
    vol: float,
    multiplier: float = 1.0,
    is_call: bool = True
) -> float:
    """
    Black option value.

    Args:
        forward: Forward value
        strike: Strike
        vol: Total volatility
        multiplier: Scaling (annuity, notional factor, discount)
        is_call: True for call (payer), False for put (receiver)

    Returns:
        B(F/K, v) * K * m for calls, B(K/F, v) * F * m for puts;
        the intrinsic value when vol, strike or forward is degenerate
    """
    if vol < TINY_VOLATILITY or strike <= 0 or forward <= 0:
        sign = 1.0 if is_call else -1.0
        return max(sign * (forward - strike) * multiplier, 0.0)
    if is_call:
        return black_b(forward / strike, vol) * strike * multiplier
    return black_b(strike / forward, vol) * forward * multiplier


def lognormal_probability(
    forward: float,
    strike: float,
    vol: float,
    is_call: bool = True
) -> float:
    """
    Probability that a log-normal forward finishes in the money.

    Args:
        forward: Forward value (mean of the distribution)
        strike: Strike
        vol: Total volatility
        is_call: True for P(X > K), False for P(X < K)
    """
    if vol < TINY_VOLATILITY or forward <= 0 or strike <= 0:
        itm = forward > strike
        return 1.0 if itm == is_call else 0.0
    u = np.log(forward / strike) / vol - 0.5 * vol
    p = float(N(u))
    return p if is_call else 1.0 - p


def implied_black_volatility(
    fair_value: float,
    forward: float,
    strike: float,
    multiplier: float = 1.0,
    is_call: bool = True,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Invert black_value for the total volatility.

    Works on the normalized price fair_value / (forward * multiplier), which
    is increasing in volatility from the intrinsic value up to 1 (call) or
    K/F (put).

    Args:
        fair_value: Option value
        forward: Forward value
        strike: Strike
        multiplier: Scaling used in black_value
        is_call: True for call, False for put
        settings: Numerical settings (volatility bounds and tolerance)

    Returns:
        Implied volatility, 0 at intrinsic, NaN when out of domain
    """
    if not fair_value > 0 or not multiplier > 0 or not forward > 0:
        return np.nan

    k = strike / forward
    target = fair_value / forward / multiplier
    intrinsic = max(0.0, 1.0 - k) if is_call else max(0.0, k - 1.0)
    gap = target - intrinsic
    tol = min(target / 1e4, 10 * np.finfo(float).eps)
    if gap < 0.5 * tol:
        return np.nan if gap < -2 * tol else 0.0
    if strike <= 0:
        return np.nan

    supremum = 1.0 if is_call else k
    if target >= supremum:
        return np.nan

    try:
        return solve(
            lambda v: black_value(1.0, k, v, 1.0, is_call), target,
            0.1, 1.0,
            x_tolerance=settings.vol_x_tolerance,
            f_tolerance=settings.vol_f_tolerance * target,
            min_x=settings.min_volatility,
            max_x=settings.max_volatility,
            expansion=settings.bracket_expansion,
            max_evaluations=settings.max_evaluations,
        )
    except NumericalFailure:
        return np.nan


__all__ = [
    "N",
    "norm_cdf",
    "norm_inv",
    "black_b",
    "black_value",
    "lognormal_probability",
    "implied_black_volatility",
]
