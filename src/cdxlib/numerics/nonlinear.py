"""
Options on a nonlinear function of a log-normal factor.

The latent factor is a flat hazard rate h = exp(mu + sigma Z). A payoff
callback f(h) maps the factor to a forward contract value; f must be
increasing in h (protection grows and the survival-weighted fee shrinks
with the hazard rate).

The center mu is calibrated so that E[f(h)] reproduces the observed
forward value. The option value is then

    E[ max(+/-(f(h) - K), 0) * 1{lower <= f(h) <= upper} ]

evaluated by inverting f at the strike and barrier levels and
integrating over the resulting interval of Z.
"""

from typing import Callable, Optional, Tuple
import numpy as np
from scipy.integrate import quad
from scipy.stats import norm

from ..config import NumericalSettings, DEFAULT_SETTINGS
from ..errors import CalibrationFailure, NumericalFailure
from .quadrature import QuadratureNodeSet, SQRT_2PI, lognormal_expectation
from .solver import solve, solve_from_guess


N = norm.cdf

TINY_VOLATILITY = 1e-12


def calculate_expectation(
    mu: float,
    bound: Optional[float],
    sigma: float,
    fn: Callable[[float], float],
    nodes: Optional[QuadratureNodeSet] = None,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    E[fn(exp(mu + sigma Z))], split at `bound` for the adaptive path.

    Args:
        mu: Log center
        bound: Split point in the sampled space (e.g. a strike)
        sigma: Log standard deviation
        fn: Function of the sampled value
        nodes: Optional fixed node set
        settings: Numerical settings
    """
    if sigma < TINY_VOLATILITY:
        return fn(float(np.exp(mu)))
    return lognormal_expectation(fn, mu, sigma, bound, nodes, settings)


def solve_center(
    expectation: Callable[[float], float],
    target: float,
    mu0: float,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Solve expectation(mu) = target starting from [mu0 - w, mu0 + w].

    Raises:
        CalibrationFailure: If the center cannot be bracketed or solved
    """
    width = settings.center_bracket_width
    try:
        return solve(
            expectation, target, mu0 - width, mu0 + width,
            x_tolerance=settings.center_x_tolerance,
            expansion=settings.bracket_expansion,
            max_evaluations=settings.max_evaluations,
        )
    except CalibrationFailure:
        raise
    except NumericalFailure as e:
        raise CalibrationFailure(
            f"Unable to calibrate distribution center to {target}: {e}"
        ) from e


def invert_level(
    fn: Callable[[float], float],
    level: float,
    x0: float,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Factor value h >= 0 with fn(h) = level.

    Returns 0 when the level is at or below fn(0) and infinity when it is
    at or above fn(max_hazard_rate).
    """
    if np.isinf(level):
        return 0.0 if level < 0 else np.inf
    if level <= fn(0.0):
        return 0.0
    if level >= fn(settings.max_hazard_rate):
        return np.inf
    try:
        return solve_from_guess(
            fn, level, x0,
            x_tolerance=settings.solver_x_tolerance,
            max_x=settings.max_hazard_rate,
            expansion=settings.bracket_expansion,
            max_evaluations=settings.max_evaluations,
        )
    except CalibrationFailure:
        raise
    except NumericalFailure as e:
        raise CalibrationFailure(f"Unable to invert payoff at level {level}: {e}") from e


def _z_level(h: float, mu: float, sigma: float) -> float:
    """Standard normal level of the factor value h."""
    if h <= 0:
        return -np.inf
    if np.isinf(h):
        return np.inf
    return (np.log(h) - mu) / sigma


def _exercise_interval(
    fn: Callable[[float], float],
    mu: float,
    strike: float,
    lower: float,
    upper: float,
    is_call: bool,
    sigma: float,
    x0: float,
    settings: NumericalSettings,
) -> Tuple[float, float]:
    """Interval (a, b) of Z where the option is exercised inside the barriers."""
    z_k = _z_level(invert_level(fn, strike, x0, settings), mu, sigma)
    z_lo = -np.inf if np.isinf(lower) else _z_level(
        invert_level(fn, lower, x0, settings), mu, sigma)
    z_hi = np.inf if np.isinf(upper) else _z_level(
        invert_level(fn, upper, x0, settings), mu, sigma)
    if is_call:
        return max(z_k, z_lo), z_hi
    return z_lo, min(z_k, z_hi)


def _calibrate(
    fn: Callable[[float], float],
    forward: float,
    sigma: float,
    x0: float,
    nodes: Optional[QuadratureNodeSet],
    settings: NumericalSettings,
) -> float:
    """Center mu such that E[fn(h)] equals the forward value."""
    if not x0 > 0:
        x0 = 0.01
    mu0 = np.log(x0) - 0.5 * sigma * sigma
    return solve_center(
        lambda mu: calculate_expectation(mu, None, sigma, fn, nodes, settings),
        forward, mu0, settings,
    )


def calculate_value(
    fn: Callable[[float], float],
    forward: float,
    strike: float,
    lower: float,
    upper: float,
    is_call: bool,
    sigma: float,
    x0: float,
    nodes: Optional[QuadratureNodeSet] = None,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Option value on fn(h) with optional knock-out corridor [lower, upper].

    Args:
        fn: Increasing payoff callback of the hazard rate
        forward: Observed forward value E[fn(h)]
        strike: Strike value
        lower: Lower barrier value (-inf if none)
        upper: Upper barrier value (+inf if none)
        is_call: True for payer (call on fn), False for receiver
        sigma: Log volatility of the hazard rate
        x0: Initial guess of the hazard rate
        nodes: Optional fixed node set
        settings: Numerical settings

    Returns:
        Undiscounted option value per unit multiplier
    """
    sign = 1.0 if is_call else -1.0
    if sigma < TINY_VOLATILITY:
        if not lower <= forward <= upper:
            return 0.0
        return max(sign * (forward - strike), 0.0)

    mu = _calibrate(fn, forward, sigma, x0, nodes, settings)
    a, b = _exercise_interval(
        fn, mu, strike, lower, upper, is_call, sigma, x0, settings)
    if not a < b:
        return 0.0

    def payoff(z):
        return sign * (fn(float(np.exp(mu + sigma * z))) - strike)

    if nodes is not None and not nodes.is_empty:
        mask = (nodes.points > a) & (nodes.points < b)
        return float(sum(
            w * payoff(z) for w, z in zip(nodes.weights[mask], nodes.points[mask])
        ))

    a = max(a, -settings.z_cutoff)
    b = min(b, settings.z_cutoff)
    if not a < b:
        return 0.0
    value, _ = quad(
        lambda z: payoff(z) * np.exp(-0.5 * z * z) / SQRT_2PI, a, b,
        epsabs=settings.quad_epsabs,
        epsrel=settings.quad_epsrel,
        limit=settings.quad_limit,
    )
    return max(float(value), 0.0)


def calculate_probability(
    fn: Callable[[float], float],
    forward: float,
    strike: float,
    is_call: bool,
    sigma: float,
    x0: float,
    lower: float = -np.inf,
    upper: float = np.inf,
    nodes: Optional[QuadratureNodeSet] = None,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    Probability that fn(h) finishes in the money and inside [lower, upper].

    Args:
        fn: Increasing payoff callback of the hazard rate
        forward: Observed forward value E[fn(h)]
        strike: Strike value
        is_call: True for payer, False for receiver
        sigma: Log volatility of the hazard rate
        x0: Initial guess of the hazard rate
        lower: Lower barrier value
        upper: Upper barrier value
        nodes: Optional fixed node set (used for calibration only)
        settings: Numerical settings
    """
    if sigma < TINY_VOLATILITY:
        if not lower <= forward <= upper:
            return 0.0
        itm = forward > strike if is_call else forward < strike
        return 1.0 if itm else 0.0

    mu = _calibrate(fn, forward, sigma, x0, nodes, settings)
    a, b = _exercise_interval(
        fn, mu, strike, lower, upper, is_call, sigma, x0, settings)
    if not a < b:
        return 0.0
    return float(min(max(N(b) - N(a), 0.0), 1.0))


__all__ = [
    "calculate_expectation",
    "solve_center",
    "invert_level",
    "calculate_value",
    "calculate_probability",
]
