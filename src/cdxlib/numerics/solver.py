"""
Generic one-dimensional root finding.

Solves f(x) = target by:
1. Expanding the initial bracket geometrically until the residual changes sign
2. Refining with Brent's method (scipy.optimize.brentq)

The number of function evaluations is capped; a solve that cannot bracket
or converge raises NumericalFailure instead of returning an approximate value.
"""

from typing import Callable, Optional
import numpy as np
from scipy.optimize import brentq

from ..errors import NumericalFailure


MAX_BRACKET_EXPANSIONS = 200


class _Budget:
    """Counts evaluations of the residual function."""

    def __init__(self, fn: Callable[[float], float], target: float, max_evaluations: int):
        self.fn = fn
        self.target = target
        self.max_evaluations = max_evaluations
        self.count = 0

    def __call__(self, x: float) -> float:
        self.count += 1
        if self.count > self.max_evaluations:
            raise NumericalFailure(
                f"Exceeded {self.max_evaluations} function evaluations"
            )
        y = self.fn(x) - self.target
        if np.isnan(y):
            raise NumericalFailure(f"Function returned NaN at x={x}")
        return y


def bracket_root(
    residual: Callable[[float], float],
    lower: float,
    upper: float,
    min_x: float = -np.inf,
    max_x: float = np.inf,
    expansion: float = 2.0,
    f_tolerance: float = 0.0,
):
    """
    Widen [lower, upper] until residual changes sign.

    Args:
        residual: Function whose root is bracketed
        lower: Initial lower end
        upper: Initial upper end
        min_x: Hard lower bound of the search
        max_x: Hard upper bound of the search
        expansion: Geometric widening factor
        f_tolerance: Residual small enough to accept an end point as root

    Returns:
        Tuple (a, fa, b, fb); a == b when an end point is already a root
    """
    if lower > upper:
        lower, upper = upper, lower
    a = max(lower, min_x)
    b = min(upper, max_x)
    if a >= b:
        raise NumericalFailure(f"Empty bracket [{lower}, {upper}] within [{min_x}, {max_x}]")

    fa = residual(a)
    if abs(fa) <= f_tolerance:
        return a, fa, a, fa
    fb = residual(b)
    if abs(fb) <= f_tolerance:
        return b, fb, b, fb

    for _ in range(MAX_BRACKET_EXPANSIONS):
        if np.sign(fa) != np.sign(fb):
            return a, fa, b, fb

        width = b - a
        can_lower = a > min_x
        can_upper = b < max_x
        if not (can_lower or can_upper):
            break

        # Move the end with the smaller residual, it is closer to the root
        if (abs(fa) < abs(fb) and can_lower) or not can_upper:
            a = max(a - expansion * width, min_x)
            fa = residual(a)
            if abs(fa) <= f_tolerance:
                return a, fa, a, fa
        else:
            b = min(b + expansion * width, max_x)
            fb = residual(b)
            if abs(fb) <= f_tolerance:
                return b, fb, b, fb

    raise NumericalFailure(
        f"Root could not be bracketed: f({a})={fa}, f({b})={fb}"
    )


def solve(
    fn: Callable[[float], float],
    target: float,
    lower: float,
    upper: float,
    x_tolerance: float = 1e-12,
    f_tolerance: float = 0.0,
    min_x: float = -np.inf,
    max_x: float = np.inf,
    expansion: float = 2.0,
    max_evaluations: int = 10_000,
) -> float:
    """
    Solve fn(x) = target.

    Args:
        fn: Scalar function
        target: Target value
        lower: Initial lower bracket
        upper: Initial upper bracket
        x_tolerance: Absolute tolerance in x
        f_tolerance: Residual small enough to stop at a bracket end
        min_x: Hard lower bound of x
        max_x: Hard upper bound of x
        expansion: Geometric bracket widening factor
        max_evaluations: Maximum number of evaluations of fn

    Returns:
        Root x

    Raises:
        NumericalFailure: If no sign change is found or Brent fails
    """
    residual = _Budget(fn, target, max_evaluations)
    a, fa, b, fb = bracket_root(
        residual, lower, upper, min_x, max_x, expansion, f_tolerance
    )
    if a == b:
        return a

    try:
        root, info = brentq(
            residual, a, b,
            xtol=x_tolerance,
            maxiter=max_evaluations,
            full_output=True,
        )
    except (ValueError, RuntimeError) as e:
        if isinstance(e, NumericalFailure):
            raise
        raise NumericalFailure(f"Brent solve failed on [{a}, {b}]: {e}") from e

    if not info.converged:
        raise NumericalFailure(f"Brent solve did not converge: {info.flag}")
    return float(root)


def solve_from_guess(
    fn: Callable[[float], float],
    target: float,
    x0: float,
    x_tolerance: float = 1e-12,
    f_tolerance: float = 0.0,
    min_x: float = 0.0,
    max_x: float = np.inf,
    expansion: float = 2.0,
    max_evaluations: int = 10_000,
    fallback_guess: Optional[float] = 0.01,
) -> float:
    """
    Solve fn(x) = target for a positive quantity from an initial guess.

    The initial bracket is [x0/2, 2*x0], widened as needed. The guess is
    first moved inside [2*min_x, max_x/2] so the bracket overlaps the
    search range.
    """
    if not x0 > 0:
        if fallback_guess is None:
            raise NumericalFailure(f"Invalid initial guess {x0}")
        x0 = fallback_guess
    x0 = min(max(x0, 2.0 * min_x), 0.5 * max_x)
    return solve(
        fn, target, 0.5 * x0, 2.0 * x0,
        x_tolerance=x_tolerance,
        f_tolerance=f_tolerance,
        min_x=min_x,
        max_x=max_x,
        expansion=expansion,
        max_evaluations=max_evaluations,
    )


__all__ = ["solve", "solve_from_guess", "bracket_root"]
