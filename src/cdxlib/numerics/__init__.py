"""
Numerics module - Root finding and log-normal integration.

Provides:
- Bracketing Brent solver with an evaluation budget
- Fixed-node and adaptive log-normal quadrature
- Options on a nonlinear function of a log-normal hazard rate
"""

from .solver import solve, solve_from_guess, bracket_root
from .quadrature import (
    QuadratureNodeSet,
    LogNormal,
    lognormal_expectation,
    payer_correlation_term,
    receiver_correlation_term,
)
from .nonlinear import (
    calculate_expectation,
    solve_center,
    invert_level,
    calculate_value,
    calculate_probability,
)

__all__ = [
    "solve",
    "solve_from_guess",
    "bracket_root",
    "QuadratureNodeSet",
    "LogNormal",
    "lognormal_expectation",
    "payer_correlation_term",
    "receiver_correlation_term",
    "calculate_expectation",
    "solve_center",
    "invert_level",
    "calculate_value",
    "calculate_probability",
]
