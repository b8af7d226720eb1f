"""
Log-normal quadrature.

Two interchangeable ways to evaluate E[g(X)] with X log-normal:

- Fixed nodes: E[g] ~ sum_i w_i * g(exp(m + sigma * z_i)) for a node set
  {(z_i, w_i)} approximating the standard normal measure (Gauss-Hermite)
- Adaptive: scipy.integrate.quad over the standard normal density, split
  at a cut-off d so that one-sided (tail) integrals are available

Also provides the correlation terms of the modified Black model, which
capture the co-dependence between the forward annuity and the forward
spread on a node set.
"""

from dataclasses import dataclass, field
from typing import Callable, Optional
import numpy as np
from numpy.polynomial.hermite_e import hermegauss
from scipy.integrate import quad

from ..config import NumericalSettings, DEFAULT_SETTINGS


SQRT_2PI = np.sqrt(2.0 * np.pi)


@dataclass(frozen=True, eq=False)
class QuadratureNodeSet:
    """
    Quadrature nodes for the standard normal measure.

    Points are stored in ascending order; weights sum to one for a
    proper node set. An empty node set selects the adaptive integrator.

    Attributes:
        points: Abscissas z_i
        weights: Weights w_i
    """
    points: np.ndarray = field(default_factory=lambda: np.empty(0))
    weights: np.ndarray = field(default_factory=lambda: np.empty(0))

    def __post_init__(self):
        """Validate and sort nodes."""
        points = np.asarray(self.points, dtype=np.float64).ravel()
        weights = np.asarray(self.weights, dtype=np.float64).ravel()
        if len(points) != len(weights):
            raise ValueError("Points and weights must have same length")
        idx = np.argsort(points, kind="stable")
        object.__setattr__(self, "points", points[idx])
        object.__setattr__(self, "weights", weights[idx])

    @classmethod
    def empty(cls) -> "QuadratureNodeSet":
        """Node set that defers to the adaptive integrator."""
        return cls()

    @classmethod
    def gauss_hermite(cls, n_points: int) -> "QuadratureNodeSet":
        """
        Probabilists' Gauss-Hermite nodes, normalized to the N(0,1) measure.

        Args:
            n_points: Number of nodes (positive)
        """
        if n_points <= 0:
            raise ValueError(f"n_points must be positive, got {n_points}")
        x, w = hermegauss(n_points)
        return cls(points=x, weights=w / SQRT_2PI)

    @property
    def is_empty(self) -> bool:
        return len(self.points) == 0

    def __len__(self) -> int:
        return len(self.points)

    def samples(self, m: float, sigma: float) -> np.ndarray:
        """Sampled values exp(m + sigma * z_i)."""
        return np.exp(m + sigma * self.points)

    def expectation(
        self,
        g: Callable[[float], float],
        m: float,
        sigma: float,
    ) -> float:
        """E[g(exp(m + sigma Z))] as a weighted sum over the nodes."""
        total = 0.0
        for w, x in zip(self.weights, self.samples(m, sigma)):
            total += w * g(float(x))
        return total

    def tail_expectation(
        self,
        g: Callable[[float], float],
        m: float,
        sigma: float,
        cutoff: float,
        right: bool = True,
    ) -> float:
        """
        One-sided weighted sum.

        Sums over nodes with z_i > cutoff (right) or z_i < cutoff (left).
        """
        mask = self.points > cutoff if right else self.points < cutoff
        total = 0.0
        for w, z in zip(self.weights[mask], self.points[mask]):
            total += w * g(float(np.exp(m + sigma * z)))
        return total


class LogNormal:
    """
    Adaptive integrator against the standard normal density.

    For a cut-off d and volatility sigma:
        right_integral(g) = int_d^inf  g(exp(sigma z)) phi(z) dz
        left_integral(g)  = int_-inf^d g(exp(sigma z)) phi(z) dz

    Infinite ends are truncated at -z_cutoff and z_cutoff + sigma, which
    keeps integrands growing like exp(sigma z) inside the window.
    """

    def __init__(
        self,
        d: float,
        sigma: float,
        settings: NumericalSettings = DEFAULT_SETTINGS
    ):
        self.d = d
        self.sigma = sigma
        self.settings = settings
        self.z_low = -settings.z_cutoff
        self.z_high = settings.z_cutoff + max(sigma, 0.0)

    def _integrate(self, g: Callable[[float], float], a: float, b: float) -> float:
        a = max(a, self.z_low)
        b = min(b, self.z_high)
        if not a < b:
            return 0.0
        sigma = self.sigma

        def integrand(z):
            return g(np.exp(sigma * z)) * np.exp(-0.5 * z * z) / SQRT_2PI

        breaks = [p for p in (0.0, sigma) if a < p < b]
        value, _ = quad(
            integrand, a, b,
            epsabs=self.settings.quad_epsabs,
            epsrel=self.settings.quad_epsrel,
            limit=self.settings.quad_limit,
            points=breaks or None,
        )
        return float(value)

    def right_integral(self, g: Callable[[float], float]) -> float:
        """Integral over z > d."""
        return self._integrate(g, self.d, np.inf)

    def left_integral(self, g: Callable[[float], float]) -> float:
        """Integral over z < d."""
        return self._integrate(g, -np.inf, self.d)

    def integral(self, g: Callable[[float], float]) -> float:
        """Full integral, split at d."""
        return self.left_integral(g) + self.right_integral(g)


def lognormal_expectation(
    g: Callable[[float], float],
    mu: float,
    sigma: float,
    split: Optional[float] = None,
    nodes: Optional[QuadratureNodeSet] = None,
    settings: NumericalSettings = DEFAULT_SETTINGS,
) -> float:
    """
    E[g(S)] with S = exp(mu + sigma Z).

    Uses the node set when it is non-empty, otherwise the adaptive
    integrator split at `split` (defaults to the median exp(mu)).

    Args:
        g: Function of the sampled value
        mu: Log center
        sigma: Log standard deviation
        split: Point at which the adaptive integral is split
        nodes: Optional fixed node set
        settings: Numerical settings
    """
    if nodes is not None and not nodes.is_empty:
        return nodes.expectation(g, mu, sigma)

    if split is not None and split > 0:
        d = (np.log(split) - mu) / sigma
    else:
        d = 0.0
    s0 = np.exp(mu)
    return LogNormal(d, sigma, settings).integral(lambda x: g(s0 * x))


def payer_correlation_term(
    nodes: QuadratureNodeSet,
    strike: float,
    annuity_at_strike: float,
    sigma: float,
    m: float,
    premium: float,
    annuity: Callable[[float], float],
) -> float:
    """
    Correlation effect of a payer option.

    Sums w_i * (annuity(s_i) - annuity(K)) * (s_i - premium) over the
    nodes above the strike, where s_i = exp(m + sigma z_i).

    Args:
        nodes: Ascending node set
        strike: Strike spread K
        annuity_at_strike: Forward annuity at the strike
        sigma: Log volatility
        m: Log multiplier such that exp(m + sigma z) is the forward spread
        premium: Index running premium
        annuity: Forward annuity as a function of the spread

    Returns:
        Correlation term (0 if no node lies above the strike)
    """
    points = nodes.points
    start = -1
    if strike <= 1e-12 or sigma <= 1e-12:
        start = 0
    else:
        lower_bound = (np.log(strike) - m) / sigma
        for i in range(len(points)):
            if points[i] > lower_bound:
                start = i
                break
        if start < 0:
            return 0.0

    total = 0.0
    for i in range(start, len(points)):
        spread = float(np.exp(m + sigma * points[i]))
        t = (annuity(spread) - annuity_at_strike) * (spread - premium)
        total += t * nodes.weights[i]
    return total


def receiver_correlation_term(
    nodes: QuadratureNodeSet,
    strike: float,
    annuity_at_strike: float,
    sigma: float,
    m: float,
    premium: float,
    annuity: Callable[[float], float],
) -> float:
    """
    Correlation effect of a receiver option.

    Sums w_i * (annuity(K) - annuity(s_i)) * (s_i - premium) over the
    nodes below the strike.

    Returns:
        Correlation term (0 if no node lies below the strike)
    """
    points = nodes.points
    start = -1
    if strike <= 1e-12 or sigma <= 1e-12:
        start = len(points) - 1
    else:
        upper_bound = (np.log(strike) - m) / sigma
        for i in range(len(points) - 1, -1, -1):
            if points[i] < upper_bound:
                start = i
                break
        if start < 0:
            return 0.0

    total = 0.0
    for i in range(start, -1, -1):
        spread = float(np.exp(m + sigma * points[i]))
        t = (annuity_at_strike - annuity(spread)) * (spread - premium)
        total += t * nodes.weights[i]
    return total


__all__ = [
    "QuadratureNodeSet",
    "LogNormal",
    "lognormal_expectation",
    "payer_correlation_term",
    "receiver_correlation_term",
]
