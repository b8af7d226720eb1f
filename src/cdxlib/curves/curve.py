"""
Discount curve representation.

The DiscountCurve class provides:
- Discount factor P(0,t)
- Forward discount factor P(t1,t2) = P(0,t2) / P(0,t1)
- Zero rate z(t) and forward rate f(t1, t2)

Internally the curve interpolates log discount factors linearly between
nodes (piecewise constant forward rates) and extrapolates flat-forward
beyond the last node. Times are year fractions from the curve anchor.
"""

from dataclasses import dataclass
from typing import List, Sequence
import numpy as np


@dataclass
class CurveNode:
    """A single point on the curve."""
    time: float  # Year fraction from anchor
    discount_factor: float
    zero_rate: float  # Continuously compounded

    @classmethod
    def from_discount_factor(cls, time: float, df: float) -> "CurveNode":
        """Create node from discount factor."""
        if time <= 0:
            return cls(time=time, discount_factor=df, zero_rate=0.0)
        zr = -np.log(df) / time
        return cls(time=time, discount_factor=df, zero_rate=zr)

    @classmethod
    def from_zero_rate(cls, time: float, zr: float) -> "CurveNode":
        """Create node from continuously compounded zero rate."""
        df = np.exp(-zr * time)
        return cls(time=time, discount_factor=df, zero_rate=zr)


class DiscountCurve:
    """
    Discount curve with log-linear interpolation.

    Conventions:
        - Zero rates are continuously compounded
        - Times are year fractions from the anchor
        - Discount factor at t=0 is 1.0
    """

    def __init__(self, times: Sequence[float], discount_factors: Sequence[float]):
        """
        Build curve from discount factor nodes.

        Args:
            times: Node times (year fractions, positive)
            discount_factors: Discount factors at the node times
        """
        if len(times) != len(discount_factors):
            raise ValueError("Times and discount factors must have same length")
        if len(times) == 0:
            raise ValueError("Need at least 1 node to build curve")

        nodes = [CurveNode(time=0.0, discount_factor=1.0, zero_rate=0.0)]
        for t, df in sorted(zip(times, discount_factors)):
            if t <= 0:
                raise ValueError("Node times must be positive")
            if df <= 0:
                raise ValueError(f"Invalid discount factor: {df}")
            nodes.append(CurveNode.from_discount_factor(float(t), float(df)))
        self._nodes: List[CurveNode] = nodes
        self._times = np.array([node.time for node in nodes])
        self._log_df = np.log(np.array([node.discount_factor for node in nodes]))

    @classmethod
    def flat(cls, rate: float, horizon: float = 50.0) -> "DiscountCurve":
        """Curve with a constant continuously compounded zero rate."""
        return cls([horizon], [np.exp(-rate * horizon)])

    @classmethod
    def from_zero_rates(
        cls,
        times: Sequence[float],
        zero_rates: Sequence[float]
    ) -> "DiscountCurve":
        """Build curve from continuously compounded zero rates."""
        dfs = [CurveNode.from_zero_rate(t, z).discount_factor for t, z in zip(times, zero_rates)]
        return cls(times, dfs)

    @property
    def nodes(self) -> List[CurveNode]:
        return list(self._nodes)

    def _log_discount(self, t):
        times, log_df = self._times, self._log_df
        t = np.asarray(t, dtype=np.float64)
        # Flat forward extrapolation beyond the last node
        slope = (log_df[-1] - log_df[-2]) / (times[-1] - times[-2])
        beyond = log_df[-1] + slope * (t - times[-1])
        result = np.where(t >= times[-1], beyond, np.interp(t, times, log_df))
        return np.where(t <= 0, 0.0, result)

    def discount_factor(self, t: float) -> float:
        """Discount factor P(0,t)."""
        return float(np.exp(self._log_discount(t)))

    def discount_factors(self, times: Sequence[float]) -> np.ndarray:
        """Vector of discount factors P(0,t_i)."""
        return np.exp(self._log_discount(times))

    def discount_factor_between(self, t1: float, t2: float) -> float:
        """Forward discount factor P(t1,t2)."""
        return float(np.exp(self._log_discount(t2) - self._log_discount(t1)))

    def bumped(self, bump: float) -> "DiscountCurve":
        """Return new curve with a parallel additive shift to all zero rates."""
        nodes = self._nodes[1:]
        return DiscountCurve.from_zero_rates(
            [node.time for node in nodes],
            [node.zero_rate + bump for node in nodes],
        )

    def zero_rate(self, t: float) -> float:
        """Continuously compounded zero rate z(t)."""
        if t <= 0:
            return self._nodes[1].zero_rate
        return float(-self._log_discount(t) / t)

    def forward_rate(self, t1: float, t2: float) -> float:
        """Simple forward rate between t1 and t2."""
        if t2 <= t1:
            raise ValueError("t2 must be greater than t1")
        return (1.0 / self.discount_factor_between(t1, t2) - 1.0) / (t2 - t1)


__all__ = ["CurveNode", "DiscountCurve"]
