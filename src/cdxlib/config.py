"""
Numerical settings for the valuation models.

Groups the tolerances and iteration limits used by:
- Root finding (hazard calibration, distribution center, implied volatility)
- Adaptive log-normal quadrature
- Precision diagnostics

All values are plain floats/ints so a settings object can be shared
between model instances without synchronization.
"""

from dataclasses import dataclass, replace


@dataclass(frozen=True)
class NumericalSettings:
    """
    Container for numerical tolerances.

    Attributes:
        solver_x_tolerance: Absolute x tolerance of calibration solves
        solver_f_tolerance: Residual accepted at a bracket end point
        max_evaluations: Hard cap on function evaluations per solve
        max_hazard_rate: Upper bound when bracketing a flat hazard rate
        center_bracket_width: Half width of the initial bracket around mu0
        center_x_tolerance: x tolerance when solving the distribution center
        min_volatility: Lower bound of the implied volatility search
        max_volatility: Upper bound of the implied volatility search
        vol_x_tolerance: x tolerance of implied volatility solves
        vol_f_tolerance: Residual accepted by implied volatility solves
        bracket_expansion: Geometric factor used to widen brackets
        quad_epsabs: Absolute error target of the adaptive integrator
        quad_epsrel: Relative error target of the adaptive integrator
        quad_limit: Sub-interval limit of the adaptive integrator
        z_cutoff: Standard normal truncation for infinite tails
        diagnostics_tolerance: Residual above which a warning is logged
    """
    solver_x_tolerance: float = 1e-14
    solver_f_tolerance: float = 1e-14
    max_evaluations: int = 10_000
    max_hazard_rate: float = 100.0
    center_bracket_width: float = 0.05
    center_x_tolerance: float = 1e-10
    min_volatility: float = 1e-10
    max_volatility: float = 10.0
    vol_x_tolerance: float = 1e-7
    vol_f_tolerance: float = 1e-12
    bracket_expansion: float = 2.0
    quad_epsabs: float = 1e-12
    quad_epsrel: float = 1e-10
    quad_limit: int = 200
    z_cutoff: float = 10.0
    diagnostics_tolerance: float = 1e-12

    def __post_init__(self):
        """Validate settings."""
        if self.solver_x_tolerance <= 0 or self.vol_x_tolerance <= 0:
            raise ValueError("x tolerances must be positive")
        if self.max_evaluations < 1:
            raise ValueError(f"max_evaluations must be positive, got {self.max_evaluations}")
        if not 0 < self.min_volatility < self.max_volatility:
            raise ValueError(
                f"Need 0 < min_volatility < max_volatility, got "
                f"{self.min_volatility}, {self.max_volatility}"
            )
        if self.bracket_expansion <= 1:
            raise ValueError(f"bracket_expansion must exceed 1, got {self.bracket_expansion}")
        if self.z_cutoff <= 0:
            raise ValueError(f"z_cutoff must be positive, got {self.z_cutoff}")

    @classmethod
    def default(cls) -> "NumericalSettings":
        """Standard settings."""
        return cls()

    @classmethod
    def precise(cls) -> "NumericalSettings":
        """Tighter quadrature for reference valuations (slower)."""
        return cls(
            quad_epsabs=1e-14,
            quad_epsrel=1e-12,
            quad_limit=500,
            center_x_tolerance=1e-12,
            vol_x_tolerance=1e-9,
        )

    def with_overrides(self, **kwargs) -> "NumericalSettings":
        """Copy with selected fields replaced."""
        return replace(self, **kwargs)


DEFAULT_SETTINGS = NumericalSettings.default()


__all__ = ["NumericalSettings", "DEFAULT_SETTINGS"]
