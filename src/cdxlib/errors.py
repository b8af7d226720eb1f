"""
Exception hierarchy for credit index option valuation.

- InvalidConfiguration: unknown model type, unsupported barrier type
- NumericalFailure: a root solve could not bracket or converge
- CalibrationFailure: a numerical failure inside a nested calibration step

Degenerate inputs (zero volatility, non-positive forward or strike) are
handled by closed-form branches and never raise.
"""


class CdxLibError(Exception):
    """Base class for library errors."""


class InvalidConfiguration(CdxLibError, ValueError):
    """Raised when a model cannot be built from the requested configuration."""


class NumericalFailure(CdxLibError, RuntimeError):
    """Raised when a root finder cannot bracket or converge."""


class CalibrationFailure(NumericalFailure):
    """
    Raised when a calibration step inside a valuation fails.

    Always propagated to the caller: an approximate value is never
    substituted for a failed calibration.
    """


__all__ = [
    "CdxLibError",
    "InvalidConfiguration",
    "NumericalFailure",
    "CalibrationFailure",
]
