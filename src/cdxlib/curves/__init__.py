"""
Curves module - Discount curve representation.
"""

from .curve import CurveNode, DiscountCurve

__all__ = ["CurveNode", "DiscountCurve"]
