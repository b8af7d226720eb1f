"""
Pricers module - Single-name CDS pricing on a flat hazard rate.
"""

from .cds import CdsPricer, calibrate_hazard_to_pv, calibrate_hazard_to_spread

__all__ = ["CdsPricer", "calibrate_hazard_to_pv", "calibrate_hazard_to_spread"]
