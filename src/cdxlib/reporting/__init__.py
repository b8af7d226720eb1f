"""
Reporting module - Model diagnostics tables (pandas).
"""

from .round_trip import volatility_round_trip, model_comparison, summarize_round_trip

__all__ = ["volatility_round_trip", "model_comparison", "summarize_round_trip"]
