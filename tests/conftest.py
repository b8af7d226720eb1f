"""
Shared fixtures: a flat discount curve, a 5y index pricer quoted at 120bp
with a 100bp coupon, and forwards for a 0.3y option.
"""

import pytest

from cdxlib.curves import DiscountCurve
from cdxlib.numerics import QuadratureNodeSet
from cdxlib.options import ForwardCalculator, PricerContext
from cdxlib.pricers import CdsPricer


EXPIRY = 0.3
INDEX_PREMIUM = 0.01
INDEX_QUOTE = 0.012
STRIKE = 0.0125


@pytest.fixture
def discount_curve():
    """Flat 3% curve."""
    return DiscountCurve.flat(0.03)


@pytest.fixture
def index_pricer(discount_curve):
    """Index as a single-name CDS, accruing since -0.1y."""
    return CdsPricer(
        discount_curve,
        maturity=5.0,
        premium=INDEX_PREMIUM,
        recovery_rate=0.4,
        as_of=0.0,
        effective=-0.1,
    )


@pytest.fixture
def calculator(index_pricer):
    return ForwardCalculator(index_pricer, quote=INDEX_QUOTE)


@pytest.fixture
def forwards(calculator):
    return calculator.forwards(EXPIRY, strike=STRIKE)


@pytest.fixture
def context(index_pricer):
    """Context using the adaptive integrator."""
    return PricerContext(pricer=index_pricer, expiry=EXPIRY)


@pytest.fixture
def node_context(index_pricer):
    """Context using 16 Gauss-Hermite nodes."""
    return PricerContext(
        pricer=index_pricer,
        expiry=EXPIRY,
        nodes=QuadratureNodeSet.gauss_hermite(16),
    )
