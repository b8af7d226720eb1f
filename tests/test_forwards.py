"""
Tests for forward snapshots and the forward calculator.
"""

import numpy as np
import pytest

from cdxlib.options import ForwardCalculator, Forwards
from cdxlib.options.forwards import forward_riskless_pv01, forward_upfront_value
from cdxlib.pricers import calibrate_hazard_to_pv

from conftest import EXPIRY, INDEX_PREMIUM, STRIKE


def make_forwards(**overrides):
    params = dict(
        pv01=4.5,
        upfront=0.009,
        survival_probability=0.99,
        discount_factor=0.98,
        front_end_protection=0.004,
        strike_value=0.011,
    )
    params.update(overrides)
    return Forwards(**params)


class TestForwards:
    """Tests for the Forwards snapshot."""

    def test_value(self):
        fwd = make_forwards()
        np.testing.assert_allclose(fwd.value, 0.004 + 0.99 * 0.009, rtol=1e-15)

    def test_adjustments_without_losses(self):
        """Test adjusted quantities equal raw ones for an intact index."""
        fwd = make_forwards()
        assert fwd.adjusted_strike_value == fwd.strike_value
        assert fwd.adjusted_forward_pv01 == fwd.pv01
        assert fwd.adjusted_factor == fwd.discount_factor

    def test_adjustments_with_losses(self):
        """Test factor and realized loss adjustments."""
        fwd = make_forwards(initial_factor=1.0, loss=0.006, factor=0.99)
        np.testing.assert_allclose(fwd.adjusted_strike_value, (0.011 - 0.006) / 0.99, rtol=1e-15)
        np.testing.assert_allclose(fwd.adjusted_forward_pv01, 0.99 * 4.5, rtol=1e-15)
        np.testing.assert_allclose(fwd.adjusted_factor, 0.99 * 0.98, rtol=1e-15)
        np.testing.assert_allclose(
            fwd.net_value, 0.006 + 0.99 * fwd.value - 0.011, rtol=1e-14)

    def test_validation(self):
        with pytest.raises(ValueError):
            make_forwards(survival_probability=1.5)
        with pytest.raises(ValueError):
            make_forwards(discount_factor=0.0)
        with pytest.raises(ValueError):
            make_forwards(factor=0.0)
        with pytest.raises(ValueError):
            make_forwards(pv01=-1.0)

    def test_frozen(self):
        fwd = make_forwards()
        with pytest.raises(AttributeError):
            fwd.pv01 = 1.0


class TestForwardUpfrontValue:
    """Tests for strike and barrier conversion."""

    def test_price_quote(self, index_pricer):
        assert forward_upfront_value(index_pricer, EXPIRY, 0.98, True) == pytest.approx(0.02)

    def test_spread_quote(self, index_pricer):
        """Test upfront sign follows spread versus coupon."""
        above = forward_upfront_value(index_pricer, EXPIRY, 0.0125, False)
        at = forward_upfront_value(index_pricer, EXPIRY, INDEX_PREMIUM, False)
        below = forward_upfront_value(index_pricer, EXPIRY, 0.008, False)
        assert above > 0
        assert abs(at) < 1e-12
        assert below < 0

    @pytest.mark.parametrize("expiry", [0.3, 0.5])
    def test_clean_upfront(self, index_pricer, expiry):
        """Test upfront = clean annuity * (quote - coupon) at zero clean PV."""
        quote = 0.0125
        upfront = forward_upfront_value(index_pricer, expiry, quote, False)
        fwd = index_pricer.copy()
        fwd.as_of = expiry
        fwd.settle = expiry
        fwd.premium = quote
        calibrate_hazard_to_pv(fwd, fwd.accrued(), 0.02)
        np.testing.assert_allclose(fwd.clean_par_spread(), quote, rtol=1e-10)
        annuity = fwd.risky_annuity() - fwd.accrual_fraction()
        np.testing.assert_allclose(upfront, annuity * (quote - INDEX_PREMIUM), rtol=1e-10)

    def test_pricer_unchanged(self, index_pricer):
        forward_upfront_value(index_pricer, EXPIRY, 0.0125, False)
        assert index_pricer.hazard_rate == 0.0
        assert index_pricer.as_of == 0.0
        assert index_pricer.settle == 0.0

    def test_riskless_pv01_exceeds_risky(self, index_pricer, forwards):
        assert forward_riskless_pv01(index_pricer, EXPIRY) > forwards.pv01


class TestForwardCalculator:
    """Tests for forward snapshots from a calibrated pricer."""

    def test_calibrated_to_quote(self, calculator):
        np.testing.assert_allclose(calculator.pricer.par_spread(), 0.012, rtol=1e-10)
        assert calculator.hazard_rate > 0

    def test_template_not_modified(self, index_pricer, calculator):
        assert index_pricer.hazard_rate == 0.0

    def test_snapshot(self, calculator, forwards):
        """Test discount, survival and upfront of the snapshot."""
        h = calculator.hazard_rate
        np.testing.assert_allclose(forwards.discount_factor, np.exp(-0.03 * EXPIRY), rtol=1e-12)
        np.testing.assert_allclose(forwards.survival_probability, np.exp(-h * EXPIRY), rtol=1e-12)
        assert forwards.pv01 > 0
        assert forwards.front_end_protection > 0
        assert forwards.upfront > 0
        expected_strike = calculator.forward_upfront_value(EXPIRY, STRIKE, False)
        assert forwards.strike_value == expected_strike

    def test_front_end_protection_approximation(self, calculator):
        """Test both front-end protection conventions are close."""
        pv_based = calculator.forwards(EXPIRY, STRIKE)
        calculator.use_protection_pv_for_front_end = False
        approx = calculator.forwards(EXPIRY, STRIKE)
        np.testing.assert_allclose(
            approx.front_end_protection, pv_based.front_end_protection, rtol=0.02)
        np.testing.assert_allclose(approx.upfront, pv_based.upfront, rtol=1e-14)

    def test_price_quote(self, index_pricer, calculator):
        """Test calibrating to the equivalent price gives the same hazard rate."""
        pricer = calculator.pricer
        price = 1.0 + pricer.product_pv() - pricer.accrued()
        by_price = ForwardCalculator(index_pricer, quote=price, quote_is_price=True)
        np.testing.assert_allclose(by_price.hazard_rate, calculator.hazard_rate, rtol=1e-9)

    def test_expiry_before_protection_start(self, calculator):
        with pytest.raises(ValueError):
            calculator.forwards(-0.05, STRIKE)

    def test_losses_passed_through(self, calculator):
        fwd = calculator.forwards(EXPIRY, STRIKE, initial_factor=1.0, loss=0.006, factor=0.99)
        assert fwd.loss == 0.006
        assert fwd.factor == 0.99
