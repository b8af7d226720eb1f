"""
Tests for Black primitives and implied volatility.
"""

import numpy as np
import pytest
from scipy.stats import norm

from cdxlib.config import NumericalSettings
from cdxlib.options.base_models import (
    black_b,
    black_value,
    implied_black_volatility,
    lognormal_probability,
    norm_cdf,
    norm_inv,
)


class TestBlackValue:
    """Tests for the Black formula."""

    def test_normalized_value(self):
        """Test B(m, v) against the textbook formula."""
        m, v = 1.1, 0.3
        d1 = np.log(m) / v + 0.5 * v
        expected = m * norm.cdf(d1) - norm.cdf(d1 - v)
        np.testing.assert_allclose(black_b(m, v), expected, rtol=1e-14)

    def test_zero_volatility_is_intrinsic(self):
        """Test value collapses to discounted intrinsic at zero volatility."""
        assert black_value(0.012, 0.01, 0.0, 2.0, True) == pytest.approx(0.004)
        assert black_value(0.012, 0.01, 0.0, 2.0, False) == 0.0
        assert black_value(0.008, 0.01, 0.0, 2.0, False) == pytest.approx(0.004)

    def test_degenerate_strike(self):
        """Test non-positive strike falls back to intrinsic."""
        assert black_value(0.01, 0.0, 0.5) == pytest.approx(0.01)
        assert black_value(0.01, -0.01, 0.5, is_call=False) == 0.0

    def test_put_call_parity(self):
        """Test call - put = m (F - K)."""
        for vol in (0.05, 0.4, 1.5):
            call = black_value(0.012, 0.01, vol, 3.0, True)
            put = black_value(0.012, 0.01, vol, 3.0, False)
            np.testing.assert_allclose(call - put, 3.0 * 0.002, atol=1e-14)

    def test_increasing_in_volatility(self):
        values = [black_value(0.01, 0.012, v) for v in (0.1, 0.3, 0.6, 1.2)]
        assert np.all(np.diff(values) > 0)

    def test_reference_value(self):
        """Test payer at F=60bp, K=75bp, 120% vol, pv01 4.5."""
        f, k, v, pv01 = 0.0060, 0.0075, 1.2, 4.5
        value = black_value(f, k, v, pv01, True)
        d1 = np.log(f / k) / v + 0.5 * v
        expected = pv01 * (f * norm.cdf(d1) - k * norm.cdf(d1 - v))
        np.testing.assert_allclose(value, expected, rtol=1e-12)
        np.testing.assert_allclose(value, 0.010547, rtol=2e-4)


class TestLognormalProbability:
    """Tests for exercise probabilities."""

    def test_complementary(self):
        p_call = lognormal_probability(0.01, 0.012, 0.5, True)
        p_put = lognormal_probability(0.01, 0.012, 0.5, False)
        np.testing.assert_allclose(p_call + p_put, 1.0, atol=1e-15)

    def test_decreasing_in_strike(self):
        probs = [lognormal_probability(0.01, k, 0.5) for k in (0.005, 0.01, 0.02)]
        assert np.all(np.diff(probs) < 0)
        assert all(0.0 <= p <= 1.0 for p in probs)

    def test_zero_volatility(self):
        assert lognormal_probability(0.012, 0.01, 0.0, True) == 1.0
        assert lognormal_probability(0.012, 0.01, 0.0, False) == 0.0
        assert lognormal_probability(0.008, 0.01, 0.0, False) == 1.0

    def test_norm_helpers(self):
        np.testing.assert_allclose(norm_cdf(norm_inv(0.3)), 0.3, rtol=1e-12)


class TestImpliedBlackVolatility:
    """Tests for Black implied volatility."""

    @pytest.mark.parametrize("vol", [0.05, 0.3, 1.0, 2.5, 9.0])
    @pytest.mark.parametrize("is_call", [True, False])
    def test_round_trip(self, vol, is_call):
        """Test value -> volatility -> value."""
        fv = black_value(0.012, 0.01, vol, 4.0, is_call)
        implied = implied_black_volatility(fv, 0.012, 0.01, 4.0, is_call)
        np.testing.assert_allclose(implied, vol, rtol=1e-4)

    def test_intrinsic_gives_zero(self):
        assert implied_black_volatility(0.002, 0.012, 0.01, 1.0, True) == 0.0

    def test_below_intrinsic_is_nan(self):
        assert np.isnan(implied_black_volatility(0.001, 0.012, 0.01, 1.0, True))

    def test_non_positive_value_is_nan(self):
        assert np.isnan(implied_black_volatility(0.0, 0.012, 0.01))
        assert np.isnan(implied_black_volatility(-0.001, 0.012, 0.01))

    def test_non_positive_forward_is_nan(self):
        assert np.isnan(implied_black_volatility(0.001, 0.0, 0.01))

    def test_above_supremum_is_nan(self):
        """Test a call worth more than the forward has no volatility."""
        assert np.isnan(implied_black_volatility(0.013, 0.012, 0.01, 1.0, True))

    def test_volatility_cap(self):
        """Test values above the capped volatility are not implied."""
        settings = NumericalSettings(max_volatility=2.0)
        fv = black_value(0.012, 0.01, 4.0)
        assert np.isnan(implied_black_volatility(fv, 0.012, 0.01, settings=settings))
