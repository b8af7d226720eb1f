"""
Tests for options on a nonlinear function of a log-normal hazard rate.

With the identity payoff the hazard rate itself is the underlying, so
values must match the Black formula.
"""

import numpy as np
import pytest
from scipy.stats import norm

from cdxlib.errors import CalibrationFailure
from cdxlib.numerics import QuadratureNodeSet
from cdxlib.numerics.nonlinear import (
    calculate_expectation,
    calculate_probability,
    calculate_value,
    invert_level,
    solve_center,
)
from cdxlib.options.base_models import black_value, lognormal_probability


F, K, SIGMA = 0.02, 0.025, 0.5


def identity(h):
    return h


def black_call_above(forward, level, sigma):
    """E[(h - K) 1{h > level}] pieces: (F N(d1), N(d2)) at `level`."""
    d1 = (np.log(forward / level) + 0.5 * sigma * sigma) / sigma
    return forward * norm.cdf(d1), norm.cdf(d1 - sigma)


class TestCalculateValue:
    """Tests for option values on the payoff callback."""

    def test_identity_call_is_black(self):
        """Test identity payoff reproduces the Black call."""
        value = calculate_value(identity, F, K, -np.inf, np.inf, True, SIGMA, F)
        np.testing.assert_allclose(value, black_value(F, K, SIGMA), rtol=1e-7)

    def test_identity_put_is_black(self):
        """Test identity payoff reproduces the Black put."""
        value = calculate_value(identity, F, K, -np.inf, np.inf, False, SIGMA, F)
        np.testing.assert_allclose(
            value, black_value(F, K, SIGMA, is_call=False), rtol=1e-7)

    def test_knock_out_corridor(self):
        """Test call knocked out above an upper barrier."""
        upper = 0.04
        value = calculate_value(identity, F, K, -np.inf, upper, True, SIGMA, F)
        fk, nk = black_call_above(F, K, SIGMA)
        fu, nu = black_call_above(F, upper, SIGMA)
        expected = (fk - K * nk) - (fu - K * nu)
        np.testing.assert_allclose(value, expected, rtol=1e-7)

    def test_barrier_at_strike(self):
        """Test a barrier on the strike gives a zero value."""
        value = calculate_value(identity, F, K, -np.inf, K, True, SIGMA, F)
        assert value == 0.0

    def test_zero_volatility(self):
        """Test deterministic branch returns intrinsic value."""
        assert calculate_value(identity, 0.03, K, -np.inf, np.inf, True, 0.0, F) == pytest.approx(0.005)
        assert calculate_value(identity, 0.03, K, -np.inf, np.inf, False, 0.0, F) == 0.0

    def test_zero_volatility_outside_barriers(self):
        """Test deterministic branch honours the corridor."""
        assert calculate_value(identity, 0.03, K, -np.inf, 0.028, True, 0.0, F) == 0.0


class TestCalculateProbability:
    """Tests for exercise probabilities."""

    def test_identity_probability(self):
        """Test identity payoff reproduces the log-normal probability."""
        for is_call in (True, False):
            p = calculate_probability(identity, F, K, is_call, SIGMA, F)
            np.testing.assert_allclose(
                p, lognormal_probability(F, K, SIGMA, is_call), rtol=1e-8)

    def test_corridor_reduces_probability(self):
        vanilla = calculate_probability(identity, F, K, True, SIGMA, F)
        corridor = calculate_probability(identity, F, K, True, SIGMA, F, upper=0.04)
        assert 0.0 < corridor < vanilla

    def test_zero_volatility(self):
        assert calculate_probability(identity, 0.03, K, True, 0.0, F) == 1.0
        assert calculate_probability(identity, 0.03, K, False, 0.0, F) == 0.0


class TestInvertLevel:
    """Tests for payoff inversion."""

    def test_inverse(self):
        fn = lambda h: h / (1.0 + h)
        np.testing.assert_allclose(invert_level(fn, 0.3, 0.1), 0.3 / 0.7, atol=1e-12)

    def test_below_floor(self):
        """Test levels at or below fn(0) map to zero."""
        assert invert_level(identity, -1.0, 0.1) == 0.0
        assert invert_level(identity, -np.inf, 0.1) == 0.0

    def test_above_cap(self):
        """Test levels beyond fn(max_hazard_rate) map to infinity."""
        fn = lambda h: h / (1.0 + h)
        assert np.isinf(invert_level(fn, 0.995, 0.1))
        assert np.isinf(invert_level(fn, np.inf, 0.1))


class TestCenter:
    """Tests for distribution center calibration."""

    def test_solve_center(self):
        mu = solve_center(np.exp, 2.0, 0.0)
        np.testing.assert_allclose(mu, np.log(2.0), atol=1e-9)

    def test_failure_is_calibration_failure(self):
        """Test an unreachable target raises CalibrationFailure."""
        with pytest.raises(CalibrationFailure):
            solve_center(lambda mu: 1.0, 2.0, 0.0)

    def test_expectation_fixed_and_adaptive(self):
        """Test node and adaptive expectations of the mean agree."""
        nodes = QuadratureNodeSet.gauss_hermite(30)
        mu = np.log(F)
        adaptive = calculate_expectation(mu, K, SIGMA, identity)
        fixed = calculate_expectation(mu, K, SIGMA, identity, nodes)
        expected = F * np.exp(0.5 * SIGMA * SIGMA)
        np.testing.assert_allclose(adaptive, expected, rtol=1e-9)
        np.testing.assert_allclose(fixed, expected, rtol=1e-9)

    def test_expectation_zero_volatility(self):
        assert calculate_expectation(np.log(F), None, 0.0, identity) == pytest.approx(F)
