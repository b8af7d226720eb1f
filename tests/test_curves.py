"""
Unit tests for curves module.
"""

import numpy as np
import pytest

from cdxlib.curves import CurveNode, DiscountCurve


class TestCurveNode:
    """Tests for curve nodes."""

    def test_from_zero_rate(self):
        node = CurveNode.from_zero_rate(2.0, 0.05)
        assert abs(node.discount_factor - np.exp(-0.1)) < 1e-15

    def test_from_discount_factor(self):
        node = CurveNode.from_discount_factor(2.0, np.exp(-0.1))
        assert abs(node.zero_rate - 0.05) < 1e-12


class TestDiscountCurve:
    """Tests for DiscountCurve class."""

    @pytest.fixture
    def sample_curve(self):
        """Upward sloping curve."""
        times = [0.5, 1.0, 2.0, 5.0, 10.0]
        zeros = [0.020, 0.022, 0.025, 0.030, 0.032]
        return DiscountCurve.from_zero_rates(times, zeros)

    def test_discount_factor_anchor(self, sample_curve):
        """Test DF at t=0 is 1."""
        assert sample_curve.discount_factor(0.0) == 1.0
        assert sample_curve.discount_factor(-1.0) == 1.0

    def test_discount_factor_at_nodes(self, sample_curve):
        """Test nodes are reproduced."""
        assert abs(sample_curve.discount_factor(2.0) - np.exp(-0.05)) < 1e-14
        assert abs(sample_curve.discount_factor(10.0) - np.exp(-0.32)) < 1e-14

    def test_log_linear_interpolation(self, sample_curve):
        """Test log DF is linear between nodes."""
        df1 = sample_curve.discount_factor(1.0)
        df2 = sample_curve.discount_factor(2.0)
        mid = sample_curve.discount_factor(1.5)
        assert abs(mid - np.sqrt(df1 * df2)) < 1e-14

    def test_vector_matches_scalar(self, sample_curve):
        times = np.array([0.0, 0.3, 1.7, 7.5, 12.0])
        vector = sample_curve.discount_factors(times)
        scalar = [sample_curve.discount_factor(t) for t in times]
        np.testing.assert_allclose(vector, scalar, rtol=1e-15)

    def test_flat_forward_extrapolation(self, sample_curve):
        """Test the last forward rate is kept beyond the last node."""
        f_last = sample_curve.forward_rate(5.0, 10.0)
        f_beyond = sample_curve.forward_rate(10.0, 15.0)
        assert abs(f_last - f_beyond) < 1e-12

    def test_discount_factor_between(self, sample_curve):
        expected = sample_curve.discount_factor(5.0) / sample_curve.discount_factor(2.0)
        assert abs(sample_curve.discount_factor_between(2.0, 5.0) - expected) < 1e-15

    def test_zero_rate(self, sample_curve):
        assert abs(sample_curve.zero_rate(5.0) - 0.030) < 1e-12
        assert abs(sample_curve.zero_rate(0.0) - 0.020) < 1e-12

    def test_forward_rate_requires_order(self, sample_curve):
        with pytest.raises(ValueError):
            sample_curve.forward_rate(2.0, 1.0)

    def test_bump_parallel(self, sample_curve):
        """Test parallel bump shifts every zero rate."""
        bumped = sample_curve.bumped(0.0001)
        for t in (0.5, 2.0, 10.0):
            assert abs(bumped.zero_rate(t) - sample_curve.zero_rate(t) - 0.0001) < 1e-12

    def test_flat_curve(self):
        curve = DiscountCurve.flat(0.03)
        for t in (0.25, 1.0, 30.0, 60.0):
            assert abs(curve.discount_factor(t) - np.exp(-0.03 * t)) < 1e-14

    def test_invalid_nodes(self):
        with pytest.raises(ValueError):
            DiscountCurve([1.0, 2.0], [0.99])
        with pytest.raises(ValueError):
            DiscountCurve([0.0], [1.0])
        with pytest.raises(ValueError):
            DiscountCurve([1.0], [-0.5])
        with pytest.raises(ValueError):
            DiscountCurve([], [])
