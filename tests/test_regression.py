"""Unit tests for trendline fitting and numeric helpers."""

import numpy as np
import pytest

from chartscan.features.regression import (
    TrendLine,
    average_true_range,
    clamp01,
    fit,
    fit_with_r2,
    intersection,
    margin_from_rel_dev,
    near,
    pct_change,
    rel_dev,
    trendline_fit,
)

from conftest import make_frame


class TestFit:
    """Test least squares fitting."""

    def test_exact_line(self):
        """Collinear points should be reproduced exactly."""
        line = fit([(0, 1), (1, 3), (2, 5)])

        assert line.slope == pytest.approx(2.0)
        assert line.intercept == pytest.approx(1.0)

    def test_empty_points(self):
        """No points should give a flat zero line."""
        line = fit([])
        assert line.slope == 0.0
        assert line.intercept == 0.0

    def test_single_point_degenerate(self):
        """A single point has a zero denominator and fits a flat line through it."""
        line = fit([(3, 7)])

        assert line.slope == pytest.approx(0.0)
        assert line.intercept == pytest.approx(7.0)

    def test_r2_perfect(self):
        """Perfect fit should score R2 of one."""
        line = fit_with_r2([(0, 10), (5, 20), (10, 30)])
        assert line.r2 == pytest.approx(1.0)

    def test_r2_flat_series(self):
        """Zero variance should report R2 of zero."""
        line = fit_with_r2([(0, 10), (1, 10), (2, 10)])
        assert line.r2 == 0.0

    def test_r2_noisy_in_range(self):
        """R2 should stay within [0, 1]."""
        np.random.seed(42)
        points = [(float(i), float(v)) for i, v in enumerate(np.random.randn(30))]
        assert 0.0 <= fit_with_r2(points).r2 <= 1.0

    def test_trendline_fit(self):
        """Points on the line should score 1, points off it less."""
        line = TrendLine(slope=1.0, intercept=100.0)

        assert trendline_fit([(0, 100), (10, 110)], line) == pytest.approx(1.0)
        assert trendline_fit([(0, 90), (10, 120)], line) < 1.0
        assert trendline_fit([], line) == 0.0


class TestHelpers:
    """Test shared numeric helpers."""

    def test_rel_dev(self):
        """Relative deviation should divide by the larger price."""
        assert rel_dev(100, 90) == pytest.approx(0.1)
        assert rel_dev(0.5, 0.2) == pytest.approx(0.3)

    def test_near(self):
        """Prices within tolerance should be near."""
        assert near(100, 103, 0.04)
        assert not near(100, 105, 0.04)

    def test_pct_change(self):
        """Relative change from the first price."""
        assert pct_change(100, 110) == pytest.approx(0.1)

    def test_clamp_and_margin(self):
        """Clamp bounds and margin scaling."""
        assert clamp01(1.5) == 1.0
        assert clamp01(-0.2) == 0.0
        assert margin_from_rel_dev(0.02, 0.04) == pytest.approx(0.5)
        assert margin_from_rel_dev(0.08, 0.04) == 0.0

    def test_intersection(self):
        """Crossing lines meet at one index, parallel lines never."""
        a = TrendLine(slope=1.0, intercept=0.0)
        b = TrendLine(slope=-1.0, intercept=10.0)

        assert intersection(a, b) == pytest.approx(5.0)
        assert intersection(a, TrendLine(slope=1.0, intercept=3.0)) is None


class TestAverageTrueRange:
    """Test ATR over a bar span."""

    def test_constant_range(self):
        """Constant spread with flat closes gives the spread width."""
        df = make_frame(np.full(30, 100.0), spread=0.5)
        assert average_true_range(df, 0, 29) == pytest.approx(1.0)

    def test_empty_span(self):
        """A span without bars gives zero."""
        df = make_frame(np.full(10, 100.0))
        assert average_true_range(df, 5, 4) == 0.0
