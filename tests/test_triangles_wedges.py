"""Unit tests for triangle and wedge detection."""

import numpy as np
import pytest

from chartscan.config import resolve_params
from chartscan.core import SwingKind, SwingPoint
from chartscan.features import detect_all_patterns
from chartscan.features.regression import TrendLine
from chartscan.features.swing import detect_swing_points
from chartscan.features.triangles import detect_triangles, fit_thresholds
from chartscan.features.wedges import (
    PivotTrendlineStrategy,
    RegressionWindowStrategy,
    check_convergence,
    classify_wedge,
    detect_wedges,
    generate_windows,
)

from conftest import make_frame, piecewise


def _pivots(peaks, valleys):
    points = [SwingPoint(index=i, price=p, kind=SwingKind.PEAK) for i, p in peaks]
    points += [SwingPoint(index=i, price=p, kind=SwingKind.VALLEY) for i, p in valleys]
    return sorted(points, key=lambda p: p.index)


@pytest.fixture
def daily_params():
    return resolve_params("1day")


@pytest.fixture
def flat_frame():
    return make_frame(np.full(70, 100.0))


class TestTriangles:
    """Test triangle recognition over pivot subsequences."""

    def test_symmetrical(self, flat_frame, daily_params):
        """Falling highs and rising lows that converge form a symmetrical triangle."""
        pivots = _pivots(
            [(0, 110), (10, 107), (20, 104), (30, 101)],
            [(5, 90), (15, 93), (25, 96), (35, 99)],
        )

        found = detect_triangles(flat_frame, pivots, daily_params)

        assert [c.type for c in found] == ["triangle_symmetrical"]
        c = found[0]
        assert (c.start_index, c.end_index) == (0, 35)
        assert c.upper_line.slope < 0 < c.lower_line.slope
        assert 0.0 <= c.confidence <= 1.0

    def test_ascending(self, flat_frame, daily_params):
        """Flat highs with rising lows form an ascending triangle."""
        pivots = _pivots(
            [(0, 100), (10, 100), (20, 100), (30, 100)],
            [(5, 90), (15, 93), (25, 96), (35, 99)],
        )

        found = detect_triangles(flat_frame, pivots, daily_params)

        assert [c.type for c in found] == ["triangle_ascending"]

    def test_same_direction_skipped(self, flat_frame, daily_params):
        """Both sides falling is wedge territory, not a triangle."""
        pivots = _pivots(
            [(0, 110), (10, 108), (20, 106), (30, 104)],
            [(5, 90), (15, 89), (25, 88), (35, 87)],
        )

        assert detect_triangles(flat_frame, pivots, daily_params) == []

    def test_filter(self, flat_frame, daily_params):
        """Types outside the filter are not reported."""
        pivots = _pivots(
            [(0, 110), (10, 107), (20, 104), (30, 101)],
            [(5, 90), (15, 93), (25, 96), (35, 99)],
        )

        assert detect_triangles(flat_frame, pivots, daily_params, ["triangle_ascending"]) == []

    def test_fit_thresholds(self):
        """Thresholds should be unique and descending."""
        assert fit_thresholds(0.75) == [0.75, 0.70, 0.60]
        assert fit_thresholds(0.70) == [0.70, 0.60]


class TestWedgeHelpers:
    """Test wedge classification helpers."""

    def test_falling_wedge(self):
        """Both slopes falling with the upper one steeper is a falling wedge."""
        assert classify_wedge(-0.5, -0.2) == "falling_wedge"

    def test_rising_wedge(self):
        """Both slopes rising with the lower one steeper is a rising wedge."""
        assert classify_wedge(0.2, 0.5) == "rising_wedge"

    def test_rejections(self):
        """Opposite slopes, wrong steepness or a near-flat side are not wedges."""
        assert classify_wedge(0.5, -0.5) is None
        assert classify_wedge(-0.2, -0.5) is None
        assert classify_wedge(0.5, 0.05) is None
        assert classify_wedge(0.00005, 0.00008) is None

    def test_convergence(self):
        """Converging lines pass, parallel lines do not."""
        upper = TrendLine(slope=-0.4, intercept=120.0)
        lower = TrendLine(slope=-0.2, intercept=100.0)
        conv = check_convergence(upper, lower, 0, 50)

        assert conv is not None
        assert conv.ratio == pytest.approx(10.0 / 20.0)
        assert 0.3 <= conv.score <= 1.0
        assert check_convergence(upper, TrendLine(slope=-0.4, intercept=100.0), 0, 50) is None

    def test_generate_windows(self):
        """Windows must end before the last bar."""
        assert generate_windows(30, 25, 30, 5) == [(0, 25)]
        assert generate_windows(20, 25, 30, 5) == []


class TestWedgeStrategies:
    """Test wedge strategies."""

    @pytest.fixture
    def falling_wedge_pivots(self):
        # Upper line 120 - 0.4 * (i - 5), lower line 100 - 0.2 * (i - 8)
        return _pivots(
            [(5, 120.0), (20, 114.0), (35, 108.0), (50, 102.0)],
            [(8, 100.0), (23, 97.0), (38, 94.0), (52, 91.2)],
        )

    def test_pivot_trendline_falling(self, flat_frame, falling_wedge_pivots, daily_params):
        """Lines through literal pivots should find the falling wedge."""
        found = PivotTrendlineStrategy().scan(flat_frame, falling_wedge_pivots, daily_params, ["falling_wedge"])

        assert found
        assert {c.type for c in found} == {"falling_wedge"}
        assert all(c.strategy == "pivot_trendline" for c in found)
        assert all(c.breakout_scanned for c in found)
        assert all(c.upper_line.slope == pytest.approx(-0.4) for c in found)

    def test_pivot_trendline_respects_allowed(self, flat_frame, falling_wedge_pivots, daily_params):
        """Only allowed wedge types are emitted."""
        found = PivotTrendlineStrategy().scan(flat_frame, falling_wedge_pivots, daily_params, ["rising_wedge"])
        assert found == []

    def test_detect_wedges_filter(self, flat_frame, falling_wedge_pivots, daily_params):
        """A filter without wedge types skips every strategy."""
        assert detect_wedges(flat_frame, falling_wedge_pivots, daily_params, ["double_top"]) == []

    def test_strategy_names(self):
        """Each strategy reports a distinct name."""
        assert RegressionWindowStrategy().name == "regression_window"
        assert PivotTrendlineStrategy().name == "pivot_trendline"


class TestFallingWedgeCandles:
    """Test wedge recognition on candles zigzagging between converging falling lines."""

    @pytest.fixture
    def falling_wedge_data(self):
        # Peaks every 12 bars on 120 - 0.4 * i, valleys on 100 - 0.2 * i
        anchors = [(0, 100.0)]
        for k in range(7):
            peak, valley = 5 + 12 * k, 11 + 12 * k
            anchors += [(peak, 120 - 0.4 * peak), (valley, 100 - 0.2 * valley)]
        anchors.append((89, 83.5))
        return make_frame(piecewise(*anchors), spread=0.05)

    def test_regression_window_scan(self, falling_wedge_data, daily_params):
        """Regression lines over the swing points recover both boundaries."""
        pivots = detect_swing_points(falling_wedge_data, daily_params.swing_depth)

        found = RegressionWindowStrategy().scan(falling_wedge_data, pivots, daily_params, ["falling_wedge"])

        assert found
        assert {c.type for c in found} == {"falling_wedge"}
        assert all(c.strategy == "regression_window" for c in found)
        assert all(c.upper_line.slope == pytest.approx(-0.4) for c in found)
        assert all(c.lower_line.slope == pytest.approx(-0.2) for c in found)
        assert all(c.breakout_index is None for c in found)

    def test_regression_window_respects_allowed(self, falling_wedge_data, daily_params):
        """Only allowed wedge types are emitted."""
        pivots = detect_swing_points(falling_wedge_data, daily_params.swing_depth)
        assert RegressionWindowStrategy().scan(falling_wedge_data, pivots, daily_params, ["rising_wedge"]) == []

    def test_pipeline_reports_wedge_not_triangle(self, falling_wedge_data, daily_params):
        """A converging falling channel is a falling wedge, never a descending triangle."""
        patterns = detect_all_patterns(falling_wedge_data, daily_params)
        types = {p.type for p in patterns}

        assert any(p.type == "falling_wedge" and p.strategy == "regression_window" for p in patterns)
        assert "triangle_descending" not in types
        assert "rising_wedge" not in types
