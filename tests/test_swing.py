"""Unit tests for swing point detection."""

import numpy as np
import pandas as pd

from chartscan.core import SwingKind
from chartscan.features.swing import detect_swing_points, filter_peaks, filter_valleys

from conftest import make_frame


class TestSwingPoints:
    """Test swing point detection."""

    def test_double_top_pivots(self, double_top_data):
        """Two peaks and the valley between them should be found at daily depth."""
        points = detect_swing_points(double_top_data, depth=6)

        assert [(p.index, p.kind) for p in points] == [
            (10, SwingKind.PEAK),
            (25, SwingKind.VALLEY),
            (40, SwingKind.PEAK),
        ]

    def test_price_is_close(self, double_top_data):
        """Stored pivot price should be the candle close, not the high or low."""
        points = detect_swing_points(double_top_data, depth=6)

        for p in points:
            assert p.price == double_top_data["close"].iloc[p.index]

    def test_empty_input(self):
        """Empty frame should yield no pivots."""
        df = pd.DataFrame(columns=["open", "high", "low", "close"])
        assert detect_swing_points(df, depth=3) == []

    def test_ties_never_qualify(self):
        """A flat series has no strict extremes."""
        df = make_frame(np.full(30, 100.0))
        assert detect_swing_points(df, depth=2) == []

    def test_depth_monotonic(self, random_walk_data):
        """A larger depth should never add pivots in strict mode."""
        shallow = {p.index for p in detect_swing_points(random_walk_data, depth=3)}
        deep = {p.index for p in detect_swing_points(random_walk_data, depth=5)}

        assert deep <= shallow

    def test_relaxed_finds_superset(self, random_walk_data):
        """Relaxed voting should keep every strict pivot."""
        strict = {p.index for p in detect_swing_points(random_walk_data, depth=4, strict=True)}
        relaxed = {p.index for p in detect_swing_points(random_walk_data, depth=4, strict=False)}

        assert strict <= relaxed

    def test_outside_bar_is_peak(self):
        """A bar that is both the highest high and lowest low counts as a peak."""
        df = make_frame([100, 100, 100, 100, 100])
        df.loc[df.index[2], "high"] = 105
        df.loc[df.index[2], "low"] = 95

        points = detect_swing_points(df, depth=2)

        assert len(points) == 1
        assert points[0].kind == SwingKind.PEAK

    def test_filters(self, double_top_data):
        """Peak and valley filters should split the pivots by kind."""
        points = detect_swing_points(double_top_data, depth=6)

        assert [p.index for p in filter_peaks(points)] == [10, 40]
        assert [p.index for p in filter_valleys(points)] == [25]
