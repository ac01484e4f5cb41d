"""Unit tests for pennant, flag and triple pattern detection."""

import numpy as np
import pytest

from chartscan.config import resolve_params
from chartscan.core import PatternStatus
from chartscan.features import detect_all_patterns
from chartscan.features.flags import detect_flags
from chartscan.features.swing import detect_swing_points
from chartscan.features.triple_patterns import detect_triple_patterns

from conftest import make_frame, piecewise


@pytest.fixture
def daily_params():
    return resolve_params("1day")


def _pole_frame(wide_bar_close: float, wide_bar_high: float, wide_bar_low: float):
    """Flat base, one wide bar at 26, then a 10% rally over the last 12 bars."""
    closes = np.concatenate([np.full(27, 100.0), np.linspace(100, 110, 13)])
    df = make_frame(closes, spread=1.0)
    df.loc[df.index[26], ["close", "high", "low"]] = [wide_bar_close, wide_bar_high, wide_bar_low]
    return df


class TestFlags:
    """Test pennant and flag recognition."""

    def test_pennant(self, daily_params):
        """Falling highs and rising lows after a pole form a pennant."""
        df = _pole_frame(100.0, 120.0, 95.0)

        found = detect_flags(df, [], daily_params)

        assert [c.type for c in found] == ["pennant"]
        c = found[0]
        assert (c.start_index, c.end_index) == (26, 39)
        assert c.upper_line is not None and c.lower_line is not None
        assert 0.0 <= c.confidence <= 1.0

    def test_flag(self, daily_params):
        """A parallel channel sloping against the pole forms a flag."""
        df = _pole_frame(120.0, 121.0, 119.0)

        found = detect_flags(df, [], daily_params)

        assert [c.type for c in found] == ["flag"]

    def test_no_pole(self, daily_params):
        """A move below the timeframe pole threshold yields nothing."""
        df = make_frame(np.linspace(100, 103, 40))
        assert detect_flags(df, [], daily_params) == []

    def test_filter(self, daily_params):
        """Filtering out both types yields nothing."""
        df = _pole_frame(100.0, 120.0, 95.0)
        assert detect_flags(df, [], daily_params, ["double_top"]) == []


class TestTriplePatterns:
    """Test triple top / bottom recognition."""

    def test_triple_top(self, triple_top_data, daily_params):
        """Three equal peaks with equal reactions form a triple top."""
        pivots = detect_swing_points(triple_top_data, daily_params.swing_depth)

        found = detect_triple_patterns(triple_top_data, pivots, daily_params)

        assert [c.type for c in found] == ["triple_top"]
        c = found[0]
        assert (c.start_index, c.end_index) == (10, 50)
        assert [p.index for p in c.pivots] == [10, 30, 50]
        assert all(p.y == pytest.approx(90.0) for p in c.neckline)
        assert c.confidence >= 0.7

    def test_triple_bottom(self, triple_top_data, daily_params):
        """Mirrored data forms a triple bottom."""
        mirrored = make_frame(190 - triple_top_data["close"].to_numpy())
        pivots = detect_swing_points(mirrored, daily_params.swing_depth)

        found = detect_triple_patterns(mirrored, pivots, daily_params)

        assert [c.type for c in found] == ["triple_bottom"]

    def test_relaxed_match(self, daily_params):
        """A middle peak just outside strict tolerance matches at the first relaxed stage."""
        closes = piecewise((0, 90), (10, 100), (15, 90), (20, 104.2), (25, 90), (30, 100), (40, 90))
        df = make_frame(closes)
        pivots = detect_swing_points(df, daily_params.swing_depth)

        found = detect_triple_patterns(df, pivots, daily_params, ["triple_top"])

        assert len(found) == 1
        c = found[0]
        assert c.fallback_tag == "relaxed_triple_x1.25"
        assert [p.index for p in c.pivots] == [10, 20, 30]
        assert c.confidence == pytest.approx(0.77)

    def test_unbroken_neckline_near_completion(self, triple_top_data, daily_params):
        """Without a neckline break and with the horizon open the pattern is near completion."""
        patterns = detect_all_patterns(triple_top_data, daily_params, ["triple_top"])

        assert len(patterns) == 1
        assert patterns[0].status == PatternStatus.NEAR_COMPLETION
        assert patterns[0].breakout is None
        assert patterns[0].aftermath is None
