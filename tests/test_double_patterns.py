"""Unit tests for double top / double bottom detection."""

import numpy as np
import pytest

from chartscan.config import resolve_params
from chartscan.core import BreakoutDirection
from chartscan.features.double_patterns import detect_double_patterns
from chartscan.features.swing import detect_swing_points

from conftest import make_frame, piecewise


@pytest.fixture
def daily_params():
    return resolve_params("1day")


def _candidates(df, params, wanted=()):
    pivots = detect_swing_points(df, params.swing_depth, strict=params.strict_pivots)
    return detect_double_patterns(df, pivots, params, wanted)


class TestDoubleTop:
    """Test double top recognition."""

    def test_scenario(self, double_top_data, daily_params):
        """Equal peaks with a neckline break should yield one double top."""
        found = _candidates(double_top_data, daily_params)

        assert len(found) == 1
        c = found[0]
        assert c.type == "double_top"
        assert c.start_index == 10
        assert c.breakout_index == 45
        assert c.end_index == 45
        assert c.breakout_direction == BreakoutDirection.DOWN
        assert c.fallback_tag is None
        assert c.confidence == pytest.approx(0.9)

    def test_neckline_at_valley(self, double_top_data, daily_params):
        """Neckline should run flat at the valley price up to the breakout."""
        c = _candidates(double_top_data, daily_params)[0]

        assert [(p.x, p.y) for p in c.neckline] == [(10, 90.0), (45, 90.0)]

    def test_filter_excludes(self, double_top_data, daily_params):
        """Filtering for double bottoms only should skip the double top."""
        assert _candidates(double_top_data, daily_params, ["double_bottom"]) == []

    def test_requires_breakout(self, daily_params):
        """Without a close beyond the neckline buffer there is no pattern."""
        closes = piecewise((0, 90), (10, 100), (25, 90), (40, 100), (45, 90))
        closes = np.concatenate([closes, np.linspace(89.9, 89.0, 14)])

        assert _candidates(make_frame(closes), daily_params) == []

    def test_relaxed_match(self, daily_params):
        """Peaks outside strict tolerance should match at the first relaxed stage."""
        closes = piecewise((0, 90), (10, 100), (25, 90), (40, 95))
        closes = np.concatenate([closes, [93, 91, 89, 88, 87], 87 - 0.3 * np.arange(1, 15)])

        found = _candidates(make_frame(closes), daily_params)

        assert len(found) == 1
        assert found[0].fallback_tag == "relaxed_double_x1.5"
        assert found[0].breakout_index == 44
        assert found[0].confidence < 0.9


class TestDoubleBottom:
    """Test double bottom recognition."""

    def test_mirrored_scenario(self, double_top_data, daily_params):
        """Mirroring the double top should yield a double bottom breaking upward."""
        mirrored = make_frame(190 - double_top_data["close"].to_numpy())

        found = _candidates(mirrored, daily_params)

        assert len(found) == 1
        c = found[0]
        assert c.type == "double_bottom"
        assert c.start_index == 10
        assert c.breakout_index == 45
        assert c.breakout_direction == BreakoutDirection.UP
