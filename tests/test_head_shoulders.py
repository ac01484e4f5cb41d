"""Unit tests for head and shoulders detection."""

import pytest

from chartscan.config import resolve_params
from chartscan.core import AftermathOutcome, BreakoutDirection, PatternStatus
from chartscan.features import detect_all_patterns
from chartscan.features.head_shoulders import detect_head_and_shoulders
from chartscan.features.swing import detect_swing_points

from conftest import make_frame, piecewise


@pytest.fixture
def daily_params():
    return resolve_params("1day")


def _candidates(df, params, wanted=()):
    pivots = detect_swing_points(df, params.swing_depth)
    return detect_head_and_shoulders(df, pivots, params, wanted)


class TestHeadAndShoulders:
    """Test regular head and shoulders recognition."""

    def test_strict_match(self, head_and_shoulders_data, daily_params):
        """Equal shoulders around a higher head should match strictly."""
        found = _candidates(head_and_shoulders_data, daily_params)

        assert len(found) == 1
        c = found[0]
        assert c.type == "head_and_shoulders"
        assert (c.start_index, c.end_index) == (10, 50)
        assert [p.index for p in c.pivots] == [10, 20, 30, 40, 50]
        assert [(p.x, p.y) for p in c.neckline] == [(20, 90.0), (40, 90.0)]
        assert c.fallback_tag is None
        assert 0.0 <= c.confidence <= 1.0

    def test_relaxed_match(self, daily_params):
        """Uneven shoulders should match at the first relaxed stage with a tagged result."""
        closes = piecewise((0, 90), (10, 100), (20, 90), (30, 110), (40, 90), (50, 105.5), (60, 80))

        found = _candidates(make_frame(closes), daily_params, ["head_and_shoulders"])

        assert len(found) == 1
        assert found[0].fallback_tag == "relaxed_hs_x1.6_0.6"
        assert all(p.y == 90.0 for p in found[0].neckline)

    def test_head_not_extreme(self, triple_top_data, daily_params):
        """Three equal peaks are not a head and shoulders."""
        assert _candidates(triple_top_data, daily_params, ["head_and_shoulders"]) == []

    def test_confirmed_in_pipeline(self, head_and_shoulders_data, daily_params):
        """The neckline break after the right shoulder completes the pattern."""
        patterns = detect_all_patterns(head_and_shoulders_data, daily_params, ["head_and_shoulders"])

        assert len(patterns) == 1
        p = patterns[0]
        assert p.status == PatternStatus.COMPLETED
        assert p.breakout.index == 56
        assert p.breakout.direction == BreakoutDirection.DOWN
        assert p.bars_since_breakout == 4
        assert p.completion_pct == 100
        assert p.aftermath.theoretical_target == pytest.approx(70.0)
        assert p.aftermath.outcome == AftermathOutcome.PARTIAL_SUCCESS


class TestInverseHeadAndShoulders:
    """Test inverse head and shoulders recognition."""

    def test_mirrored_match(self, head_and_shoulders_data, daily_params):
        """Mirroring the top pattern should yield an inverse head and shoulders."""
        mirrored = make_frame(200 - head_and_shoulders_data["close"].to_numpy())

        found = _candidates(mirrored, daily_params)

        assert [c.type for c in found] == ["inverse_head_and_shoulders"]
        assert [p.index for p in found[0].pivots] == [10, 20, 30, 40, 50]
