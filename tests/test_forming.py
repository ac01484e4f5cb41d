"""Unit tests for forming pattern completion scoring."""

import numpy as np
import pytest

from chartscan.core import PatternStatus
from chartscan.features.forming import FormingConfig, detect_forming

from conftest import make_frame, piecewise


@pytest.fixture
def forming_top_data():
    """Two peaks apart with the right side halfway back up."""
    return make_frame(piecewise((0, 90), (10, 100), (20, 90), (30, 95)))


class TestFormingDoubleTop:
    """Test forming double top scoring."""

    def test_provisional_right_peak(self, forming_top_data):
        """A still-rising right side is scored from the current bar."""
        found = detect_forming(forming_top_data, "1day")

        assert [p.type for p in found] == ["double_top"]
        p = found[0]
        assert p.status == PatternStatus.FORMING
        assert p.completion_pct == 81
        assert p.confidence == pytest.approx(0.77)

        details = p.formation
        assert details.progress == pytest.approx(0.5)
        assert details.forming_pivot.provisional is True
        assert details.forming_pivot.index == 30
        assert details.forming_pivot.price == pytest.approx(95.0)
        assert details.formation_bars == 20
        assert details.formation_days == pytest.approx(20.0)
        assert details.invalidation_level == pytest.approx(101.2)
        assert details.completion_zone == (98.0, 102.0)
        assert [fp.role for fp in details.confirmed_pivots] == ["left_peak", "valley"]

    def test_neckline_at_valley(self, forming_top_data):
        """The neckline runs from the left peak to the current bar at the valley price."""
        p = detect_forming(forming_top_data, "1day")[0]
        assert [(n.x, n.y) for n in p.neckline] == [(10, 90.0), (30, 90.0)]

    def test_confirmed_right_peak(self):
        """A confirmed right peak carries no discount; progress is read at the current close."""
        closes = np.concatenate([piecewise((0, 90), (10, 100), (20, 90), (30, 99)), [98.5, 98.0, 97.5]])

        found = detect_forming(make_frame(closes), "1day", ["double_top"])

        assert len(found) == 1
        p = found[0]
        assert p.formation.forming_pivot.provisional is False
        assert p.formation.forming_pivot.index == 30
        assert p.formation.forming_pivot.price == pytest.approx(99.0)
        # (97.5 - 90) / (100 - 90) plus the falling-closes bonus
        assert p.formation.progress == pytest.approx(0.95)
        assert p.completion_pct == 98
        assert p.status == PatternStatus.NEAR_COMPLETION

    def test_pullback_lowers_progress(self):
        """A pullback from the right peak lowers progress against the same peak."""
        base = piecewise((0, 90), (10, 100), (20, 90), (30, 99))
        near_peak = make_frame(np.concatenate([base, [98.9, 98.8, 98.7]]))
        pulled_back = make_frame(np.concatenate([base, [97.0, 95.0, 93.0]]))

        high = detect_forming(near_peak, "1day", ["double_top"])[0]
        low = detect_forming(pulled_back, "1day", ["double_top"])[0]

        assert high.formation.forming_pivot.index == low.formation.forming_pivot.index == 30
        assert low.formation.progress < high.formation.progress
        assert low.completion_pct < high.completion_pct

    def test_invalidated_above_left_peak(self):
        """Closing beyond the invalidation level marks the pattern invalid."""
        closes = piecewise((0, 90), (10, 100), (20, 90), (30, 102))

        found = detect_forming(make_frame(closes), "1day", ["double_top"])

        assert len(found) == 1
        assert found[0].status == PatternStatus.INVALID

    def test_min_completion_filters(self, forming_top_data):
        """Structures below the completion threshold are dropped."""
        assert detect_forming(forming_top_data, "1day", config=FormingConfig(min_completion=0.9)) == []

    def test_type_filter(self, forming_top_data):
        """Unrequested types are not scored."""
        assert detect_forming(forming_top_data, "1day", ["head_and_shoulders"]) == []

    def test_too_few_bars(self):
        """Fewer than four candles cannot form anything."""
        assert detect_forming(make_frame([90.0, 100.0, 90.0]), "1day") == []


class TestFormingHeadAndShoulders:
    """Test forming head and shoulders scoring."""

    def test_right_shoulder_rising(self):
        """A right shoulder approaching the left shoulder level is near completion."""
        closes = piecewise((0, 90), (10, 100), (20, 90), (30, 110), (40, 90), (50, 98))

        found = detect_forming(make_frame(closes), "1day", ["head_and_shoulders"])

        assert len(found) == 1
        p = found[0]
        assert p.status == PatternStatus.NEAR_COMPLETION
        assert p.completion_pct == 95
        assert p.confidence == pytest.approx(0.9)
        assert [fp.role for fp in p.formation.confirmed_pivots] == ["left_shoulder", "head", "post_head_valley"]
        assert [(n.x, n.y) for n in p.neckline] == [(20, 90.0), (50, 90.0)]
        assert p.formation.invalidation_level == pytest.approx(111.32)

    def test_broken_neckline_skipped(self):
        """Once price is back under the neckline the structure is no longer forming."""
        closes = piecewise((0, 90), (10, 100), (20, 90), (30, 110), (40, 90), (50, 98), (60, 85))

        assert detect_forming(make_frame(closes), "1day", ["head_and_shoulders"]) == []
