"""Timeframe-adaptive detection defaults.

Every scanning parameter that depends on bar size lives in one table keyed
by timeframe label. Profiles are frozen and handed to recognizers by value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from chartscan.core.models import EffectiveParams


class CandleTimeframe(str, Enum):
    """Supported candle timeframe labels."""
    MIN1 = "1min"
    MIN5 = "5min"
    MIN15 = "15min"
    MIN30 = "30min"
    HOUR1 = "1hour"
    HOUR4 = "4hour"
    HOUR8 = "8hour"
    HOUR12 = "12hour"
    DAY1 = "1day"
    WEEK1 = "1week"
    MONTH1 = "1month"


@dataclass(frozen=True)
class TimeframeProfile:
    """Detection defaults for one timeframe."""
    swing_depth: int
    min_bars_between_swings: int
    tolerance_pct: float
    convergence_factor: float
    triangle_flat_coef: float
    triangle_move_coef: float
    min_fit: float
    triangle_window: int
    pole_threshold: float
    relevance_days: int
    bar_days: float


# =============================================================================
# PROFILE TABLE
# =============================================================================

TIMEFRAME_PROFILES: dict[str, TimeframeProfile] = {
    "1min": TimeframeProfile(2, 1, 0.04, 0.8, 0.8, 1.2, 0.75, 20, 0.06, 7, 1 / 1440),
    "5min": TimeframeProfile(2, 1, 0.04, 0.8, 0.8, 1.2, 0.75, 20, 0.06, 7, 5 / 1440),
    "15min": TimeframeProfile(3, 2, 0.06, 0.6, 0.8, 1.2, 0.75, 30, 0.06, 7, 15 / 1440),
    "30min": TimeframeProfile(3, 2, 0.06, 0.6, 0.8, 1.2, 0.75, 30, 0.06, 7, 30 / 1440),
    "1hour": TimeframeProfile(3, 2, 0.05, 0.6, 1.2, 0.8, 0.60, 40, 0.05, 7, 1 / 24),
    "4hour": TimeframeProfile(5, 3, 0.05, 0.6, 1.2, 0.8, 0.60, 30, 0.05, 7, 4 / 24),
    "8hour": TimeframeProfile(5, 3, 0.045, 0.8, 0.8, 1.2, 0.75, 20, 0.06, 7, 8 / 24),
    "12hour": TimeframeProfile(5, 3, 0.045, 0.8, 0.8, 1.2, 0.75, 20, 0.06, 7, 12 / 24),
    "1day": TimeframeProfile(6, 4, 0.04, 0.8, 0.8, 1.2, 0.70, 50, 0.08, 7, 1.0),
    "1week": TimeframeProfile(7, 5, 0.035, 0.8, 0.8, 1.2, 0.75, 40, 0.06, 21, 7.0),
    "1month": TimeframeProfile(8, 6, 0.03, 0.8, 0.8, 1.2, 0.75, 30, 0.06, 60, 30.0),
}

FALLBACK_TIMEFRAME = CandleTimeframe.DAY1.value

TIMEFRAMES = [tf.value for tf in CandleTimeframe]

# Minimum confidence a candidate must reach to be reported
MIN_CONFIDENCE: dict[str, float] = {
    "triple_top": 0.7,
    "triple_bottom": 0.7,
    "double_top": 0.6,
    "double_bottom": 0.6,
    "head_and_shoulders": 0.7,
    "inverse_head_and_shoulders": 0.7,
}


def get_timeframe_profile(timeframe: str) -> TimeframeProfile:
    """Get the profile for a timeframe label, falling back to daily bars."""
    return TIMEFRAME_PROFILES.get(str(timeframe), TIMEFRAME_PROFILES[FALLBACK_TIMEFRAME])


def resolve_params(
    timeframe: str,
    swing_depth: Optional[int] = None,
    min_bars_between_swings: Optional[int] = None,
    tolerance_pct: Optional[float] = None,
    strict_pivots: bool = True,
) -> EffectiveParams:
    """
    Resolve scanning parameters for a run.

    Explicit values always win; unset values come from the timeframe table.

    Args:
        timeframe: Candle timeframe label
        swing_depth: Bars compared on each side of a pivot
        min_bars_between_swings: Minimum spacing between pattern pivots
        tolerance_pct: Relative price tolerance for "equal" levels
        strict_pivots: Use strict (all neighbours) pivot detection

    Returns:
        EffectiveParams describing the run
    """
    profile = get_timeframe_profile(timeframe)
    return EffectiveParams(
        timeframe=str(timeframe),
        swing_depth=swing_depth if swing_depth is not None else profile.swing_depth,
        min_bars_between_swings=(
            min_bars_between_swings
            if min_bars_between_swings is not None
            else profile.min_bars_between_swings
        ),
        tolerance_pct=tolerance_pct if tolerance_pct is not None else profile.tolerance_pct,
        strict_pivots=strict_pivots,
        auto_scaled=swing_depth is None and min_bars_between_swings is None,
    )
