"""
Triangle detection (ascending, descending, symmetrical).

Sliding windows over the peak and valley subsequences. Each side gets a
regression line; the window classifies by the relative slope of each line
over the window span, provided the lines converge and fit their pivots.
"""

from typing import Collection

import numpy as np
import pandas as pd

from chartscan.config import get_logger, get_timeframe_profile
from chartscan.core.models import EffectiveParams, PatternType, SwingPoint

from .candidates import PatternCandidate
from .regression import clamp01, fit, pct_change, swing_xy, trendline_fit
from .scoring import bars_period_score, finalize_confidence
from .swing import filter_peaks, filter_valleys

logger = get_logger("features.triangles")

MIN_SIDE_PIVOTS = 3
FALLBACK_FITS = (0.70, 0.60)
FIT_REFERENCE = 0.78

TRIANGLE_TYPES = (
    PatternType.TRIANGLE_ASCENDING.value,
    PatternType.TRIANGLE_DESCENDING.value,
    PatternType.TRIANGLE_SYMMETRICAL.value,
)


def fit_thresholds(min_fit: float) -> list[float]:
    """Fit thresholds tried per window, strictest first."""
    return sorted({min_fit, *FALLBACK_FITS}, reverse=True)


def _adjusted(base: float, pattern_type: str, min_fit: float) -> float:
    return round(min(1.0, finalize_confidence(base, pattern_type) * (min_fit / FIT_REFERENCE)), 2)


def detect_triangles(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    wanted: Collection[str] = (),
) -> list[PatternCandidate]:
    """
    Detect ascending, descending and symmetrical triangles.

    Args:
        df: OHLC DataFrame
        pivots: Swing points ordered by index
        params: Effective scanning parameters
        wanted: Pattern types to evaluate (empty means all)

    Returns:
        Candidates with regression boundary lines
    """
    types = [t for t in TRIANGLE_TYPES if not wanted or t in wanted]
    if not types:
        return []

    profile = get_timeframe_profile(params.timeframe)
    tol = params.tolerance_pct
    flat_limit = tol * profile.triangle_flat_coef
    move_limit = tol * profile.triangle_move_coef

    highs = filter_peaks(pivots)
    lows = filter_valleys(pivots)
    window = profile.triangle_window
    step = max(1, window // 4)
    last_offset = max(0, min(len(highs), len(lows)) - max(3, window))

    found: list[PatternCandidate] = []

    for offset in range(0, last_offset + 1, step):
        hwin = highs[offset:offset + window]
        lwin = lows[offset:offset + window]
        if len(hwin) < MIN_SIDE_PIVOTS or len(lwin) < MIN_SIDE_PIVOTS:
            continue

        first_h, last_h = hwin[0], hwin[-1]
        first_l, last_l = lwin[0], lwin[-1]
        d_high = pct_change(first_h.price, last_h.price)
        d_low = pct_change(first_l.price, last_l.price)
        spread_start = first_h.price - first_l.price
        spread_end = last_h.price - last_l.price
        converging = spread_end < spread_start * (1 - tol * profile.convergence_factor)

        start_idx = min(first_h.index, first_l.index)
        end_idx = max(last_h.index, last_l.index)

        high_pts = swing_xy(hwin)
        low_pts = swing_xy(lwin)
        hi_line = fit(high_pts)
        lo_line = fit(low_pts)
        span = max(1, end_idx - start_idx)
        avg_high = float(np.mean([p.price for p in hwin]))
        avg_low = float(np.mean([p.price for p in lwin]))

        hi_slope_rel = hi_line.slope * span / max(1e-12, avg_high)
        lo_slope_rel = lo_line.slope * span / max(1e-12, avg_low)
        fit_high = trendline_fit(high_pts, hi_line)
        fit_low = trendline_fit(low_pts, lo_line)

        if hi_line.slope * lo_line.slope > 0:
            logger.debug(f"triangle skipped at [{start_idx}, {end_idx}]: same_direction_slopes")
            continue
        if not converging:
            logger.debug(f"triangle rejected at [{start_idx}, {end_idx}]: not_converging")
            continue

        q_conv = clamp01((spread_start - spread_end) / max(1e-12, spread_start * 0.8))
        per = bars_period_score(df, start_idx, end_idx)
        window_pivots = tuple(sorted([*hwin, *lwin], key=lambda p: p.index))
        placed: set[str] = set()

        for min_fit in fit_thresholds(profile.min_fit):
            if fit_high < min_fit or fit_low < min_fit:
                continue

            scored: list[tuple[str, float]] = []

            # Ascending: flat highs, rising lows
            if abs(hi_slope_rel) <= flat_limit and lo_slope_rel >= move_limit:
                q_flat = clamp01(1 - abs(d_high) / max(1e-12, flat_limit))
                q_rise = clamp01(d_low / max(1e-12, move_limit))
                base = (q_flat + q_rise + q_conv + per) / 4
                scored.append((PatternType.TRIANGLE_ASCENDING.value, base))

            # Descending: flat lows, falling highs
            if abs(lo_slope_rel) <= flat_limit and hi_slope_rel <= -move_limit:
                q_flat = clamp01(1 - abs(d_low) / max(1e-12, flat_limit))
                q_fall = clamp01(-d_high / max(1e-12, move_limit))
                base = (q_flat + q_fall + q_conv + per) / 4
                scored.append((PatternType.TRIANGLE_DESCENDING.value, base))

            # Symmetrical: falling highs, rising lows
            if hi_slope_rel <= -move_limit and lo_slope_rel >= move_limit:
                q_fall = clamp01(-d_high / max(1e-12, move_limit))
                q_rise = clamp01(d_low / max(1e-12, move_limit))
                q_sym = clamp01(
                    1 - abs(abs(d_high) - abs(d_low)) / max(1e-12, abs(d_high) + abs(d_low))
                )
                base = (q_fall + q_rise + q_sym + q_conv + per) / 5
                scored.append((PatternType.TRIANGLE_SYMMETRICAL.value, base))

            for pattern_type, base in scored:
                if pattern_type not in types or pattern_type in placed:
                    continue
                confidence = _adjusted(base, pattern_type, min_fit)
                found.append(PatternCandidate(
                    type=pattern_type,
                    confidence=confidence,
                    start_index=start_idx,
                    end_index=end_idx,
                    pivots=window_pivots,
                    upper_line=hi_line,
                    lower_line=lo_line,
                ))
                placed.add(pattern_type)
                logger.debug(
                    f"{pattern_type} accepted at [{start_idx}, {end_idx}] fit>={min_fit} conf={confidence}"
                )

            if placed.issuperset(types):
                break

    return found
