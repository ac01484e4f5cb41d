"""
Pennant and flag detection.

Both are continuation patterns: a sharp move (the pole) followed by a short
consolidation at the end of the series.
"""

from typing import Collection

import pandas as pd

from chartscan.config import get_logger, get_timeframe_profile
from chartscan.core.models import EffectiveParams, PatternType, SwingPoint

from .candidates import PatternCandidate
from .regression import clamp01, fit, pct_change
from .scoring import bars_period_score, finalize_confidence

logger = get_logger("features.flags")

MAX_LOOKBACK = 20
MAX_CONSOLIDATION = 14


def detect_flags(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    wanted: Collection[str] = (),
) -> list[PatternCandidate]:
    """
    Detect a pennant or flag at the end of the series.

    Args:
        df: OHLC DataFrame
        pivots: Swing points (unused; the consolidation is read from raw candles)
        params: Effective scanning parameters
        wanted: Pattern types to evaluate (empty means all)

    Returns:
        At most one pennant and one flag candidate
    """
    want_pennant = not wanted or PatternType.PENNANT.value in wanted
    want_flag = not wanted or PatternType.FLAG.value in wanted
    n = len(df)
    if not (want_pennant or want_flag) or n < 2:
        return []

    profile = get_timeframe_profile(params.timeframe)
    tol = params.tolerance_pct
    closes = df["close"].to_numpy(dtype=float)
    highs = df["high"].to_numpy(dtype=float)
    lows = df["low"].to_numpy(dtype=float)

    lookback = min(MAX_LOOKBACK, n)
    pole_bars = min(12, max(6, int(lookback * 0.6)))
    end_idx = n - 1
    pole_start = max(0, end_idx - pole_bars)
    pole = pct_change(closes[pole_start], closes[end_idx])
    min_pole = profile.pole_threshold
    pole_up = pole >= min_pole
    pole_down = pole <= -min_pole
    if not (pole_up or pole_down):
        logger.debug(f"no pole: change {pole:.4f} below {min_pole}")
        return []

    win_start = max(0, n - min(MAX_CONSOLIDATION, lookback))
    hwin = highs[win_start:]
    lwin = lows[win_start:]
    d_high = pct_change(hwin[0], hwin[-1])
    d_low = pct_change(lwin[0], lwin[-1])
    spread_start = hwin[0] - lwin[0]
    spread_end = hwin[-1] - lwin[-1]
    converging = spread_end < spread_start * (1 - tol * profile.convergence_factor)

    upper = fit([(float(win_start + i), float(v)) for i, v in enumerate(hwin)])
    lower = fit([(float(win_start + i), float(v)) for i, v in enumerate(lwin)])
    q_pole = clamp01((abs(pole) - min_pole) / max(1e-12, min_pole * 2))
    per = bars_period_score(df, win_start, end_idx)

    found: list[PatternCandidate] = []

    if want_pennant and d_high <= 0 and d_low >= 0 and converging:
        q_conv = clamp01((spread_start - spread_end) / max(1e-12, spread_start * 0.8))
        base = (q_pole + q_conv + per) / 3
        found.append(PatternCandidate(
            type=PatternType.PENNANT.value,
            confidence=finalize_confidence(base, PatternType.PENNANT.value),
            start_index=win_start,
            end_index=end_idx,
            upper_line=upper,
            lower_line=lower,
        ))

    if want_flag:
        against_pole = (pole_up and d_high < 0 and d_low < 0) or (pole_down and d_high > 0 and d_low > 0)
        parallel = spread_end <= spread_start * 1.02
        if against_pole and parallel:
            q_range = clamp01(1 - (spread_end - spread_start) / max(1e-12, spread_start * 0.2))
            base = (q_pole + q_range + per) / 3
            found.append(PatternCandidate(
                type=PatternType.FLAG.value,
                confidence=finalize_confidence(base, PatternType.FLAG.value),
                start_index=win_start,
                end_index=end_idx,
                upper_line=upper,
                lower_line=lower,
            ))

    for c in found:
        logger.debug(f"{c.type} accepted at [{c.start_index}, {c.end_index}] pole={pole:.4f} conf={c.confidence}")
    return found
