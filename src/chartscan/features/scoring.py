"""Confidence scoring helpers."""

from datetime import datetime
from typing import Optional

import numpy as np
import pandas as pd

from chartscan.core.models import PatternType

HEAD_SHOULDERS_FAMILY = {
    PatternType.HEAD_AND_SHOULDERS.value,
    PatternType.INVERSE_HEAD_AND_SHOULDERS.value,
}
TRIPLE_FAMILY = {PatternType.TRIPLE_TOP.value, PatternType.TRIPLE_BOTTOM.value}
CONSOLIDATION_FAMILY = {
    PatternType.TRIANGLE_ASCENDING.value,
    PatternType.TRIANGLE_DESCENDING.value,
    PatternType.TRIANGLE_SYMMETRICAL.value,
    PatternType.PENNANT.value,
    PatternType.FLAG.value,
}

WEDGE_WEIGHTS = {
    "fit": 0.25,
    "converge": 0.25,
    "touch": 0.35,
    "alternation": 0.07,
    "inside": 0.05,
    "duration": 0.03,
}


def sanitize_float(value: float, default: float = 0.0) -> float:
    """Convert NaN, inf, or invalid float values to a safe default."""
    if value is None or pd.isna(value) or np.isinf(value):
        return default
    return float(value)


def period_score(start: Optional[datetime], end: Optional[datetime]) -> float:
    """Score the calendar length of a pattern; unknown times score 0.7."""
    if start is None or end is None:
        return 0.7
    days = abs((end - start).total_seconds()) / 86400
    if days < 5:
        return 0.6
    if days < 15:
        return 0.8
    if days < 30:
        return 0.9
    return 0.7


def bar_time(df: pd.DataFrame, index: int) -> Optional[datetime]:
    """Candle time at a bar index, None without a DatetimeIndex."""
    if not isinstance(df.index, pd.DatetimeIndex) or not 0 <= index < len(df):
        return None
    return df.index[index].to_pydatetime()


def bars_period_score(df: pd.DataFrame, start: int, end: int) -> float:
    """Period score between two bar indices."""
    return period_score(bar_time(df, start), bar_time(df, end))


def finalize_confidence(base: float, pattern_type: str) -> float:
    """Apply the per-family adjustment, clamp to [0, 1] and round."""
    if pattern_type in HEAD_SHOULDERS_FAMILY:
        adj = 1.10
    elif pattern_type in TRIPLE_FAMILY:
        adj = 1.05
    elif pattern_type in CONSOLIDATION_FAMILY:
        adj = 0.95
    else:
        adj = 1.0
    value = min(1.0, max(0.0, sanitize_float(base) * adj))
    return round(value, 2)


def wedge_composite_score(
    components: dict[str, float],
    weights: Optional[dict[str, float]] = None,
) -> float:
    """Weighted sum of wedge quality components (missing components count as 0)."""
    w = weights or WEDGE_WEIGHTS
    return sum(weight * sanitize_float(components.get(name, 0.0)) for name, weight in w.items())
