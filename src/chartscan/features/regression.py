"""
Trendline fitting and shared numeric helpers.

Lines are fitted by ordinary least squares over (bar index, price) points.
"""

from dataclasses import dataclass
from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from chartscan.core.models import SwingPoint

Point = tuple[float, float]


@dataclass(frozen=True)
class TrendLine:
    """Straight line in (bar index, price) space."""
    slope: float
    intercept: float
    r2: float = 0.0

    def value_at(self, index: float) -> float:
        """Line price at a bar index."""
        return self.slope * index + self.intercept


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def clamp01(value: float) -> float:
    """Clamp a value into [0, 1]."""
    return max(0.0, min(1.0, value))


def near(a: float, b: float, tol: float) -> bool:
    """Check if two prices are equal within a relative tolerance."""
    return abs(a - b) <= max(a, b) * tol


def pct_change(a: float, b: float) -> float:
    """Relative change from a to b."""
    return (b - a) / (a or 1.0)


def rel_dev(a: float, b: float) -> float:
    """Relative deviation between two prices."""
    return abs(a - b) / max(1.0, max(a, b))


def margin_from_rel_dev(rd: float, tol: float) -> float:
    """Score how far inside a tolerance a deviation sits (1 = identical)."""
    return clamp01(1.0 - rd / max(1e-12, tol))


def swing_xy(points: Iterable[SwingPoint]) -> list[Point]:
    """Convert swing points to (index, price) pairs."""
    return [(float(p.index), p.price) for p in points]


# =============================================================================
# REGRESSION
# =============================================================================


def fit(points: Sequence[Point]) -> TrendLine:
    """
    Least squares line through points.

    A degenerate denominator is replaced by 1; no points give a flat zero line.
    """
    n = len(points)
    if n == 0:
        return TrendLine(slope=0.0, intercept=0.0)

    xs = np.array([p[0] for p in points], dtype=float)
    ys = np.array([p[1] for p in points], dtype=float)

    sum_x = xs.sum()
    sum_y = ys.sum()
    denom = n * (xs * xs).sum() - sum_x * sum_x
    if denom == 0:
        denom = 1.0

    slope = (n * (xs * ys).sum() - sum_x * sum_y) / denom
    intercept = (sum_y - slope * sum_x) / n
    return TrendLine(slope=float(slope), intercept=float(intercept))


def fit_with_r2(points: Sequence[Point]) -> TrendLine:
    """Least squares line with its coefficient of determination."""
    line = fit(points)
    if len(points) < 2:
        return line

    ys = np.array([p[1] for p in points], dtype=float)
    predicted = np.array([line.value_at(p[0]) for p in points], dtype=float)
    ss_res = float(((ys - predicted) ** 2).sum())
    ss_tot = float(((ys - ys.mean()) ** 2).sum())

    r2 = 0.0 if ss_tot <= 0 else clamp01(1.0 - ss_res / ss_tot)
    return TrendLine(slope=line.slope, intercept=line.intercept, r2=r2)


def trendline_fit(points: Sequence[Point], line: TrendLine) -> float:
    """Fit quality in [0, 1] from the mean relative residual."""
    if not points:
        return 0.0
    errors = [abs(y - line.value_at(x)) / max(1e-12, y) for x, y in points]
    return clamp01(1.0 - float(np.mean(errors)))


def intersection(a: TrendLine, b: TrendLine) -> float | None:
    """Bar index where two lines cross, or None for parallel lines."""
    if a.slope == b.slope:
        return None
    return (b.intercept - a.intercept) / (a.slope - b.slope)


def average_true_range(df: pd.DataFrame, start: int, end: int, period: int = 14) -> float:
    """
    Mean of the last `period` true ranges inside [start, end].

    Args:
        df: OHLC DataFrame
        start: First bar index (at least 1, so a previous close exists)
        end: Last bar index, inclusive
        period: Number of true ranges averaged

    Returns:
        Average true range, 0.0 when the span holds no bars
    """
    highs = df["high"].to_numpy(dtype=float)
    lows = df["low"].to_numpy(dtype=float)
    closes = df["close"].to_numpy(dtype=float)

    first = max(1, start)
    last = min(end, len(df) - 1)
    ranges = []
    for i in range(first, last + 1):
        prev_close = closes[i - 1]
        ranges.append(max(
            highs[i] - lows[i],
            abs(highs[i] - prev_close),
            abs(lows[i] - prev_close),
        ))

    if not ranges:
        return 0.0
    return float(np.mean(ranges[-period:]))
