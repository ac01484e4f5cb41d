"""
Swing point detection.

Finds local highs and lows by comparing each bar with a fixed number of
neighbours on each side.
"""

import math

import numpy as np
import pandas as pd

from chartscan.core.models import SwingKind, SwingPoint


def _votes(values: np.ndarray, i: int, depth: int, above: bool) -> int:
    """Count neighbour offsets k in 1..depth where bar i beats both sides."""
    count = 0
    for k in range(1, depth + 1):
        if above:
            if values[i] > values[i - k] and values[i] > values[i + k]:
                count += 1
        else:
            if values[i] < values[i - k] and values[i] < values[i + k]:
                count += 1
    return count


def detect_swing_points(
    df: pd.DataFrame,
    depth: int,
    strict: bool = True,
) -> list[SwingPoint]:
    """
    Detect swing peaks and valleys.

    Args:
        df: OHLC DataFrame
        depth: Number of bars compared on each side
        strict: Require every offset to agree; otherwise a 60% vote suffices

    Returns:
        Swing points ordered by index. Prices are candle closes.
    """
    n = len(df)
    if n == 0 or depth < 1:
        return []

    highs = df["high"].to_numpy(dtype=float)
    lows = df["low"].to_numpy(dtype=float)
    closes = df["close"].to_numpy(dtype=float)

    required = depth if strict else math.ceil(depth * 0.6)
    points: list[SwingPoint] = []

    for i in range(depth, n - depth):
        is_peak = _votes(highs, i, depth, above=True) >= required
        is_valley = _votes(lows, i, depth, above=False) >= required

        # Outside bars that qualify both ways count as peaks
        if is_peak:
            points.append(SwingPoint(index=i, price=float(closes[i]), kind=SwingKind.PEAK))
        elif is_valley:
            points.append(SwingPoint(index=i, price=float(closes[i]), kind=SwingKind.VALLEY))

    return points


def filter_peaks(points: list[SwingPoint]) -> list[SwingPoint]:
    """Keep only peaks."""
    return [p for p in points if p.kind == SwingKind.PEAK]


def filter_valleys(points: list[SwingPoint]) -> list[SwingPoint]:
    """Keep only valleys."""
    return [p for p in points if p.kind == SwingKind.VALLEY]
