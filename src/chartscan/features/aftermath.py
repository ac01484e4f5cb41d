"""
Post-breakout analysis of completed patterns.

Looks at what price did in the bars after a pattern's breakout and
compares it with the pattern's measured-move target.
"""

from typing import Optional

import numpy as np
import pandas as pd

from chartscan.core.models import (
    Aftermath,
    AftermathOutcome,
    BreakoutDirection,
    Pattern,
    PatternDirection,
    PriceMove,
)

from .breakout import neckline_value
from .regression import TrendLine
from .scoring import sanitize_float

HORIZONS = (3, 7, 14)
TARGET_HORIZON = 14
PARTIAL_MOVE_PCT = 3.0


def _breakout_level(
    pattern: Pattern,
    index: int,
    upper: Optional[TrendLine],
    lower: Optional[TrendLine],
) -> Optional[float]:
    """Neckline, or the crossed boundary, at the breakout bar."""
    if pattern.neckline:
        return neckline_value(pattern.neckline, index)
    crossed_up = pattern.breakout is not None and pattern.breakout.direction == BreakoutDirection.UP
    line = upper if crossed_up else lower
    if line is None:
        return None
    return line.value_at(index)


def measured_target(pattern: Pattern, level: float) -> Optional[float]:
    """Measured-move target projected from the breakout level."""
    prices = [p.price for p in pattern.pivots]
    if not prices:
        return None
    if pattern.direction == PatternDirection.BULLISH:
        return level + (level - min(prices))
    if pattern.direction == PatternDirection.BEARISH:
        return level - (max(prices) - level)
    return None


def analyze_aftermath(
    df: pd.DataFrame,
    pattern: Pattern,
    upper: Optional[TrendLine] = None,
    lower: Optional[TrendLine] = None,
) -> Aftermath:
    """
    Evaluate price action after a pattern's breakout.

    Args:
        df: OHLC DataFrame the pattern was detected on
        pattern: Pattern with its breakout, if any
        upper: Upper boundary line for boundary patterns
        lower: Lower boundary line for boundary patterns

    Returns:
        Aftermath with horizon moves, target check and outcome
    """
    if pattern.breakout is None:
        return Aftermath(breakout_confirmed=False, outcome=AftermathOutcome.NO_BREAKOUT)

    b = pattern.breakout.index
    highs = df["high"].to_numpy(dtype=float)
    lows = df["low"].to_numpy(dtype=float)
    closes = df["close"].to_numpy(dtype=float)
    last = len(df) - 1
    base_close = closes[b]

    moves: dict[str, PriceMove] = {}
    for h in HORIZONS:
        to = min(last, b + h)
        if to <= b:
            continue
        ret = (closes[to] - base_close) / base_close * 100 if base_close else 0.0
        moves[f"bars_{h}"] = PriceMove(
            return_pct=round(sanitize_float(ret), 2),
            high=float(highs[b + 1:to + 1].max()),
            low=float(lows[b + 1:to + 1].min()),
        )

    level = _breakout_level(pattern, b, upper, lower)
    target = measured_target(pattern, level) if level is not None else None
    if target is not None and not np.isfinite(target):
        target = None

    bullish = pattern.direction == PatternDirection.BULLISH
    reached = False
    bars_to_target = None
    if target is not None:
        for i in range(b + 1, min(last, b + TARGET_HORIZON) + 1):
            if (bullish and highs[i] >= target) or (not bullish and lows[i] <= target):
                reached = True
                bars_to_target = i - b
                break

    if reached:
        outcome = AftermathOutcome.TARGET_REACHED
    elif not moves:
        outcome = AftermathOutcome.INSUFFICIENT_DATA
    else:
        best = max((m.return_pct for m in moves.values()), key=abs)
        expected_sign = 1 if bullish else -1
        actual_sign = 1 if best > 0 else -1
        if expected_sign == actual_sign and abs(best) > PARTIAL_MOVE_PCT:
            outcome = AftermathOutcome.PARTIAL_SUCCESS
        else:
            outcome = AftermathOutcome.FAILURE

    return Aftermath(
        breakout_confirmed=True,
        breakout_index=b,
        breakout_time=pattern.breakout.time,
        price_move=moves,
        theoretical_target=round(target, 2) if target is not None else None,
        target_reached=reached,
        bars_to_target=bars_to_target,
        outcome=outcome,
    )


def _avg(values: list[float]) -> Optional[float]:
    return round(float(np.mean(values)), 2) if values else None


def _median(values: list[float]) -> Optional[float]:
    return round(float(np.median(values)), 2) if values else None


def build_statistics(patterns: list[Pattern]) -> dict[str, dict]:
    """
    Per-type detection and outcome statistics.

    Success means the measured-move target was reached.
    """
    buckets: dict[str, dict] = {}
    for p in patterns:
        bucket = buckets.setdefault(
            p.type, {"detected": 0, "with_aftermath": 0, "success": 0, "r7": [], "r14": []}
        )
        bucket["detected"] += 1
        if p.aftermath is None:
            continue
        bucket["with_aftermath"] += 1
        if p.aftermath.target_reached:
            bucket["success"] += 1
        if "bars_7" in p.aftermath.price_move:
            bucket["r7"].append(p.aftermath.price_move["bars_7"].return_pct)
        if "bars_14" in p.aftermath.price_move:
            bucket["r14"].append(p.aftermath.price_move["bars_14"].return_pct)

    return {
        pattern_type: {
            "detected": v["detected"],
            "with_aftermath": v["with_aftermath"],
            "success_rate": round(v["success"] / v["with_aftermath"], 2) if v["with_aftermath"] else None,
            "avg_return_7": _avg(v["r7"]),
            "avg_return_14": _avg(v["r14"]),
            "median_return_7": _median(v["r7"]),
        }
        for pattern_type, v in buckets.items()
    }
