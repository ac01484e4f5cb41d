"""
Double top / double bottom detection.

A double top is a Peak-Valley-Peak pivot triple with equal peaks, confirmed
by a close below the valley neckline within a fixed number of bars after
the second peak. Double bottoms mirror it.
"""

from typing import Collection

import pandas as pd

from chartscan.config import get_logger
from chartscan.core.models import (
    BreakoutDirection,
    EffectiveParams,
    NecklinePoint,
    PatternType,
    SwingKind,
    SwingPoint,
)

from .candidates import PatternCandidate
from .regression import clamp01, margin_from_rel_dev, near, rel_dev
from .relaxation import DOUBLE_STAGES, RelaxationStage, run_relaxation
from .scoring import bars_period_score, finalize_confidence

logger = get_logger("features.double_patterns")

MIN_SPACING = 3
MIN_HEIGHT_PCT = 0.03
BREAKOUT_BUFFER = 0.015
MAX_BARS_TO_BREAKOUT = 20


def _find_breakout(
    closes,
    after: int,
    neckline: float,
    direction: BreakoutDirection,
) -> int:
    """First bar within the window after `after` closing beyond the neckline, or -1."""
    end = min(after + MAX_BARS_TO_BREAKOUT + 1, len(closes))
    for k in range(after + 1, end):
        if direction == BreakoutDirection.DOWN and closes[k] < neckline * (1 - BREAKOUT_BUFFER):
            return k
        if direction == BreakoutDirection.UP and closes[k] > neckline * (1 + BREAKOUT_BUFFER):
            return k
    return -1


def _scan(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    tolerance: float,
    pattern_type: PatternType,
    stage: RelaxationStage,
) -> list[PatternCandidate]:
    if pattern_type == PatternType.DOUBLE_TOP:
        outer, middle, direction = SwingKind.PEAK, SwingKind.VALLEY, BreakoutDirection.DOWN
    else:
        outer, middle, direction = SwingKind.VALLEY, SwingKind.PEAK, BreakoutDirection.UP

    tol = tolerance * stage.tolerance_multiplier
    closes = df["close"].to_numpy(dtype=float)
    found: list[PatternCandidate] = []

    for i in range(len(pivots) - 2):
        a, b, c = pivots[i], pivots[i + 1], pivots[i + 2]
        if not (a.kind == outer and b.kind == middle and c.kind == outer):
            continue
        idxs = [a.index, b.index, c.index]
        if b.index - a.index < MIN_SPACING or c.index - b.index < MIN_SPACING:
            continue
        if rel_dev(a.price, b.price) < MIN_HEIGHT_PCT:
            logger.debug(f"{pattern_type.value} rejected at {idxs}: pattern_too_small")
            continue
        if not near(a.price, c.price, tol):
            logger.debug(f"{pattern_type.value} rejected at {idxs}: extremes_not_equal (tol={tol:.4f})")
            continue

        neckline = b.price
        breakout = _find_breakout(closes, c.index, neckline, direction)
        if breakout < 0:
            logger.debug(f"{pattern_type.value} rejected at {idxs}: no_breakout")
            continue

        tol_margin = margin_from_rel_dev(rel_dev(a.price, c.price), tol)
        symmetry = clamp01(1 - rel_dev(a.price, c.price))
        per = bars_period_score(df, a.index, breakout)
        base = (tol_margin + symmetry + per) / 3
        confidence = finalize_confidence(base * stage.confidence_penalty, pattern_type.value)

        found.append(PatternCandidate(
            type=pattern_type.value,
            confidence=confidence,
            start_index=a.index,
            end_index=breakout,
            pivots=(a, b, c),
            neckline=(NecklinePoint(x=a.index, y=neckline), NecklinePoint(x=breakout, y=neckline)),
            breakout_index=breakout,
            breakout_direction=direction,
            fallback_tag=stage.tag,
        ))
        logger.debug(f"{pattern_type.value} accepted at {idxs} breakout={breakout} conf={confidence}")

    return found


def detect_double_patterns(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    wanted: Collection[str] = (),
) -> list[PatternCandidate]:
    """
    Detect double tops and double bottoms.

    Args:
        df: OHLC DataFrame
        pivots: Swing points ordered by index
        params: Effective scanning parameters
        wanted: Pattern types to evaluate (empty means all)

    Returns:
        Candidates with confirmed neckline breakouts
    """
    results: list[PatternCandidate] = []
    for pattern_type in (PatternType.DOUBLE_TOP, PatternType.DOUBLE_BOTTOM):
        if wanted and pattern_type.value not in wanted:
            continue
        results.extend(run_relaxation(
            DOUBLE_STAGES,
            lambda stage, t=pattern_type: _scan(df, pivots, params.tolerance_pct, t, stage),
        ))
    return results
