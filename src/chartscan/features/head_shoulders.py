"""
Head and shoulders detection (regular and inverse).

Regular H&S: H-L-H-L-H pivots, bearish reversal at a top.
Inverse H&S: L-H-L-H-L pivots, bullish reversal at a bottom.
"""

from typing import Collection

import pandas as pd

from chartscan.config import get_logger
from chartscan.core.models import (
    EffectiveParams,
    NecklinePoint,
    PatternType,
    SwingKind,
    SwingPoint,
)

from .candidates import PatternCandidate
from .regression import clamp01, margin_from_rel_dev, near, rel_dev
from .relaxation import HEAD_SHOULDERS_STAGES, RelaxationStage, run_relaxation
from .scoring import bars_period_score, finalize_confidence

logger = get_logger("features.head_shoulders")

_SEQUENCES = {
    PatternType.HEAD_AND_SHOULDERS: (SwingKind.PEAK, SwingKind.VALLEY) * 2 + (SwingKind.PEAK,),
    PatternType.INVERSE_HEAD_AND_SHOULDERS: (SwingKind.VALLEY, SwingKind.PEAK) * 2 + (SwingKind.VALLEY,),
}
_TAG_PREFIX = {
    PatternType.HEAD_AND_SHOULDERS: "relaxed_hs",
    PatternType.INVERSE_HEAD_AND_SHOULDERS: "relaxed_ihs",
}


def _relaxed_neckline_level(
    pivots: list[SwingPoint],
    window: tuple[SwingPoint, ...],
    inverse: bool,
) -> float:
    """
    Horizontal neckline level for a relaxed match.

    Uses the lowest valley between the shoulders (highest peak for inverse),
    then the extreme after the head, then the nearer of the two reactions.
    """
    p0, p1, p2, p3, p4 = window
    kind = SwingKind.PEAK if inverse else SwingKind.VALLEY
    pick = max if inverse else min

    between = [p for p in pivots if p.kind == kind and p0.index < p.index < p4.index]
    if between:
        return pick(between, key=lambda p: p.price).price
    after_head = [p for p in pivots if p.kind == kind and p.index > p2.index]
    if after_head:
        return pick(after_head, key=lambda p: p.price).price
    return pick(p1.price, p3.price)


def _scan(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    pattern_type: PatternType,
    stage: RelaxationStage,
) -> list[PatternCandidate]:
    inverse = pattern_type == PatternType.INVERSE_HEAD_AND_SHOULDERS
    sequence = _SEQUENCES[pattern_type]
    tol = params.tolerance_pct
    min_dist = params.min_bars_between_swings
    found: list[PatternCandidate] = []

    for i in range(len(pivots) - 4):
        window = tuple(pivots[i:i + 5])
        if tuple(p.kind for p in window) != sequence:
            continue
        if any(window[k + 1].index - window[k].index < min_dist for k in range(4)):
            continue

        p0, p1, p2, p3, p4 = window
        idxs = [p.index for p in window]

        if stage.is_strict:
            shoulder_tol = tol
            shoulders_ok = near(p0.price, p4.price, tol)
            head_margin = tol
        else:
            shoulder_tol = tol * stage.tolerance_multiplier
            shoulders_ok = rel_dev(p0.price, p4.price) <= shoulder_tol
            head_margin = tol * stage.secondary_multiplier

        if inverse:
            head_ok = p2.price < min(p0.price, p4.price) * (1 - head_margin)
        else:
            head_ok = p2.price > max(p0.price, p4.price) * (1 + head_margin)

        if not shoulders_ok or not head_ok:
            reason = "shoulders_not_near" if not shoulders_ok else "head_not_extreme"
            logger.debug(f"{pattern_type.value} rejected at {idxs}: {reason}")
            continue

        if stage.is_strict:
            neckline = (NecklinePoint(x=p1.index, y=p1.price), NecklinePoint(x=p3.index, y=p3.price))
            tag = None
        else:
            level = _relaxed_neckline_level(pivots, window, inverse)
            neckline = (NecklinePoint(x=p1.index, y=level), NecklinePoint(x=p3.index, y=level))
            tag = f"{_TAG_PREFIX[pattern_type]}_{stage.tag}"

        tol_margin = margin_from_rel_dev(rel_dev(p0.price, p4.price), shoulder_tol)
        symmetry = clamp01(1 - rel_dev(p0.price, p4.price))
        per = bars_period_score(df, p0.index, p4.index)
        base = (tol_margin + symmetry + per) / 3
        confidence = finalize_confidence(base * stage.confidence_penalty, pattern_type.value)

        found.append(PatternCandidate(
            type=pattern_type.value,
            confidence=confidence,
            start_index=p0.index,
            end_index=p4.index,
            pivots=window,
            neckline=neckline,
            fallback_tag=tag,
        ))
        logger.debug(f"{pattern_type.value} accepted at {idxs} conf={confidence}")

    return found


def detect_head_and_shoulders(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    wanted: Collection[str] = (),
) -> list[PatternCandidate]:
    """
    Detect head and shoulders patterns (regular and inverse).

    Args:
        df: OHLC DataFrame
        pivots: Swing points ordered by index
        params: Effective scanning parameters
        wanted: Pattern types to evaluate (empty means all)

    Returns:
        Candidates spanning left shoulder to right shoulder
    """
    results: list[PatternCandidate] = []
    for pattern_type in (PatternType.HEAD_AND_SHOULDERS, PatternType.INVERSE_HEAD_AND_SHOULDERS):
        if wanted and pattern_type.value not in wanted:
            continue
        results.extend(run_relaxation(
            HEAD_SHOULDERS_STAGES,
            lambda stage, t=pattern_type: _scan(df, pivots, params, t, stage),
        ))
    return results
