"""
Triple top / triple bottom detection.

Three same-kind pivots at an equal level, separated by two reactions that
form a near-horizontal neckline.
"""

from typing import Collection, Optional

import pandas as pd

from chartscan.config import MIN_CONFIDENCE, get_logger
from chartscan.core.models import EffectiveParams, NecklinePoint, PatternType, SwingKind, SwingPoint

from .candidates import PatternCandidate
from .regression import clamp01, near, rel_dev
from .relaxation import TRIPLE_STAGES, RelaxationStage, run_relaxation
from .scoring import bars_period_score, finalize_confidence

logger = get_logger("features.triple_patterns")

NECKLINE_SLOPE_LIMIT = 0.02
MAX_VALLEY_SPREAD = 0.015


def _extreme_between(pivots: list[SwingPoint], kind: SwingKind, lo: int, hi: int) -> Optional[SwingPoint]:
    """Lowest valley (or highest peak) strictly between two bar indices."""
    inside = [p for p in pivots if p.kind == kind and lo < p.index < hi]
    if not inside:
        return None
    if kind == SwingKind.VALLEY:
        return min(inside, key=lambda p: p.price)
    return max(inside, key=lambda p: p.price)


def _scan(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    pattern_type: PatternType,
    stage: RelaxationStage,
) -> list[PatternCandidate]:
    top = pattern_type == PatternType.TRIPLE_TOP
    kind = SwingKind.PEAK if top else SwingKind.VALLEY
    reaction_kind = SwingKind.VALLEY if top else SwingKind.PEAK
    same_kind = [p for p in pivots if p.kind == kind]
    tol = params.tolerance_pct * stage.tolerance_multiplier
    min_conf = MIN_CONFIDENCE.get(pattern_type.value, 0.0)
    found: list[PatternCandidate] = []

    for i in range(len(same_kind) - 2):
        a, b, c = same_kind[i], same_kind[i + 1], same_kind[i + 2]
        idxs = [a.index, b.index, c.index]
        if b.index - a.index < params.min_bars_between_swings or c.index - b.index < params.min_bars_between_swings:
            continue

        if stage.is_strict:
            level_ok = near(a.price, b.price, tol) and near(b.price, c.price, tol) and near(a.price, c.price, tol)
        else:
            level_ok = rel_dev(a.price, b.price) <= tol and rel_dev(b.price, c.price) <= tol
        if not level_ok:
            continue

        r1 = _extreme_between(pivots, reaction_kind, a.index, b.index)
        r2 = _extreme_between(pivots, reaction_kind, b.index, c.index)
        if r1 is None or r2 is None:
            logger.debug(f"{pattern_type.value} rejected at {idxs}: reactions_missing")
            continue

        slope = rel_dev(r1.price, r2.price)
        if slope > NECKLINE_SLOPE_LIMIT:
            logger.debug(f"{pattern_type.value} rejected at {idxs}: neckline_slope_excess")
            continue
        if stage.is_strict:
            if slope > tol:
                logger.debug(f"{pattern_type.value} rejected at {idxs}: reactions_not_equal")
                continue
            lows = [a.price, b.price, c.price]
            if not top and (max(lows) - min(lows)) / max(1.0, min(lows)) > MAX_VALLEY_SPREAD:
                logger.debug(f"{pattern_type.value} rejected at {idxs}: valley_spread_excess")
                continue

        devs = [rel_dev(a.price, b.price), rel_dev(b.price, c.price), rel_dev(a.price, c.price)]
        tol_margin = clamp01(1 - (sum(devs) / len(devs)) / max(1e-12, tol))
        prices = [a.price, b.price, c.price]
        span = max(prices) - min(prices)
        symmetry = clamp01(1 - span / max(1.0, max(prices)))
        per = bars_period_score(df, a.index, c.index)
        base = (tol_margin + symmetry + per) / 3
        confidence = finalize_confidence(base * stage.confidence_penalty, pattern_type.value)
        if confidence < min_conf:
            logger.debug(f"{pattern_type.value} rejected at {idxs}: confidence_below_min ({confidence})")
            continue

        level = (r1.price + r2.price) / 2
        found.append(PatternCandidate(
            type=pattern_type.value,
            confidence=confidence,
            start_index=a.index,
            end_index=c.index,
            pivots=(a, b, c),
            neckline=(NecklinePoint(x=a.index, y=level), NecklinePoint(x=c.index, y=level)),
            fallback_tag=stage.tag,
        ))
        logger.debug(f"{pattern_type.value} accepted at {idxs} conf={confidence}")

    return found


def detect_triple_patterns(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    wanted: Collection[str] = (),
) -> list[PatternCandidate]:
    """
    Detect triple tops and triple bottoms.

    Args:
        df: OHLC DataFrame
        pivots: Swing points ordered by index
        params: Effective scanning parameters
        wanted: Pattern types to evaluate (empty means all)

    Returns:
        Candidates at or above the family minimum confidence
    """
    results: list[PatternCandidate] = []
    for pattern_type in (PatternType.TRIPLE_TOP, PatternType.TRIPLE_BOTTOM):
        if wanted and pattern_type.value not in wanted:
            continue
        results.extend(run_relaxation(
            TRIPLE_STAGES,
            lambda stage, t=pattern_type: _scan(df, pivots, params, t, stage),
        ))
    return results
