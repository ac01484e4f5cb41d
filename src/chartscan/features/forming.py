"""
Forming pattern completion scoring.

Scores double top/bottom and head and shoulders structures whose right side
is still developing. The left pivots are confirmed swing points. Tolerance,
progress and confidence are measured at the current close; the right pivot
(the extreme close since the middle pivot) only decides whether the
progress term is discounted as provisional.
"""

from dataclasses import dataclass
from typing import Collection, Optional

import numpy as np
import pandas as pd

from chartscan.config import get_logger, get_timeframe_profile
from chartscan.core.models import (
    FormingDetails,
    FormingPivot,
    NecklinePoint,
    Pattern,
    PatternRange,
    PatternStatus,
    PatternType,
    SwingPoint,
)

from .breakout import pattern_direction
from .regression import clamp01
from .scoring import bar_time
from .swing import detect_swing_points, filter_peaks, filter_valleys

logger = get_logger("features.forming")

FORMING_TYPES = (
    PatternType.DOUBLE_TOP.value,
    PatternType.DOUBLE_BOTTOM.value,
    PatternType.HEAD_AND_SHOULDERS.value,
    PatternType.INVERSE_HEAD_AND_SHOULDERS.value,
)

MIN_FORMATION_BARS = {
    PatternType.DOUBLE_TOP.value: 10,
    PatternType.DOUBLE_BOTTOM.value: 10,
    PatternType.HEAD_AND_SHOULDERS.value: 15,
    PatternType.INVERSE_HEAD_AND_SHOULDERS.value: 15,
}

DOUBLE_BASE, DOUBLE_SPAN = 0.66, 0.34
HS_BASE, HS_SPAN = 0.75, 0.25
MOMENTUM_BONUS = 0.2
PROVISIONAL_DISCOUNT = 0.9
NEAR_COMPLETION = 0.85
HEAD_PROMINENCE = 0.05


@dataclass(frozen=True)
class FormingConfig:
    """Caller settings for a forming scan."""
    min_completion: float = 0.4
    confirm_bars: int = 3
    right_tolerance: float = 0.2


class _Context:
    """Per-call view of the candles shared by the type scorers."""

    def __init__(self, df: pd.DataFrame, timeframe: str, config: FormingConfig):
        self.df = df
        self.closes = df["close"].to_numpy(dtype=float)
        self.last = len(df) - 1
        self.current = float(self.closes[self.last])
        self.config = config
        self.bar_days = get_timeframe_profile(timeframe).bar_days

        pivots = detect_swing_points(df, depth=1, strict=True)
        self.peaks = [p for p in filter_peaks(pivots) if self.confirmed(p)]
        self.valleys = [p for p in filter_valleys(pivots) if self.confirmed(p)]

    def confirmed(self, pivot: SwingPoint) -> bool:
        return self.last - pivot.index >= self.config.confirm_bars

    def last3_down(self) -> bool:
        if len(self.closes) < 4:
            return False
        a, b, c, d = self.closes[-4:]
        return d < c < b < a

    def right_pivot(self, after: int, role: str, highest: bool) -> tuple[FormingPivot, float]:
        """Extreme close after a bar, with the provisional discount it carries."""
        segment = self.closes[after + 1:]
        offset = int(np.argmax(segment) if highest else np.argmin(segment))
        index = after + 1 + offset
        if self.last - index >= self.config.confirm_bars:
            return FormingPivot(role=role, index=index, price=float(self.closes[index])), 1.0
        return FormingPivot(role=role, index=self.last, price=self.current, provisional=True), PROVISIONAL_DISCOUNT

    def within_tolerance(self, price: float, reference: float) -> bool:
        ratio = price / max(1.0, reference)
        tol = self.config.right_tolerance
        return 1 - tol <= ratio <= 1 + tol

    def build(
        self,
        pattern_type: str,
        left: SwingPoint,
        middle: list[SwingPoint],
        roles: list[str],
        right: FormingPivot,
        progress: float,
        completion: float,
        confidence: float,
        neckline: tuple[NecklinePoint, NecklinePoint],
        invalidation: float,
        invalid: bool,
    ) -> Pattern:
        formation_bars = self.last - left.index
        if invalid:
            status = PatternStatus.INVALID
        elif completion >= NEAR_COMPLETION:
            status = PatternStatus.NEAR_COMPLETION
        else:
            status = PatternStatus.FORMING

        confirmed = [
            FormingPivot(role=role, index=p.index, price=p.price)
            for role, p in zip(roles, [left, *middle])
        ]
        return Pattern(
            type=pattern_type,
            direction=pattern_direction(pattern_type),
            confidence=round(clamp01(confidence), 2),
            status=status,
            range=PatternRange(
                start_index=left.index,
                end_index=self.last,
                start=bar_time(self.df, left.index),
                end=bar_time(self.df, self.last),
            ),
            pivots=[left, *middle],
            neckline=list(neckline),
            completion_pct=int(round(completion * 100)),
            formation=FormingDetails(
                confirmed_pivots=confirmed,
                forming_pivot=right,
                progress=round(clamp01(progress), 2),
                formation_bars=formation_bars,
                formation_days=round(formation_bars * self.bar_days, 2),
                completion_zone=(round(left.price * 0.98, 2), round(left.price * 1.02, 2)),
                invalidation_level=round(invalidation, 2),
            ),
        )


# =============================================================================
# TYPE SCORERS
# =============================================================================


def _double_top(ctx: _Context) -> Optional[Pattern]:
    """Left peak and valley confirmed, current close rising back toward the left peak."""
    if not ctx.valleys:
        return None
    valley = ctx.valleys[-1]
    lefts = [p for p in ctx.peaks if p.index < valley.index]
    if not lefts:
        return None
    left = lefts[-1]

    right, discount = ctx.right_pivot(valley.index, "right_peak", highest=True)
    if not ctx.within_tolerance(ctx.current, left.price):
        return None
    # Neckline still intact
    if ctx.current <= valley.price:
        return None

    progress = clamp01((ctx.current - valley.price) / max(1e-12, left.price - valley.price))
    if ctx.last3_down():
        progress = min(1.0, progress + MOMENTUM_BONUS)
    completion = min(1.0, DOUBLE_BASE + DOUBLE_SPAN * progress * discount)
    left_pct = ctx.current / max(1.0, left.price)
    confidence = (1 - abs(left_pct - 1)) * 0.6 + progress * 0.4
    invalidation = left.price * 1.012

    return ctx.build(
        PatternType.DOUBLE_TOP.value, left, [valley], ["left_peak", "valley"], right,
        progress, completion, confidence,
        (NecklinePoint(x=left.index, y=valley.price), NecklinePoint(x=ctx.last, y=valley.price)),
        invalidation, ctx.current > invalidation,
    )


def _double_bottom(ctx: _Context) -> Optional[Pattern]:
    """Mirror of the double top: current close falling back toward the left valley."""
    if not ctx.peaks:
        return None
    peak = ctx.peaks[-1]
    lefts = [v for v in ctx.valleys if v.index < peak.index]
    if not lefts:
        return None
    left = lefts[-1]

    right, discount = ctx.right_pivot(peak.index, "right_valley", highest=False)
    if not ctx.within_tolerance(ctx.current, left.price):
        return None
    if ctx.current >= peak.price:
        return None

    progress = clamp01((peak.price - ctx.current) / max(1e-12, peak.price - left.price))
    if not ctx.last3_down():
        progress = min(1.0, progress + MOMENTUM_BONUS)
    completion = min(1.0, DOUBLE_BASE + DOUBLE_SPAN * progress * discount)
    left_pct = ctx.current / max(1.0, left.price)
    confidence = (1 - abs(left_pct - 1)) * 0.6 + progress * 0.4
    invalidation = left.price * 0.988

    return ctx.build(
        PatternType.DOUBLE_BOTTOM.value, left, [peak], ["left_valley", "peak"], right,
        progress, completion, confidence,
        (NecklinePoint(x=left.index, y=peak.price), NecklinePoint(x=ctx.last, y=peak.price)),
        invalidation, ctx.current < invalidation,
    )


def _head_and_shoulders(ctx: _Context, inverse: bool) -> Optional[Pattern]:
    shoulders = ctx.valleys if inverse else ctx.peaks
    reactions = ctx.peaks if inverse else ctx.valleys
    pattern_type = (
        PatternType.INVERSE_HEAD_AND_SHOULDERS.value if inverse else PatternType.HEAD_AND_SHOULDERS.value
    )
    tol = ctx.config.right_tolerance

    # Latest left shoulder first
    for i in range(len(shoulders) - 2, -1, -1):
        left = shoulders[i]
        if inverse:
            head = next((p for p in shoulders[i + 1:] if p.price < left.price * (1 - HEAD_PROMINENCE)), None)
        else:
            head = next((p for p in shoulders[i + 1:] if p.price > left.price * (1 + HEAD_PROMINENCE)), None)
        if head is None:
            continue
        post = next((p for p in reactions if p.index > head.index), None)
        if post is None:
            continue

        right, discount = ctx.right_pivot(post.index, "right_shoulder", highest=not inverse)
        if not ctx.within_tolerance(ctx.current, left.price):
            continue
        low, high = (head.price, post.price) if inverse else (post.price, head.price)
        # Between neckline and head
        if not low < ctx.current < high:
            continue

        closeness = clamp01(1 - abs(ctx.current - left.price) / max(1e-12, left.price * tol))
        progress = closeness
        if ctx.last3_down() != inverse:
            progress = min(1.0, progress + MOMENTUM_BONUS)
        completion = min(1.0, HS_BASE + HS_SPAN * progress * discount)
        confidence = 0.6 * closeness + 0.4 * progress

        pre = next((p for p in reactions if left.index < p.index < head.index), None)
        start_point = (
            NecklinePoint(x=pre.index, y=pre.price) if pre else NecklinePoint(x=left.index, y=post.price)
        )
        invalidation = head.price * (0.988 if inverse else 1.012)
        invalid = ctx.current < invalidation if inverse else ctx.current > invalidation
        post_role = "post_head_peak" if inverse else "post_head_valley"

        return ctx.build(
            pattern_type, left, [head, post], ["left_shoulder", "head", post_role], right,
            progress, completion, confidence,
            (start_point, NecklinePoint(x=ctx.last, y=post.price)),
            invalidation, invalid,
        )
    return None


_SCORERS = {
    PatternType.DOUBLE_TOP.value: _double_top,
    PatternType.DOUBLE_BOTTOM.value: _double_bottom,
    PatternType.HEAD_AND_SHOULDERS.value: lambda ctx: _head_and_shoulders(ctx, inverse=False),
    PatternType.INVERSE_HEAD_AND_SHOULDERS.value: lambda ctx: _head_and_shoulders(ctx, inverse=True),
}


def detect_forming(
    df: pd.DataFrame,
    timeframe: str,
    wanted: Collection[str] = (),
    config: FormingConfig = FormingConfig(),
) -> list[Pattern]:
    """
    Detect patterns whose right side is still forming.

    Args:
        df: OHLC DataFrame
        timeframe: Candle timeframe label (sets calendar days per bar)
        wanted: Pattern types to evaluate (empty means all forming types)
        config: Completion threshold, pivot confirmation and right-side tolerance

    Returns:
        Forming patterns at or above the completion threshold
    """
    if len(df) < 4:
        return []

    ctx = _Context(df, timeframe, config)
    types = [t for t in FORMING_TYPES if not wanted or t in wanted]
    found: list[Pattern] = []

    for pattern_type in types:
        pattern = _SCORERS[pattern_type](ctx)
        if pattern is None:
            continue
        completion = pattern.completion_pct / 100
        if completion < config.min_completion:
            logger.debug(f"forming {pattern_type} below min completion ({completion:.2f})")
            continue
        if pattern.formation.formation_bars < MIN_FORMATION_BARS[pattern_type]:
            logger.debug(f"forming {pattern_type} too short ({pattern.formation.formation_bars} bars)")
            continue
        found.append(pattern)

    return found
