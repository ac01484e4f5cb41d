"""
Breakout and confirmation detection.

Each pattern type expects a breakout in one direction. The confirmation
pass decides a pattern's lifecycle status from the first bar that closes
beyond its neckline or boundary.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence

import numpy as np
import pandas as pd

from chartscan.config import get_logger
from chartscan.core.models import (
    BreakoutDirection,
    NecklinePoint,
    PatternDirection,
    PatternStatus,
    PatternType,
)

from .candidates import PatternCandidate
from .regression import TrendLine, intersection

logger = get_logger("features.breakout")

BREAKOUT_BUFFER = 0.015
BREAKOUT_HORIZON = 30

BULLISH_TYPES = {
    PatternType.DOUBLE_BOTTOM.value,
    PatternType.INVERSE_HEAD_AND_SHOULDERS.value,
    PatternType.TRIANGLE_ASCENDING.value,
    PatternType.TRIANGLE_SYMMETRICAL.value,
    PatternType.PENNANT.value,
    PatternType.FLAG.value,
    PatternType.FALLING_WEDGE.value,
    PatternType.TRIPLE_BOTTOM.value,
}
BEARISH_TYPES = {
    PatternType.DOUBLE_TOP.value,
    PatternType.HEAD_AND_SHOULDERS.value,
    PatternType.TRIANGLE_DESCENDING.value,
    PatternType.RISING_WEDGE.value,
    PatternType.TRIPLE_TOP.value,
}

BufferFn = Callable[[int, float], float]


def pattern_direction(pattern_type: str) -> PatternDirection:
    """Signal direction of a pattern type."""
    if pattern_type in BULLISH_TYPES:
        return PatternDirection.BULLISH
    if pattern_type in BEARISH_TYPES:
        return PatternDirection.BEARISH
    return PatternDirection.NEUTRAL


def expected_breakout(pattern_type: str) -> BreakoutDirection:
    """Breakout direction that completes a pattern type."""
    return BreakoutDirection.DOWN if pattern_type in BEARISH_TYPES else BreakoutDirection.UP


def neckline_value(neckline: Sequence[NecklinePoint], index: float) -> float:
    """Neckline price at a bar index, held flat outside its segment."""
    a, b = neckline[0], neckline[-1]
    if b.x == a.x:
        return a.y
    t = (index - a.x) / (b.x - a.x)
    return a.y + (b.y - a.y) * max(0.0, min(1.0, t))


def percent_buffer(pct: float = BREAKOUT_BUFFER) -> BufferFn:
    """Buffer proportional to the line price."""
    return lambda index, level: abs(level) * pct


def scan_neckline_breakout(
    df: pd.DataFrame,
    neckline: Sequence[NecklinePoint],
    start: int,
    direction: BreakoutDirection,
    buffer: float = BREAKOUT_BUFFER,
    horizon: int = BREAKOUT_HORIZON,
) -> Optional[int]:
    """
    First bar after `start` whose close crosses the neckline by the buffer.

    Args:
        df: OHLC DataFrame
        neckline: Two neckline points
        start: Bar the scan starts after
        direction: Expected crossing direction
        buffer: Relative buffer beyond the neckline
        horizon: Number of bars scanned

    Returns:
        Breakout bar index, or None
    """
    closes = df["close"].to_numpy(dtype=float)
    end = min(len(closes), start + horizon + 1)
    for i in range(start + 1, end):
        level = neckline_value(neckline, i)
        if not np.isfinite(closes[i]):
            continue
        if direction == BreakoutDirection.UP and closes[i] > level * (1 + buffer):
            return i
        if direction == BreakoutDirection.DOWN and closes[i] < level * (1 - buffer):
            return i
    return None


def scan_boundary_breakout(
    df: pd.DataFrame,
    upper: TrendLine,
    lower: TrendLine,
    first: int,
    last: int,
    buffer_fn: BufferFn,
    use_body: bool = False,
) -> Optional[tuple[int, BreakoutDirection]]:
    """
    First bar in [first, last] crossing either boundary line.

    Args:
        df: OHLC DataFrame
        upper: Upper boundary
        lower: Lower boundary
        first: First bar scanned
        last: Last bar scanned, inclusive
        buffer_fn: Absolute buffer for (bar index, line price)
        use_body: Require the whole candle body beyond the line instead of the close

    Returns:
        (bar index, direction) of the first crossing, or None
    """
    opens = df["open"].to_numpy(dtype=float)
    closes = df["close"].to_numpy(dtype=float)

    for i in range(max(0, first), min(last, len(df) - 1) + 1):
        if use_body:
            body_low = min(opens[i], closes[i])
            body_high = max(opens[i], closes[i])
        else:
            body_low = body_high = closes[i]
        if not (np.isfinite(body_low) and np.isfinite(body_high)):
            continue

        u = upper.value_at(i)
        lo = lower.value_at(i)
        if body_low > u + buffer_fn(i, u):
            return i, BreakoutDirection.UP
        if body_high < lo - buffer_fn(i, lo):
            return i, BreakoutDirection.DOWN
    return None


# =============================================================================
# CONFIRMATION PASS
# =============================================================================


@dataclass(frozen=True)
class Confirmation:
    """Outcome of the confirmation pass for one candidate."""
    status: PatternStatus
    breakout_index: Optional[int] = None
    breakout_direction: Optional[BreakoutDirection] = None
    horizon_closed: bool = False
    apex_index: Optional[int] = None
    bars_to_apex: Optional[int] = None


def _apex(candidate: PatternCandidate, last_index: int) -> tuple[Optional[int], Optional[int]]:
    if candidate.upper_line is None or candidate.lower_line is None:
        return None, None
    x = intersection(candidate.upper_line, candidate.lower_line)
    if x is None or not np.isfinite(x) or x <= candidate.start_index:
        return None, None
    apex = int(round(x))
    return apex, max(0, apex - last_index)


def confirm_candidate(
    df: pd.DataFrame,
    candidate: PatternCandidate,
    horizon: int = BREAKOUT_HORIZON,
) -> Confirmation:
    """
    Decide the status of a candidate from its breakout.

    A breakout supplied by the recognizer is kept; otherwise the neckline or
    the boundary lines are scanned forward from the nominal end.
    """
    last_index = len(df) - 1
    expected = expected_breakout(candidate.type)
    index = candidate.breakout_index
    direction = candidate.breakout_direction

    if index is None and not candidate.breakout_scanned:
        if candidate.neckline is not None:
            index = scan_neckline_breakout(
                df, candidate.neckline, candidate.end_index, expected, horizon=horizon
            )
            direction = expected if index is not None else None
        elif candidate.upper_line is not None and candidate.lower_line is not None:
            hit = scan_boundary_breakout(
                df,
                candidate.upper_line,
                candidate.lower_line,
                candidate.end_index + 1,
                candidate.end_index + horizon,
                percent_buffer(),
            )
            if hit is not None:
                index, direction = hit

    apex_index, bars_to_apex = _apex(candidate, last_index)

    if index is not None:
        status = PatternStatus.COMPLETED if direction == expected else PatternStatus.INVALID
        if status == PatternStatus.INVALID:
            logger.debug(f"{candidate.type} at {candidate.start_index} broke {direction.value}, expected {expected.value}")
        return Confirmation(
            status=status,
            breakout_index=index,
            breakout_direction=direction,
            apex_index=apex_index,
            bars_to_apex=None if status == PatternStatus.COMPLETED else bars_to_apex,
        )

    if last_index - candidate.end_index < horizon:
        return Confirmation(
            status=PatternStatus.NEAR_COMPLETION,
            apex_index=apex_index,
            bars_to_apex=bars_to_apex,
        )
    return Confirmation(
        status=PatternStatus.INVALID,
        horizon_closed=True,
        apex_index=apex_index,
        bars_to_apex=bars_to_apex,
    )
