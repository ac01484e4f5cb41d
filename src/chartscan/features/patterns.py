"""
Chart pattern detection pipeline.

Runs the pattern recognizers over one candle frame, confirms their
candidates, and returns deduplicated patterns with aftermath analysis.
"""

from typing import Callable, Collection, Iterable, Optional

import pandas as pd

from chartscan.config import get_logger
from chartscan.core.models import (
    Aftermath,
    AftermathOutcome,
    Boundaries,
    Breakout,
    EffectiveParams,
    NecklinePoint,
    Pattern,
    PatternRange,
    PatternStatus,
    PatternType,
    SwingPoint,
)

from .aftermath import analyze_aftermath
from .breakout import confirm_candidate, pattern_direction
from .candidates import PatternCandidate
from .dedup import deduplicate
from .double_patterns import detect_double_patterns
from .flags import detect_flags
from .head_shoulders import detect_head_and_shoulders
from .regression import TrendLine
from .scoring import bar_time
from .swing import detect_swing_points
from .triangles import TRIANGLE_TYPES, detect_triangles
from .triple_patterns import detect_triple_patterns
from .wedges import detect_wedges

logger = get_logger("features.patterns")

Recognizer = Callable[[pd.DataFrame, list[SwingPoint], EffectiveParams, Collection[str]], list[PatternCandidate]]

RECOGNIZERS: tuple[Recognizer, ...] = (
    detect_double_patterns,
    detect_head_and_shoulders,
    detect_triangles,
    detect_wedges,
    detect_flags,
    detect_triple_patterns,
)

# Filter labels that stand for a group of pattern types
PATTERN_ALIASES: dict[str, tuple[str, ...]] = {
    "triangle": TRIANGLE_TYPES,
}


def expand_pattern_filter(labels: Iterable[str]) -> list[str]:
    """
    Expand filter labels to pattern type values.

    Raises:
        ValueError: If a label names no known pattern
    """
    known = {t.value for t in PatternType}
    expanded: list[str] = []
    for label in labels:
        key = label.strip().lower()
        if key in PATTERN_ALIASES:
            types = PATTERN_ALIASES[key]
        elif key in known:
            types = (key,)
        else:
            raise ValueError(f"Unknown pattern type: {label}")
        expanded.extend(t for t in types if t not in expanded)
    return expanded


# =============================================================================
# PATTERN ASSEMBLY
# =============================================================================


def _segment(line: TrendLine, start: int, end: int) -> list[NecklinePoint]:
    return [
        NecklinePoint(x=start, y=round(line.value_at(start), 4)),
        NecklinePoint(x=end, y=round(line.value_at(end), 4)),
    ]


def build_pattern(df: pd.DataFrame, candidate: PatternCandidate) -> Pattern:
    """
    Confirm a candidate and turn it into a reported pattern.

    Args:
        df: OHLC DataFrame the candidate was found on
        candidate: Recognizer output

    Returns:
        Pattern with status, breakout, apex and aftermath filled in
    """
    confirmation = confirm_candidate(df, candidate)
    last_index = len(df) - 1

    boundaries = None
    if candidate.upper_line is not None and candidate.lower_line is not None:
        boundaries = Boundaries(
            upper=_segment(candidate.upper_line, candidate.start_index, candidate.end_index),
            lower=_segment(candidate.lower_line, candidate.start_index, candidate.end_index),
        )

    breakout = None
    bars_since_breakout = None
    if confirmation.breakout_index is not None:
        b = confirmation.breakout_index
        breakout = Breakout(
            index=b,
            time=bar_time(df, b),
            direction=confirmation.breakout_direction,
            price=float(df["close"].iloc[b]),
        )
        bars_since_breakout = last_index - b

    pattern = Pattern(
        type=candidate.type,
        direction=pattern_direction(candidate.type),
        confidence=candidate.confidence,
        status=confirmation.status,
        range=PatternRange(
            start_index=candidate.start_index,
            end_index=candidate.end_index,
            start=bar_time(df, candidate.start_index),
            end=bar_time(df, candidate.end_index),
        ),
        pivots=list(candidate.pivots),
        neckline=list(candidate.neckline) if candidate.neckline else None,
        boundaries=boundaries,
        completion_pct=100 if confirmation.status == PatternStatus.COMPLETED else None,
        breakout=breakout,
        bars_since_breakout=bars_since_breakout,
        apex_index=confirmation.apex_index,
        bars_to_apex=confirmation.bars_to_apex,
        fallback_tag=candidate.fallback_tag,
        strategy=candidate.strategy,
    )

    if breakout is not None:
        aftermath = analyze_aftermath(df, pattern, candidate.upper_line, candidate.lower_line)
        pattern = pattern.model_copy(update={"aftermath": aftermath})
    elif confirmation.horizon_closed:
        aftermath = Aftermath(breakout_confirmed=False, outcome=AftermathOutcome.NO_BREAKOUT)
        pattern = pattern.model_copy(update={"aftermath": aftermath})

    return pattern


# =============================================================================
# MASTER PATTERN DETECTOR
# =============================================================================


def detect_all_patterns(
    df: pd.DataFrame,
    params: EffectiveParams,
    wanted: Collection[str] = (),
    recognizers: Optional[tuple[Recognizer, ...]] = None,
) -> list[Pattern]:
    """
    Run all pattern recognizers on the DataFrame.

    Args:
        df: OHLC DataFrame with lowercase column names
        params: Effective scanning parameters
        wanted: Pattern type values to evaluate (empty means all)
        recognizers: Recognizers to run (defaults to every family)

    Returns:
        Deduplicated patterns sorted by end index (most recent first)
    """
    pivots = detect_swing_points(df, params.swing_depth, strict=params.strict_pivots)
    logger.debug(f"{len(pivots)} swing points at depth {params.swing_depth}")

    candidates: list[PatternCandidate] = []
    for recognizer in recognizers or RECOGNIZERS:
        candidates.extend(recognizer(df, pivots, params, wanted))

    patterns = [build_pattern(df, c) for c in candidates]
    patterns = deduplicate(patterns)

    # Sort by end index (most recent first)
    patterns.sort(key=lambda p: p.range.end_index, reverse=True)
    return patterns
