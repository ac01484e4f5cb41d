"""
Wedge detection (rising and falling).

Two independent strategies share one interface. Both emit candidates for
the same pattern types and are deduplicated downstream without regard to
which strategy produced them.

Rising wedge: both boundaries rise, the lower one faster. Bearish.
Falling wedge: both boundaries fall, the upper one faster. Bullish.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Collection, Optional

import numpy as np
import pandas as pd

from chartscan.config import get_logger
from chartscan.core.models import EffectiveParams, PatternType, SwingPoint

from .breakout import percent_buffer, scan_boundary_breakout
from .candidates import PatternCandidate
from .regression import TrendLine, average_true_range, clamp01, fit_with_r2, swing_xy
from .scoring import bars_period_score, finalize_confidence, wedge_composite_score
from .swing import filter_peaks, filter_valleys

logger = get_logger("features.wedges")

WEDGE_TYPES = (PatternType.RISING_WEDGE.value, PatternType.FALLING_WEDGE.value)


@dataclass(frozen=True)
class WedgeParams:
    """Tuning knobs for wedge classification and scoring."""
    window_min: int = 25
    window_max: int = 90
    window_step: int = 5
    min_slope: float = 1e-4
    rising_ratio: float = 1.20
    falling_ratio: float = 1.15
    min_weak_ratio: float = 0.3
    min_r2: float = 0.25
    max_gap_ratio: float = 0.8
    min_touches: int = 2
    min_touch_balance: float = 0.45
    min_score: float = 0.5


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================


def generate_windows(total_bars: int, min_size: int, max_size: int, step: int) -> list[tuple[int, int]]:
    """Candle windows (start, end) for every size from min_size to max_size."""
    windows = []
    for size in range(min_size, max_size + 1, step):
        start = 0
        while start + size < total_bars:
            windows.append((start, start + size))
            start += step
    return windows


def classify_wedge(
    slope_high: float,
    slope_low: float,
    min_slope: float = 1e-4,
    rising_ratio: float = 1.20,
    falling_ratio: float = 1.15,
    min_weak_ratio: float = 0.3,
) -> Optional[str]:
    """
    Classify boundary slopes as a wedge type.

    Both slopes must share a sign beyond min_slope, the converging side must
    be steeper by the type's ratio, and the weaker side must carry at least
    min_weak_ratio of the stronger side's slope (else it is a triangle).

    Returns:
        "rising_wedge", "falling_wedge" or None
    """
    abs_hi, abs_lo = abs(slope_high), abs(slope_low)
    weak_ratio = min(abs_hi, abs_lo) / max(1e-12, max(abs_hi, abs_lo))
    if weak_ratio < min_weak_ratio:
        return None

    if slope_high > min_slope and slope_low > min_slope and abs_lo >= abs_hi * rising_ratio:
        return PatternType.RISING_WEDGE.value
    if slope_high < -min_slope and slope_low < -min_slope and abs_hi >= abs_lo * falling_ratio:
        return PatternType.FALLING_WEDGE.value
    return None


@dataclass(frozen=True)
class Convergence:
    """Gap narrowing between two boundary lines over a window."""
    gap_start: float
    gap_end: float
    ratio: float
    accelerating: bool
    score: float


def check_convergence(
    upper: TrendLine,
    lower: TrendLine,
    start: int,
    end: int,
    max_ratio: float = 0.8,
) -> Optional[Convergence]:
    """Measure convergence; None when the end gap is not positive or not narrow enough."""
    mid = (start + end) // 2
    gap_start = upper.value_at(start) - lower.value_at(start)
    gap_mid = upper.value_at(mid) - lower.value_at(mid)
    gap_end = upper.value_at(end) - lower.value_at(end)
    ratio = gap_end / max(1e-12, gap_start)
    if not gap_end > 0 or not ratio < max_ratio:
        return None

    accelerating = (gap_mid - gap_end) > (gap_start - gap_mid) * 1.2
    score = clamp01(0.5 * (1 - ratio) + 0.3 + 0.2 * (1 if accelerating else 0))
    return Convergence(gap_start, gap_end, ratio, accelerating, score)


@dataclass(frozen=True)
class Touch:
    """One bar meeting a boundary. is_break marks a high or low past the line by more than the touch threshold."""
    index: int
    side: str
    is_break: bool


@dataclass
class TouchSummary:
    """Boundary contacts inside a window."""
    touches: list[Touch] = field(default_factory=list)

    @property
    def upper_quality(self) -> int:
        """Clean touches of the upper line."""
        return sum(1 for t in self.touches if t.side == "upper" and not t.is_break)

    @property
    def lower_quality(self) -> int:
        """Clean touches of the lower line."""
        return sum(1 for t in self.touches if t.side == "lower" and not t.is_break)

    @property
    def score(self) -> float:
        """Clean touches on both lines, saturating at eight."""
        return clamp01((self.upper_quality + self.lower_quality) / 8)

    @property
    def balance(self) -> float:
        """Ratio of the smaller side count to the larger, 0.0 with no touches."""
        up, lo = self.upper_quality, self.lower_quality
        return min(up, lo) / max(up, lo, 1)


def evaluate_touches(
    df: pd.DataFrame,
    upper: TrendLine,
    lower: TrendLine,
    start: int,
    end: int,
) -> TouchSummary:
    """Count bars touching or breaking each boundary within 1% of the window range."""
    highs = df["high"].to_numpy(dtype=float)
    lows = df["low"].to_numpy(dtype=float)
    threshold = (highs[start:end + 1].max() - lows[start:end + 1].min()) * 0.01

    summary = TouchSummary()
    for i in range(start, end + 1):
        u, lo = upper.value_at(i), lower.value_at(i)
        if abs(highs[i] - u) < threshold and highs[i] <= u + threshold:
            summary.touches.append(Touch(i, "upper", False))
        elif highs[i] > u + threshold:
            summary.touches.append(Touch(i, "upper", True))
        if abs(lows[i] - lo) < threshold and lows[i] >= lo - threshold:
            summary.touches.append(Touch(i, "lower", False))
        elif lows[i] < lo - threshold:
            summary.touches.append(Touch(i, "lower", True))
    return summary


def alternation_score(summary: TouchSummary) -> float:
    """Share of consecutive touches that switch side."""
    ordered = sorted(summary.touches, key=lambda t: t.index)
    if len(ordered) < 2:
        return 0.0
    switches = sum(1 for a, b in zip(ordered, ordered[1:]) if a.side != b.side)
    return clamp01(switches / max(1, len(ordered) - 1))


def inside_ratio(df: pd.DataFrame, upper: TrendLine, lower: TrendLine, start: int, end: int) -> float:
    """Share of bars fully inside the boundaries."""
    highs = df["high"].to_numpy(dtype=float)
    lows = df["low"].to_numpy(dtype=float)
    total = end - start + 1
    if total <= 0:
        return 0.0
    inside = sum(
        1 for i in range(start, end + 1)
        if highs[i] <= upper.value_at(i) and lows[i] >= lower.value_at(i)
    )
    return inside / total


def duration_score(bars: int, min_bars: int, max_bars: int) -> float:
    """Peaks at the middle of the allowed window range."""
    if bars < min_bars or bars > max_bars:
        return 0.0
    mid = (min_bars + max_bars) / 2
    dist = abs(bars - mid) / max(1, (max_bars - min_bars) / 2)
    return clamp01(1 - dist)


def _line_through(a: SwingPoint, b: SwingPoint) -> TrendLine:
    slope = (b.price - a.price) / (b.index - a.index)
    return TrendLine(slope=slope, intercept=a.price - slope * a.index)


# =============================================================================
# STRATEGIES
# =============================================================================


class WedgeStrategy(ABC):
    """Interface for wedge scanners."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy identifier, reported on each candidate."""
        ...

    @abstractmethod
    def scan(
        self,
        df: pd.DataFrame,
        pivots: list[SwingPoint],
        params: EffectiveParams,
        allowed: Collection[str],
    ) -> list[PatternCandidate]:
        """
        Scan candles for wedges.

        Args:
            df: OHLC DataFrame
            pivots: Swing points ordered by index
            params: Effective scanning parameters
            allowed: Wedge types to emit

        Returns:
            Wedge candidates with their breakout, if any, already resolved
        """
        ...


class RegressionWindowStrategy(WedgeStrategy):
    """Regression lines over sliding candle windows, scored by a weighted composite."""

    def __init__(self, config: WedgeParams = WedgeParams()):
        self.config = config

    @property
    def name(self) -> str:
        return "regression_window"

    def _rising_guard(self, df: pd.DataFrame, upper: TrendLine, highs_in: list[SwingPoint], start: int, end: int) -> Optional[str]:
        window = df.iloc[start:end + 1]
        price_range = float(window["high"].max() - window["low"].min())
        span = max(1, end - start)
        if abs(upper.slope) < price_range * 0.01 / span:
            return "upper_line_barely_rising"

        mid = len(highs_in) // 2
        first_avg = float(np.mean([p.price for p in highs_in[:mid]])) if mid else 0.0
        second_avg = float(np.mean([p.price for p in highs_in[mid:]]))
        if first_avg and second_avg / max(1e-12, first_avg) < 0.99:
            return "declining_highs"
        return None

    def scan(self, df, pivots, params, allowed):
        cfg = self.config
        peaks = filter_peaks(pivots)
        valleys = filter_valleys(pivots)
        last_index = len(df) - 1
        found: list[PatternCandidate] = []

        for start, end in generate_windows(len(df), cfg.window_min, cfg.window_max, cfg.window_step):
            highs_in = [p for p in peaks if start <= p.index <= end]
            lows_in = [p for p in valleys if start <= p.index <= end]
            if len(highs_in) < 3 or len(lows_in) < 3:
                continue

            upper = fit_with_r2(swing_xy(highs_in))
            lower = fit_with_r2(swing_xy(lows_in))
            if upper.r2 < cfg.min_r2 or lower.r2 < cfg.min_r2:
                logger.debug(f"wedge rejected at [{start}, {end}]: r2_below_threshold ({upper.r2:.2f}, {lower.r2:.2f})")
                continue

            if upper.slope > 0 and lower.slope > 0:
                reason = self._rising_guard(df, upper, highs_in, start, end)
                if reason:
                    logger.debug(f"rising_wedge rejected at [{start}, {end}]: {reason}")
                    continue

            wedge_type = classify_wedge(
                upper.slope, lower.slope, cfg.min_slope, cfg.rising_ratio, cfg.falling_ratio, cfg.min_weak_ratio
            )
            if wedge_type is None:
                logger.debug(f"wedge rejected at [{start}, {end}]: type_classification_failed")
                continue
            if wedge_type not in allowed:
                continue

            conv = check_convergence(upper, lower, start, end, cfg.max_gap_ratio)
            if conv is None:
                logger.debug(f"{wedge_type} rejected at [{start}, {end}]: convergence_failed")
                continue

            touches = evaluate_touches(df, upper, lower, start, end)
            if touches.upper_quality < cfg.min_touches or touches.lower_quality < cfg.min_touches:
                logger.debug(f"{wedge_type} rejected at [{start}, {end}]: insufficient_touches")
                continue
            if touches.balance < cfg.min_touch_balance:
                logger.debug(f"{wedge_type} rejected at [{start}, {end}]: unbalanced_touches ({touches.balance:.2f})")
                continue

            score = wedge_composite_score({
                "fit": (upper.r2 + lower.r2) / 2,
                "converge": conv.score,
                "touch": touches.score,
                "alternation": alternation_score(touches),
                "inside": inside_ratio(df, upper, lower, start, end),
                "duration": duration_score(end - start, cfg.window_min, cfg.window_max),
            })
            if score < cfg.min_score:
                logger.debug(f"{wedge_type} rejected at [{start}, {end}]: score_below_threshold ({score:.3f})")
                continue

            atr = average_true_range(df, start, end, 14)
            scan_start = start + max(20, int((end - start) * 0.3))
            hit = scan_boundary_breakout(
                df, upper, lower, scan_start, max(end, last_index), lambda i, level: atr * 0.5
            )
            breakout_index, breakout_direction = hit if hit else (None, None)

            found.append(PatternCandidate(
                type=wedge_type,
                confidence=round(clamp01(score), 2),
                start_index=start,
                end_index=breakout_index if breakout_index is not None else end,
                pivots=tuple(sorted([*highs_in, *lows_in], key=lambda p: p.index)),
                upper_line=upper,
                lower_line=lower,
                breakout_index=breakout_index,
                breakout_direction=breakout_direction,
                breakout_scanned=True,
                strategy=self.name,
            ))
            logger.debug(f"{wedge_type} accepted at [{start}, {end}] score={score:.3f} breakout={breakout_index}")

        return found


class PivotTrendlineStrategy(WedgeStrategy):
    """
    Boundaries drawn through two literal pivots per side.

    The upper line joins the highest peak of the window's first third to the
    highest peak of its last third; the lower line does the same for the
    lowest valleys.
    """

    def __init__(
        self,
        window_min: int = 40,
        window_max: int = 80,
        window_step: int = 5,
        max_violation_pct: float = 0.01,
        max_violations: int = 1,
        max_touch_gap_pct: float = 0.6,
        breakout_buffer: float = 0.015,
        horizon: int = 30,
    ):
        self.window_min = window_min
        self.window_max = window_max
        self.window_step = window_step
        self.max_violation_pct = max_violation_pct
        self.max_violations = max_violations
        self.max_touch_gap_pct = max_touch_gap_pct
        self.breakout_buffer = breakout_buffer
        self.horizon = horizon

    @property
    def name(self) -> str:
        return "pivot_trendline"

    def scan(self, df, pivots, params, allowed):
        peaks = filter_peaks(pivots)
        valleys = filter_valleys(pivots)
        touch_tol = params.tolerance_pct / 2
        seen: set[tuple[str, int, int]] = set()
        found: list[PatternCandidate] = []

        for start, end in generate_windows(len(df), self.window_min, self.window_max, self.window_step):
            third = (end - start) // 3
            head_end, tail_start = start + third, end - third
            highs_in = [p for p in peaks if start <= p.index <= end]
            lows_in = [p for p in valleys if start <= p.index <= end]

            first_peaks = [p for p in highs_in if p.index < head_end]
            last_peaks = [p for p in highs_in if p.index >= tail_start]
            first_valleys = [p for p in lows_in if p.index < head_end]
            last_valleys = [p for p in lows_in if p.index >= tail_start]
            if not (first_peaks and last_peaks and first_valleys and last_valleys):
                continue

            a_hi = max(first_peaks, key=lambda p: p.price)
            b_hi = max(last_peaks, key=lambda p: p.price)
            a_lo = min(first_valleys, key=lambda p: p.price)
            b_lo = min(last_valleys, key=lambda p: p.price)
            upper = _line_through(a_hi, b_hi)
            lower = _line_through(a_lo, b_lo)

            wedge_type = classify_wedge(upper.slope, lower.slope, rising_ratio=1.0, falling_ratio=1.0)
            if wedge_type is None or wedge_type not in allowed:
                continue

            line_start = min(a_hi.index, a_lo.index)
            line_end = max(b_hi.index, b_lo.index)
            gap_start = upper.value_at(line_start) - lower.value_at(line_start)
            gap_end = upper.value_at(line_end) - lower.value_at(line_end)
            if not (0 < gap_end < gap_start):
                continue

            violations = sum(
                1 for p in highs_in if p.price > upper.value_at(p.index) * (1 + self.max_violation_pct)
            ) + sum(
                1 for p in lows_in if p.price < lower.value_at(p.index) * (1 - self.max_violation_pct)
            )
            if violations > self.max_violations:
                logger.debug(f"{wedge_type} rejected at [{start}, {end}]: {violations} line violations")
                continue

            upper_touches = [
                p for p in highs_in
                if abs(p.price - upper.value_at(p.index)) <= abs(upper.value_at(p.index)) * touch_tol
            ]
            lower_touches = [
                p for p in lows_in
                if abs(p.price - lower.value_at(p.index)) <= abs(lower.value_at(p.index)) * touch_tol
            ]
            if len(upper_touches) < 2 or len(lower_touches) < 2:
                continue

            touch_indices = sorted({p.index for p in upper_touches + lower_touches})
            max_gap = max(b - a for a, b in zip(touch_indices, touch_indices[1:]))
            if max_gap > (end - start) * self.max_touch_gap_pct:
                logger.debug(f"{wedge_type} rejected at [{start}, {end}]: touch gap {max_gap} bars")
                continue

            key = (wedge_type, line_start, line_end)
            if key in seen:
                continue
            seen.add(key)

            hit = scan_boundary_breakout(
                df, upper, lower, line_end + 1, line_end + self.horizon,
                percent_buffer(self.breakout_buffer), use_body=True,
            )
            breakout_index, breakout_direction = hit if hit else (None, None)

            q_touch = clamp01((len(upper_touches) + len(lower_touches)) / 6)
            q_conv = clamp01(1 - gap_end / max(1e-12, gap_start))
            q_clean = 1.0 if violations == 0 else 0.7
            per = bars_period_score(df, line_start, line_end)
            base = (q_touch + q_conv + q_clean + per) / 4
            confidence = finalize_confidence(base, wedge_type)

            found.append(PatternCandidate(
                type=wedge_type,
                confidence=confidence,
                start_index=line_start,
                end_index=breakout_index if breakout_index is not None else line_end,
                pivots=tuple(sorted([*upper_touches, *lower_touches], key=lambda p: p.index)),
                upper_line=upper,
                lower_line=lower,
                breakout_index=breakout_index,
                breakout_direction=breakout_direction,
                breakout_scanned=True,
                strategy=self.name,
            ))
            logger.debug(f"{wedge_type} accepted at [{line_start}, {line_end}] conf={confidence}")

        return found


DEFAULT_STRATEGIES: tuple[WedgeStrategy, ...] = (
    RegressionWindowStrategy(),
    PivotTrendlineStrategy(),
)


def detect_wedges(
    df: pd.DataFrame,
    pivots: list[SwingPoint],
    params: EffectiveParams,
    wanted: Collection[str] = (),
    strategies: tuple[WedgeStrategy, ...] = DEFAULT_STRATEGIES,
) -> list[PatternCandidate]:
    """
    Run every wedge strategy and pool their candidates.

    Args:
        df: OHLC DataFrame
        pivots: Swing points ordered by index
        params: Effective scanning parameters
        wanted: Pattern types to evaluate (empty means all)
        strategies: Wedge scanners to run

    Returns:
        Candidates from all strategies, not yet deduplicated
    """
    allowed = [t for t in WEDGE_TYPES if not wanted or t in wanted]
    if not allowed:
        return []

    results: list[PatternCandidate] = []
    for strategy in strategies:
        found = strategy.scan(df, pivots, params, allowed)
        logger.debug(f"{strategy.name}: {len(found)} wedge candidates")
        results.extend(found)
    return results
