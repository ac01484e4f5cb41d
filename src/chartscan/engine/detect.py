"""
Pattern detection entry points.

Validates caller options, fetches candles, runs the detection pipeline and
wraps the outcome in a ToolResult. Failures never escape as exceptions:
bad input becomes a "user" failure and anything else an "internal" one.
"""

from datetime import datetime
from typing import Any, Optional, Union

import pandas as pd
from pydantic import ValidationError

from chartscan.config import get_logger, get_settings, get_timeframe_profile, resolve_params
from chartscan.core.models import DetectOptions, Pattern, PatternStatus, ToolResult
from chartscan.data.providers import CandleProvider, normalize_dataframe
from chartscan.features import (
    FormingConfig,
    build_statistics,
    deduplicate,
    detect_all_patterns,
    detect_forming,
    expand_pattern_filter,
)

from .result import fail, ok

logger = get_logger("engine.detect")

OptionsInput = Union[DetectOptions, dict[str, Any], None]

LOW_DETECTION_WARNING = {
    "type": "low_detection_count",
    "message": "Few patterns detected; consider adjusting tolerance_pct or min_bars_between_swings",
    "suggested_params": {"tolerance_pct": 0.03, "min_bars_between_swings": 2},
}


class UserInputError(ValueError):
    """Raised when caller-supplied input is rejected."""


# =============================================================================
# INPUT HANDLING
# =============================================================================


def parse_options(options: OptionsInput) -> tuple[DetectOptions, list[str]]:
    """
    Validate caller options and expand the pattern filter.

    Raises:
        UserInputError: If the pattern filter names an unknown type
        ValidationError: If an option is out of range
    """
    if options is None:
        opts = DetectOptions()
    elif isinstance(options, DetectOptions):
        opts = options
    else:
        opts = DetectOptions.model_validate(options)

    try:
        wanted = expand_pattern_filter(opts.patterns)
    except ValueError as e:
        raise UserInputError(str(e)) from e
    return opts, wanted


def _check_limit(limit: int) -> None:
    if limit < 1:
        raise UserInputError(f"limit must be a positive integer, got {limit}")


def _insufficient(instrument: str, timeframe: str) -> ToolResult:
    return ok("insufficient data", {"patterns": []}, {"instrument": instrument, "timeframe": timeframe, "count": 0})


# =============================================================================
# RESULT FILTERS
# =============================================================================


def _status_allowed(pattern: Pattern, opts: DetectOptions) -> bool:
    if pattern.status == PatternStatus.COMPLETED:
        return opts.include_completed
    if pattern.status == PatternStatus.INVALID:
        return opts.include_invalid
    return opts.include_forming


def _age_days(df: pd.DataFrame, pattern: Pattern, bar_days: float) -> float:
    """Calendar days between a pattern's end and the last candle."""
    last_time = df.index[-1] if isinstance(df.index, pd.DatetimeIndex) else None
    if last_time is not None and pattern.range.end is not None:
        return abs((last_time.to_pydatetime() - pattern.range.end).total_seconds()) / 86400
    return (len(df) - 1 - pattern.range.end_index) * bar_days


def filter_current(
    df: pd.DataFrame,
    patterns: list[Pattern],
    timeframe: str,
    max_days: Optional[int] = None,
) -> list[Pattern]:
    """
    Keep patterns ending within max_days of the last candle.

    Args:
        df: Candle frame the patterns were found on
        patterns: Detected patterns
        timeframe: Candle timeframe label
        max_days: Relevance window in days (defaults per timeframe)

    Returns:
        Patterns still relevant at the last candle
    """
    profile = get_timeframe_profile(timeframe)
    limit = max_days if max_days is not None else profile.relevance_days
    return [p for p in patterns if _age_days(df, p, profile.bar_days) <= limit]


def _overlay_ranges(patterns: list[Pattern]) -> list[dict[str, Any]]:
    def _point(t: Optional[datetime], index: int) -> Any:
        return t.isoformat() if t is not None else index

    return [
        {
            "start": _point(p.range.start, p.range.start_index),
            "end": _point(p.range.end, p.range.end_index),
            "label": p.type,
        }
        for p in patterns
    ]


# =============================================================================
# DETECTION
# =============================================================================


def _run_detection(
    df: pd.DataFrame,
    instrument: str,
    timeframe: str,
    opts: DetectOptions,
    wanted: list[str],
) -> ToolResult:
    df = normalize_dataframe(df.copy())
    if len(df) < get_settings().MIN_CANDLES:
        logger.info(f"{instrument} [{timeframe}]: insufficient data ({len(df)} candles)")
        return _insufficient(instrument, timeframe)

    params = resolve_params(
        timeframe,
        swing_depth=opts.swing_depth,
        min_bars_between_swings=opts.min_bars_between_swings,
        tolerance_pct=opts.tolerance_pct,
        strict_pivots=opts.strict_pivots,
    )

    patterns = detect_all_patterns(df, params, wanted)
    if opts.include_forming:
        patterns.extend(detect_forming(df, timeframe, wanted, _forming_config(opts)))
        patterns = deduplicate(patterns)

    patterns = [p for p in patterns if _status_allowed(p, opts)]
    if opts.require_current_in_pattern:
        patterns = filter_current(df, patterns, timeframe, opts.current_relevance_days)
    patterns.sort(key=lambda p: p.range.end_index, reverse=True)

    warnings = [dict(LOW_DETECTION_WARNING)] if len(patterns) <= 1 else []
    summary = f"{instrument.upper()} [{timeframe}] {len(df)} bars: {len(patterns)} patterns detected"
    logger.info(summary)

    return ok(
        summary,
        {
            "patterns": [p.model_dump(mode="json") for p in patterns],
            "overlays": {"ranges": _overlay_ranges(patterns)},
            "warnings": warnings,
            "statistics": build_statistics(patterns),
        },
        {
            "instrument": instrument,
            "timeframe": timeframe,
            "count": len(patterns),
            "effective_params": params.model_dump(),
            "visualization_hints": {
                "preferred_style": "line",
                "highlight_patterns": [p.type for p in patterns][:3],
            },
        },
    )


def _forming_config(opts: DetectOptions) -> FormingConfig:
    return FormingConfig(
        min_completion=opts.min_completion,
        confirm_bars=opts.pivot_confirm_bars,
        right_tolerance=opts.right_tolerance_pct,
    )


def detect_patterns_in_frame(
    df: pd.DataFrame,
    instrument: str,
    timeframe: Optional[str] = None,
    options: OptionsInput = None,
) -> ToolResult:
    """
    Detect chart patterns in an already loaded candle frame.

    Args:
        df: OHLC DataFrame ordered oldest to newest
        instrument: Instrument label reported in the result
        timeframe: Candle timeframe label
        options: DetectOptions or a dict of option values

    Returns:
        ToolResult with patterns, overlays, warnings and statistics
    """
    timeframe = timeframe or get_settings().DEFAULT_TIMEFRAME
    try:
        opts, wanted = parse_options(options)
    except (UserInputError, ValidationError) as e:
        return fail(str(e), "user")

    try:
        return _run_detection(df, instrument, timeframe, opts, wanted)
    except Exception as e:
        logger.exception(f"Pattern detection failed for {instrument} [{timeframe}]")
        return fail(str(e) or "internal error", "internal")


def detect_patterns(
    provider: CandleProvider,
    instrument: str,
    timeframe: Optional[str] = None,
    limit: Optional[int] = None,
    options: OptionsInput = None,
) -> ToolResult:
    """
    Fetch candles from a provider and detect chart patterns.

    Args:
        provider: Candle source
        instrument: Instrument identifier
        timeframe: Candle timeframe label (defaults to settings)
        limit: Number of most recent candles to analyze (defaults to settings)
        options: DetectOptions or a dict of option values

    Returns:
        ToolResult with patterns, overlays, warnings and statistics
    """
    settings = get_settings()
    timeframe = timeframe or settings.DEFAULT_TIMEFRAME
    limit = limit if limit is not None else settings.DEFAULT_CANDLE_LIMIT
    try:
        _check_limit(limit)
        opts, wanted = parse_options(options)
    except (UserInputError, ValidationError) as e:
        return fail(str(e), "user")

    try:
        df = provider.get_candles(instrument, timeframe, limit)
        return _run_detection(df, instrument, timeframe, opts, wanted)
    except Exception as e:
        logger.exception(f"Pattern detection failed for {instrument} [{timeframe}] via {provider.name}")
        return fail(str(e) or "internal error", "internal")


def detect_forming_patterns(
    provider: CandleProvider,
    instrument: str,
    timeframe: Optional[str] = None,
    limit: Optional[int] = None,
    options: OptionsInput = None,
) -> ToolResult:
    """
    Fetch candles from a provider and score patterns that are still forming.

    Args:
        provider: Candle source
        instrument: Instrument identifier
        timeframe: Candle timeframe label (defaults to settings)
        limit: Number of most recent candles to analyze (defaults to settings)
        options: DetectOptions or a dict of option values; only the pattern
            filter, the forming thresholds and include_invalid apply

    Returns:
        ToolResult with forming patterns and overlays
    """
    settings = get_settings()
    timeframe = timeframe or settings.DEFAULT_TIMEFRAME
    limit = limit if limit is not None else settings.FORMING_CANDLE_LIMIT
    try:
        _check_limit(limit)
        opts, wanted = parse_options(options)
    except (UserInputError, ValidationError) as e:
        return fail(str(e), "user")

    try:
        df = normalize_dataframe(provider.get_candles(instrument, timeframe, limit))
        if len(df) < settings.MIN_CANDLES:
            return _insufficient(instrument, timeframe)

        config = _forming_config(opts)
        patterns = [
            p for p in detect_forming(df, timeframe, wanted, config)
            if opts.include_invalid or p.status != PatternStatus.INVALID
        ]
        patterns.sort(key=lambda p: p.completion_pct or 0, reverse=True)

        summary = f"{instrument.upper()} [{timeframe}] {len(df)} bars: {len(patterns)} forming patterns"
        logger.info(summary)
        return ok(
            summary,
            {
                "patterns": [p.model_dump(mode="json") for p in patterns],
                "overlays": {"ranges": _overlay_ranges(patterns)},
            },
            {
                "instrument": instrument,
                "timeframe": timeframe,
                "count": len(patterns),
                "forming_params": {
                    "min_completion": config.min_completion,
                    "pivot_confirm_bars": config.confirm_bars,
                    "right_tolerance_pct": config.right_tolerance,
                },
            },
        )
    except Exception as e:
        logger.exception(f"Forming pattern scan failed for {instrument} [{timeframe}] via {provider.name}")
        return fail(str(e) or "internal error", "internal")
