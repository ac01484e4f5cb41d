"""Core module exports."""

from .models import (
    Aftermath,
    AftermathOutcome,
    Boundaries,
    Breakout,
    BreakoutDirection,
    Candle,
    DetectOptions,
    EffectiveParams,
    FormingDetails,
    FormingPivot,
    NecklinePoint,
    Pattern,
    PatternDirection,
    PatternRange,
    PatternStatus,
    PatternType,
    PriceMove,
    SwingKind,
    SwingPoint,
    ToolResult,
)

__all__ = [
    "PatternType",
    "PatternDirection",
    "BreakoutDirection",
    "SwingKind",
    "PatternStatus",
    "AftermathOutcome",
    "Candle",
    "SwingPoint",
    "NecklinePoint",
    "Boundaries",
    "PatternRange",
    "Breakout",
    "PriceMove",
    "Aftermath",
    "FormingPivot",
    "FormingDetails",
    "Pattern",
    "EffectiveParams",
    "DetectOptions",
    "ToolResult",
]
