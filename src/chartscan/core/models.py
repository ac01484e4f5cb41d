"""Core domain models using Pydantic."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator


class PatternType(str, Enum):
    """Supported chart patterns."""
    # Reversal patterns
    DOUBLE_TOP = "double_top"
    DOUBLE_BOTTOM = "double_bottom"
    HEAD_AND_SHOULDERS = "head_and_shoulders"
    INVERSE_HEAD_AND_SHOULDERS = "inverse_head_and_shoulders"
    TRIPLE_TOP = "triple_top"
    TRIPLE_BOTTOM = "triple_bottom"
    RISING_WEDGE = "rising_wedge"
    FALLING_WEDGE = "falling_wedge"

    # Continuation patterns
    TRIANGLE_ASCENDING = "triangle_ascending"
    TRIANGLE_DESCENDING = "triangle_descending"
    TRIANGLE_SYMMETRICAL = "triangle_symmetrical"
    PENNANT = "pennant"
    FLAG = "flag"


class PatternDirection(str, Enum):
    """Pattern signal direction."""
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class BreakoutDirection(str, Enum):
    """Direction of a boundary crossing."""
    UP = "up"
    DOWN = "down"


class SwingKind(str, Enum):
    """Kind of swing point."""
    PEAK = "peak"
    VALLEY = "valley"


class PatternStatus(str, Enum):
    """Lifecycle stage of a detected pattern."""
    FORMING = "forming"
    NEAR_COMPLETION = "near_completion"
    COMPLETED = "completed"
    INVALID = "invalid"


class AftermathOutcome(str, Enum):
    """Classification of post-breakout price action."""
    TARGET_REACHED = "target_reached"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"
    NO_BREAKOUT = "no_breakout"
    INSUFFICIENT_DATA = "insufficient_data"


# =============================================================================
# Market Data Models
# =============================================================================


class Candle(BaseModel):
    """Single OHLC candle as supplied by a candle provider."""
    model_config = ConfigDict(frozen=True)

    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    time: Optional[datetime] = None

    @computed_field
    @property
    def timestamp(self) -> Optional[int]:
        """Epoch milliseconds of the candle time."""
        if self.time is None:
            return None
        return int(self.time.timestamp() * 1000)


class SwingPoint(BaseModel):
    """Local price extreme. The price is the close at that bar."""
    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    price: float
    kind: SwingKind


# =============================================================================
# Pattern Geometry
# =============================================================================


class NecklinePoint(BaseModel):
    """Point on a neckline or boundary; x is a bar index."""
    x: int
    y: float


class Boundaries(BaseModel):
    """Upper and lower boundary segments of a converging pattern."""
    upper: list[NecklinePoint]
    lower: list[NecklinePoint]


class PatternRange(BaseModel):
    """Bar span of a pattern, with candle times when known."""
    start_index: int
    end_index: int
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @model_validator(mode="after")
    def _check_order(self) -> "PatternRange":
        if self.end_index < self.start_index:
            raise ValueError("range end precedes range start")
        return self


class Breakout(BaseModel):
    """Confirmed boundary crossing."""
    index: int
    time: Optional[datetime] = None
    direction: BreakoutDirection
    price: float


# =============================================================================
# Aftermath Models
# =============================================================================


class PriceMove(BaseModel):
    """Price excursion over a fixed number of bars after the breakout."""
    return_pct: float
    high: float
    low: float


class Aftermath(BaseModel):
    """Post-breakout evaluation of a completed pattern."""
    breakout_confirmed: bool
    breakout_index: Optional[int] = None
    breakout_time: Optional[datetime] = None
    price_move: dict[str, PriceMove] = Field(default_factory=dict)
    theoretical_target: Optional[float] = None
    target_reached: bool = False
    bars_to_target: Optional[int] = None
    outcome: AftermathOutcome


# =============================================================================
# Forming Pattern Models
# =============================================================================


class FormingPivot(BaseModel):
    """Labelled pivot of an in-progress pattern."""
    role: str
    index: int
    price: float
    provisional: bool = False


class FormingDetails(BaseModel):
    """Structure of a pattern whose right side is still developing."""
    confirmed_pivots: list[FormingPivot]
    forming_pivot: FormingPivot
    progress: float = Field(ge=0.0, le=1.0)
    formation_bars: int
    formation_days: float
    completion_zone: tuple[float, float]
    invalidation_level: float


# =============================================================================
# Pattern Models
# =============================================================================


class Pattern(BaseModel):
    """Detected chart pattern."""
    type: str
    direction: PatternDirection
    confidence: float = Field(ge=0.0, le=1.0)
    status: PatternStatus
    range: PatternRange
    pivots: list[SwingPoint] = Field(default_factory=list)
    neckline: Optional[list[NecklinePoint]] = None
    boundaries: Optional[Boundaries] = None
    completion_pct: Optional[int] = Field(default=None, ge=0, le=100)
    breakout: Optional[Breakout] = None
    bars_since_breakout: Optional[int] = None
    apex_index: Optional[int] = None
    bars_to_apex: Optional[int] = None
    aftermath: Optional[Aftermath] = None
    fallback_tag: Optional[str] = None
    strategy: Optional[str] = None
    formation: Optional[FormingDetails] = None


# =============================================================================
# Request / Response Models
# =============================================================================


class EffectiveParams(BaseModel):
    """Scanning parameters actually used for a run."""
    timeframe: str
    swing_depth: int
    min_bars_between_swings: int
    tolerance_pct: float
    strict_pivots: bool = True
    auto_scaled: bool = False


class DetectOptions(BaseModel):
    """Caller options for a detection run."""
    model_config = ConfigDict(extra="forbid")

    patterns: list[str] = Field(default_factory=list)
    swing_depth: Optional[int] = Field(default=None, ge=1, le=10)
    tolerance_pct: Optional[float] = Field(default=None, gt=0.0, le=0.1)
    min_bars_between_swings: Optional[int] = Field(default=None, ge=1, le=30)
    strict_pivots: bool = True
    require_current_in_pattern: bool = False
    current_relevance_days: Optional[int] = Field(default=None, ge=1, le=365)
    include_forming: bool = True
    include_completed: bool = True
    include_invalid: bool = False
    min_completion: float = 0.4
    pivot_confirm_bars: int = 3
    right_tolerance_pct: float = 0.2

    @field_validator("min_completion")
    @classmethod
    def _clamp_completion(cls, v: float) -> float:
        return min(1.0, max(0.0, v))

    @field_validator("pivot_confirm_bars")
    @classmethod
    def _clamp_confirm_bars(cls, v: int) -> int:
        return min(20, max(1, v))

    @field_validator("right_tolerance_pct")
    @classmethod
    def _clamp_right_tolerance(cls, v: float) -> float:
        return min(0.5, max(0.05, v))


class ToolResult(BaseModel):
    """Success/failure envelope returned by every engine entry point."""
    ok: bool
    summary: str
    data: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] = Field(default_factory=dict)
