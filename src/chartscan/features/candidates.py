"""Immutable pattern candidates produced by the recognizers."""

from dataclasses import dataclass, replace
from typing import Optional

from chartscan.core.models import BreakoutDirection, NecklinePoint, SwingPoint

from .regression import TrendLine


@dataclass(frozen=True)
class PatternCandidate:
    """
    Raw recognizer output, before confirmation and enrichment.

    Boundary lines, when present, span start_index..end_index.
    breakout_scanned marks candidates whose recognizer already searched
    for a breakout with its own rule.
    """
    type: str
    confidence: float
    start_index: int
    end_index: int
    pivots: tuple[SwingPoint, ...] = ()
    neckline: Optional[tuple[NecklinePoint, NecklinePoint]] = None
    upper_line: Optional[TrendLine] = None
    lower_line: Optional[TrendLine] = None
    breakout_index: Optional[int] = None
    breakout_direction: Optional[BreakoutDirection] = None
    breakout_scanned: bool = False
    fallback_tag: Optional[str] = None
    strategy: Optional[str] = None

    def relaxed(self, confidence: float, tag: str) -> "PatternCandidate":
        """Copy tagged as a relaxed-tolerance match."""
        return replace(self, confidence=confidence, fallback_tag=tag)
