"""Chart pattern detection over OHLC candle series."""

from .engine import detect_forming_patterns, detect_patterns, detect_patterns_in_frame
from .features import detect_all_patterns

__version__ = "0.1.0"

__all__ = [
    "detect_patterns",
    "detect_patterns_in_frame",
    "detect_forming_patterns",
    "detect_all_patterns",
]
