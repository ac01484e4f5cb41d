"""Engine module exports."""

from .detect import (
    UserInputError,
    detect_forming_patterns,
    detect_patterns,
    detect_patterns_in_frame,
    filter_current,
    parse_options,
)
from .result import fail, ok

__all__ = [
    "UserInputError",
    "detect_patterns",
    "detect_patterns_in_frame",
    "detect_forming_patterns",
    "filter_current",
    "parse_options",
    "ok",
    "fail",
]
