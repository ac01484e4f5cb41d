"""Config module exports."""

from .logging import get_logger, setup_logging
from .settings import Settings, get_settings
from .timeframes import (
    FALLBACK_TIMEFRAME,
    MIN_CONFIDENCE,
    TIMEFRAME_PROFILES,
    TIMEFRAMES,
    CandleTimeframe,
    TimeframeProfile,
    get_timeframe_profile,
    resolve_params,
)

__all__ = [
    "Settings",
    "get_settings",
    "setup_logging",
    "get_logger",
    "CandleTimeframe",
    "TimeframeProfile",
    "TIMEFRAME_PROFILES",
    "TIMEFRAMES",
    "FALLBACK_TIMEFRAME",
    "MIN_CONFIDENCE",
    "get_timeframe_profile",
    "resolve_params",
]
