"""Features module exports."""

from .aftermath import analyze_aftermath, build_statistics
from .breakout import confirm_candidate, pattern_direction
from .candidates import PatternCandidate
from .dedup import deduplicate
from .forming import FORMING_TYPES, FormingConfig, detect_forming
from .patterns import build_pattern, detect_all_patterns, expand_pattern_filter
from .regression import TrendLine, fit, fit_with_r2, trendline_fit
from .swing import detect_swing_points, filter_peaks, filter_valleys
from .wedges import PivotTrendlineStrategy, RegressionWindowStrategy, WedgeStrategy

__all__ = [
    "detect_swing_points",
    "filter_peaks",
    "filter_valleys",
    "TrendLine",
    "fit",
    "fit_with_r2",
    "trendline_fit",
    "PatternCandidate",
    "WedgeStrategy",
    "RegressionWindowStrategy",
    "PivotTrendlineStrategy",
    "confirm_candidate",
    "pattern_direction",
    "deduplicate",
    "analyze_aftermath",
    "build_statistics",
    "FORMING_TYPES",
    "FormingConfig",
    "detect_forming",
    "build_pattern",
    "detect_all_patterns",
    "expand_pattern_filter",
]
