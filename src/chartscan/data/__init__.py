"""Data module exports."""

from .providers import (
    CandleProvider,
    CsvCandleProvider,
    FrameCandleProvider,
    candles_to_frame,
    normalize_dataframe,
)

__all__ = [
    "CandleProvider",
    "FrameCandleProvider",
    "CsvCandleProvider",
    "normalize_dataframe",
    "candles_to_frame",
]
