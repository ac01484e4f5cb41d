"""Candle providers module."""

from .base import CandleProvider, candles_to_frame, normalize_dataframe
from .files import CsvCandleProvider
from .frame import FrameCandleProvider

__all__ = [
    "CandleProvider",
    "normalize_dataframe",
    "candles_to_frame",
    "FrameCandleProvider",
    "CsvCandleProvider",
]
