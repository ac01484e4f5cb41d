"""In-memory candle provider."""

import pandas as pd

from chartscan.config import get_logger

from .base import CandleProvider, normalize_dataframe

logger = get_logger("data.frame")


class FrameCandleProvider(CandleProvider):
    """Serves candles from DataFrames registered per (instrument, timeframe)."""

    def __init__(self, frames: dict[tuple[str, str], pd.DataFrame] | None = None):
        self._frames: dict[tuple[str, str], pd.DataFrame] = {}
        for (instrument, timeframe), df in (frames or {}).items():
            self.add(instrument, timeframe, df)

    @property
    def name(self) -> str:
        return "frame"

    def add(self, instrument: str, timeframe: str, df: pd.DataFrame) -> None:
        """Register candles for an instrument and timeframe."""
        self._frames[(instrument.lower(), timeframe)] = normalize_dataframe(df.copy())

    def get_candles(self, instrument: str, timeframe: str, count: int) -> pd.DataFrame:
        key = (instrument.lower(), timeframe)
        if key not in self._frames:
            raise KeyError(
                f"No candles for {instrument}/{timeframe}. Available: {list(self._frames.keys())}"
            )
        df = self._frames[key]
        logger.debug(f"Serving {min(count, len(df))} of {len(df)} candles for {instrument}/{timeframe}")
        return df.tail(count).copy()
