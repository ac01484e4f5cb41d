"""Base candle provider interface."""

from abc import ABC, abstractmethod
from typing import Iterable

import pandas as pd

from chartscan.core.models import Candle

OHLC_COLUMNS = ["open", "high", "low", "close"]


class CandleProvider(ABC):
    """Abstract base class for candle sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    def get_candles(
        self,
        instrument: str,
        timeframe: str,
        count: int,
    ) -> pd.DataFrame:
        """
        Get the most recent candles for an instrument.

        Args:
            instrument: Instrument identifier (e.g. "btc_jpy", "AAPL")
            timeframe: Candle timeframe label (1min ... 1month)
            count: Number of candles wanted

        Returns:
            DataFrame ordered oldest to newest with canonical columns:
                - index: candle open time when known
                - columns: open, high, low, close, volume
        """
        ...


def normalize_dataframe(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalize column names to lowercase, stripped, and order rows by time.

    Args:
        df: Input DataFrame

    Returns:
        DataFrame with normalized column names and a volume column
    """
    if df.empty:
        return df

    # Flatten MultiIndex columns to the field level
    if isinstance(df.columns, pd.MultiIndex):
        df.columns = df.columns.get_level_values(0)

    df.columns = df.columns.astype(str).str.lower().str.strip()

    missing = [c for c in OHLC_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"Candle data missing columns: {missing}")

    if "volume" not in df.columns:
        df["volume"] = 0.0

    if isinstance(df.index, pd.DatetimeIndex):
        df = df.sort_index()

    return df


def candles_to_frame(candles: Iterable[Candle]) -> pd.DataFrame:
    """
    Convert Candle models into the canonical OHLC frame.

    The index is a DatetimeIndex when every candle carries a time,
    otherwise a plain positional index.
    """
    rows = list(candles)
    df = pd.DataFrame(
        {
            "open": [c.open for c in rows],
            "high": [c.high for c in rows],
            "low": [c.low for c in rows],
            "close": [c.close for c in rows],
            "volume": [c.volume for c in rows],
        }
    )
    if rows and all(c.time is not None for c in rows):
        df.index = pd.DatetimeIndex([c.time for c in rows])
    return df
