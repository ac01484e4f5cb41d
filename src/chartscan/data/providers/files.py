"""CSV file candle provider."""

from pathlib import Path

import pandas as pd

from chartscan.config import get_logger, get_settings

from .base import CandleProvider, normalize_dataframe

logger = get_logger("data.files")


class CsvCandleProvider(CandleProvider):
    """
    Reads candles from CSV files laid out as ``<root>/<instrument>_<timeframe>.csv``.

    Files need open/high/low/close columns and may carry a ``time`` column,
    which becomes the index.
    """

    def __init__(self, root: str | Path | None = None, time_column: str = "time"):
        self._root = Path(root or get_settings().CANDLE_DATA_DIR)
        self._time_column = time_column

    @property
    def name(self) -> str:
        return "csv"

    def path_for(self, instrument: str, timeframe: str) -> Path:
        """Path of the CSV file holding an instrument's candles."""
        return self._root / f"{instrument.lower()}_{timeframe}.csv"

    def get_candles(self, instrument: str, timeframe: str, count: int) -> pd.DataFrame:
        path = self.path_for(instrument, timeframe)
        if not path.exists():
            raise FileNotFoundError(f"Candle file not found: {path}")

        df = pd.read_csv(path)
        df.columns = df.columns.astype(str).str.lower().str.strip()
        if self._time_column in df.columns:
            df.index = pd.to_datetime(df.pop(self._time_column), utc=True)
        df = normalize_dataframe(df)

        logger.info(f"Loaded {len(df)} candles from {path.name}")
        return df.tail(count)
