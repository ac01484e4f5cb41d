"""Pytest configuration and fixtures."""

import numpy as np
import pandas as pd
import pytest


def make_frame(closes, spread: float = 0.5, start: str = "2024-01-01", freq: str = "D") -> pd.DataFrame:
    """Build an OHLC frame around a close series with a fixed high/low spread."""
    close = np.asarray(closes, dtype=float)
    n = len(close)
    dates = pd.date_range(start, periods=n, freq=freq)
    return pd.DataFrame({
        "open": close,
        "high": close + spread,
        "low": close - spread,
        "close": close,
        "volume": np.full(n, 1_000_000.0),
    }, index=dates)


def piecewise(*legs: tuple[int, float]) -> np.ndarray:
    """
    Linear path through (bar index, price) anchors.

    piecewise((0, 90), (10, 100), (25, 90)) rises to 100 at bar 10 and
    falls back to 90 at bar 25.
    """
    xs = [x for x, _ in legs]
    ys = [y for _, y in legs]
    return np.interp(np.arange(xs[-1] + 1), xs, ys)


@pytest.fixture
def random_walk_data():
    """Generate noisy random-walk OHLCV data."""
    np.random.seed(42)
    n = 120
    dates = pd.date_range("2024-01-01", periods=n, freq="D")
    close = 100 + np.cumsum(np.random.randn(n))

    return pd.DataFrame({
        "open": close - np.random.rand(n) * 0.5,
        "high": close + abs(np.random.randn(n)),
        "low": close - abs(np.random.randn(n)),
        "close": close,
        "volume": np.random.randint(1000000, 5000000, n),
    }, index=dates)


@pytest.fixture
def double_top_data():
    """
    Double top: peaks at bars 10 and 40 (100), valley at 25 (90), close of
    88 at bar 45 breaking the neckline, then a slow drift lower.
    """
    closes = piecewise((0, 90), (10, 100), (25, 90), (40, 100))
    closes = np.concatenate([closes, [97.6, 95.2, 92.8, 90.4, 88.0]])
    drift = 88.0 - 0.3 * np.arange(1, 15)
    return make_frame(np.concatenate([closes, drift]))


@pytest.fixture
def head_and_shoulders_data():
    """Shoulders at bars 10 and 50 (100), head at 30 (110), neckline at 90, breakdown to 80."""
    closes = piecewise((0, 90), (10, 100), (20, 90), (30, 110), (40, 90), (50, 100), (60, 80))
    return make_frame(closes)


@pytest.fixture
def triple_top_data():
    """Three equal peaks at bars 10, 30 and 50 with reactions at 90."""
    closes = piecewise((0, 90), (10, 100), (20, 90), (30, 100), (40, 90), (50, 100), (60, 90))
    return make_frame(closes)


@pytest.fixture
def short_data():
    """Nineteen candles, one short of the minimum."""
    return make_frame(np.linspace(100, 110, 19))
