"""Application settings using Pydantic BaseSettings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENV: Literal["dev", "prod"] = "dev"
    LOG_LEVEL: str = "INFO"

    # Candle retrieval
    CANDLE_DATA_DIR: str = "./data"
    DEFAULT_TIMEFRAME: str = "1day"
    DEFAULT_CANDLE_LIMIT: int = 90
    FORMING_CANDLE_LIMIT: int = 40

    # Detection
    MIN_CANDLES: int = 20


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
