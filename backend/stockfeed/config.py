"""Process-wide settings, read once from the environment at startup."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_TICKERS: tuple[str, ...] = ("GOOG", "TSLA", "AMZN", "META", "NVDA")


class Settings(BaseModel):
    """Server configuration. Immutable once built; no runtime reconfiguration."""

    model_config = {"frozen": True}

    tickers: tuple[str, ...] = DEFAULT_TICKERS
    interval: float = Field(default=1.0, gt=0)
    seed_low: float = Field(default=100.0, gt=0)
    seed_high: float = Field(default=1000.0, gt=0)
    step: float = Field(default=1.0, ge=0)
    floor: float = Field(default=0.01, gt=0)
    random_seed: int | None = None
    host: str = "0.0.0.0"
    port: int = Field(default=4000, ge=0, le=65535)
    log_level: str = "INFO"

    @field_validator("tickers")
    @classmethod
    def _unique_tickers(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if not value:
            raise ValueError("at least one ticker is required")
        if len(set(value)) != len(value):
            raise ValueError(f"duplicate tickers in {list(value)}")
        return value

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return value.strip().upper()

    @model_validator(mode="after")
    def _seed_range(self) -> "Settings":
        if self.seed_low >= self.seed_high:
            raise ValueError("seed_low must be below seed_high")
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from STOCKFEED_* environment variables.

        Unset or blank variables fall back to the field defaults.
        """
        raw_tickers = os.getenv("STOCKFEED_TICKERS", "")
        tickers = [t.strip() for t in raw_tickers.split(",") if t.strip()]

        env = {
            "interval": os.getenv("STOCKFEED_INTERVAL"),
            "seed_low": os.getenv("STOCKFEED_SEED_LOW"),
            "seed_high": os.getenv("STOCKFEED_SEED_HIGH"),
            "step": os.getenv("STOCKFEED_STEP"),
            "floor": os.getenv("STOCKFEED_FLOOR"),
            "random_seed": os.getenv("STOCKFEED_RANDOM_SEED"),
            "host": os.getenv("STOCKFEED_HOST"),
            "port": os.getenv("STOCKFEED_PORT"),
            "log_level": os.getenv("STOCKFEED_LOG_LEVEL"),
        }
        values = {key: raw.strip() for key, raw in env.items() if raw and raw.strip()}
        if tickers:
            values["tickers"] = tuple(tickers)

        return cls.model_validate(values)


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
