"""Pytest configuration and fixtures."""

import pytest

from stockfeed.config import Settings


@pytest.fixture
def settings():
    """Small, fast, reproducible server configuration."""
    return Settings(tickers=("GOOG", "TSLA"), interval=0.05, random_seed=1234)
