"""Bounded random-walk price state for the supported tickers."""

from __future__ import annotations

import logging

import numpy as np

logger = logging.getLogger(__name__)


class PriceState:
    """Current price per ticker, advanced by a bounded symmetric random walk.

    Math:
        P(t+1) = max(floor, round(P(t) + U(-step, +step), 2))

    Every stored price has two-decimal precision and is strictly positive.
    The perturbation bound holds after rounding, and the floor clamp can only
    shrink a move, so |P(t+1) - P(t)| <= step.

    Instances share nothing; tests can run several side by side, each with its
    own seeded ``numpy.random.Generator``.
    """

    def __init__(
        self,
        tickers: list[str] | tuple[str, ...],
        *,
        seed_low: float = 100.0,
        seed_high: float = 1000.0,
        step: float = 1.0,
        floor: float = 0.01,
        rng: np.random.Generator | None = None,
    ) -> None:
        if len(set(tickers)) != len(tickers):
            raise ValueError(f"Duplicate tickers: {list(tickers)}")
        if floor <= 0:
            raise ValueError("floor must be positive")

        self._tickers: tuple[str, ...] = tuple(tickers)
        self._seed_low = seed_low
        self._seed_high = seed_high
        self._step = step
        self._floor = floor
        self._rng = rng if rng is not None else np.random.default_rng()
        self._prices: dict[str, float] = {}

        self.initialize()

    # --- Public API ---

    def initialize(self) -> None:
        """Reset every ticker to a random seed price in [seed_low, seed_high)."""
        seeds = self._rng.uniform(self._seed_low, self._seed_high, size=len(self._tickers))
        self._prices = {
            ticker: max(self._floor, round(float(seed), 2))
            for ticker, seed in zip(self._tickers, seeds)
        }
        logger.debug("Seeded %d tickers: %s", len(self._prices), self._prices)

    def advance(self, ticker: str) -> float:
        """Move one ticker by a random step and return its new price.

        Raises KeyError for a ticker outside the supported set.
        """
        current = self._prices[ticker]
        change = float(self._rng.uniform(-self._step, self._step))
        price = max(self._floor, round(current + change, 2))
        self._prices[ticker] = price
        return price

    def advance_all(self) -> dict[str, float]:
        """Advance every ticker exactly once, in supported-set order.

        Returns an ordered copy of the post-advance prices.
        """
        for ticker in self._tickers:
            self.advance(ticker)
        return self.prices()

    def get(self, ticker: str) -> float | None:
        """Current price for a ticker, or None if not supported."""
        return self._prices.get(ticker)

    def prices(self) -> dict[str, float]:
        """Ordered shallow copy of ``{ticker: price}``."""
        return {ticker: self._prices[ticker] for ticker in self._tickers}

    @property
    def tickers(self) -> tuple[str, ...]:
        return self._tickers

    @property
    def floor(self) -> float:
        return self._floor

    def __len__(self) -> int:
        return len(self._tickers)

    def __contains__(self, ticker: object) -> bool:
        return ticker in self._prices
