"""Wire-level data models for the price stream."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field


def now_ms() -> int:
    """Current wall-clock time as a millisecond epoch timestamp."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class PriceTick:
    """Immutable price of a single ticker as of one broadcast tick."""

    ticker: str
    price: float
    ts: int  # Unix milliseconds

    def to_dict(self) -> dict:
        return {"ticker": self.ticker, "price": self.price, "ts": self.ts}


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Every supported ticker's price from one tick, in supported-set order.

    All ticks in a snapshot share one timestamp, so every session that
    receives it sees identical values.
    """

    ticks: tuple[PriceTick, ...]
    ts: int = field(default_factory=now_ms)

    @classmethod
    def from_prices(cls, prices: dict[str, float], ts: int | None = None) -> Snapshot:
        """Build a snapshot from an ordered ``{ticker: price}`` mapping."""
        stamp = now_ms() if ts is None else ts
        ticks = tuple(PriceTick(ticker=t, price=p, ts=stamp) for t, p in prices.items())
        return cls(ticks=ticks, ts=stamp)

    @property
    def tickers(self) -> list[str]:
        return [tick.ticker for tick in self.ticks]

    def to_message(self) -> dict:
        """Serialize as the unsolicited ``price_updates`` frame."""
        return {"type": "price_updates", "updates": [tick.to_dict() for tick in self.ticks]}

    def encode(self) -> str:
        return encode(self.to_message())

    def __len__(self) -> int:
        return len(self.ticks)


def encode(message: dict) -> str:
    """Encode an outbound frame as compact JSON text."""
    return json.dumps(message, separators=(",", ":"))


# --- Outbound control responses ---


def login_ack(email: str | None) -> dict:
    return {"type": "login_ack", "email": email}


def supported(tickers: tuple[str, ...] | list[str]) -> dict:
    return {"type": "supported", "supported": list(tickers)}


def subscribed(ticker: str) -> dict:
    return {"type": "subscribed", "ticker": ticker}


def unsubscribed(ticker: str) -> dict:
    return {"type": "unsubscribed", "ticker": ticker}


def error(message: str) -> dict:
    return {"type": "error", "message": message}
