"""Per-connection session state: identity, subscriptions, lifecycle state."""

from __future__ import annotations

import enum
import logging
from collections.abc import Iterable

from .exceptions import UnsupportedTicker
from .models import encode
from .transport import Transport

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    CONNECTED = "connected"
    IDENTIFIED = "identified"
    CLOSED = "closed"


class SubscriptionRegistry:
    """Set of tickers one session has subscribed to.

    Each Session owns its own instance, so no session can read or mutate
    another's subscriptions. The server never filters broadcasts by this set;
    it exists as acknowledged client state.
    """

    def __init__(self, supported: Iterable[str]) -> None:
        self._supported = frozenset(supported)
        self._tickers: set[str] = set()

    def subscribe(self, ticker: str) -> None:
        """Add a ticker. Idempotent. Raises UnsupportedTicker if unknown."""
        if ticker not in self._supported:
            raise UnsupportedTicker(ticker)
        self._tickers.add(ticker)

    def unsubscribe(self, ticker: str) -> None:
        """Remove a ticker if present. No-op otherwise."""
        self._tickers.discard(ticker)

    def list(self) -> frozenset[str]:
        return frozenset(self._tickers)

    def __len__(self) -> int:
        return len(self._tickers)

    def __contains__(self, ticker: object) -> bool:
        return ticker in self._tickers


class Session:
    """Server-side state for one live connection.

    Identity and subscriptions change only in response to messages from this
    session. Once closed, every send is a no-op.
    """

    def __init__(self, session_id: int, transport: Transport, supported: Iterable[str]) -> None:
        self.id = session_id
        self.transport = transport
        self.identity: str | None = None
        self.subscriptions = SubscriptionRegistry(supported)
        self.state = SessionState.CONNECTED

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def writable(self) -> bool:
        """True if a send right now would reach the client."""
        return not self.closed and self.transport.is_open

    def identify(self, name: str | None) -> None:
        self.identity = name
        if not self.closed:
            self.state = SessionState.IDENTIFIED

    def close(self) -> None:
        self.state = SessionState.CLOSED

    async def send(self, message: dict) -> bool:
        """Encode and send one frame. Returns False if the send was skipped."""
        return await self.send_text(encode(message))

    async def send_text(self, data: str) -> bool:
        if not self.writable:
            return False
        await self.transport.send_text(data)
        return True

    def __repr__(self) -> str:
        return (
            f"Session(id={self.id}, state={self.state.value}, "
            f"identity={self.identity!r}, subscriptions={sorted(self.subscriptions.list())})"
        )
