"""Errors raised by the real-time subsystem.

Both concrete errors are recoverable: the protocol layer turns them into
``{"type": "error", ...}`` responses for the originating session only.
"""

from __future__ import annotations

INVALID_JSON = "Invalid JSON"
UNKNOWN_MESSAGE_TYPE = "Unknown message type"
UNSUPPORTED_TICKER = "Unsupported ticker"


class StreamError(Exception):
    """Base class for real-time subsystem errors."""

    client_message: str = UNKNOWN_MESSAGE_TYPE


class DecodeError(StreamError):
    """Inbound frame is not JSON, or is JSON but not a recognised message."""

    def __init__(self, client_message: str, detail: str = "") -> None:
        super().__init__(detail or client_message)
        self.client_message = client_message


class UnsupportedTicker(StreamError):
    """Ticker is not in the server's fixed supported set."""

    client_message = UNSUPPORTED_TICKER

    def __init__(self, ticker: object) -> None:
        super().__init__(f"Unsupported ticker: {ticker!r}")
        self.ticker = ticker
