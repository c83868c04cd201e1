"""stockfeed: simulated stock prices streamed to browsers over WebSocket."""

__version__ = "0.1.0"
