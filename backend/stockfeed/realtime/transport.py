"""Writable side of a client connection, as seen by a Session."""

from __future__ import annotations

from typing import Protocol

from fastapi import WebSocket
from fastapi.websockets import WebSocketState


class Transport(Protocol):
    """Anything a Session can push text frames into."""

    @property
    def is_open(self) -> bool: ...

    async def send_text(self, data: str) -> None: ...


class WebSocketTransport:
    """Transport backed by a FastAPI (Starlette) WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self._ws = websocket

    @property
    def is_open(self) -> bool:
        return (
            self._ws.client_state == WebSocketState.CONNECTED
            and self._ws.application_state == WebSocketState.CONNECTED
        )

    async def send_text(self, data: str) -> None:
        await self._ws.send_text(data)

    @property
    def peer(self) -> str:
        client = self._ws.client
        return f"{client.host}:{client.port}" if client else "unknown"
