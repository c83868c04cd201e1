"""WebSocket endpoint for live prices, plus read-only HTTP views."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from .broadcaster import BroadcastScheduler
from .connections import ConnectionLifecycle
from .models import Snapshot
from .prices import PriceState
from .protocol import SessionProtocol
from .transport import WebSocketTransport

logger = logging.getLogger(__name__)


def create_stream_router(
    price_state: PriceState,
    lifecycle: ConnectionLifecycle,
    scheduler: BroadcastScheduler,
) -> APIRouter:
    """Create the streaming router bound to one set of server components.

    The factory injects state without module globals, so several apps can
    coexist in one process (tests do this).
    """
    router = APIRouter(tags=["streaming"])
    supported = price_state.tickers

    async def price_socket(websocket: WebSocket) -> None:
        """Bidirectional price stream.

        The client sends control frames (login, get_supported, subscribe,
        unsubscribe) and gets one response each. Independently, the scheduler
        pushes a ``price_updates`` frame every tick. The session is
        deregistered as soon as the socket closes.
        """
        await websocket.accept()
        transport = WebSocketTransport(websocket)
        session = lifecycle.open(transport)
        protocol = SessionProtocol(session, supported)
        logger.debug("Session %d peer %s", session.id, transport.peer)

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                await protocol.handle(raw)
                if session.closed:
                    # Evicted by the broadcaster for a stalled write.
                    break
        except WebSocketDisconnect:
            pass
        finally:
            lifecycle.close(session.id)

    router.add_api_websocket_route("/ws", price_socket)
    router.add_api_websocket_route("/", price_socket)

    @router.get("/api/supported")
    async def get_supported() -> dict:
        return {"supported": list(supported)}

    @router.get("/api/prices")
    async def get_prices() -> dict:
        """Latest broadcast snapshot, or current prices before the first tick."""
        snapshot = scheduler.latest or Snapshot.from_prices(price_state.prices())
        return snapshot.to_message()

    @router.get("/api/health")
    async def health() -> dict:
        return {
            "status": "ok",
            "sessions": len(lifecycle.registry),
            "ticks": scheduler.tick_count,
            "running": scheduler.running,
        }

    return router
