"""FastAPI application wiring and server entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import numpy as np
import uvicorn
from fastapi import FastAPI

from stockfeed import __version__
from stockfeed.config import Settings, get_settings
from stockfeed.realtime import (
    BroadcastScheduler,
    ConnectionLifecycle,
    PriceState,
    SessionRegistry,
    create_stream_router,
)

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build an app with its own price state, sessions and scheduler.

    The scheduler runs only while the app's lifespan is active.
    """
    if settings is None:
        settings = get_settings()

    price_state = PriceState(
        settings.tickers,
        seed_low=settings.seed_low,
        seed_high=settings.seed_high,
        step=settings.step,
        floor=settings.floor,
        rng=np.random.default_rng(settings.random_seed),
    )
    registry = SessionRegistry()
    lifecycle = ConnectionLifecycle(registry, price_state.tickers)
    scheduler = BroadcastScheduler(
        price_state, registry, interval=settings.interval, evict=lifecycle.close
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await scheduler.start()
        try:
            yield
        finally:
            # Timer stops before sessions are released.
            await scheduler.stop()
            lifecycle.close_all()

    app = FastAPI(title="stockfeed", version=__version__, lifespan=lifespan)
    app.include_router(create_stream_router(price_state, lifecycle, scheduler))

    app.state.settings = settings
    app.state.price_state = price_state
    app.state.sessions = registry
    app.state.lifecycle = lifecycle
    app.state.scheduler = scheduler
    return app


def run() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    logger.info(
        "WebSocket server listening on ws://%s:%d (tickers: %s)",
        settings.host,
        settings.port,
        ", ".join(settings.tickers),
    )
    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
