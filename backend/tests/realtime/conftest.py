"""Fixtures for real-time subsystem tests.

Provides an in-memory transport that records every frame a session sends,
so tests can assert on protocol responses and broadcasts without sockets.
"""

import json

import numpy as np
import pytest

from stockfeed.realtime.connections import ConnectionLifecycle, SessionRegistry
from stockfeed.realtime.prices import PriceState

SUPPORTED = ("GOOG", "TSLA")


class RecordingTransport:
    """Transport that keeps sent frames in memory."""

    def __init__(self, is_open: bool = True) -> None:
        self.is_open = is_open
        self.sent: list[str] = []

    async def send_text(self, data: str) -> None:
        self.sent.append(data)

    def messages(self) -> list[dict]:
        return [json.loads(frame) for frame in self.sent]

    def of_type(self, kind: str) -> list[dict]:
        return [m for m in self.messages() if m["type"] == kind]


@pytest.fixture
def supported():
    return SUPPORTED


@pytest.fixture
def make_transport():
    return RecordingTransport


@pytest.fixture
def price_state():
    return PriceState(SUPPORTED, rng=np.random.default_rng(42))


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def lifecycle(registry):
    return ConnectionLifecycle(registry, SUPPORTED)
