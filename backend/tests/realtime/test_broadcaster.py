"""Tests for BroadcastScheduler."""

import asyncio
from unittest.mock import patch

import pytest

from stockfeed.realtime.broadcaster import BroadcastScheduler

EPSILON = 1e-9


class FailingTransport:
    """Transport whose writes always fail."""

    is_open = True

    async def send_text(self, data: str) -> None:
        raise ConnectionResetError("peer went away")


class StalledTransport:
    """Transport whose writes never complete, like a peer that stopped reading."""

    is_open = True

    async def send_text(self, data: str) -> None:
        await asyncio.Event().wait()


@pytest.mark.asyncio
class TestBroadcastTick:
    """One tick, driven directly."""

    async def test_every_open_session_gets_identical_snapshot(
        self, price_state, registry, lifecycle, make_transport
    ):
        """All sessions receive the same payload from the same tick."""
        transports = [make_transport() for _ in range(3)]
        for transport in transports:
            lifecycle.open(transport)
        scheduler = BroadcastScheduler(price_state, registry)

        await scheduler.tick()

        frames = [t.sent for t in transports]
        assert all(len(f) == 1 for f in frames)
        assert frames[0] == frames[1] == frames[2]

    async def test_snapshot_covers_all_tickers_regardless_of_subscriptions(
        self, price_state, registry, lifecycle, make_transport, supported
    ):
        """Broadcasts are not filtered by subscriptions."""
        transport = make_transport()
        session = lifecycle.open(transport)
        session.subscriptions.subscribe("GOOG")
        scheduler = BroadcastScheduler(price_state, registry)

        await scheduler.tick()

        (message,) = transport.of_type("price_updates")
        assert [u["ticker"] for u in message["updates"]] == list(supported)

    async def test_snapshot_matches_advanced_state(self, price_state, registry):
        """The snapshot reflects prices after every ticker advanced once."""
        before = price_state.prices()
        scheduler = BroadcastScheduler(price_state, registry, clock=lambda: 1234)

        snapshot = await scheduler.tick()

        assert {t.ticker: t.price for t in snapshot.ticks} == price_state.prices()
        for tick in snapshot.ticks:
            assert tick.ts == 1234
            assert tick.price > 0
            assert abs(tick.price - before[tick.ticker]) <= 1.0 + EPSILON

    async def test_closed_session_receives_nothing(
        self, price_state, registry, lifecycle, make_transport
    ):
        """A session closed before the tick gets zero messages from it."""
        closed_transport = make_transport()
        open_transport = make_transport()
        closed = lifecycle.open(closed_transport)
        lifecycle.open(open_transport)
        lifecycle.close(closed.id)
        scheduler = BroadcastScheduler(price_state, registry)

        await scheduler.tick()

        assert closed_transport.sent == []
        assert len(open_transport.of_type("price_updates")) == 1

    async def test_unwritable_transport_skipped(
        self, price_state, registry, lifecycle, make_transport
    ):
        """Sessions whose transport is not open are skipped silently."""
        dead = make_transport(is_open=False)
        lifecycle.open(dead)
        scheduler = BroadcastScheduler(price_state, registry)

        await scheduler.tick()

        assert dead.sent == []

    async def test_send_failure_is_isolated(
        self, price_state, registry, lifecycle, make_transport
    ):
        """One failing session does not stop delivery to others."""
        lifecycle.open(FailingTransport())
        healthy = make_transport()
        lifecycle.open(healthy)
        scheduler = BroadcastScheduler(price_state, registry)

        await scheduler.tick()

        assert len(healthy.of_type("price_updates")) == 1

    async def test_tick_without_sessions(self, price_state, registry):
        """A tick with nobody connected still advances and records the snapshot."""
        scheduler = BroadcastScheduler(price_state, registry)
        snapshot = await scheduler.tick()
        assert scheduler.latest is snapshot
        assert scheduler.tick_count == 1

    async def test_scenario_subscribe_then_tick(
        self, price_state, registry, lifecycle, make_transport
    ):
        """Subscribed to GOOG only, the client still gets GOOG and TSLA."""
        from stockfeed.realtime.protocol import SessionProtocol

        transport = make_transport()
        session = lifecycle.open(transport)
        protocol = SessionProtocol(session, price_state.tickers)
        scheduler = BroadcastScheduler(price_state, registry)

        await protocol.handle('{"type": "get_supported"}')
        await protocol.handle('{"type": "subscribe", "ticker": "GOOG"}')
        await scheduler.tick()
        await protocol.handle('{"type": "subscribe", "ticker": "XOM"}')

        messages = transport.messages()
        assert messages[0] == {"type": "supported", "supported": ["GOOG", "TSLA"]}
        assert messages[1] == {"type": "subscribed", "ticker": "GOOG"}
        assert messages[2]["type"] == "price_updates"
        assert [u["ticker"] for u in messages[2]["updates"]] == ["GOOG", "TSLA"]
        assert messages[3] == {"type": "error", "message": "Unsupported ticker"}


@pytest.mark.asyncio
class TestBroadcastScheduler:
    """Background task lifecycle."""

    async def test_ticks_over_time(self, price_state, registry, lifecycle, make_transport):
        """The running scheduler pushes snapshots periodically."""
        transport = make_transport()
        lifecycle.open(transport)
        scheduler = BroadcastScheduler(price_state, registry, interval=0.01)

        await scheduler.start()
        await asyncio.sleep(0.1)
        await scheduler.stop()

        # stop() may land after delivery but before the tick is counted.
        assert len(transport.of_type("price_updates")) >= scheduler.tick_count >= 2

    async def test_first_tick_waits_one_interval(self, price_state, registry):
        """Nothing is broadcast immediately on start."""
        scheduler = BroadcastScheduler(price_state, registry, interval=60.0)
        await scheduler.start()
        await asyncio.sleep(0)
        assert scheduler.tick_count == 0
        await scheduler.stop()

    async def test_stop_is_idempotent(self, price_state, registry):
        """stop() can be called repeatedly, even before start()."""
        scheduler = BroadcastScheduler(price_state, registry)
        await scheduler.stop()
        await scheduler.start()
        assert scheduler.running
        await scheduler.stop()
        await scheduler.stop()
        assert not scheduler.running

    async def test_start_twice_keeps_one_task(self, price_state, registry):
        """A second start() does not spawn another loop."""
        scheduler = BroadcastScheduler(price_state, registry, interval=60.0)
        await scheduler.start()
        task = scheduler._task
        await scheduler.start()
        assert scheduler._task is task
        await scheduler.stop()

    async def test_tick_failure_does_not_stop_loop(self, price_state, registry):
        """An exception inside a tick is logged and the loop keeps going."""
        scheduler = BroadcastScheduler(price_state, registry, interval=0.01)
        calls = 0
        original = price_state.advance_all

        def flaky():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise RuntimeError("boom")
            return original()

        with patch.object(price_state, "advance_all", side_effect=flaky):
            await scheduler.start()
            await asyncio.sleep(0.1)
            assert scheduler.running
            await scheduler.stop()

        assert calls >= 2
        assert scheduler.tick_count >= 1

    async def test_session_closed_mid_run_stops_receiving(
        self, price_state, registry, lifecycle, make_transport
    ):
        """After close, no further ticks reach the session."""
        transport = make_transport()
        session = lifecycle.open(transport)
        scheduler = BroadcastScheduler(price_state, registry, interval=0.01)

        await scheduler.start()
        await asyncio.sleep(0.05)
        lifecycle.close(session.id)
        received = len(transport.sent)
        await asyncio.sleep(0.05)
        await scheduler.stop()

        assert len(transport.sent) == received

    async def test_stalled_session_does_not_block_others(
        self, price_state, registry, lifecycle, make_transport
    ):
        """A write that never finishes is evicted; other clients keep ticking."""
        stalled = lifecycle.open(StalledTransport())
        healthy = make_transport()
        lifecycle.open(healthy)
        scheduler = BroadcastScheduler(
            price_state, registry, interval=0.01, evict=lifecycle.close
        )

        await scheduler.start()
        await asyncio.sleep(0.3)
        await scheduler.stop()

        assert stalled.id not in registry
        assert stalled.closed
        assert len(healthy.of_type("price_updates")) >= 10


@pytest.mark.asyncio
class TestDeliveryTimeout:
    """Per-session send bounds."""

    async def test_tick_returns_despite_stalled_session(
        self, price_state, registry, lifecycle, make_transport
    ):
        """tick() finishes after send_timeout and still reaches healthy sessions."""
        stalled = lifecycle.open(StalledTransport())
        healthy = make_transport()
        lifecycle.open(healthy)
        scheduler = BroadcastScheduler(price_state, registry, send_timeout=0.05)

        await asyncio.wait_for(scheduler.tick(), timeout=1.0)

        assert len(healthy.of_type("price_updates")) == 1
        assert stalled.closed
        assert scheduler.tick_count == 1

    async def test_evicted_session_skipped_on_next_tick(
        self, price_state, registry, lifecycle
    ):
        """Once evicted, a stalled session is not written to again."""
        stalled = lifecycle.open(StalledTransport())
        evicted = []

        def evict(session_id):
            evicted.append(session_id)
            lifecycle.close(session_id)

        scheduler = BroadcastScheduler(
            price_state, registry, send_timeout=0.02, evict=evict
        )

        await scheduler.tick()
        await asyncio.wait_for(scheduler.tick(), timeout=0.5)

        assert evicted == [stalled.id]
        assert len(registry) == 0
