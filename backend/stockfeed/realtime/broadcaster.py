"""Fixed-interval price broadcaster."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .connections import SessionRegistry
from .models import Snapshot, now_ms
from .prices import PriceState
from .session import Session

logger = logging.getLogger(__name__)


class BroadcastScheduler:
    """Advances every price, then pushes one snapshot to every open session.

    Runs a background asyncio task that calls ``tick()`` every ``interval``
    seconds. Each tick is advance-all-then-broadcast-all: no session ever sees
    a partially advanced snapshot, and every session gets the same payload.
    Subscriptions do not filter the broadcast.

    Each delivery is bounded by ``send_timeout`` (one interval by default). A
    session whose write does not finish in time is evicted through ``evict``,
    or closed if no evict callback is given.
    """

    def __init__(
        self,
        price_state: PriceState,
        sessions: SessionRegistry,
        interval: float = 1.0,
        clock: Callable[[], int] = now_ms,
        send_timeout: float | None = None,
        evict: Callable[[int], None] | None = None,
    ) -> None:
        self._prices = price_state
        self._sessions = sessions
        self._interval = interval
        self._clock = clock
        self._send_timeout = interval if send_timeout is None else send_timeout
        self._evict = evict
        self._task: asyncio.Task | None = None
        self._latest: Snapshot | None = None
        self._tick_count = 0

    async def start(self) -> None:
        if self.running:
            logger.warning("Broadcast scheduler already running")
            return
        self._task = asyncio.create_task(self._run_loop(), name="broadcast-scheduler")
        logger.info(
            "Broadcast scheduler started: %d tickers, %.2fs interval",
            len(self._prices),
            self._interval,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Broadcast scheduler stopped after %d ticks", self._tick_count)

    async def tick(self) -> Snapshot:
        """Run one broadcast cycle and return the snapshot that was sent."""
        prices = self._prices.advance_all()
        snapshot = Snapshot.from_prices(prices, ts=self._clock())
        self._latest = snapshot

        payload = snapshot.encode()
        targets = self._sessions.sessions()
        results = await asyncio.gather(*(self._deliver(s, payload) for s in targets))

        self._tick_count += 1
        logger.debug(
            "Tick %d: delivered to %d/%d sessions",
            self._tick_count,
            sum(results),
            len(targets),
        )
        return snapshot

    @property
    def latest(self) -> Snapshot | None:
        return self._latest

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def interval(self) -> float:
        return self._interval

    # --- Internal ---

    async def _run_loop(self) -> None:
        """First tick fires one interval after start."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.tick()
            except Exception:
                logger.exception("Broadcast tick failed")

    async def _deliver(self, session: Session, payload: str) -> bool:
        """Send to one session; a failure here never affects other sessions."""
        try:
            return await asyncio.wait_for(session.send_text(payload), self._send_timeout)
        except TimeoutError:
            logger.warning(
                "Session %d stalled for %.2fs; evicting", session.id, self._send_timeout
            )
            if self._evict is not None:
                self._evict(session.id)
            else:
                session.close()
            return False
        except Exception as e:
            logger.warning("Delivery to session %d failed: %s", session.id, e)
            return False
