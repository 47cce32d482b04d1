"""
gateway/heartbeat.py — Heartbeat Scheduler

Owns the single recurring timer of a Session. Every `interval` ms it sends
a Heartbeat frame through the send callable it was given. Sends are
fire-and-forget: the next tick is scheduled whether or not the previous
heartbeat was acknowledged.

Re-arming with start() always cancels the running timer first, so there
is never more than one live timer per scheduler, even if the server sends
Hello twice on the same connection.
"""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Optional

from websockets.exceptions import ConnectionClosed

from cordlink.exceptions import GatewayNotConnectedError
from cordlink.gateway.protocol import OutboundEnvelope, make_heartbeat
from cordlink.observability.logger import get_logger

log = get_logger(__name__)

SendFn = Callable[[OutboundEnvelope], Awaitable[None]]


class HeartbeatScheduler:
    """
    Asyncio-based periodic heartbeat.

    Args:
        send: Coroutine function that writes one envelope to the socket.
    """

    def __init__(self, send: SendFn) -> None:
        self._send = send
        self._task: Optional[asyncio.Task] = None
        self._interval_ms: Optional[int] = None

        self.beats_sent: int = 0
        self.last_sent: Optional[float] = None      # time.monotonic()
        self.last_ack: Optional[float] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self, interval_ms: int) -> None:
        """
        (Re)arm the timer at the given period. Must be called from inside a
        running event loop.
        """
        if interval_ms <= 0:
            raise ValueError(f"heartbeat interval must be positive, got {interval_ms}")
        self.cancel()
        self._interval_ms = interval_ms
        self._task = asyncio.create_task(self._run(interval_ms / 1000.0))
        log.info("heartbeat.started", interval_ms=interval_ms)

    def cancel(self) -> None:
        """Cancel the running timer without waiting for it to unwind."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            log.debug("heartbeat.cancelled", interval_ms=self._interval_ms)
        self._task = None

    async def stop(self) -> None:
        """Cancel the timer and wait until its task has finished."""
        task = self._task
        self.cancel()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def interval_ms(self) -> Optional[int]:
        return self._interval_ms

    # ── Acknowledgement bookkeeping ───────────────────────────────────────────

    def ack(self) -> None:
        """Record a Heartbeat ACK from the server."""
        self.last_ack = time.monotonic()

    @property
    def latency(self) -> Optional[float]:
        """Seconds between the last heartbeat sent and its ACK, if acknowledged."""
        if self.last_sent is None or self.last_ack is None or self.last_ack < self.last_sent:
            return None
        return self.last_ack - self.last_sent

    # ── Timer loop ────────────────────────────────────────────────────────────

    async def _run(self, period_s: float) -> None:
        while True:
            await asyncio.sleep(period_s)
            # Stamped before the await so an ACK handled mid-send still pairs up
            self.last_sent = time.monotonic()
            try:
                await self._send(make_heartbeat())
            except (ConnectionClosed, GatewayNotConnectedError) as e:
                log.warning("heartbeat.socket_gone", error=str(e))
                return
            except Exception as e:
                log.error(
                    "heartbeat.send_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return
            self.beats_sent += 1
            log.debug("heartbeat.sent", beats=self.beats_sent)
