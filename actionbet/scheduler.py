"""
Timer scheduling.

Everything time-dependent in the pause engine goes through a Scheduler:
`now()` in milliseconds, `schedule(delay_ms, cb)`, `cancel(handle)` and an
awaitable `sleep(delay_ms)`. LoopScheduler runs on the asyncio event loop;
VirtualScheduler only moves when told to, so timing can be driven by hand.
"""
import asyncio
import heapq
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

log = logging.getLogger("actionbet.scheduler")


# ═══════════════════════════════════════════════════════════════════════
#  Timer handle
# ═══════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class TimerHandle:
    """A single armed timer. `due_at` is in scheduler milliseconds."""
    due_at: float
    callback: Callable[[], None]
    seq: int = 0
    cancelled: bool = False
    fired: bool = False
    native: Optional[asyncio.TimerHandle] = field(default=None, repr=False)

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)


class Scheduler:
    """Interface shared by the loop-backed and virtual schedulers."""

    def now(self) -> float:
        raise NotImplementedError

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def cancel(self, handle: Optional[TimerHandle]) -> bool:
        raise NotImplementedError

    async def sleep(self, delay_ms: float) -> None:
        raise NotImplementedError

    def remaining(self, handle: Optional[TimerHandle]) -> Optional[float]:
        """Milliseconds until `handle` fires, or None if it is not pending."""
        if handle is None or not handle.pending:
            return None
        return max(0.0, handle.due_at - self.now())


def _run_callback(handle: TimerHandle) -> None:
    handle.fired = True
    try:
        handle.callback()
    except Exception:
        log.exception("timer callback failed (due_at=%.0f)", handle.due_at)


# ═══════════════════════════════════════════════════════════════════════
#  asyncio-backed scheduler
# ═══════════════════════════════════════════════════════════════════════

class LoopScheduler(Scheduler):
    """Wall-clock timers on the running event loop (monotonic clock)."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time() * 1000.0

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        delay_ms = max(0.0, delay_ms)
        handle = TimerHandle(due_at=self.now() + delay_ms, callback=callback)
        handle.native = self.loop.call_later(delay_ms / 1000.0, _run_callback, handle)
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> bool:
        if handle is None or not handle.pending:
            return False
        handle.cancelled = True
        if handle.native is not None:
            handle.native.cancel()
        return True

    async def sleep(self, delay_ms: float) -> None:
        await asyncio.sleep(max(0.0, delay_ms) / 1000.0)


# ═══════════════════════════════════════════════════════════════════════
#  Virtual scheduler
# ═══════════════════════════════════════════════════════════════════════

class VirtualScheduler(Scheduler):
    """
    Manually advanced clock.

    Timers fire in due order during `advance()`. Between firings the event
    loop is given a few passes so tasks woken by a timer (countdowns,
    resume coroutines) run before the clock moves on.
    """

    SETTLE_PASSES = 20

    def __init__(self, start_ms: float = 0.0):
        self._now = start_ms
        self._seq = 0
        self._timers: list[tuple[float, int, TimerHandle]] = []

    def now(self) -> float:
        return self._now

    def schedule(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        self._seq += 1
        handle = TimerHandle(
            due_at=self._now + max(0.0, delay_ms), callback=callback, seq=self._seq,
        )
        heapq.heappush(self._timers, (handle.due_at, handle.seq, handle))
        return handle

    def cancel(self, handle: Optional[TimerHandle]) -> bool:
        if handle is None or not handle.pending:
            return False
        handle.cancelled = True
        return True

    async def sleep(self, delay_ms: float) -> None:
        fut = asyncio.get_running_loop().create_future()

        def _wake() -> None:
            if not fut.done():
                fut.set_result(None)

        handle = self.schedule(delay_ms, _wake)
        try:
            await fut
        finally:
            self.cancel(handle)

    @property
    def pending_count(self) -> int:
        return sum(1 for _, _, h in self._timers if h.pending)

    def next_due(self) -> Optional[float]:
        self._drop_dead()
        return self._timers[0][0] if self._timers else None

    def _drop_dead(self) -> None:
        while self._timers and not self._timers[0][2].pending:
            heapq.heappop(self._timers)

    async def settle(self) -> None:
        for _ in range(self.SETTLE_PASSES):
            await asyncio.sleep(0)

    async def advance(self, delta_ms: float) -> None:
        """Move the clock forward by `delta_ms`, firing every timer due on the way."""
        if delta_ms < 0:
            raise ValueError(f"cannot move a clock backwards ({delta_ms}ms)")
        target = self._now + delta_ms
        await self.settle()
        while True:
            self._drop_dead()
            if not self._timers or self._timers[0][0] > target:
                break
            due_at, _, handle = heapq.heappop(self._timers)
            self._now = max(self._now, due_at)
            _run_callback(handle)
            await self.settle()
        self._now = target
        await self.settle()
