"""
Resume countdown sequencer ("3… 2… 1… Go").
"""
import asyncio
import logging
from typing import Callable, Optional

from actionbet.config import COUNTDOWN_TICK_MS
from actionbet.scheduler import Scheduler

log = logging.getLogger("actionbet.countdown")


def _safe_call(fn: Optional[Callable], *args) -> None:
    if fn is None:
        return
    try:
        fn(*args)
    except Exception:
        log.exception("countdown callback %r failed", fn)


class ResumeCountdown:
    """Ticks `seconds … 1` one scheduler-second apart, then settles.

    `run()` returns the asyncio task; cancelling it stops further ticks and
    `on_complete` is never called.
    """

    def __init__(self, scheduler: Scheduler, tick_ms: float = COUNTDOWN_TICK_MS):
        self.scheduler = scheduler
        self.tick_ms = tick_ms

    def run(
        self,
        seconds: int,
        on_tick: Optional[Callable[[int], None]] = None,
        on_complete: Optional[Callable[[], None]] = None,
    ) -> asyncio.Task:
        if seconds < 0:
            raise ValueError(f"countdown seconds must be >= 0, got {seconds}")
        return asyncio.get_running_loop().create_task(
            self._sequence(int(seconds), on_tick, on_complete),
            name=f"resume_countdown_{seconds}s",
        )

    async def _sequence(self, seconds, on_tick, on_complete) -> None:
        try:
            for remaining in range(seconds, 0, -1):
                log.debug("countdown %d", remaining)
                _safe_call(on_tick, remaining)
                await self.scheduler.sleep(self.tick_ms)
        except asyncio.CancelledError:
            log.info("resume countdown cancelled")
            raise
        _safe_call(on_complete)
