"""
Clock pause controller.

Owns the single "may the match clock advance" flag for a session, the reason
it is suspended, and at most one pending auto-resume timer. The controller
instance is the session's pause context; nothing here is module-global.
"""
import asyncio
import functools
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from actionbet.config import (
    MAX_PAUSE_TIMEOUT_MS, MAX_COUNTDOWN_S, RESUME_COUNTDOWN_S, TIMEOUT_WARNING_TEXT,
)
from actionbet.countdown import ResumeCountdown
from actionbet.scheduler import Scheduler, TimerHandle

log = logging.getLogger("actionbet.pause")


class PauseReason(Enum):
    BETTING_OPPORTUNITY = "BETTING_OPPORTUNITY"
    MATCH_END           = "MATCH_END"
    MANUAL              = "MANUAL"


@dataclass(frozen=True)
class PauseInfo:
    """Point-in-time copy of the pause state."""
    active: bool = False
    reason: Optional[PauseReason] = None
    started_at: Optional[float] = None
    auto_resume_in_ms: Optional[float] = None
    resuming: bool = False


def _check_timeout(timeout_ms: float) -> None:
    if not math.isfinite(timeout_ms) or timeout_ms < 0:
        raise ValueError(f"pause timeout must be a finite number >= 0, got {timeout_ms}")


def _notify(fn: Optional[Callable], *args) -> None:
    if fn is None:
        return
    try:
        fn(*args)
    except Exception:
        log.exception("pause listener %r failed", fn)


class PauseController:
    """
    pause()/resume() are the only mutators of the pause state.

    Invariant: when not active, reason, started_at and the pending
    auto-resume are all None.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        countdown: Optional[ResumeCountdown] = None,
        *,
        max_timeout_ms: float = MAX_PAUSE_TIMEOUT_MS,
        max_countdown_s: int = MAX_COUNTDOWN_S,
    ):
        self.scheduler = scheduler
        self.countdown = countdown or ResumeCountdown(scheduler)
        self.max_timeout_ms = max_timeout_ms
        self.max_countdown_s = max_countdown_s

        self._active = False
        self._reason: Optional[PauseReason] = None
        self._started_at: Optional[float] = None
        self._pending: Optional[TimerHandle] = None
        self._on_timeout: Optional[Callable[[], None]] = None
        self._timer_token = 0
        self._countdown_task: Optional[asyncio.Task] = None

        self._on_timeout_warning: Optional[Callable[[str], None]] = None
        self._on_countdown_tick: Optional[Callable[[int], None]] = None
        self._resume_listeners: list[Callable[[PauseReason, str], None]] = []

        self.pause_count = 0
        self.resume_count = 0

    # ── Reads ─────────────────────────────────────────────────────

    def is_paused(self) -> bool:
        return self._active

    def is_resuming(self) -> bool:
        return self._countdown_task is not None and not self._countdown_task.done()

    def has_pending_timeout(self) -> bool:
        return self._pending is not None and self._pending.pending

    def info(self) -> PauseInfo:
        return PauseInfo(
            active=self._active,
            reason=self._reason,
            started_at=self._started_at,
            auto_resume_in_ms=self.scheduler.remaining(self._pending),
            resuming=self.is_resuming(),
        )

    def pause_duration_ms(self) -> float:
        if not self._active or self._started_at is None:
            return 0.0
        return self.scheduler.now() - self._started_at

    # ── Listeners ─────────────────────────────────────────────────

    def set_timeout_warning_callback(self, callback: Optional[Callable[[str], None]]):
        """Called with a short message whenever an auto-resume fires."""
        if callback is not None and not callable(callback):
            raise TypeError("timeout warning callback must be callable")
        self._on_timeout_warning = callback

    def set_countdown_callback(self, callback: Optional[Callable[[int], None]]):
        """Called with each remaining second of a resume countdown."""
        if callback is not None and not callable(callback):
            raise TypeError("countdown callback must be callable")
        self._on_countdown_tick = callback

    def add_resume_listener(self, callback: Callable[[PauseReason, str], None]):
        if not callable(callback):
            raise TypeError("resume listener must be callable")
        self._resume_listeners.append(callback)

    # ── Pause ─────────────────────────────────────────────────────

    def pause(
        self,
        reason: PauseReason,
        timeout_ms: Optional[float] = None,
        on_timeout: Optional[Callable[[], None]] = None,
    ) -> bool:
        """Suspend the clock.

        Returns False (and changes nothing) if already paused, unless a resume
        countdown is in flight: the new pause then takes precedence and the
        countdown is cancelled. When `timeout_ms > 0` an auto-resume is armed;
        it resumes without countdown, or calls `on_timeout` instead if given.
        """
        reason = PauseReason(reason)
        if timeout_ms is not None:
            _check_timeout(timeout_ms)

        if self._active:
            if not self.is_resuming():
                log.warning("already paused (%s) — ignoring pause for %s",
                            self._reason.value, reason.value)
                return False
            log.info("pause for %s arrived mid-countdown — cancelling resume of %s",
                     reason.value, self._reason.value)
            self._cancel_countdown()
            self._disarm()

        self._active = True
        self._reason = reason
        self._started_at = self.scheduler.now()
        self.pause_count += 1

        if timeout_ms:
            self._arm(timeout_ms, on_timeout)

        log.info("clock paused: %s (timeout=%s)", reason.value,
                 f"{timeout_ms:.0f}ms" if timeout_ms else "none")
        return True

    def clear_pending_timeout(self) -> bool:
        """Cancel the pending auto-resume, leaving the clock paused."""
        handle = self._pending
        self._pending = None
        self._on_timeout = None
        cancelled = self.scheduler.cancel(handle)
        if cancelled:
            log.debug("pending auto-resume cleared")
        return cancelled

    def rearm_timeout(
        self,
        timeout_ms: float,
        on_timeout: Optional[Callable[[], None]] = None,
    ) -> bool:
        """Replace the auto-resume of the current pause."""
        _check_timeout(timeout_ms)
        if not self._active or self.is_resuming():
            return False
        self._disarm()
        self._arm(timeout_ms, on_timeout)
        log.debug("auto-resume re-armed: %.0fms (%s)", timeout_ms, self._reason.value)
        return True

    def _arm(self, timeout_ms: float, on_timeout: Optional[Callable[[], None]]) -> None:
        if timeout_ms > self.max_timeout_ms:
            log.warning("pause timeout %.0fms too large, capping at %.0fms",
                        timeout_ms, self.max_timeout_ms)
            timeout_ms = self.max_timeout_ms
        self._timer_token += 1
        self._on_timeout = on_timeout
        self._pending = self.scheduler.schedule(
            timeout_ms, functools.partial(self._auto_resume, self._timer_token),
        )

    def _disarm(self) -> None:
        self.scheduler.cancel(self._pending)
        self._pending = None
        self._on_timeout = None

    def _auto_resume(self, token: int) -> None:
        if token != self._timer_token or self._pending is None:
            log.debug("stale auto-resume ignored")
            return
        on_timeout = self._on_timeout
        self._pending = None
        self._on_timeout = None
        if not self._active:
            return

        log.info("auto-resume fired after %.0fms (%s)",
                 self.pause_duration_ms(), self._reason.value)
        _notify(self._on_timeout_warning, TIMEOUT_WARNING_TEXT)

        if on_timeout is None:
            self.force_resume("timeout")
            return
        try:
            on_timeout()
        except Exception:
            log.exception("pause timeout handler failed — forcing resume")
            self.force_resume("timeout fallback")

    # ── Resume ────────────────────────────────────────────────────

    async def resume(
        self,
        with_countdown: bool = True,
        countdown_seconds: int = RESUME_COUNTDOWN_S,
    ) -> bool:
        """Resume the clock, optionally after a countdown.

        Returns True once the clock is running. Returns False if the countdown
        was cancelled by a newer pause, which then owns the pause state.
        """
        if countdown_seconds < 0:
            raise ValueError(f"countdown seconds must be >= 0, got {countdown_seconds}")
        if not self._active:
            log.debug("resume requested but clock is not paused")
            return True

        self.clear_pending_timeout()

        if not with_countdown or countdown_seconds <= 0:
            return self.force_resume("manual")

        if countdown_seconds > self.max_countdown_s:
            log.warning("countdown %ds too long, capping at %ds",
                        countdown_seconds, self.max_countdown_s)
            countdown_seconds = self.max_countdown_s

        task = self._countdown_task
        if task is None or task.done():
            log.info("starting %ds resume countdown (%s)",
                     countdown_seconds, self._reason.value)
            task = self.countdown.run(
                countdown_seconds,
                on_tick=self._on_countdown_tick,
                on_complete=self._countdown_finished,
            )
            self._countdown_task = task
        else:
            log.debug("resume countdown already running — joining it")

        try:
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            log.info("resume countdown superseded (paused=%s reason=%s)",
                     self._active, self._reason.value if self._reason else None)
        except Exception:
            log.exception("resume countdown failed — forcing resume")
            self.force_resume("countdown error")
        return not self._active

    def force_resume(self, cause: str = "forced") -> bool:
        """Resume immediately: no countdown, cancels one already running."""
        if not self._active:
            return True
        self._disarm()
        self._cancel_countdown()
        self._finish(cause)
        return True

    def _countdown_finished(self) -> None:
        if asyncio.current_task() is not self._countdown_task:
            log.debug("stale countdown completion ignored")
            return
        self._countdown_task = None
        self._finish("countdown")

    def _cancel_countdown(self) -> None:
        task = self._countdown_task
        self._countdown_task = None
        if task is not None and not task.done():
            task.cancel()

    def _finish(self, cause: str) -> None:
        if not self._active:
            return
        reason = self._reason
        paused_for = self.pause_duration_ms()
        self._disarm()
        self._active = False
        self._reason = None
        self._started_at = None
        self.resume_count += 1
        log.info("clock resumed (%s) after %.0fms paused for %s",
                 cause, paused_for, reason.value)
        for listener in list(self._resume_listeners):
            _notify(listener, reason, cause)

    def reset(self) -> None:
        """Drop all pause state without notifying listeners."""
        self._disarm()
        self._cancel_countdown()
        self._active = False
        self._reason = None
        self._started_at = None
        self.pause_count = 0
        self.resume_count = 0
        log.info("pause state reset")
