"""
Opportunity lifecycle orchestrator.

The only component that touches both the pause controller and the
presentation state. Keeps the controller's auto-resume in lock-step with the
opportunity's remaining time across any number of minimize/restore cycles,
and closes the opportunity on decision, expiry or detected corruption.

    CLOSED → OPEN_VISIBLE ⇄ OPEN_MINIMIZED → CLOSED
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

from actionbet.config import (
    OPPORTUNITY_DURATION_MS, RESUME_COUNTDOWN_S, RESCHEDULE_MARGIN_MS,
)
from actionbet.pause import PauseController, PauseReason
from actionbet.presentation import OpportunityPresentation, is_finite_number

log = logging.getLogger("actionbet.orchestrator")


class OpportunityPhase(Enum):
    CLOSED         = "CLOSED"
    OPEN_VISIBLE   = "OPEN_VISIBLE"
    OPEN_MINIMIZED = "OPEN_MINIMIZED"


class CloseReason(Enum):
    DECISION = "DECISION"   # user picked an outcome
    TIMEOUT  = "TIMEOUT"    # duration elapsed
    RECOVERY = "RECOVERY"   # inconsistent state torn down


@dataclass(frozen=True)
class OpportunityClosed:
    """Passed to the close listener (event feed)."""
    reason: CloseReason
    content: Any
    outcome: Any = None
    elapsed_ms: float = 0.0
    was_minimized: bool = False


def _describe(content: Any) -> str:
    return getattr(content, "description", None) or repr(content)


class OpportunityOrchestrator:

    def __init__(
        self,
        controller: PauseController,
        *,
        countdown_seconds: int = RESUME_COUNTDOWN_S,
        reschedule_margin_ms: float = RESCHEDULE_MARGIN_MS,
        on_close: Optional[Callable[[OpportunityClosed], None]] = None,
        on_decision: Optional[Callable[[Any, Any], None]] = None,
    ):
        self.controller = controller
        self.presentation = OpportunityPresentation(controller.scheduler.now)
        self.countdown_seconds = countdown_seconds
        self.reschedule_margin_ms = reschedule_margin_ms
        self.on_close = on_close
        self.on_decision = on_decision

        self._tasks: set[asyncio.Task] = set()
        self.opened_count = 0
        self.closed_counts: dict[CloseReason, int] = {r: 0 for r in CloseReason}

    @property
    def phase(self) -> OpportunityPhase:
        p = self.presentation
        if p.visible:
            return OpportunityPhase.OPEN_VISIBLE
        if p.minimized:
            return OpportunityPhase.OPEN_MINIMIZED
        return OpportunityPhase.CLOSED

    def remaining_ms(self) -> float:
        return self.presentation.remaining_ms()

    # ═══════════════════════════════════════════════════════════════
    #  Transitions
    # ═══════════════════════════════════════════════════════════════

    def open(self, content: Any, duration_ms: float = OPPORTUNITY_DURATION_MS) -> bool:
        """Open an opportunity and pause the clock for its duration.

        A second open while one is already open is rejected.
        """
        if content is None:
            raise ValueError("opportunity content is required")
        if not is_finite_number(duration_ms) or duration_ms <= 0:
            raise ValueError(f"opportunity duration must be a finite number > 0, got {duration_ms!r}")
        if duration_ms > self.controller.max_timeout_ms:
            raise ValueError(f"opportunity duration {duration_ms:.0f}ms exceeds the "
                             f"{self.controller.max_timeout_ms:.0f}ms pause limit")

        if self.presentation.is_active():
            log.warning("opportunity already open (%.0fms left) — rejecting %s",
                        self.remaining_ms(), _describe(content))
            return False

        self.presentation.begin(content, duration_ms)
        paused = self.controller.pause(
            PauseReason.BETTING_OPPORTUNITY, duration_ms, on_timeout=self._on_pause_timeout,
        )
        if not paused:
            info = self.controller.info()
            log.warning("clock already paused for %s — dropping opportunity %s",
                        info.reason.value if info.reason else None, _describe(content))
            self.presentation.close()
            return False

        self.opened_count += 1
        log.info("OPPORTUNITY OPEN: %s (%.0fms)", _describe(content), duration_ms)
        return True

    def minimize(self) -> bool:
        if self.phase is not OpportunityPhase.OPEN_VISIBLE:
            log.debug("minimize ignored in %s", self.phase.value)
            return False
        if not self.check_consistency():
            return False

        self.presentation.visible = False
        self.presentation.minimized = True
        if not self._resync_timeout("minimize"):
            return False
        log.info("opportunity minimized (%.0fms left)", self.remaining_ms())
        return True

    def restore(self) -> bool:
        if self.phase is not OpportunityPhase.OPEN_MINIMIZED:
            log.debug("restore ignored in %s", self.phase.value)
            return False
        if not self.check_consistency():
            return False

        if not self._resync_timeout("restore"):
            return False
        self.presentation.minimized = False
        self.presentation.visible = True
        log.info("opportunity restored (%.0fms left)", self.remaining_ms())
        return True

    def decide(self, outcome: Any) -> Optional[asyncio.Task]:
        """Close on a user decision; returns the resume task (countdown)."""
        if not self.presentation.is_active():
            log.debug("decision %r ignored — no open opportunity", outcome)
            return None

        if self.on_decision is not None:
            try:
                self.on_decision(outcome, self.presentation.content)
            except Exception:
                log.exception("decision handler failed for %r", outcome)

        return self._close(CloseReason.DECISION, outcome)

    def _resync_timeout(self, action: str) -> bool:
        # always from the fixed deadline, never from the old timer
        remaining = self.remaining_ms()
        if remaining <= 0:
            log.info("opportunity expired during %s", action)
            self._close(CloseReason.TIMEOUT)
            return False
        self.controller.clear_pending_timeout()
        self.controller.rearm_timeout(
            remaining + self.reschedule_margin_ms, self._on_pause_timeout,
        )
        return True

    def _on_pause_timeout(self) -> None:
        if not self.presentation.is_active():
            log.warning("betting pause timed out with no open opportunity — forcing resume")
            self.controller.force_resume("orphaned timeout")
            return
        remaining = self.remaining_ms()
        if remaining > 0:
            log.debug("auto-resume fired %.0fms early — re-arming", remaining)
            self.controller.rearm_timeout(
                remaining + self.reschedule_margin_ms, self._on_pause_timeout,
            )
            return
        self._close(CloseReason.TIMEOUT)

    def _close(self, reason: CloseReason, outcome: Any = None) -> Optional[asyncio.Task]:
        p = self.presentation
        event = OpportunityClosed(
            reason=reason,
            content=p.content,
            outcome=outcome,
            elapsed_ms=p.elapsed_ms(),
            was_minimized=p.minimized,
        )
        p.close()
        self.controller.clear_pending_timeout()
        self.closed_counts[reason] += 1

        log.info("OPPORTUNITY CLOSED: %s after %.0fms (%s%s)",
                 reason.value, event.elapsed_ms,
                 "minimized" if event.was_minimized else "visible",
                 f", outcome={outcome!r}" if outcome is not None else "")
        self._notify_close(event)
        return self._spawn(self._resume_after_close())

    async def _resume_after_close(self) -> bool:
        if self.presentation.is_active():
            # A newer opportunity owns the pause now.
            return False
        info = self.controller.info()
        if info.active and info.reason is not PauseReason.BETTING_OPPORTUNITY:
            log.info("clock paused for %s — leaving it paused", info.reason.value)
            return False
        return await self.controller.resume(True, self.countdown_seconds)

    # ═══════════════════════════════════════════════════════════════
    #  Consistency / recovery
    # ═══════════════════════════════════════════════════════════════

    def check_consistency(self) -> bool:
        """Validate presentation vs. pause state; recover if they disagree."""
        p = self.presentation
        info = self.controller.info()

        if not p.is_active():
            orphaned = (
                info.active
                and info.reason is PauseReason.BETTING_OPPORTUNITY
                and not info.resuming
                and not self._tasks
            )
            if orphaned:
                log.error("clock paused for betting with no open opportunity — forcing resume")
                self.closed_counts[CloseReason.RECOVERY] += 1
                self.controller.force_resume("recovery")
                return False
            return True

        problems = []
        if p.content is None:
            problems.append("content missing")
        if p.started_at is None or p.duration_ms is None:
            problems.append("timing missing")
        if p.visible and p.minimized:
            problems.append("both visible and minimized")
        if not info.active:
            problems.append("clock not paused")
        elif info.reason is not PauseReason.BETTING_OPPORTUNITY:
            problems.append(f"clock paused for {info.reason.value}")

        if not problems:
            return True
        self._recover(problems)
        return False

    def _recover(self, problems: list[str]) -> None:
        log.error("inconsistent opportunity state (%s) — forcing recovery",
                  "; ".join(problems))
        p = self.presentation
        event = OpportunityClosed(
            reason=CloseReason.RECOVERY,
            content=p.content,
            elapsed_ms=p.elapsed_ms(),
            was_minimized=p.minimized,
        )
        p.close()
        self.controller.clear_pending_timeout()
        self.closed_counts[CloseReason.RECOVERY] += 1
        self._notify_close(event)
        self.controller.force_resume("recovery")

    # ═══════════════════════════════════════════════════════════════
    #  Plumbing
    # ═══════════════════════════════════════════════════════════════

    def _notify_close(self, event: OpportunityClosed) -> None:
        if self.on_close is None:
            return
        try:
            self.on_close(event)
        except Exception:
            log.exception("close listener failed for %s", event.reason.value)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every resume started by a close to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def reset(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        self._tasks.clear()
        self.presentation.close()
        self.opened_count = 0
        self.closed_counts = {r: 0 for r in CloseReason}
