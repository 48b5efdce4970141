"""
Presentation state of one betting opportunity.

Pure data with validated setters. The deadline is fixed by `started_at` and
`duration_ms` at open time; minimize/restore only flip the two visibility
flags, so `remaining_ms()` keeps falling with the clock no matter how often
the modal is toggled.
"""
import logging
import math
from numbers import Real
from typing import Any, Callable, Optional

log = logging.getLogger("actionbet.presentation")


def is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def is_finite_number(value) -> bool:
    return is_number(value) and math.isfinite(value)


class OpportunityPresentation:

    def __init__(self, clock: Callable[[], float]):
        self._clock = clock
        self._visible = False
        self._minimized = False
        self._started_at: Optional[float] = None
        self._duration_ms: Optional[float] = None
        self.content: Any = None

    # ── Validated fields ──────────────────────────────────────────

    @property
    def visible(self) -> bool:
        return self._visible

    @visible.setter
    def visible(self, value: bool) -> None:
        if not isinstance(value, bool):
            log.warning("rejected non-bool visible=%r", value)
            return
        self._visible = value

    @property
    def minimized(self) -> bool:
        return self._minimized

    @minimized.setter
    def minimized(self, value: bool) -> None:
        if not isinstance(value, bool):
            log.warning("rejected non-bool minimized=%r", value)
            return
        self._minimized = value

    @property
    def started_at(self) -> Optional[float]:
        return self._started_at

    @started_at.setter
    def started_at(self, value: float) -> None:
        if not is_number(value):
            log.warning("rejected non-numeric started_at=%r", value)
            return
        self._started_at = float(value)

    @property
    def duration_ms(self) -> Optional[float]:
        return self._duration_ms

    @duration_ms.setter
    def duration_ms(self, value: float) -> None:
        if not is_number(value):
            log.warning("rejected non-numeric duration_ms=%r", value)
            return
        self._duration_ms = float(value)

    # ── Lifecycle ─────────────────────────────────────────────────

    def begin(self, content: Any, duration_ms: float) -> None:
        self.visible = True
        self.minimized = False
        self.started_at = self._clock()
        self.duration_ms = duration_ms
        self.content = content

    def close(self) -> None:
        self._visible = False
        self._minimized = False
        self._started_at = None
        self._duration_ms = None
        self.content = None

    # ── Derived ───────────────────────────────────────────────────

    def is_active(self) -> bool:
        return self._visible or self._minimized

    def elapsed_ms(self) -> float:
        if not self.is_active() or self._started_at is None:
            return 0.0
        return max(0.0, self._clock() - self._started_at)

    def remaining_ms(self) -> float:
        if not self.is_active() or self._started_at is None or self._duration_ms is None:
            return 0.0
        return max(0.0, self._duration_ms - (self._clock() - self._started_at))

    def is_expired(self) -> bool:
        if not self.is_active():
            return True
        return self.remaining_ms() <= 0

    def snapshot(self) -> dict:
        """Flat dict for logging / health output."""
        return {
            "visible": self._visible,
            "minimized": self._minimized,
            "started_at": self._started_at,
            "duration_ms": self._duration_ms,
            "remaining_ms": round(self.remaining_ms(), 1),
            "has_content": self.content is not None,
        }
