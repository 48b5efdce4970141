"""
Match clock and event timeline.

The clock advances one match minute per tick, but only while the pause
controller lets it. Events scheduled for the new minute are handed to the
session, which opens betting opportunities for action-bet events.
"""
import logging
import random
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, Optional

from actionbet.config import MATCH_TICK_MS, FULL_TIME_MINUTE
from actionbet.pause import PauseController, PauseReason
from actionbet.scheduler import Scheduler

log = logging.getLogger("actionbet.match")


# ═══════════════════════════════════════════════════════════════════════
#  Events
# ═══════════════════════════════════════════════════════════════════════

class EventKind(Enum):
    KICK_OFF                = "KICK_OFF"
    GOAL                    = "GOAL"
    MULTI_CHOICE_ACTION_BET = "MULTI_CHOICE_ACTION_BET"
    RESOLUTION              = "RESOLUTION"
    COMMENTARY              = "COMMENTARY"


@dataclass(frozen=True)
class BetChoice:
    text: str
    odds: float


@dataclass(frozen=True)
class MatchEvent:
    """One timeline entry. Action-bet events carry their choices."""
    minute: int
    kind: EventKind
    description: str
    team: Optional[str] = None        # "HOME" / "AWAY" for goals
    bet_type: Optional[str] = None
    choices: tuple[BetChoice, ...] = ()
    result: Optional[str] = None      # resolution outcome

    @property
    def is_action_bet(self) -> bool:
        return self.kind is EventKind.MULTI_CHOICE_ACTION_BET and bool(self.choices)


FOUL_CHOICES = (
    BetChoice("Yellow Card", 2.5),
    BetChoice("Red Card", 8.0),
    BetChoice("Warning", 1.5),
)

FOUL_RESOLUTIONS = {
    "Yellow Card": "The ref shows a Yellow Card!",
    "Red Card":    "It's a RED CARD! The player is off!",
    "Warning":     "The referee gives a stern warning.",
}

COMMENTARY_LINES = (
    "A great save by the keeper!",
    "The shot goes just wide!",
    "A crunching tackle in midfield.",
    "A promising attack breaks down.",
)


def _foul_result(rng: random.Random) -> str:
    r = rng.random()
    if r < 0.6:
        return "Yellow Card"
    if r < 0.9:
        return "Warning"
    return "Red Card"


def generate_timeline(
    home: str,
    away: str,
    rng: Optional[random.Random] = None,
    full_time: int = FULL_TIME_MINUTE,
) -> list[MatchEvent]:
    """Random timeline: kick-off, then an event every 8–17 minutes from 5'.

    Each slot is a goal (20%), a foul action bet with its resolution four
    minutes later (45%), or commentary (35%).
    """
    rng = rng or random.Random()
    timeline = [MatchEvent(1, EventKind.KICK_OFF, "The match has kicked off!")]

    minute = 5
    while minute <= full_time - 2:
        r = rng.random()
        if r < 0.20:
            team = "HOME" if rng.random() > 0.5 else "AWAY"
            name = home if team == "HOME" else away
            timeline.append(MatchEvent(
                minute, EventKind.GOAL, f"GOAL! A stunning strike for the {name}!", team=team,
            ))
        elif r < 0.65:
            result = _foul_result(rng)
            timeline.append(MatchEvent(
                minute, EventKind.MULTI_CHOICE_ACTION_BET,
                "Crunching tackle near the box! What will the ref do?",
                bet_type="FOUL_OUTCOME", choices=FOUL_CHOICES,
            ))
            timeline.append(MatchEvent(
                min(minute + 4, full_time), EventKind.RESOLUTION, FOUL_RESOLUTIONS[result],
                bet_type="FOUL_OUTCOME", result=result,
            ))
        else:
            timeline.append(MatchEvent(
                minute, EventKind.COMMENTARY, rng.choice(COMMENTARY_LINES),
            ))
        minute += rng.randint(8, 17)

    timeline.sort(key=lambda e: e.minute)
    return timeline


# ═══════════════════════════════════════════════════════════════════════
#  Match clock
# ═══════════════════════════════════════════════════════════════════════

class MatchClock:

    def __init__(
        self,
        controller: PauseController,
        scheduler: Scheduler,
        timeline: Iterable[MatchEvent] = (),
        on_event: Optional[Callable[[MatchEvent], None]] = None,
        consistency_check: Optional[Callable[[], bool]] = None,
        tick_ms: float = MATCH_TICK_MS,
        full_time: int = FULL_TIME_MINUTE,
    ):
        self.controller = controller
        self.scheduler = scheduler
        self.on_event = on_event
        self.consistency_check = consistency_check
        self.tick_ms = tick_ms
        self.full_time = full_time

        self._events: dict[int, list[MatchEvent]] = defaultdict(list)
        for event in timeline:
            self._events[event.minute].append(event)

        self.minute = 0
        self.finished = False
        self.paused_ticks = 0

    def tick(self) -> bool:
        """Advance one match minute. Returns False when the clock is held."""
        if self.finished:
            return False

        if self.consistency_check is not None:
            try:
                self.consistency_check()
            except Exception:
                log.exception("consistency check failed")

        if self.controller.is_paused():
            self.paused_ticks += 1
            return False

        self.minute += 1
        for event in self._events.get(self.minute, ()):
            if self.on_event is None:
                continue
            try:
                self.on_event(event)
            except Exception:
                log.exception("error processing match event %s at %d'",
                              event.kind.value, self.minute)

        if self.minute >= self.full_time:
            self.finished = True
            self.controller.pause(PauseReason.MATCH_END)
            log.info("FULL TIME at %d' (%d ticks held by pauses)",
                     self.minute, self.paused_ticks)
        return True

    async def run(self) -> None:
        while not self.finished:
            await self.scheduler.sleep(self.tick_ms)
            self.tick()

    def stop(self) -> None:
        self.finished = True

    def reset(self) -> None:
        self.minute = 0
        self.finished = False
        self.paused_ticks = 0
