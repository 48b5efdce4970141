"""
Match session — one self-contained pause context per simulated match.

Wires a scheduler, pause controller, opportunity orchestrator and match
clock together and plays the event-feed role: action-bet events open
opportunities, closes and resumes are posted to the feed.
"""
import asyncio
import logging
import random
from typing import Any, Callable, Optional

from actionbet.config import OPPORTUNITY_DURATION_MS, RESUME_COUNTDOWN_S, MATCH_TICK_MS
from actionbet.match import EventKind, MatchClock, MatchEvent, generate_timeline
from actionbet.orchestrator import CloseReason, OpportunityClosed, OpportunityOrchestrator
from actionbet.pause import PauseController, PauseReason
from actionbet.scheduler import Scheduler
from actionbet.telegram import TelegramNotifier

log = logging.getLogger("actionbet.session")


class MatchSession:

    def __init__(
        self,
        scheduler: Scheduler,
        home: str = "Home",
        away: str = "Away",
        *,
        rng: Optional[random.Random] = None,
        timeline: Optional[list[MatchEvent]] = None,
        opportunity_ms: float = OPPORTUNITY_DURATION_MS,
        countdown_seconds: int = RESUME_COUNTDOWN_S,
        tick_ms: float = MATCH_TICK_MS,
        notifier: Optional[TelegramNotifier] = None,
    ):
        self.scheduler = scheduler
        self.home = home
        self.away = away
        self.opportunity_ms = opportunity_ms
        self.notifier = notifier

        self.controller = PauseController(scheduler)
        self.orchestrator = OpportunityOrchestrator(
            self.controller,
            countdown_seconds=countdown_seconds,
            on_close=self._on_close,
            on_decision=self._on_decision,
        )
        if timeline is None:
            timeline = generate_timeline(home, away, rng)
        self.timeline = timeline
        self.clock = MatchClock(
            self.controller,
            scheduler,
            timeline=timeline,
            on_event=self.handle_event,
            consistency_check=self.orchestrator.check_consistency,
            tick_ms=tick_ms,
        )

        self.controller.add_resume_listener(self._on_resumed)
        self.controller.set_countdown_callback(self._on_countdown)
        self.controller.set_timeout_warning_callback(self._on_timeout_warning)

        # called with the event after an opportunity opens (UI / auto-player hook)
        self.on_opportunity: Optional[Callable[[MatchEvent], None]] = None

        self.score = {"HOME": 0, "AWAY": 0}
        self.feed: list[str] = []
        self.picks: dict[str, str] = {}      # bet_type → chosen outcome
        self.bets_placed = 0
        self.bets_won = 0
        self._tasks: set[asyncio.Task] = set()

    # ── Event feed ────────────────────────────────────────────────

    def post(self, text: str) -> None:
        line = f"{self.clock.minute:>2}' {text}"
        self.feed.append(line)
        log.info("FEED %s", line)

    def _send(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def handle_event(self, event: MatchEvent) -> None:
        if event.kind is EventKind.GOAL:
            self.score[event.team] += 1
            self.post(f"{event.description} ({self.score['HOME']}-{self.score['AWAY']})")
        elif event.is_action_bet:
            self.post(f"⚡ {event.description}")
            if self.orchestrator.open(event, self.opportunity_ms):
                if self.notifier is not None:
                    self._send(self.notifier.notify_opportunity(
                        event.minute, event.description,
                        [(c.text, c.odds) for c in event.choices],
                        self.opportunity_ms,
                    ))
                if self.on_opportunity is not None:
                    try:
                        self.on_opportunity(event)
                    except Exception:
                        log.exception("opportunity hook failed")
        elif event.kind is EventKind.RESOLUTION:
            self.post(event.description)
            self._settle_pick(event)
        else:
            self.post(event.description)

    def _settle_pick(self, event: MatchEvent) -> None:
        pick = self.picks.pop(event.bet_type, None)
        if pick is None:
            return
        if pick == event.result:
            self.bets_won += 1
            self.post(f"✅ Your pick '{pick}' was right!")
        else:
            self.post(f"❌ Your pick '{pick}' lost ({event.result}).")

    # ── Orchestrator / controller callbacks ───────────────────────

    def _on_decision(self, outcome: Any, content: Any) -> None:
        self.bets_placed += 1
        if isinstance(content, MatchEvent) and content.bet_type:
            self.picks[content.bet_type] = outcome

    def _on_close(self, event: OpportunityClosed) -> None:
        description = getattr(event.content, "description", None) or "Betting opportunity"
        if event.reason is CloseReason.DECISION:
            self.post(f"📝 Bet placed: {event.outcome}")
        elif event.reason is CloseReason.TIMEOUT:
            state = "minimized" if event.was_minimized else "visible"
            self.post(f"⏰ {description} - Time expired ({state} modal)!")
        else:
            self.post("⚠️ Betting system error - resuming match")

        if self.notifier is not None:
            self._send(self.notifier.notify_opportunity_closed(
                event.reason.value, description,
                None if event.outcome is None else str(event.outcome),
                event.was_minimized,
            ))

    def _on_countdown(self, remaining: int) -> None:
        self.post(f"Resuming in {remaining}…")

    def _on_timeout_warning(self, message: str) -> None:
        log.info("%s", message)

    def _on_resumed(self, reason: PauseReason, cause: str) -> None:
        self.post(f"▶ Match resumed ({cause})")

    # ── Lifecycle ─────────────────────────────────────────────────

    async def run(self) -> dict:
        log.info("KICK-OFF %s vs %s (%d timeline events)",
                 self.home, self.away, len(self.timeline))
        if self.notifier is not None:
            self._send(self.notifier.notify_kick_off(self.home, self.away, len(self.timeline)))
        await self.clock.run()
        await self.orchestrator.drain()
        summary = self.summary()
        log.info("FULL TIME %s %d-%d %s", self.home, summary["home_score"],
                 summary["away_score"], self.away)
        if self.notifier is not None:
            await self.notifier.notify_full_time(summary)
        return summary

    def summary(self) -> dict:
        return {
            "home": self.home,
            "away": self.away,
            "minute": self.clock.minute,
            "home_score": self.score["HOME"],
            "away_score": self.score["AWAY"],
            "opportunities": self.orchestrator.opened_count,
            "closed": {r.value: n for r, n in self.orchestrator.closed_counts.items()},
            "pauses": self.controller.pause_count,
            "paused_ticks": self.clock.paused_ticks,
            "bets_placed": self.bets_placed,
            "bets_won": self.bets_won,
        }

    def reset(self) -> None:
        """Drop all pause/opportunity state and rewind the clock."""
        self.orchestrator.reset()
        self.controller.reset()
        self.clock.reset()
        self.score = {"HOME": 0, "AWAY": 0}
        self.feed.clear()
        self.picks.clear()
        self.bets_placed = 0
        self.bets_won = 0
        log.info("session reset")

    async def close(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        if self.notifier is not None:
            await self.notifier.close()
