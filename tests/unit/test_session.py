"""Tests for actionbet.session — a full match driven on the virtual clock."""
import asyncio
from unittest.mock import AsyncMock

from actionbet.match import FOUL_CHOICES, EventKind, MatchEvent
from actionbet.orchestrator import OpportunityPhase
from actionbet.pause import PauseReason
from actionbet.scheduler import VirtualScheduler
from actionbet.session import MatchSession

FOUL = MatchEvent(
    3, EventKind.MULTI_CHOICE_ACTION_BET, "Crunching tackle near the box!",
    bet_type="FOUL_OUTCOME", choices=FOUL_CHOICES,
)
RESOLUTION = MatchEvent(
    7, EventKind.RESOLUTION, "The ref shows a Yellow Card!",
    bet_type="FOUL_OUTCOME", result="Yellow Card",
)
GOAL = MatchEvent(10, EventKind.GOAL, "GOAL! A stunning strike for the Home!", team="HOME")


def _session(**kwargs) -> tuple[MatchSession, VirtualScheduler]:
    sched = VirtualScheduler()
    kwargs.setdefault("timeline", [FOUL, RESOLUTION, GOAL])
    session = MatchSession(
        sched, "Home", "Away",
        opportunity_ms=2000, countdown_seconds=3, tick_ms=100, **kwargs,
    )
    return session, sched


async def _play(session: MatchSession, sched: VirtualScheduler) -> dict:
    runner = asyncio.get_running_loop().create_task(session.run())
    while not runner.done():
        await sched.advance(100)
    return runner.result()


class TestMatchFlow:
    async def test_decision_pauses_then_resumes(self) -> None:
        session, sched = _session()
        session.on_opportunity = lambda event: sched.schedule(
            500, lambda: session.orchestrator.decide("Yellow Card"))

        summary = await _play(session, sched)

        assert summary["minute"] == 90
        assert summary["home_score"] == 1
        assert summary["opportunities"] == 1
        assert summary["closed"]["DECISION"] == 1
        assert summary["bets_placed"] == 1
        assert summary["bets_won"] == 1
        # 500ms open + 3s countdown held the clock for 35 ticks
        assert summary["paused_ticks"] >= 30
        assert any("📝 Bet placed: Yellow Card" in line for line in session.feed)
        assert any("Resuming in 1…" in line for line in session.feed)
        assert any("Your pick 'Yellow Card' was right" in line for line in session.feed)
        assert session.controller.info().reason is PauseReason.MATCH_END

    async def test_losing_pick(self) -> None:
        session, sched = _session()
        session.on_opportunity = lambda event: sched.schedule(
            100, lambda: session.orchestrator.decide("Red Card"))

        summary = await _play(session, sched)
        assert summary["bets_won"] == 0
        assert any("lost (Yellow Card)" in line for line in session.feed)

    async def test_ignored_opportunity_times_out(self) -> None:
        session, sched = _session()
        summary = await _play(session, sched)

        assert summary["closed"]["TIMEOUT"] == 1
        assert summary["bets_placed"] == 0
        assert any("Time expired (visible modal)" in line for line in session.feed)

    async def test_minimized_opportunity_times_out(self) -> None:
        session, sched = _session()
        session.on_opportunity = lambda event: session.orchestrator.minimize()

        await _play(session, sched)
        assert any("Time expired (minimized modal)" in line for line in session.feed)

    async def test_clock_frozen_while_opportunity_open(self) -> None:
        session, sched = _session()
        runner = asyncio.get_running_loop().create_task(session.run())

        await sched.advance(300)
        assert session.clock.minute == 3
        assert session.orchestrator.phase is OpportunityPhase.OPEN_VISIBLE

        await sched.advance(1500)
        assert session.clock.minute == 3

        runner.cancel()
        await sched.settle()
        await session.close()


class TestNotifier:
    async def test_feed_forwarded_to_notifier(self) -> None:
        notifier = AsyncMock()
        session, sched = _session(notifier=notifier)
        session.on_opportunity = lambda event: session.orchestrator.decide("Warning")

        await _play(session, sched)
        await sched.settle()
        await session.close()

        notifier.notify_kick_off.assert_awaited_once_with("Home", "Away", 3)
        notifier.notify_opportunity.assert_awaited_once()
        reason, _, outcome, minimized = notifier.notify_opportunity_closed.await_args.args
        assert (reason, outcome, minimized) == ("DECISION", "Warning", False)
        notifier.notify_full_time.assert_awaited_once()
        notifier.close.assert_awaited_once()


class TestReset:
    async def test_reset_drops_all_state(self) -> None:
        session, sched = _session()
        for _ in range(3):
            session.clock.tick()
        assert session.controller.is_paused()

        session.reset()
        assert not session.controller.is_paused()
        assert session.orchestrator.phase is OpportunityPhase.CLOSED
        assert session.clock.minute == 0
        assert session.feed == []
        summary = session.summary()
        assert summary["home_score"] == 0
        assert summary["opportunities"] == 0
        assert summary["pauses"] == 0
        assert summary["closed"] == {"DECISION": 0, "TIMEOUT": 0, "RECOVERY": 0}

    def test_sessions_are_independent(self) -> None:
        first, _ = _session()
        second, _ = _session()
        for _ in range(3):
            first.clock.tick()
        assert first.controller.is_paused()
        assert not second.controller.is_paused()
