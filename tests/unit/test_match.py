"""Tests for actionbet.match — timeline generation and the pausable match clock."""
import asyncio
import random

from actionbet.match import (
    FOUL_CHOICES, EventKind, MatchClock, MatchEvent, generate_timeline,
)
from actionbet.pause import PauseController, PauseReason
from actionbet.scheduler import VirtualScheduler


class TestTimeline:
    def test_starts_with_kick_off_and_is_sorted(self) -> None:
        timeline = generate_timeline("Home", "Away", random.Random(1))
        assert timeline[0].kind is EventKind.KICK_OFF
        assert timeline[0].minute == 1
        minutes = [e.minute for e in timeline]
        assert minutes == sorted(minutes)
        assert all(1 <= m <= 90 for m in minutes)

    def test_same_seed_same_timeline(self) -> None:
        assert (generate_timeline("A", "B", random.Random(42))
                == generate_timeline("A", "B", random.Random(42)))

    def test_every_action_bet_has_a_resolution(self) -> None:
        for seed in range(20):
            timeline = generate_timeline("Home", "Away", random.Random(seed))
            bets = [e for e in timeline if e.is_action_bet]
            resolutions = [e for e in timeline if e.kind is EventKind.RESOLUTION]
            assert len(bets) == len(resolutions)
            for bet in bets:
                assert bet.choices == FOUL_CHOICES
                assert any(
                    r.minute == min(bet.minute + 4, 90) and r.bet_type == bet.bet_type
                    for r in resolutions
                )
            for r in resolutions:
                assert r.result in {c.text for c in FOUL_CHOICES}

    def test_goals_name_a_team(self) -> None:
        for seed in range(20):
            for e in generate_timeline("Reds", "Blues", random.Random(seed)):
                if e.kind is EventKind.GOAL:
                    assert e.team in ("HOME", "AWAY")
                    assert ("Reds" if e.team == "HOME" else "Blues") in e.description

    def test_action_bet_without_choices_is_not_a_bet(self) -> None:
        event = MatchEvent(10, EventKind.MULTI_CHOICE_ACTION_BET, "empty")
        assert not event.is_action_bet


class TestMatchClock:
    def _clock(self, timeline=(), **kwargs):
        sched = VirtualScheduler()
        controller = PauseController(sched)
        seen: list[MatchEvent] = []
        clock = MatchClock(controller, sched, timeline=timeline,
                           on_event=seen.append, **kwargs)
        return clock, controller, sched, seen

    def test_tick_advances_and_dispatches(self) -> None:
        goal = MatchEvent(2, EventKind.GOAL, "GOAL!", team="HOME")
        clock, _, _, seen = self._clock([goal])

        assert clock.tick() is True
        assert clock.minute == 1 and seen == []
        clock.tick()
        assert clock.minute == 2 and seen == [goal]

    def test_paused_clock_holds(self) -> None:
        clock, controller, _, _ = self._clock()
        clock.tick()
        controller.pause(PauseReason.MANUAL)

        assert clock.tick() is False
        assert clock.tick() is False
        assert clock.minute == 1
        assert clock.paused_ticks == 2

        controller.force_resume()
        assert clock.tick() is True
        assert clock.minute == 2

    def test_full_time_pauses_with_match_end(self) -> None:
        clock, controller, _, _ = self._clock(full_time=3)
        for _ in range(3):
            clock.tick()

        assert clock.finished
        assert controller.info().reason is PauseReason.MATCH_END
        assert clock.tick() is False
        assert clock.minute == 3

    def test_consistency_check_runs_every_tick(self) -> None:
        calls: list[int] = []
        clock, controller, _, _ = self._clock(consistency_check=lambda: calls.append(1) or True)
        clock.tick()
        controller.pause(PauseReason.MANUAL)
        clock.tick()
        assert len(calls) == 2

    def test_failing_handlers_do_not_stop_the_clock(self) -> None:
        sched = VirtualScheduler()
        controller = PauseController(sched)

        def boom(*args) -> None:
            raise RuntimeError("boom")

        clock = MatchClock(
            controller, sched,
            timeline=[MatchEvent(1, EventKind.COMMENTARY, "x")],
            on_event=boom, consistency_check=boom,
        )
        assert clock.tick() is True
        assert clock.minute == 1

    async def test_run_ticks_on_scheduler(self) -> None:
        clock, _, sched, _ = self._clock(tick_ms=100, full_time=5)
        task = asyncio.get_running_loop().create_task(clock.run())

        await sched.advance(250)
        assert clock.minute == 2
        await sched.advance(300)
        assert task.done()
        assert clock.minute == 5

    async def test_stop_ends_run(self) -> None:
        clock, _, sched, _ = self._clock(tick_ms=100)
        task = asyncio.get_running_loop().create_task(clock.run())
        await sched.advance(300)
        clock.stop()
        await sched.advance(100)
        assert task.done()
        assert clock.minute == 3

    def test_reset(self) -> None:
        clock, _, _, _ = self._clock(full_time=1)
        clock.tick()
        clock.reset()
        assert (clock.minute, clock.finished, clock.paused_ticks) == (0, False, 0)
