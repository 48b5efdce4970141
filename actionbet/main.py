#!/usr/bin/env python3
"""
Action-bet match simulator — main entry point.

Plays one simulated match. Action-bet events pause the match clock; an
auto-player decides, minimizes/restores, or lets opportunities expire so the
whole pause/resume cycle can be watched in the log.

Usage:
    python -m actionbet.main                      # real-time match
    python -m actionbet.main --virtual --seed 7   # instant run on a virtual clock
    python -m actionbet.main --tick-ms 200 --duration-ms 6000
"""
import argparse
import asyncio
import json
import logging
import random
import signal

from actionbet.config import OPPORTUNITY_DURATION_MS, RESUME_COUNTDOWN_S, MATCH_TICK_MS
from actionbet.health import HealthMonitor
from actionbet.logging_config import setup_logging
from actionbet.match import MatchEvent
from actionbet.scheduler import LoopScheduler, Scheduler, VirtualScheduler
from actionbet.session import MatchSession
from actionbet.telegram import TelegramNotifier

log = logging.getLogger("actionbet.main")


class AutoPlayer:
    """Reacts to each opportunity the way a distracted user might."""

    def __init__(self, session: MatchSession, scheduler: Scheduler, rng: random.Random):
        self.session = session
        self.scheduler = scheduler
        self.rng = rng

    def react(self, event: MatchEvent) -> None:
        orch = self.session.orchestrator
        duration = self.session.opportunity_ms
        roll = self.rng.random()
        pick = self.rng.choice(event.choices).text

        if roll < 0.5:
            delay = self.rng.uniform(0.1, 0.8) * duration
            log.info("auto-player will pick %r in %.0fms", pick, delay)
            self.scheduler.schedule(delay, lambda: orch.decide(pick))
        elif roll < 0.75:
            log.info("auto-player will minimize, restore, then pick %r", pick)
            self.scheduler.schedule(0.2 * duration, orch.minimize)
            self.scheduler.schedule(0.5 * duration, orch.restore)
            self.scheduler.schedule(0.7 * duration, lambda: orch.decide(pick))
        else:
            log.info("auto-player ignores the opportunity")
            if self.rng.random() < 0.5:
                self.scheduler.schedule(0.3 * duration, orch.minimize)


async def drive_virtual(session: MatchSession, scheduler: VirtualScheduler,
                        step_ms: float = 100.0) -> dict:
    """Run the session to full time on a virtual clock."""
    runner = asyncio.get_running_loop().create_task(session.run())
    while not runner.done():
        await scheduler.advance(step_ms)
    return runner.result()


async def run(args) -> dict:
    rng = random.Random(args.seed)
    scheduler = VirtualScheduler() if args.virtual else LoopScheduler()
    session = MatchSession(
        scheduler,
        home=args.home,
        away=args.away,
        rng=rng,
        opportunity_ms=args.duration_ms,
        countdown_seconds=args.countdown,
        tick_ms=args.tick_ms,
        notifier=None if args.virtual else TelegramNotifier(),
    )
    session.on_opportunity = AutoPlayer(session, scheduler, rng).react

    if args.virtual:
        try:
            return await drive_virtual(session, scheduler)
        finally:
            await session.close()

    health = HealthMonitor(session)
    health_task = asyncio.create_task(health.run(), name="health")

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, session.clock.stop)

    try:
        return await session.run()
    finally:
        health_task.cancel()
        health.write()
        await session.close()


def main():
    parser = argparse.ArgumentParser(description="Live action-bet match simulator")
    parser.add_argument("--home", default="Home United")
    parser.add_argument("--away", default="Away City")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for the timeline and auto-player")
    parser.add_argument("--duration-ms", type=float, default=OPPORTUNITY_DURATION_MS,
                        help="Betting opportunity duration")
    parser.add_argument("--countdown", type=int, default=RESUME_COUNTDOWN_S,
                        help="Resume countdown length in seconds")
    parser.add_argument("--tick-ms", type=float, default=MATCH_TICK_MS,
                        help="Real time per match minute")
    parser.add_argument("--virtual", action="store_true",
                        help="Run instantly on a virtual clock")
    args = parser.parse_args()

    setup_logging()
    summary = asyncio.run(run(args))

    log.info("=" * 60)
    log.info("  MATCH SUMMARY")
    log.info("=" * 60)
    for line in json.dumps(summary, indent=2).splitlines():
        log.info("  %s", line)
    log.info("=" * 60)


if __name__ == "__main__":
    main()
