"""
Health monitor — periodic heartbeat + health.json.
"""
import asyncio
import json
import logging
import time
from pathlib import Path
from typing import Any

from actionbet.config import HEARTBEAT_INTERVAL_S, HEALTH_FILE
from actionbet.session import MatchSession

log = logging.getLogger("actionbet.health")


class HealthMonitor:
    def __init__(self, session: MatchSession, health_file: Path = HEALTH_FILE,
                 interval_s: float = HEARTBEAT_INTERVAL_S) -> None:
        self.session = session
        self.health_file = health_file
        self.interval_s = interval_s
        self._start = time.monotonic()

    def _snapshot(self) -> dict[str, Any]:
        info = self.session.controller.info()
        orch = self.session.orchestrator
        return {
            "uptime_s": round(time.monotonic() - self._start, 1),
            "minute": self.session.clock.minute,
            "finished": self.session.clock.finished,
            "paused": info.active,
            "pause_reason": info.reason.value if info.reason else None,
            "resuming": info.resuming,
            "auto_resume_in_ms": info.auto_resume_in_ms,
            "opportunity_phase": orch.phase.value,
            "opportunity": orch.presentation.snapshot(),
            "opportunities_opened": orch.opened_count,
            "opportunities_closed": {r.value: n for r, n in orch.closed_counts.items()},
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        }

    def write(self) -> dict[str, Any]:
        snap = self._snapshot()
        log.info(
            "heartbeat | up=%ss minute=%d paused=%s reason=%s phase=%s remaining=%.0fms opened=%d",
            snap["uptime_s"],
            snap["minute"],
            snap["paused"],
            snap["pause_reason"],
            snap["opportunity_phase"],
            snap["opportunity"]["remaining_ms"],
            snap["opportunities_opened"],
        )
        try:
            self.health_file.parent.mkdir(parents=True, exist_ok=True)
            self.health_file.write_text(json.dumps(snap, indent=2))
        except OSError as e:
            log.warning("could not write %s: %s", self.health_file, e)
        return snap

    async def run(self) -> None:
        while True:
            self.write()
            await asyncio.sleep(self.interval_s)
