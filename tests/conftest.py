"""Shared test fixtures."""

import pytest

from actionbet.orchestrator import OpportunityOrchestrator
from actionbet.pause import PauseController
from actionbet.scheduler import VirtualScheduler


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def controller(scheduler: VirtualScheduler) -> PauseController:
    return PauseController(scheduler)


@pytest.fixture
def closed_events() -> list:
    return []


@pytest.fixture
def orchestrator(controller: PauseController, closed_events: list) -> OpportunityOrchestrator:
    return OpportunityOrchestrator(
        controller,
        countdown_seconds=3,
        reschedule_margin_ms=100,
        on_close=closed_events.append,
    )
