"""
Live action-bet pause/resume engine.

A match clock that suspends for time-boxed betting opportunities, keeps the
opportunity's deadline exact across minimize/restore, and resumes through a
cancellable countdown.
"""
from actionbet.countdown import ResumeCountdown
from actionbet.orchestrator import (
    CloseReason, OpportunityClosed, OpportunityOrchestrator, OpportunityPhase,
)
from actionbet.pause import PauseController, PauseInfo, PauseReason
from actionbet.presentation import OpportunityPresentation
from actionbet.scheduler import LoopScheduler, Scheduler, TimerHandle, VirtualScheduler

__all__ = [
    "ResumeCountdown",
    "CloseReason", "OpportunityClosed", "OpportunityOrchestrator", "OpportunityPhase",
    "PauseController", "PauseInfo", "PauseReason",
    "OpportunityPresentation",
    "LoopScheduler", "Scheduler", "TimerHandle", "VirtualScheduler",
]
