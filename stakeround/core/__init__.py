"""
Round Scheduler Core

Decides when to rotate nominations and drives the end and start of rounds.
"""

from .controller import JobMetadata, RoundController, is_nomination_round
from .events import EventBus, JobStatusTracker, job_status_emitter
from .lifecycle import RoundLifecycle
from .round import NominationRound
from .scheduler import RoundScheduler

__all__ = [
    "JobMetadata",
    "RoundController",
    "is_nomination_round",
    "EventBus",
    "JobStatusTracker",
    "job_status_emitter",
    "RoundLifecycle",
    "NominationRound",
    "RoundScheduler",
]
