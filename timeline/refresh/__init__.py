"""
Snapshot refresh.

Cascade resolution, the debounced rebuild worker and the periodic
full-rebuild scheduler.
"""

from .resolver import CascadeResolver, RebuildSummary
from .scheduler import FullRebuildScheduler
from .worker import RebuildBatch, TimelineRebuildWorker, WorkerState

__all__ = [
    "CascadeResolver",
    "FullRebuildScheduler",
    "RebuildBatch",
    "RebuildSummary",
    "TimelineRebuildWorker",
    "WorkerState",
]
