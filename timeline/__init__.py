"""
Timeline snapshot refresh service.

Keeps the denormalized activity feed in step with the library: each
author, genre, book and reading owns one snapshot row, rewritten in the
background whenever the records it embeds change.
"""

from .invalidation import InvalidationChannel, TimelineInvalidator
from .models import EntityRef, EntityType, FullRebuild, RefreshEntity, TimelineEvent
from .recording import TimelineRecorder
from .refresh import CascadeResolver, TimelineRebuildWorker

__all__ = [
    "CascadeResolver",
    "EntityRef",
    "EntityType",
    "FullRebuild",
    "InvalidationChannel",
    "RefreshEntity",
    "TimelineEvent",
    "TimelineInvalidator",
    "TimelineRebuildWorker",
    "TimelineRecorder",
]
