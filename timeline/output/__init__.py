"""Timeline snapshot persistence."""

from .timeline_store import PostgresTimelineEventStore, TimelineEventStore

__all__ = ["PostgresTimelineEventStore", "TimelineEventStore"]
